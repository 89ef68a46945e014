"""
MUNIR notification functions - FastAPI application
"""
import json
import logging
import os
import uuid
from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

# Load .env before settings are read; explicit environment variables win.
load_dotenv()

from .callable_routes import router as callable_router
from .config import load_settings
from .dependencies import build_dispatch_context, get_dispatch_context
from .errors import DispatchError
from .handlers import DispatchContext
from .schemas.callable_response import error_payload
from .utils.firebase_client import get_firebase_config_status, init_firebase


settings = load_settings()

logging.basicConfig(
    level=getattr(logging, settings.log_level, logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Starting MUNIR notification functions...")
    logger.info(json.dumps({"event": "startup_checklist", **settings.summary()}))

    status = get_firebase_config_status()
    try:
        if status["credentials_available"]:
            init_firebase()
        else:
            logger.warning("Firebase not configured (no credentials found).")
            if os.getenv("REQUIRE_FIREBASE", "").lower() == "true":
                raise RuntimeError("Firebase configuration required but not found.")
    except Exception as exc:
        logger.error(f"Firebase startup check failed: {exc}")
        if os.getenv("REQUIRE_FIREBASE", "").lower() == "true":
            raise

    if getattr(app.state, "dispatch_context", None) is None:
        app.state.dispatch_context = build_dispatch_context(settings)

    yield

    logger.info("Shutdown complete")


app = FastAPI(
    title="MUNIR Notification Functions",
    description="Transactional email functions for the MUNIR smart glasses app",
    version="1.0.0",
    lifespan=lifespan,
)
app.state.settings = settings
app.state.dispatch_context = None

app.include_router(callable_router)


@app.exception_handler(DispatchError)
async def dispatch_error_handler(request: Request, exc: DispatchError):
    return JSONResponse(
        status_code=exc.http_status,
        content=error_payload(status=exc.status, message=exc.message),
    )


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(request: Request, exc: RequestValidationError):
    details = {"errors": exc.errors()} if settings.debug else None
    return JSONResponse(
        status_code=400,
        content=error_payload(
            status="INVALID_ARGUMENT",
            message="Request body must be JSON of the form {\"data\": {...}}",
            details=details,
        ),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_id = getattr(request.state, "request_id", None)
    logger.error(
        f"Unhandled error request_id={request_id} path={request.url.path} "
        f"error={type(exc).__name__}: {exc}"
    )
    return JSONResponse(
        status_code=500,
        content=error_payload(status="INTERNAL", message="Internal server error"),
    )


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    request_id = (request.headers.get("x-request-id") or "").strip() or str(uuid.uuid4())
    request.state.request_id = request_id
    response = await call_next(request)
    response.headers["X-Request-ID"] = request_id
    return response


@app.get("/health")
async def health_check(ctx: DispatchContext = Depends(get_dispatch_context)):
    mail = ctx.mailer.status() if hasattr(ctx.mailer, "status") else None
    return {
        "status": "healthy",
        "service": "munir-functions",
        "firebase": get_firebase_config_status(),
        "mail": mail,
        # Effective store, which may differ from THROTTLE_BACKEND.
        "throttle_store": type(ctx.throttle_store).__name__,
    }


if __name__ == "__main__":
    import uvicorn

    port = int(os.getenv("PORT", 8080))
    uvicorn.run(app, host="0.0.0.0", port=port, log_level="info")
