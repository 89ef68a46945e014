import logging

from fastapi import Request

from .config import Settings
from .handlers import DispatchContext
from .services.link_issuer import FirebaseLinkIssuer
from .services.mail_delivery_service import MailDeliveryService
from .services.throttle_store import FirestoreThrottleStore, InMemoryThrottleStore
from .utils.firebase_client import get_firebase_config_status, get_firestore_client

logger = logging.getLogger(__name__)


def build_throttle_store(settings: Settings):
    if settings.throttle_backend == "memory":
        return InMemoryThrottleStore()
    if not get_firebase_config_status()["credentials_available"]:
        logger.warning(
            "Firebase credentials not configured; using in-memory throttle store "
            "(resend history is lost on restart)."
        )
        return InMemoryThrottleStore()
    return FirestoreThrottleStore(get_firestore_client(), settings.throttle_collection)


def build_dispatch_context(settings: Settings) -> DispatchContext:
    """Create the collaborators once per process."""
    return DispatchContext(
        link_issuer=FirebaseLinkIssuer(
            timeout_seconds=settings.auth_link_timeout_seconds,
            verification_continue_url=settings.email_verification_continue_url,
            reset_continue_url=settings.password_reset_continue_url,
        ),
        throttle_store=build_throttle_store(settings),
        mailer=MailDeliveryService(settings),
        settings=settings,
    )


def get_dispatch_context(request: Request) -> DispatchContext:
    ctx = getattr(request.app.state, "dispatch_context", None)
    if ctx is None:
        ctx = build_dispatch_context(request.app.state.settings)
        request.app.state.dispatch_context = ctx
    return ctx
