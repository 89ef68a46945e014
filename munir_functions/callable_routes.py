"""
Callable endpoints, one per MUNIR function.

Request body: ``{"data": {...}}``. Success: ``{"result": {...}}``. Failures
are raised as ``DispatchError`` and rendered by the app's exception handler.
"""
from typing import Awaitable, Callable

from fastapi import APIRouter, Depends
from pydantic import BaseModel, ValidationError

from . import handlers
from .dependencies import get_dispatch_context
from .errors import InvalidArgumentError
from .handlers import DispatchContext
from .schemas.callable_response import success_payload
from .schemas.requests import CallableRequest, NotificationRequest


router = APIRouter(tags=["Callable Functions"])

Handler = Callable[[DispatchContext, NotificationRequest], Awaitable[BaseModel]]


def _parse(payload: CallableRequest) -> NotificationRequest:
    try:
        return NotificationRequest.model_validate(payload.data or {})
    except ValidationError as exc:
        raise InvalidArgumentError("Invalid request data") from exc


async def _invoke(handler: Handler, payload: CallableRequest, ctx: DispatchContext) -> dict:
    result = await handler(ctx, _parse(payload))
    return success_payload(result)


@router.post("/sendVerificationEmail")
async def send_verification_email(
    payload: CallableRequest,
    ctx: DispatchContext = Depends(get_dispatch_context),
):
    return await _invoke(handlers.send_verification_email, payload, ctx)


@router.post("/handleUnverifiedLogin")
async def handle_unverified_login(
    payload: CallableRequest,
    ctx: DispatchContext = Depends(get_dispatch_context),
):
    return await _invoke(handlers.handle_unverified_login, payload, ctx)


@router.post("/sendCustomPasswordReset")
async def send_custom_password_reset(
    payload: CallableRequest,
    ctx: DispatchContext = Depends(get_dispatch_context),
):
    return await _invoke(handlers.send_password_reset, payload, ctx)


@router.post("/sendLoginAlertEmail")
async def send_login_alert_email(
    payload: CallableRequest,
    ctx: DispatchContext = Depends(get_dispatch_context),
):
    return await _invoke(handlers.send_login_alert, payload, ctx)


@router.post("/sendAccountDeletionEmail")
async def send_account_deletion_email(
    payload: CallableRequest,
    ctx: DispatchContext = Depends(get_dispatch_context),
):
    return await _invoke(handlers.send_account_deletion_email, payload, ctx)


@router.post("/checkEmailStatus")
async def check_email_status(
    payload: CallableRequest,
    ctx: DispatchContext = Depends(get_dispatch_context),
):
    return await _invoke(handlers.check_email_status, payload, ctx)
