"""
Dispatch handlers for the MUNIR callable functions.

Every handler validates its input before touching a collaborator, awaits
each external call in turn, and converts collaborator failures into the
typed errors of ``munir_functions.errors``.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol

from .config import Settings
from .errors import InternalError, InvalidArgumentError, NotFoundError
from .schemas.requests import DispatchResult, EmailStatus, NotificationRequest, ResendResult
from .services.link_issuer import LinkResult, UserLookup
from .services.mail_delivery_service import is_valid_email, sanitize_email
from .services.throttle import ThrottleRecord, evaluate_resend
from .templates import (
    AccountDeletionParams,
    ComposedMessage,
    LoginAlertParams,
    NotificationKind,
    PasswordResetParams,
    ResendExpiredParams,
    TemplateParams,
    WelcomeParams,
    compose,
)
from .utils.clock import Clock, isoformat_utc, utc_now

logger = logging.getLogger(__name__)


class LinkIssuer(Protocol):
    async def issue_email_verification_link(self, email: str) -> LinkResult: ...

    async def issue_password_reset_link(self, email: str) -> LinkResult: ...

    async def lookup_user_by_email(self, email: str) -> UserLookup: ...


class ThrottleStore(Protocol):
    async def get(self, email: str) -> Optional[ThrottleRecord]: ...

    async def upsert(self, email: str, sent_at: datetime) -> None: ...


class MailDispatcher(Protocol):
    async def send(self, message: ComposedMessage) -> Dict[str, Any]: ...


@dataclass
class DispatchContext:
    link_issuer: LinkIssuer
    throttle_store: ThrottleStore
    mailer: MailDispatcher
    settings: Settings = field(default_factory=Settings)
    clock: Clock = utc_now

    @property
    def resend_window(self) -> timedelta:
        return timedelta(seconds=self.settings.resend_window_seconds)


def _require_email(request: NotificationRequest) -> str:
    raw = request.email
    if raw is None or not str(raw).strip():
        raise InvalidArgumentError("Email is required")
    email = sanitize_email(raw)
    if not is_valid_email(email):
        raise InvalidArgumentError("Email is not a valid address")
    return email


async def _issue_link(
    issue: Callable[[str], Awaitable[LinkResult]],
    email: str,
    *,
    failure_message: str,
) -> str:
    try:
        result = await issue(email)
    except Exception as exc:
        logger.error(f"Link issuing failed for {email}: {exc}")
        raise InternalError(failure_message) from exc
    if result.status == "ok" and result.url:
        return result.url
    if result.status == "not_found":
        raise NotFoundError("No user found with this email")
    raise InternalError(failure_message)


def _compose(
    ctx: DispatchContext,
    kind: NotificationKind,
    params: TemplateParams,
    *,
    email: str,
    now: datetime,
) -> ComposedMessage:
    return compose(kind, params, to=email, sender=ctx.settings.sender, now=now)


async def _deliver(ctx: DispatchContext, message: ComposedMessage, *, failure_message: str) -> None:
    try:
        result = await ctx.mailer.send(message)
    except Exception as exc:
        logger.error(f"Mail send failed for {message.to} ({message.subject!r}): {exc}")
        raise InternalError(failure_message) from exc
    provider = result.get("provider", "unknown") if isinstance(result, dict) else "unknown"
    logger.info(f"Email sent to {message.to} via {provider}: {message.subject!r}")


async def _record_send(ctx: DispatchContext, email: str, now: datetime, *, failure_message: str) -> None:
    try:
        await ctx.throttle_store.upsert(email, now)
    except Exception as exc:
        # The email already went out; a retry inside the window may send a duplicate.
        logger.error(f"Throttle record update failed for {email} after send: {exc}")
        raise InternalError(failure_message) from exc


async def send_verification_email(ctx: DispatchContext, request: NotificationRequest) -> DispatchResult:
    email = _require_email(request)
    now = ctx.clock()
    failure = "Failed to send verification email"
    logger.info(f"Sending verification email to {email}")

    link = await _issue_link(
        ctx.link_issuer.issue_email_verification_link,
        email,
        failure_message=failure,
    )
    message = _compose(
        ctx,
        NotificationKind.WELCOME,
        WelcomeParams(
            verification_link=link,
            user_name=request.resolved_display_name,
            logo_url=ctx.settings.logo_url,
        ),
        email=email,
        now=now,
    )
    await _deliver(ctx, message, failure_message=failure)
    await _record_send(ctx, email, now, failure_message=failure)
    return DispatchResult(success=True, message="Email sent successfully")


async def handle_unverified_login(ctx: DispatchContext, request: NotificationRequest) -> ResendResult:
    email = _require_email(request)
    now = ctx.clock()
    failure = "Failed to send a new verification email"

    try:
        record = await ctx.throttle_store.get(email)
    except Exception as exc:
        logger.error(f"Throttle lookup failed for {email}: {exc}")
        raise InternalError(failure) from exc

    decision = evaluate_resend(record, now, ctx.resend_window)
    if not decision.eligible:
        logger.info(f"Verification email for {email} sent recently; not resending")
        return ResendResult(
            resent=False,
            last_sent_at=isoformat_utc(decision.last_sent_at) if decision.last_sent_at else None,
            message="Verification email already sent recently",
        )

    link = await _issue_link(
        ctx.link_issuer.issue_email_verification_link,
        email,
        failure_message=failure,
    )
    message = _compose(
        ctx,
        NotificationKind.RESEND_EXPIRED,
        ResendExpiredParams(verification_link=link, user_name=request.resolved_display_name),
        email=email,
        now=now,
    )
    await _deliver(ctx, message, failure_message=failure)
    await _record_send(ctx, email, now, failure_message=failure)
    logger.info(f"Resent verification email after login to {email} ({decision.reason})")
    return ResendResult(resent=True, message="New verification email sent")


async def send_password_reset(ctx: DispatchContext, request: NotificationRequest) -> DispatchResult:
    email = _require_email(request)
    now = ctx.clock()
    failure = "Failed to send password reset email"
    logger.info(f"Sending password reset email to {email}")

    link = await _issue_link(
        ctx.link_issuer.issue_password_reset_link,
        email,
        failure_message=failure,
    )
    message = _compose(
        ctx,
        NotificationKind.PASSWORD_RESET,
        PasswordResetParams(reset_link=link),
        email=email,
        now=now,
    )
    await _deliver(ctx, message, failure_message=failure)
    return DispatchResult(success=True, message="Password reset email sent successfully")


async def send_login_alert(ctx: DispatchContext, request: NotificationRequest) -> DispatchResult:
    email = _require_email(request)
    now = ctx.clock()
    login_method = request.resolved_login_method
    logger.info(f"Login alert requested for {email} via {login_method}")

    message = _compose(
        ctx,
        NotificationKind.LOGIN_ALERT,
        LoginAlertParams(occurred_at=now, login_method=login_method),
        email=email,
        now=now,
    )
    await _deliver(ctx, message, failure_message="Failed to send login alert email")
    return DispatchResult(success=True, message="Login alert email sent successfully")


async def send_account_deletion_email(ctx: DispatchContext, request: NotificationRequest) -> DispatchResult:
    email = _require_email(request)
    now = ctx.clock()
    logger.info(f"Account deletion email requested for {email}")

    message = _compose(
        ctx,
        NotificationKind.ACCOUNT_DELETION,
        AccountDeletionParams(user_name=request.resolved_display_name),
        email=email,
        now=now,
    )
    await _deliver(ctx, message, failure_message="Failed to send account deletion email")
    return DispatchResult(success=True, message="Account deletion email sent successfully")


async def check_email_status(ctx: DispatchContext, request: NotificationRequest) -> EmailStatus:
    email = _require_email(request)

    try:
        lookup = await ctx.link_issuer.lookup_user_by_email(email)
    except Exception as exc:
        logger.error(f"Error checking email status for {email}: {exc}")
        raise InternalError("Unable to check email status") from exc
    if lookup.status == "not_found":
        return EmailStatus(exists=False, providers=[])
    if lookup.status != "ok":
        logger.error(f"Error checking email status for {email}: {lookup.detail}")
        raise InternalError("Unable to check email status")
    return EmailStatus(exists=True, providers=list(lookup.providers))
