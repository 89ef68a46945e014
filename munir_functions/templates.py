"""
Notification composer.

One render function per notification kind. Each takes a small frozen
parameter object and returns a self-contained HTML document; ``compose``
wraps the HTML with a subject line, a plain-text alternative and the
envelope addresses.

Rendering is pure: the only time-dependent values (subject date, login
alert instant) come from the ``now`` / ``occurred_at`` arguments.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from html import escape
from typing import Callable, Dict, Union

from .config import DEFAULT_LOGO_URL
from .utils.clock import as_utc, date_utc, isoformat_utc


DEFAULT_USER_NAME = "User"
DEFAULT_LOGIN_METHOD = "Email/Password"

BRAND_FOOTER = "MUNIR – Smart Glasses · Empowering visually impaired users 💜"


class NotificationKind(str, Enum):
    WELCOME = "welcome"
    PASSWORD_RESET = "password_reset"
    LOGIN_ALERT = "login_alert"
    ACCOUNT_DELETION = "account_deletion"
    RESEND_EXPIRED = "resend_expired"


@dataclass(frozen=True)
class WelcomeParams:
    verification_link: str
    user_name: str = DEFAULT_USER_NAME
    logo_url: str = DEFAULT_LOGO_URL


@dataclass(frozen=True)
class ResendExpiredParams:
    verification_link: str
    user_name: str = DEFAULT_USER_NAME


@dataclass(frozen=True)
class PasswordResetParams:
    reset_link: str


@dataclass(frozen=True)
class LoginAlertParams:
    occurred_at: datetime
    login_method: str = DEFAULT_LOGIN_METHOD


@dataclass(frozen=True)
class AccountDeletionParams:
    user_name: str = DEFAULT_USER_NAME


TemplateParams = Union[
    WelcomeParams,
    ResendExpiredParams,
    PasswordResetParams,
    LoginAlertParams,
    AccountDeletionParams,
]


@dataclass(frozen=True)
class ComposedMessage:
    sender: str
    to: str
    subject: str
    html_body: str
    text_body: str


def _name(value: str) -> str:
    return escape((value or "").strip() or DEFAULT_USER_NAME)


def _action_button(link: str, label: str, margin: str = "35px 0") -> str:
    return (
        f'<div style="text-align: center; margin: {margin};">\n'
        f'  <a href="{link}" style="background: linear-gradient(135deg, #B14ABA, #8E44AD); '
        "color: white; padding: 16px 40px; text-decoration: none; border-radius: 12px; "
        "display: inline-block; font-weight: 600; font-size: 16px; "
        f'box-shadow: 0 4px 12px rgba(177, 74, 186, 0.3);">\n'
        f"    {label}\n"
        "  </a>\n"
        "</div>"
    )


def _backup_link(link: str, margin: str = "30px 0") -> str:
    return (
        f'<p style="color: #999; font-size: 13px; text-align: center; margin: {margin};">\n'
        "  Or copy and paste this link into your browser:<br>\n"
        f'  <a href="{link}" style="color: #B14ABA; word-break: break-all; '
        f'text-decoration: none; font-size: 12px;">{link}</a>\n'
        "</p>"
    )


def _footer() -> str:
    return (
        '<div style="padding:14px 20px; font-size:12px; color:#95a5a6; '
        'text-align:center; background:#f2f2f2;">\n'
        f"  {BRAND_FOOTER}\n"
        "</div>"
    )


def _document(title: str, content: str, background: str = "#f8f9fa") -> str:
    return (
        "<!DOCTYPE html>\n"
        '<html lang="en">\n'
        "<head>\n"
        '  <meta charset="UTF-8" />\n'
        '  <meta name="viewport" content="width=device-width, initial-scale=1.0" />\n'
        f"  <title>{title}</title>\n"
        "</head>\n"
        '<body style="margin:0; padding:0; font-family:-apple-system,BlinkMacSystemFont,'
        f"'Segoe UI',Roboto,sans-serif; background:{background};\">\n"
        f"{content}\n"
        "</body>\n"
        "</html>\n"
    )


def render_welcome(params: WelcomeParams) -> str:
    link = escape(params.verification_link)
    content = f"""<div style="max-width:600px; margin:0 auto; background:#ffffff;">
  <div style="padding:30px 20px; text-align:center; background:linear-gradient(135deg, #B14ABA, #8E44AD);">
    <img src="{escape(params.logo_url)}" alt="MUNIR Logo"
      style="width:150px; height:auto; display:block; margin:0 auto 18px auto;" />
    <h1 style="color:#ffffff; margin:0 0 10px 0; font-size:28px; font-weight:700;">Welcome to MUNIR</h1>
    <p style="color:rgba(255,255,255,0.95); margin:0; font-size:15px;">
      We're happy to have you with us, {_name(params.user_name)}
    </p>
  </div>
  <div style="padding:26px 22px; color:#2C3E50;">
    <p style="font-size:16px; margin:0 0 16px 0;">Thank you for signing up to <strong>MUNIR</strong>.</p>
    <p style="font-size:15px; margin:0 0 18px 0;">
      To complete your registration, please verify your email by clicking the button below:
    </p>
{_action_button(link, 'Verify my email')}
{_backup_link(link)}
    <p style="font-size:14px; margin:0 0 4px 0;">
      If you did not create this account, you can safely ignore this email.
    </p>
  </div>
{_footer()}
</div>"""
    return _document("Welcome to MUNIR", content)


def render_resend_expired(params: ResendExpiredParams) -> str:
    link = escape(params.verification_link)
    content = f"""<div style="max-width:600px; margin:0 auto; background:#ffffff;">
  <div style="padding:30px 20px; text-align:center; background:linear-gradient(135deg, #B14ABA, #8E44AD);">
    <h1 style="color:#ffffff; margin:0 0 10px 0; font-size:26px; font-weight:700;">New verification link</h1>
    <p style="color:rgba(255,255,255,0.95); margin:0; font-size:14px;">
      Hi {_name(params.user_name)}, your previous link may have expired, so here is a new one.
    </p>
  </div>
  <div style="padding:26px 22px; color:#2C3E50;">
    <p style="font-size:15px; margin:0 0 16px 0;">
      To activate your <strong>MUNIR</strong> account, please verify your email by clicking the button below:
    </p>
{_action_button(link, 'Verify my email', margin='28px 0')}
{_backup_link(link, margin='24px 0')}
  </div>
{_footer()}
</div>"""
    return _document("New Verification Link – MUNIR", content)


def render_password_reset(params: PasswordResetParams) -> str:
    link = escape(params.reset_link)
    content = f"""<div style="max-width: 600px; margin: 0 auto; background: white;">
  <div style="height:1px; opacity:0; line-height:1px; font-size:1px;">&zwnj;</div>
  <div style="background: linear-gradient(135deg, #B14ABA, #8E44AD); padding: 40px 20px; text-align: center;">
    <div style="font-size: 50px; margin-bottom: 10px;">🔐</div>
    <h1 style="color: white; margin: 0; font-size: 32px; font-weight: bold;">Password Reset</h1>
    <p style="color: rgba(255,255,255,0.9); margin: 8px 0 0 0; font-size: 15px;">MUNIR - Smart Glasses</p>
  </div>
  <div style="padding: 40px 30px;">
    <h2 style="color: #2C3E50; margin: 0 0 20px 0; font-size: 24px;">Reset Your Password</h2>
    <p style="color: #34495E; line-height: 1.6; font-size: 16px;">
      We received a request to reset your password for your <strong style="color: #B14ABA;">MUNIR</strong> account.
    </p>
    <p style="color: #34495E; line-height: 1.6; font-size: 16px;">Click the button below to reset your password:</p>
{_action_button(link, 'Reset Password')}
{_backup_link(link)}
    <div style="background: #fff5e6; padding: 20px; border-radius: 8px; margin: 30px 0; border-left: 4px solid #f59e0b;">
      <p style="color: #78350f; margin: 0 0 10px 0; font-size: 15px; font-weight: 600;">⚠️ Security Notice:</p>
      <ul style="margin: 0; padding-left: 20px; color: #78350f; font-size: 14px; line-height: 1.8;">
        <li>This link is valid for <strong>1 hour only</strong></li>
        <li>If you didn't request a password reset, please ignore this email</li>
        <li>Never share this link with anyone</li>
        <li>Your current password remains unchanged until you create a new one</li>
      </ul>
    </div>
  </div>
{_footer()}
</div>"""
    return _document("Password Reset – MUNIR", content)


def render_login_alert(params: LoginAlertParams) -> str:
    occurred_at = as_utc(params.occurred_at)
    method = escape((params.login_method or "").strip() or DEFAULT_LOGIN_METHOD)
    # Unique per send so Gmail does not fold consecutive alerts together.
    marker = int(occurred_at.timestamp() * 1000)
    content = f"""<!-- prevent-gmail-collapse: {marker} -->
<div style="max-width:600px; margin:0 auto; padding:20px;">
  <div style="height:1px; opacity:0; line-height:1px; font-size:1px;">&zwnj;</div>
  <div style="background:#ffffff; border-radius:12px; overflow:hidden; box-shadow:0 4px 12px rgba(0,0,0,0.08);">
    <div style="background: linear-gradient(135deg, #B14ABA, #8E44AD); padding:30px 20px; text-align:center;">
      <h1 style="color:#ffffff; margin:0; font-size:28px; font-weight:bold;">MUNIR - Security Alert</h1>
      <p style="color:rgba(255,255,255,0.9); margin:8px 0 0; font-size:14px;">New login detected to your account</p>
    </div>
    <div style="padding:30px;">
      <p style="color:#34495E; font-size:16px; line-height:1.6; margin:0 0 16px;">
        We noticed a new login to your <strong style="color:#B14ABA;">MUNIR</strong> account.
      </p>
      <p style="color:#34495E; font-size:15px; line-height:1.6; margin:0 0 22px;">
        <strong>Login method:</strong> {method}<br/>
        <strong>Time:</strong> {isoformat_utc(occurred_at)}
      </p>
      <div style="background:#f8f9fa; padding:16px; border-radius:8px; border-left:4px solid #B14ABA;">
        <p style="color:#6c757d; margin:0; font-size:14px; line-height:1.6;">
          If this was you, no action is needed.<br/>
          If you did <strong>not</strong> perform this login, we strongly recommend:
        </p>
        <ul style="color:#6c757d; font-size:14px; line-height:1.8; margin:10px 0 0 20px; padding:0;">
          <li>Changing your password immediately.</li>
          <li>Reviewing recent activity in your account.</li>
        </ul>
      </div>
    </div>
  </div>
{_footer()}
</div>"""
    return _document("MUNIR - Security Alert", content, background="#f0f0f0")


def render_account_deletion(params: AccountDeletionParams) -> str:
    content = f"""<div style="max-width:600px; margin:0 auto; background:#ffffff;">
  <div style="padding:30px 20px; text-align:center; background:linear-gradient(135deg, #B14ABA, #8E44AD);">
    <h1 style="color:#ffffff; margin:0 0 8px 0; font-size:26px; font-weight:700;">Your MUNIR account has been deleted</h1>
    <p style="color:rgba(255,255,255,0.95); margin:0; font-size:14px;">Goodbye, {_name(params.user_name)}.</p>
  </div>
  <div style="padding:26px 22px; color:#2C3E50;">
    <p style="font-size:16px; margin:0 0 16px 0;">
      This email confirms that your <strong>MUNIR</strong> account has been permanently deleted.
    </p>
    <p style="font-size:15px; margin:0 0 16px 0; line-height:1.6;">
      Your account data and personal information associated with this account have been removed
      from our active systems, according to our retention and security policies.
    </p>
    <p style="font-size:14px; color:#B14ABA; margin:0 0 4px 0;">
      Thank you for using MUNIR. You are always welcome to come back and create a new account in the future.
    </p>
  </div>
{_footer()}
</div>"""
    return _document("MUNIR – Account Deleted", content)


def _plain_text(params: TemplateParams) -> str:
    if isinstance(params, WelcomeParams):
        return (
            f"Welcome to MUNIR, {(params.user_name or '').strip() or DEFAULT_USER_NAME}!\n\n"
            "Please verify your email address to complete your registration:\n"
            f"{params.verification_link}\n\n"
            "If you did not create this account, you can safely ignore this email."
        )
    if isinstance(params, ResendExpiredParams):
        return (
            f"Hi {(params.user_name or '').strip() or DEFAULT_USER_NAME}, "
            "your previous link may have expired, so here is a new one:\n"
            f"{params.verification_link}"
        )
    if isinstance(params, PasswordResetParams):
        return (
            "We received a request to reset your MUNIR password.\n\n"
            f"Reset your password here (valid for 1 hour):\n{params.reset_link}\n\n"
            "If you didn't request a password reset, please ignore this email."
        )
    if isinstance(params, LoginAlertParams):
        return (
            "We noticed a new login to your MUNIR account.\n\n"
            f"Login method: {(params.login_method or '').strip() or DEFAULT_LOGIN_METHOD}\n"
            f"Time: {isoformat_utc(params.occurred_at)}\n\n"
            "If this was not you, change your password immediately."
        )
    return (
        f"Goodbye, {(params.user_name or '').strip() or DEFAULT_USER_NAME}.\n\n"
        "This email confirms that your MUNIR account has been permanently deleted."
    )


_SUBJECTS: Dict[NotificationKind, str] = {
    NotificationKind.WELCOME: "Welcome to MUNIR - Verify Your Email ({date})",
    NotificationKind.RESEND_EXPIRED: "New Email Verification Link – MUNIR ({date})",
    NotificationKind.PASSWORD_RESET: "🔐 Password Reset Request – MUNIR ({date})",
    NotificationKind.LOGIN_ALERT: "🔔 New Login to Your MUNIR Account ({date})",
    NotificationKind.ACCOUNT_DELETION: "Your MUNIR Account Has Been Deleted ({date})",
}

_RENDERERS: Dict[NotificationKind, Callable[..., str]] = {
    NotificationKind.WELCOME: render_welcome,
    NotificationKind.RESEND_EXPIRED: render_resend_expired,
    NotificationKind.PASSWORD_RESET: render_password_reset,
    NotificationKind.LOGIN_ALERT: render_login_alert,
    NotificationKind.ACCOUNT_DELETION: render_account_deletion,
}

_PARAM_TYPES: Dict[NotificationKind, type] = {
    NotificationKind.WELCOME: WelcomeParams,
    NotificationKind.RESEND_EXPIRED: ResendExpiredParams,
    NotificationKind.PASSWORD_RESET: PasswordResetParams,
    NotificationKind.LOGIN_ALERT: LoginAlertParams,
    NotificationKind.ACCOUNT_DELETION: AccountDeletionParams,
}


def subject_for(kind: NotificationKind, now: datetime) -> str:
    return _SUBJECTS[kind].format(date=date_utc(now))


def compose(
    kind: NotificationKind,
    params: TemplateParams,
    *,
    to: str,
    sender: str,
    now: datetime,
) -> ComposedMessage:
    """Build the full message for ``kind``.

    Raises TypeError when ``params`` is not the parameter type of ``kind``.
    """
    expected = _PARAM_TYPES[kind]
    if not isinstance(params, expected):
        raise TypeError(f"{kind.value} expects {expected.__name__}, got {type(params).__name__}")

    return ComposedMessage(
        sender=sender,
        to=to,
        subject=subject_for(kind, now),
        html_body=_RENDERERS[kind](params),
        text_body=_plain_text(params),
    )
