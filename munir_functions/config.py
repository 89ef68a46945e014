"""
Environment-driven settings for the notification functions.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional


DEFAULT_LOGO_URL = (
    "https://firebasestorage.googleapis.com/v0/b/munir-21f4a.firebasestorage.app/o/"
    "Munir_Logo%2Fmunir_logo.png?alt=media&token=c8315518-f368-4aac-ad80-30166b9f0680"
)


def _env_bool(name: str, default: bool = False) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = int(value.strip())
    except Exception:
        return default
    return parsed if parsed > 0 else default


def _env_float(name: str, default: float, minimum: float = 0.0) -> float:
    value = os.getenv(name)
    if value is None:
        return default
    try:
        parsed = float(value.strip())
    except Exception:
        return default
    return parsed if parsed > minimum else default


def _env_str(name: str, default: str = "") -> str:
    return (os.getenv(name) or default).strip()


@dataclass(frozen=True)
class Settings:
    debug: bool = False
    log_level: str = "INFO"

    # Mail transport
    email_provider: str = "smtp"
    mail_from_email: str = "munir.smart.glasses@gmail.com"
    mail_from_name: str = "MUNIR - Smart Glasses 💜"
    smtp_host: str = "smtp.gmail.com"
    smtp_port: int = 587
    smtp_user: str = ""
    smtp_pass: str = ""
    smtp_tls: bool = True
    brevo_api_key: str = ""
    mail_timeout_seconds: float = 20.0

    # Identity service
    auth_link_timeout_seconds: float = 15.0
    email_verification_continue_url: Optional[str] = None
    password_reset_continue_url: Optional[str] = None

    # Throttle store
    throttle_backend: str = "firestore"
    throttle_collection: str = "email_verifications"
    resend_window_seconds: int = 3600

    logo_url: str = DEFAULT_LOGO_URL

    @property
    def sender(self) -> str:
        if self.mail_from_name:
            return f'"{self.mail_from_name}" <{self.mail_from_email}>'
        return self.mail_from_email

    def summary(self) -> dict:
        """Configuration snapshot without secrets, for health output and startup logs."""
        return {
            "debug": self.debug,
            "email_provider": self.email_provider,
            "sender": self.mail_from_email,
            "smtp_host": self.smtp_host if self.email_provider == "smtp" else None,
            "has_smtp_credentials": bool(self.smtp_user and self.smtp_pass),
            "has_brevo_api_key": bool(self.brevo_api_key),
            "throttle_backend": self.throttle_backend,
            "throttle_collection": self.throttle_collection,
            "resend_window_seconds": self.resend_window_seconds,
        }


def load_settings() -> Settings:
    provider = _env_str("EMAIL_PROVIDER", "smtp").lower()
    if provider not in {"smtp", "brevo"}:
        provider = "smtp"

    throttle_backend = _env_str("THROTTLE_BACKEND", "firestore").lower()
    if throttle_backend not in {"firestore", "memory"}:
        throttle_backend = "firestore"

    smtp_user = _env_str("SMTP_USER")
    return Settings(
        debug=_env_bool("DEBUG", False),
        log_level=_env_str("LOG_LEVEL", "INFO").upper(),
        email_provider=provider,
        mail_from_email=_env_str("MAIL_FROM_EMAIL") or smtp_user or Settings.mail_from_email,
        mail_from_name=_env_str("MAIL_FROM_NAME", Settings.mail_from_name),
        smtp_host=_env_str("SMTP_HOST", Settings.smtp_host),
        smtp_port=_env_int("SMTP_PORT", Settings.smtp_port),
        smtp_user=smtp_user,
        smtp_pass=_env_str("SMTP_PASS"),
        smtp_tls=_env_bool("SMTP_TLS", True),
        brevo_api_key=_env_str("BREVO_API_KEY"),
        mail_timeout_seconds=_env_float("MAIL_TIMEOUT_SECONDS", Settings.mail_timeout_seconds),
        auth_link_timeout_seconds=_env_float(
            "AUTH_LINK_TIMEOUT_SECONDS", Settings.auth_link_timeout_seconds
        ),
        email_verification_continue_url=_env_str("EMAIL_VERIFICATION_CONTINUE_URL") or None,
        password_reset_continue_url=_env_str("PASSWORD_RESET_CONTINUE_URL") or None,
        throttle_backend=throttle_backend,
        throttle_collection=_env_str("THROTTLE_COLLECTION", Settings.throttle_collection),
        resend_window_seconds=_env_int("RESEND_WINDOW_SECONDS", Settings.resend_window_seconds),
        logo_url=_env_str("MUNIR_LOGO_URL", DEFAULT_LOGO_URL),
    )
