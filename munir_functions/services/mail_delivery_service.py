"""
Mail delivery through a single configured transport.
Supports SMTP (default, Gmail relay) and the Brevo HTTP API.
"""
import asyncio
import json
import re
import smtplib
from email.message import EmailMessage
from typing import Any, Dict, Optional

import aiohttp

from ..config import Settings
from ..templates import ComposedMessage


_INVISIBLE_EMAIL_CHARS = re.compile(
    r"[\u0000-\u001F\u007F\u00A0\u1680\u180E\u2000-\u200F\u2028-\u202F\u205F-\u206F\u3000\uFEFF]"
)
_EMAIL_PATTERN = re.compile(r"^[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}$")

BREVO_SEND_URL = "https://api.brevo.com/v3/smtp/email"


def normalize_email(raw_email: str) -> str:
    return (
        str(raw_email or "")
        .replace("\n", "")
        .replace("\r", "")
        .replace("\t", "")
        .replace(" ", "")
        .strip()
        .lower()
    )


def sanitize_email(raw_email: str) -> str:
    normalized = normalize_email(raw_email)
    normalized = _INVISIBLE_EMAIL_CHARS.sub("", normalized)
    return normalized


def is_valid_email(email: str) -> bool:
    return bool(_EMAIL_PATTERN.match(email or ""))


class MailDeliveryError(RuntimeError):
    def __init__(
        self,
        message: str,
        *,
        provider: str,
        category: str,
        status_code: Optional[int] = None,
        response_excerpt: str = "",
    ):
        super().__init__(message)
        self.provider = provider
        self.category = category
        self.status_code = status_code
        self.response_excerpt = (response_excerpt or "")[:400]


class MailDeliveryService:
    def __init__(self, settings: Settings):
        self.provider = settings.email_provider
        self.timeout_seconds = settings.mail_timeout_seconds

        self.from_email = sanitize_email(settings.mail_from_email)
        self.from_name = settings.mail_from_name
        self.sender = settings.sender

        self.brevo_api_key = settings.brevo_api_key
        self.brevo_configured = bool(self.brevo_api_key and self.from_email)

        self.smtp_host = settings.smtp_host
        self.smtp_port = settings.smtp_port
        self.smtp_user = settings.smtp_user
        self.smtp_pass = settings.smtp_pass
        self.smtp_tls = settings.smtp_tls
        self.smtp_configured = bool(
            self.smtp_host and self.smtp_user and self.smtp_pass and self.from_email
        )

    @property
    def email_configured(self) -> bool:
        if self.provider == "brevo":
            return self.brevo_configured
        return self.smtp_configured

    def status(self) -> Dict[str, Any]:
        return {
            "provider": self.provider,
            "configured": self.email_configured,
            "sender": self.from_email,
        }

    async def send(self, message: ComposedMessage) -> Dict[str, Any]:
        recipient = sanitize_email(message.to)
        if not is_valid_email(recipient):
            raise MailDeliveryError(
                "Invalid recipient email.",
                provider=self.provider,
                category="invalid_recipient",
            )
        if not self.email_configured:
            raise RuntimeError("Email provider is not configured.")

        subject = str(message.subject or "").strip()[:255]
        if self.provider == "brevo":
            return await self._send_via_brevo(
                to_email=recipient,
                subject=subject,
                text_body=message.text_body,
                html_body=message.html_body,
            )
        return await self._send_via_smtp(
            to_email=recipient,
            subject=subject,
            text_body=message.text_body,
            html_body=message.html_body,
        )

    async def _send_via_brevo(
        self,
        *,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str,
    ) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "sender": {
                "email": self.from_email,
                "name": self.from_name,
            },
            "to": [{"email": to_email}],
            "subject": subject,
            "htmlContent": html_body,
        }
        if text_body:
            payload["textContent"] = text_body

        timeout = aiohttp.ClientTimeout(total=self.timeout_seconds)
        headers = {
            "accept": "application/json",
            "content-type": "application/json",
            "api-key": self.brevo_api_key,
        }
        async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
            async with session.post(BREVO_SEND_URL, json=payload) as response:
                body = await response.text()
                parsed = self._parse_json(body)
                if response.status >= 400:
                    reason = self._extract_provider_error(parsed, body)
                    category = self._classify_mail_error(reason, response.status)
                    raise MailDeliveryError(
                        f"Brevo send failed ({response.status}): {reason}",
                        provider="brevo",
                        category=category,
                        status_code=response.status,
                        response_excerpt=body,
                    )
                message_id = None
                raw_id = parsed.get("messageId") or parsed.get("messageID")
                if raw_id is not None:
                    message_id = str(raw_id)
                return {
                    "provider": "brevo",
                    "status_code": response.status,
                    "message_id": message_id,
                }

    async def _send_via_smtp(
        self,
        *,
        to_email: str,
        subject: str,
        text_body: str,
        html_body: str,
    ) -> Dict[str, Any]:
        def _send() -> None:
            msg = EmailMessage()
            msg["From"] = self.sender
            msg["To"] = to_email
            msg["Subject"] = subject
            msg.set_content(text_body or "")
            msg.add_alternative(html_body, subtype="html")

            with smtplib.SMTP(self.smtp_host, self.smtp_port, timeout=self.timeout_seconds) as server:
                if self.smtp_tls:
                    server.starttls()
                server.login(self.smtp_user, self.smtp_pass)
                server.send_message(msg)

        try:
            await asyncio.to_thread(_send)
        except smtplib.SMTPAuthenticationError as exc:
            raise MailDeliveryError(
                f"SMTP authentication failed: {exc.smtp_code}",
                provider="smtp",
                category="auth_failed",
                status_code=exc.smtp_code,
            ) from exc
        except smtplib.SMTPRecipientsRefused as exc:
            raise MailDeliveryError(
                "SMTP server refused the recipient.",
                provider="smtp",
                category="invalid_recipient",
            ) from exc
        except (smtplib.SMTPException, OSError) as exc:
            reason = str(exc)
            raise MailDeliveryError(
                f"SMTP send failed: {reason}",
                provider="smtp",
                category=self._classify_mail_error(reason, None),
            ) from exc
        return {
            "provider": "smtp",
            "status_code": 250,
        }

    def _parse_json(self, body: str) -> Dict[str, Any]:
        if not body:
            return {}
        try:
            parsed = json.loads(body)
        except json.JSONDecodeError:
            return {}
        return parsed if isinstance(parsed, dict) else {}

    def _extract_provider_error(self, parsed: Dict[str, Any], raw_body: str) -> str:
        if parsed:
            direct_error = (
                parsed.get("message")
                or parsed.get("Message")
                or parsed.get("error")
                or parsed.get("Error")
            )
            if direct_error:
                return str(direct_error)
            errors = parsed.get("errors")
            if isinstance(errors, list) and errors:
                return "; ".join(str(item) for item in errors[:3])
            code = parsed.get("code")
            if code:
                return str(code)
        return (raw_body or "unknown provider error")[:300]

    def _classify_mail_error(self, reason: str, status_code: Optional[int]) -> str:
        text = (reason or "").lower()
        if status_code in {401, 403}:
            return "auth_failed"
        if status_code == 429:
            return "rate_limited"
        if "too many" in text or "rate limit" in text or "quota" in text:
            return "rate_limited"
        if (
            "sender" in text
            and (
                "not validated" in text
                or "not verified" in text
                or "not allowed" in text
                or "invalid" in text
                or "inactive" in text
            )
        ):
            return "sender_not_verified"
        if "authentication" in text or "unauthorized" in text or "forbidden" in text:
            return "auth_failed"
        if (
            ("recipient" in text or "email" in text)
            and ("invalid" in text or "malformed" in text or "bad request" in text)
        ):
            return "invalid_recipient"
        return "delivery_failed"
