"""
Firebase Auth link issuing and account lookup.

Results are tagged instead of raised so handlers can tell "no such user"
apart from every other failure without inspecting error codes.
"""
from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Literal, Optional

from firebase_admin import auth as firebase_auth

from ..utils.firebase_client import init_firebase

logger = logging.getLogger(__name__)

OutcomeStatus = Literal["ok", "not_found", "error"]


@dataclass(frozen=True)
class LinkResult:
    status: OutcomeStatus
    url: Optional[str] = None
    detail: str = ""

    @classmethod
    def ok(cls, url: str) -> "LinkResult":
        return cls(status="ok", url=url)

    @classmethod
    def not_found(cls) -> "LinkResult":
        return cls(status="not_found", detail="user_not_found")

    @classmethod
    def error(cls, detail: str) -> "LinkResult":
        return cls(status="error", detail=detail)


@dataclass(frozen=True)
class UserLookup:
    status: OutcomeStatus
    providers: List[str] = field(default_factory=list)
    detail: str = ""


def _is_user_not_found(exc: Exception) -> bool:
    if isinstance(exc, firebase_auth.UserNotFoundError):
        return True
    reason = str(exc).lower()
    return "user-not-found" in reason or "email_not_found" in reason or "user_not_found" in reason


class FirebaseLinkIssuer:
    def __init__(
        self,
        *,
        timeout_seconds: float = 15.0,
        verification_continue_url: Optional[str] = None,
        reset_continue_url: Optional[str] = None,
    ) -> None:
        self.timeout_seconds = timeout_seconds
        self.verification_continue_url = verification_continue_url
        self.reset_continue_url = reset_continue_url

    def _action_settings(self, continue_url: Optional[str]):
        if not continue_url:
            return None
        return firebase_auth.ActionCodeSettings(url=continue_url, handle_code_in_app=False)

    def _generate_verification_link(self, email: str) -> str:
        init_firebase()
        return firebase_auth.generate_email_verification_link(
            email, self._action_settings(self.verification_continue_url)
        )

    def _generate_reset_link(self, email: str) -> str:
        init_firebase()
        return firebase_auth.generate_password_reset_link(
            email, self._action_settings(self.reset_continue_url)
        )

    def _get_user_providers(self, email: str) -> List[str]:
        init_firebase()
        user = firebase_auth.get_user_by_email(email)
        return [info.provider_id for info in (user.provider_data or [])]

    async def _issue(self, generator, email: str, flow: str) -> LinkResult:
        try:
            link = await asyncio.wait_for(
                asyncio.to_thread(generator, email),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"{flow} link generation timed out for {email}")
            return LinkResult.error(f"{flow} link generation timed out")
        except Exception as exc:
            if _is_user_not_found(exc):
                logger.info(f"{flow} link requested for unknown email: {email}")
                return LinkResult.not_found()
            logger.error(f"{flow} link generation failed for {email}: {exc!r}")
            return LinkResult.error(str(exc))
        return LinkResult.ok(link)

    async def issue_email_verification_link(self, email: str) -> LinkResult:
        return await self._issue(self._generate_verification_link, email, "Verification")

    async def issue_password_reset_link(self, email: str) -> LinkResult:
        return await self._issue(self._generate_reset_link, email, "Password reset")

    async def lookup_user_by_email(self, email: str) -> UserLookup:
        try:
            providers = await asyncio.wait_for(
                asyncio.to_thread(self._get_user_providers, email),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            logger.error(f"User lookup timed out for {email}")
            return UserLookup(status="error", detail="user lookup timed out")
        except Exception as exc:
            if _is_user_not_found(exc):
                return UserLookup(status="not_found")
            logger.error(f"User lookup failed for {email}: {exc!r}")
            return UserLookup(status="error", detail=str(exc))
        return UserLookup(status="ok", providers=providers)
