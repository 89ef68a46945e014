from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import pytest

from munir_functions.config import Settings
from munir_functions.handlers import DispatchContext
from munir_functions.services.link_issuer import LinkResult, UserLookup
from munir_functions.services.throttle_store import InMemoryThrottleStore


FIXED_NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


class FixedClock:
    def __init__(self, now: datetime = FIXED_NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now


class SpyLinkIssuer:
    def __init__(self):
        self.calls: List[tuple] = []
        self.verification_result = LinkResult.ok("https://id/verify?t=1")
        self.reset_result = LinkResult.ok("https://id/reset?t=1")
        self.lookup_result = UserLookup(status="ok", providers=["password", "google.com"])
        self.raise_on_call: Optional[Exception] = None

    async def issue_email_verification_link(self, email: str) -> LinkResult:
        self.calls.append(("verification", email))
        if self.raise_on_call:
            raise self.raise_on_call
        return self.verification_result

    async def issue_password_reset_link(self, email: str) -> LinkResult:
        self.calls.append(("reset", email))
        if self.raise_on_call:
            raise self.raise_on_call
        return self.reset_result

    async def lookup_user_by_email(self, email: str) -> UserLookup:
        self.calls.append(("lookup", email))
        if self.raise_on_call:
            raise self.raise_on_call
        return self.lookup_result


class SpyMailer:
    def __init__(self):
        self.sent: List[Any] = []
        self.error: Optional[Exception] = None

    async def send(self, message) -> Dict[str, Any]:
        if self.error:
            raise self.error
        self.sent.append(message)
        return {"provider": "spy", "status_code": 250}


class SpyThrottleStore(InMemoryThrottleStore):
    def __init__(self):
        super().__init__()
        self.gets: List[str] = []
        self.upserts: List[tuple] = []
        self.get_error: Optional[Exception] = None
        self.upsert_error: Optional[Exception] = None

    async def get(self, email):
        self.gets.append(email)
        if self.get_error:
            raise self.get_error
        return await super().get(email)

    async def upsert(self, email, sent_at):
        if self.upsert_error:
            raise self.upsert_error
        self.upserts.append((email, sent_at))
        await super().upsert(email, sent_at)

    def seed(self, email, **fields):
        self._records.setdefault(email, {}).update(fields)

    def snapshot(self, email):
        data = self._records.get(email)
        return dict(data) if data is not None else None


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def link_issuer():
    return SpyLinkIssuer()


@pytest.fixture
def mailer():
    return SpyMailer()


@pytest.fixture
def throttle_store():
    return SpyThrottleStore()


@pytest.fixture
def dispatch_context(link_issuer, throttle_store, mailer, clock):
    return DispatchContext(
        link_issuer=link_issuer,
        throttle_store=throttle_store,
        mailer=mailer,
        settings=Settings(),
        clock=clock,
    )
