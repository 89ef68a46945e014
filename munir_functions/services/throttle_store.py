"""
Per-email storage of the last verification send time.

Firestore layout: collection ``email_verifications`` (configurable), one
document per normalized email address, field ``lastSentAt``. Writes merge so
other fields on the document survive.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from firebase_admin import firestore

from ..utils.clock import as_utc
from .throttle import ThrottleRecord, parse_timestamp

logger = logging.getLogger(__name__)

LAST_SENT_AT_FIELD = "lastSentAt"


class FirestoreThrottleStore:
    def __init__(
        self,
        client: Any,
        collection: str = "email_verifications",
        *,
        use_server_timestamp: bool = True,
    ) -> None:
        self._client = client
        self.collection = collection
        # The server clock keeps lastSentAt monotonic across function instances.
        self.use_server_timestamp = use_server_timestamp

    def _doc(self, email: str):
        return self._client.collection(self.collection).document(email)

    async def get(self, email: str) -> Optional[ThrottleRecord]:
        snapshot = await asyncio.to_thread(self._doc(email).get)
        if not snapshot.exists:
            return None
        data = snapshot.to_dict() or {}
        return ThrottleRecord(email=email, last_sent_at=data.get(LAST_SENT_AT_FIELD))

    async def upsert(self, email: str, sent_at: datetime) -> None:
        value = firestore.SERVER_TIMESTAMP if self.use_server_timestamp else as_utc(sent_at)
        await asyncio.to_thread(
            self._doc(email).set,
            {LAST_SENT_AT_FIELD: value},
            merge=True,
        )
        logger.debug(f"Throttle record updated for {email}")


class InMemoryThrottleStore:
    """Process-local store for development and tests."""

    def __init__(self) -> None:
        self._records: Dict[str, Dict[str, Any]] = {}
        self._lock = asyncio.Lock()

    async def get(self, email: str) -> Optional[ThrottleRecord]:
        data = self._records.get(email)
        if data is None:
            return None
        return ThrottleRecord(email=email, last_sent_at=data.get(LAST_SENT_AT_FIELD))

    async def upsert(self, email: str, sent_at: datetime) -> None:
        sent_at = as_utc(sent_at)
        async with self._lock:
            data = self._records.setdefault(email, {})
            current = parse_timestamp(data.get(LAST_SENT_AT_FIELD))
            if current is None or sent_at > current:
                data[LAST_SENT_AT_FIELD] = sent_at
