from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

import pytest
from firebase_admin import firestore

from conftest import SpyThrottleStore
from munir_functions.services.throttle_store import (
    LAST_SENT_AT_FIELD,
    FirestoreThrottleStore,
    InMemoryThrottleStore,
)


NOW = datetime(2026, 10, 19, 12, 0, 0, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_memory_store_returns_none_for_unknown_email():
    store = InMemoryThrottleStore()
    assert await store.get("a@x.com") is None


@pytest.mark.asyncio
async def test_memory_store_upsert_then_get():
    store = InMemoryThrottleStore()
    await store.upsert("a@x.com", NOW)

    record = await store.get("a@x.com")
    assert record.email == "a@x.com"
    assert record.last_sent_at == NOW


@pytest.mark.asyncio
async def test_memory_store_keeps_latest_timestamp():
    store = InMemoryThrottleStore()
    await store.upsert("a@x.com", NOW)
    await store.upsert("a@x.com", NOW - timedelta(minutes=5))

    assert (await store.get("a@x.com")).last_sent_at == NOW


@pytest.mark.asyncio
async def test_memory_store_merge_preserves_other_fields():
    store = SpyThrottleStore()
    store.seed("a@x.com", attempts=3)
    await store.upsert("a@x.com", NOW)

    assert store.snapshot("a@x.com") == {"attempts": 3, LAST_SENT_AT_FIELD: NOW}


def _firestore_client(exists=True, data=None):
    client = MagicMock()
    doc = client.collection.return_value.document.return_value
    snapshot = MagicMock()
    snapshot.exists = exists
    snapshot.to_dict.return_value = data
    doc.get.return_value = snapshot
    return client, doc


@pytest.mark.asyncio
async def test_firestore_store_reads_document_by_email():
    client, _ = _firestore_client(data={LAST_SENT_AT_FIELD: NOW})
    store = FirestoreThrottleStore(client)

    record = await store.get("a@x.com")

    client.collection.assert_called_with("email_verifications")
    client.collection.return_value.document.assert_called_with("a@x.com")
    assert record.last_sent_at == NOW


@pytest.mark.asyncio
async def test_firestore_store_missing_document():
    client, _ = _firestore_client(exists=False)
    store = FirestoreThrottleStore(client, "custom_collection")

    assert await store.get("a@x.com") is None
    client.collection.assert_called_with("custom_collection")


@pytest.mark.asyncio
async def test_firestore_store_upsert_merges_server_timestamp():
    client, doc = _firestore_client()
    store = FirestoreThrottleStore(client)

    await store.upsert("a@x.com", NOW)

    doc.set.assert_called_once_with({LAST_SENT_AT_FIELD: firestore.SERVER_TIMESTAMP}, merge=True)


@pytest.mark.asyncio
async def test_firestore_store_upsert_with_client_clock():
    client, doc = _firestore_client()
    store = FirestoreThrottleStore(client, use_server_timestamp=False)

    await store.upsert("a@x.com", datetime(2026, 10, 19, 12, 0, 0))

    doc.set.assert_called_once_with({LAST_SENT_AT_FIELD: NOW}, merge=True)


@pytest.mark.asyncio
async def test_firestore_store_propagates_errors():
    client, doc = _firestore_client()
    doc.get.side_effect = RuntimeError("deadline exceeded")
    store = FirestoreThrottleStore(client)

    with pytest.raises(RuntimeError):
        await store.get("a@x.com")
