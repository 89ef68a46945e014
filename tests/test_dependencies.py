from unittest.mock import MagicMock

import pytest

from munir_functions import dependencies
from munir_functions.config import Settings
from munir_functions.services.link_issuer import FirebaseLinkIssuer
from munir_functions.services.mail_delivery_service import MailDeliveryService
from munir_functions.services.throttle_store import FirestoreThrottleStore, InMemoryThrottleStore
from munir_functions.utils import firebase_client


CREDENTIAL_ENV_VARS = (
    "FIREBASE_SERVICE_ACCOUNT_JSON_B64",
    "FIREBASE_SERVICE_ACCOUNT_JSON",
    "FIREBASE_SERVICE_ACCOUNT_PATH",
    "GOOGLE_APPLICATION_CREDENTIALS",
)


@pytest.fixture
def no_credentials(monkeypatch):
    for name in CREDENTIAL_ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_memory_backend_selected_explicitly():
    store = dependencies.build_throttle_store(Settings(throttle_backend="memory"))
    assert isinstance(store, InMemoryThrottleStore)


def test_firestore_backend_without_credentials_falls_back_to_memory(no_credentials):
    store = dependencies.build_throttle_store(Settings())
    assert isinstance(store, InMemoryThrottleStore)


def test_firestore_backend_uses_configured_collection(monkeypatch):
    client = MagicMock()
    monkeypatch.setenv("FIREBASE_SERVICE_ACCOUNT_PATH", "/secrets/sa.json")
    monkeypatch.setattr(dependencies, "get_firestore_client", lambda: client)

    store = dependencies.build_throttle_store(Settings(throttle_collection="resends"))

    assert isinstance(store, FirestoreThrottleStore)
    assert store.collection == "resends"


def test_build_dispatch_context_wires_collaborators():
    settings = Settings(
        throttle_backend="memory",
        auth_link_timeout_seconds=5.0,
        email_verification_continue_url="https://munir.app/verified",
    )

    ctx = dependencies.build_dispatch_context(settings)

    assert isinstance(ctx.link_issuer, FirebaseLinkIssuer)
    assert ctx.link_issuer.timeout_seconds == 5.0
    assert ctx.link_issuer.verification_continue_url == "https://munir.app/verified"
    assert isinstance(ctx.mailer, MailDeliveryService)
    assert isinstance(ctx.throttle_store, InMemoryThrottleStore)
    assert ctx.settings is settings


def test_firebase_credential_source_detection(monkeypatch, no_credentials):
    status = firebase_client.get_firebase_config_status()
    assert status["credential_source"] == "none"
    assert status["credentials_available"] is False

    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", "/secrets/adc.json")
    monkeypatch.setenv("FIREBASE_SERVICE_ACCOUNT_PATH", "/secrets/sa.json")
    status = firebase_client.get_firebase_config_status()
    assert status["credential_source"] == "path"
    assert status["credentials_available"] is True


def test_invalid_inline_service_account_json(monkeypatch, no_credentials):
    monkeypatch.setenv("FIREBASE_SERVICE_ACCOUNT_JSON", "{not json")

    with pytest.raises(ValueError, match="FIREBASE_SERVICE_ACCOUNT_JSON"):
        firebase_client._load_credentials("json")
