"""
Firebase Admin bootstrap shared by the link issuer and the Firestore throttle store.

Credentials resolve in order: base64 service-account JSON, inline JSON, a
file path, then application default credentials.
"""
import base64
import json
import logging
import os
from typing import Optional

import firebase_admin
from firebase_admin import credentials, firestore


logger = logging.getLogger(__name__)

# (source name, environment variable), highest priority first.
_CREDENTIAL_SOURCES = (
    ("json_b64", "FIREBASE_SERVICE_ACCOUNT_JSON_B64"),
    ("json", "FIREBASE_SERVICE_ACCOUNT_JSON"),
    ("path", "FIREBASE_SERVICE_ACCOUNT_PATH"),
    ("adc", "GOOGLE_APPLICATION_CREDENTIALS"),
)


def _project_id() -> Optional[str]:
    return os.getenv("FIREBASE_PROJECT_ID") or os.getenv("GOOGLE_CLOUD_PROJECT")


def _credential_source() -> str:
    for source, env_name in _CREDENTIAL_SOURCES:
        if os.getenv(env_name):
            return source
    return "none"


def _service_account_info(source: str) -> dict:
    raw = os.getenv(dict(_CREDENTIAL_SOURCES)[source], "")
    try:
        if source == "json_b64":
            raw = base64.b64decode(raw).decode("utf-8")
        return json.loads(raw)
    except (ValueError, UnicodeDecodeError) as exc:
        raise ValueError(f"Invalid {dict(_CREDENTIAL_SOURCES)[source]}") from exc


def _load_credentials(source: str):
    if source in {"json_b64", "json"}:
        return credentials.Certificate(_service_account_info(source))
    if source == "path":
        return credentials.Certificate(os.getenv("FIREBASE_SERVICE_ACCOUNT_PATH"))
    return credentials.ApplicationDefault()


def init_firebase() -> None:
    """Initialise the default Firebase app once per process."""
    if firebase_admin._apps:
        return

    source = _credential_source()
    project_id = _project_id()
    options = {"projectId": project_id} if project_id else None
    firebase_admin.initialize_app(_load_credentials(source), options)
    logger.info(f"Firebase initialized via {source} (project_id={project_id})")


def get_firestore_client():
    init_firebase()
    return firestore.client()


def get_firebase_config_status() -> dict:
    source = _credential_source()
    return {
        "credential_source": source,
        "credentials_available": source != "none",
        "project_id": _project_id(),
        "initialized": bool(firebase_admin._apps),
    }
