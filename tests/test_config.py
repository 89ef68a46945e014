import pytest

from munir_functions.config import DEFAULT_LOGO_URL, Settings, load_settings


ENV_VARS = [
    "DEBUG",
    "LOG_LEVEL",
    "EMAIL_PROVIDER",
    "MAIL_FROM_EMAIL",
    "MAIL_FROM_NAME",
    "SMTP_HOST",
    "SMTP_PORT",
    "SMTP_USER",
    "SMTP_PASS",
    "SMTP_TLS",
    "BREVO_API_KEY",
    "MAIL_TIMEOUT_SECONDS",
    "AUTH_LINK_TIMEOUT_SECONDS",
    "EMAIL_VERIFICATION_CONTINUE_URL",
    "PASSWORD_RESET_CONTINUE_URL",
    "THROTTLE_BACKEND",
    "THROTTLE_COLLECTION",
    "RESEND_WINDOW_SECONDS",
    "MUNIR_LOGO_URL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)


def test_defaults():
    settings = load_settings()

    assert settings.email_provider == "smtp"
    assert settings.smtp_host == "smtp.gmail.com"
    assert settings.smtp_port == 587
    assert settings.throttle_backend == "firestore"
    assert settings.throttle_collection == "email_verifications"
    assert settings.resend_window_seconds == 3600
    assert settings.logo_url == DEFAULT_LOGO_URL
    assert settings.email_verification_continue_url is None


def test_sender_header():
    assert Settings().sender == '"MUNIR - Smart Glasses 💜" <munir.smart.glasses@gmail.com>'
    assert Settings(mail_from_name="").sender == "munir.smart.glasses@gmail.com"


def test_env_overrides(monkeypatch):
    monkeypatch.setenv("EMAIL_PROVIDER", "BREVO")
    monkeypatch.setenv("BREVO_API_KEY", "xkeysib-test")
    monkeypatch.setenv("THROTTLE_BACKEND", "memory")
    monkeypatch.setenv("RESEND_WINDOW_SECONDS", "600")
    monkeypatch.setenv("SMTP_TLS", "false")
    monkeypatch.setenv("PASSWORD_RESET_CONTINUE_URL", "https://munir.app/login")

    settings = load_settings()

    assert settings.email_provider == "brevo"
    assert settings.brevo_api_key == "xkeysib-test"
    assert settings.throttle_backend == "memory"
    assert settings.resend_window_seconds == 600
    assert settings.smtp_tls is False
    assert settings.password_reset_continue_url == "https://munir.app/login"


def test_sender_falls_back_to_smtp_user(monkeypatch):
    monkeypatch.setenv("SMTP_USER", "relay@munir.app")
    assert load_settings().mail_from_email == "relay@munir.app"


@pytest.mark.parametrize("name,value,attribute,expected", [
    ("EMAIL_PROVIDER", "mailjet", "email_provider", "smtp"),
    ("THROTTLE_BACKEND", "redis", "throttle_backend", "firestore"),
    ("RESEND_WINDOW_SECONDS", "soon", "resend_window_seconds", 3600),
    ("RESEND_WINDOW_SECONDS", "-5", "resend_window_seconds", 3600),
    ("SMTP_PORT", "abc", "smtp_port", 587),
    ("MAIL_TIMEOUT_SECONDS", "0", "mail_timeout_seconds", 20.0),
])
def test_invalid_values_fall_back(monkeypatch, name, value, attribute, expected):
    monkeypatch.setenv(name, value)
    assert getattr(load_settings(), attribute) == expected


def test_summary_hides_secrets(monkeypatch):
    monkeypatch.setenv("SMTP_USER", "relay@munir.app")
    monkeypatch.setenv("SMTP_PASS", "secret-password")

    summary = load_settings().summary()

    assert summary["has_smtp_credentials"] is True
    assert "secret-password" not in str(summary)
