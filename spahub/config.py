"""Configuration objects loaded by ``create_app``."""
from __future__ import annotations

import os


def _env_flag(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-change-me")
    SQLALCHEMY_DATABASE_URI = os.environ.get("DATABASE_URL", "sqlite:///spahub.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Access tokens
    JWT_KEY = os.environ.get("JWT_KEY")
    JWT_ISSUER = os.environ.get("JWT_ISSUER", "spahub")
    JWT_AUDIENCE = os.environ.get("JWT_AUDIENCE", "spahub-clients")
    JWT_SUBJECT = os.environ.get("JWT_SUBJECT", "spahub-access-token")
    JWT_EXPIRY_MINUTES = int(os.environ.get("JWT_EXPIRY_MINUTES", 60))
    REFRESH_TOKEN_EXPIRY_DAYS = int(os.environ.get("REFRESH_TOKEN_EXPIRY_DAYS", 7))

    # Confirmation, change-email and password reset tokens
    EMAIL_TOKEN_MAX_AGE = int(os.environ.get("EMAIL_TOKEN_MAX_AGE", 86400))
    REQUIRE_CONFIRMED_EMAIL = _env_flag("REQUIRE_CONFIRMED_EMAIL", True)

    MAIL_SERVER = os.environ.get("MAIL_SERVER", "localhost")
    MAIL_PORT = int(os.environ.get("MAIL_PORT", 587))
    MAIL_USE_TLS = _env_flag("MAIL_USE_TLS", True)
    MAIL_USERNAME = os.environ.get("MAIL_USERNAME")
    MAIL_PASSWORD = os.environ.get("MAIL_PASSWORD")
    MAIL_DEFAULT_SENDER = os.environ.get("MAIL_DEFAULT_SENDER", "no-reply@spahub.local")
    MAIL_SUPPRESS_SEND = _env_flag("MAIL_SUPPRESS_SEND", False)

    STRIPE_SECRET_KEY = os.environ.get("STRIPE_SECRET_KEY")
    STRIPE_WEBHOOK_SECRET = os.environ.get("STRIPE_WEBHOOK_SECRET")
    STRIPE_CURRENCY = os.environ.get("STRIPE_CURRENCY", "usd")

    CORS_ORIGINS = os.environ.get("CORS_ORIGINS", "*")


class TestingConfig(Config):
    TESTING = True
    SECRET_KEY = "testing-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite:///:memory:"
    JWT_KEY = "testing-jwt-signing-key-that-is-long-enough-0123456789"
    MAIL_SUPPRESS_SEND = True
    STRIPE_SECRET_KEY = "sk_test_dummy"
    STRIPE_WEBHOOK_SECRET = "whsec_test_dummy"
