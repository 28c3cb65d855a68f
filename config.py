"""Application configuration classes and helpers."""
from __future__ import annotations

import os
from datetime import timedelta
from pathlib import Path
from typing import Dict, Iterable

from dotenv import load_dotenv

# A local .env only fills variables the environment has not already set.
load_dotenv(dotenv_path=Path(__file__).resolve().parent / ".env", override=False)


def _bool(value: str | None, default: bool = False) -> bool:
    """Parse environment flags such as "true", "1", "yes"."""
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "t", "yes", "y"}


def _split(value: str | None, default: Iterable[str]) -> list[str]:
    if not value:
        return list(default)
    return [item.strip() for item in value.split(",") if item.strip()]


class BaseConfig:
    """Shared configuration defaults used by every environment."""

    APP_NAME = os.getenv("APP_NAME", "DineDesk")
    VERSION = "0.1.0"

    SECRET_KEY = os.getenv("SECRET_KEY", "please-change-me")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "sqlite:///dinedesk.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    SQLALCHEMY_ENGINE_OPTIONS = {"pool_pre_ping": True}

    SESSION_COOKIE_NAME = "dinedesk_session"
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    SESSION_COOKIE_SECURE = _bool(os.getenv("SECURE_COOKIES"), default=False)
    REMEMBER_COOKIE_HTTPONLY = True
    REMEMBER_COOKIE_DURATION = timedelta(days=30)
    REMEMBER_COOKIE_SECURE = SESSION_COOKIE_SECURE
    REMEMBER_COOKIE_SAMESITE = SESSION_COOKIE_SAMESITE

    WTF_CSRF_TIME_LIMIT = 3600

    CACHE_TYPE = "SimpleCache"
    CACHE_DEFAULT_TIMEOUT = 300

    RATELIMIT_ENABLED = _bool(os.getenv("RATELIMIT_ENABLED"), default=True)
    RATELIMIT_HEADERS_ENABLED = True
    RATELIMIT_DEFAULT = "100 per minute"
    GLOBAL_RATE_LIMIT = os.getenv("GLOBAL_RATE_LIMIT", "500/minute")

    # Flask-Limiter limits for routes outside the password reset flow.
    RATES = {
        "LOGIN": os.getenv("RATE_LIMIT_LOGIN", "10 per minute"),
        "SIGNUP": os.getenv("RATE_LIMIT_SIGNUP", "5 per minute"),
    }

    # Shared by Flask-Limiter and the password reset throttles. Use a redis://
    # or memcached:// URI so several workers count against the same windows.
    RATELIMIT_STORAGE_URI = os.getenv("RATELIMIT_STORAGE_URI", "memory://")

    # Fixed-window throttles for the password reset flow.
    PASSWORD_RESET_RATE_LIMIT = int(os.getenv("PASSWORD_RESET_RATE_LIMIT", "3"))
    PASSWORD_RESET_RATE_WINDOW_SECS = int(os.getenv("PASSWORD_RESET_RATE_WINDOW_SECS", str(15 * 60)))
    OTP_VERIFY_RATE_LIMIT = int(os.getenv("OTP_VERIFY_RATE_LIMIT", "3"))
    OTP_VERIFY_RATE_WINDOW_SECS = int(os.getenv("OTP_VERIFY_RATE_WINDOW_SECS", str(5 * 60)))

    SECURITY_HEADERS = _bool(os.getenv("SECURITY_HEADERS"), default=True)
    CONTENT_SECURITY_POLICY: Dict[str, str] = {
        "default-src": "'self'",
        "img-src": "'self' data: https://raw.githubusercontent.com",
        "object-src": "'none'",
        "frame-ancestors": "'self'",
    }

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    LOG_FORMAT = os.getenv("LOG_FORMAT", "json").lower()
    REQUEST_BODY_LOG_MAX = int(os.getenv("REQUEST_BODY_LOG_MAX", "2048"))
    REDACT_KEYS = _split(
        os.getenv("REDACT_KEYS"),
        {
            "password",
            "currentPassword",
            "confirmPassword",
            "newPassword",
            "otp",
            "resetToken",
            "GITHUB_TOKEN",
            "Authorization",
        },
    )
    JSON_SORT_KEYS = False
    PREFERRED_URL_SCHEME = "https" if SESSION_COOKIE_SECURE else "http"

    OTP_LENGTH = int(os.getenv("OTP_LENGTH", "6"))
    OTP_EXPIRY_MINUTES = int(os.getenv("OTP_EXPIRY_MINUTES", "5"))
    OTP_MAX_ATTEMPTS = int(os.getenv("OTP_MAX_ATTEMPTS", "3"))
    OTP_HASH_ITERATIONS = int(os.getenv("OTP_HASH_ITERATIONS", "200000"))
    RESET_TOKEN_EXPIRY_MINUTES = int(os.getenv("RESET_TOKEN_EXPIRY_MINUTES", "15"))

    FILE_HOST_BACKEND = os.getenv("FILE_HOST_BACKEND", "local").lower()
    FILE_HOST_LOCAL_DIR = os.getenv("FILE_HOST_LOCAL_DIR", "uploads")
    FILE_HOST_PUBLIC_BASE_URL = os.getenv("FILE_HOST_PUBLIC_BASE_URL", "/uploads")
    FILE_HOST_TIMEOUT_SECS = int(os.getenv("FILE_HOST_TIMEOUT_SECS", "20"))
    GITHUB_TOKEN = os.getenv("GITHUB_TOKEN", "")
    GITHUB_REPO = os.getenv("GITHUB_REPO", "")
    GITHUB_BRANCH = os.getenv("GITHUB_BRANCH", "main")
    GITHUB_API_URL = os.getenv("GITHUB_API_URL", "https://api.github.com")

    LICENSE_MAX_BYTES = int(os.getenv("LICENSE_MAX_BYTES", str(5 * 1024 * 1024)))
    LICENSE_ALLOWED_EXTENSIONS = {"pdf", "png", "jpg", "jpeg"}
    IMAGE_MAX_BYTES = int(os.getenv("IMAGE_MAX_BYTES", str(5 * 1024 * 1024)))
    IMAGE_ALLOWED_EXTENSIONS = {"png", "jpg", "jpeg", "webp"}
    MAX_CONTENT_LENGTH = 16 * 1024 * 1024

    MAIL_SERVER = os.getenv("MAIL_SERVER", "smtp.gmail.com")
    MAIL_PORT = int(os.getenv("MAIL_PORT", 587))
    MAIL_USE_TLS = os.getenv("MAIL_USE_TLS", "true").lower() == "true"
    MAIL_USE_SSL = os.getenv("MAIL_USE_SSL", "false").lower() == "true"
    MAIL_SUPPRESS_SEND = os.getenv("MAIL_SUPPRESS_SEND", "false").lower() == "true"

    SMTP_HOST = os.getenv("SMTP_HOST", MAIL_SERVER)
    SMTP_PORT = int(os.getenv("SMTP_PORT", str(MAIL_PORT)))
    SMTP_USER = os.getenv("SMTP_USER", "")
    SMTP_PASS = os.getenv("SMTP_PASS", "")
    SMTP_USE_TLS = _bool(os.getenv("SMTP_USE_TLS"), default=MAIL_USE_TLS)
    SMTP_USE_SSL = _bool(os.getenv("SMTP_USE_SSL"), default=MAIL_USE_SSL)
    EMAIL_FROM = os.getenv("EMAIL_FROM", "")
    EMAIL_FROM_NAME = os.getenv("EMAIL_FROM_NAME", "Restaurant Platform")
    SUPPORT_EMAIL = os.getenv("SUPPORT_EMAIL", "")
    APP_BASE_URL = os.getenv("APP_BASE_URL", "http://localhost:8000").rstrip("/")


class DevConfig(BaseConfig):
    """Development defaults with verbose logging and auto reload."""

    DEBUG = True
    ENV = "development"
    TEMPLATES_AUTO_RELOAD = True
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
    LOG_FORMAT = os.getenv("LOG_FORMAT", "plain").lower()


class ProdConfig(BaseConfig):
    """Production defaults focused on security and performance."""

    DEBUG = False
    ENV = "production"
    SESSION_COOKIE_SECURE = True
    REMEMBER_COOKIE_SECURE = True
    PREFERRED_URL_SCHEME = "https"
    RATELIMIT_DEFAULT = os.getenv("RATE_LIMIT_DEFAULT", "60 per minute")
    CACHE_TYPE = os.getenv("CACHE_TYPE", "SimpleCache")


class TestConfig(BaseConfig):
    """Settings used by the pytest suite."""

    TESTING = True
    DEBUG = False
    ENV = "testing"
    SECRET_KEY = "test-secret"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    SQLALCHEMY_ENGINE_OPTIONS: Dict[str, object] = {}
    WTF_CSRF_ENABLED = False
    RATELIMIT_ENABLED = False
    SECURITY_HEADERS = False
    MAIL_SUPPRESS_SEND = True
    EMAIL_FROM = "noreply@dinedesk.test"
    LOG_LEVEL = "WARNING"
    LOG_FORMAT = "plain"
    OTP_HASH_ITERATIONS = 1000
    FILE_HOST_BACKEND = "local"
