"""
Application configuration: environment-aware settings.

All environment variables are documented here. Values are read from the
process environment, with a local .env file loaded first when present.
"""

from __future__ import annotations

import os
import warnings
from pathlib import Path

from dotenv import load_dotenv

BASE_DIR = Path(__file__).parent

load_dotenv(BASE_DIR / ".env")

DEFAULT_ADMIN_PIN = "12345678"


class BaseConfig:
    # Core Flask
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-key-change-in-production")
    DATABASE = os.environ.get("DATABASE_URL", str(BASE_DIR / "tuition.db"))

    # Session security
    SESSION_COOKIE_HTTPONLY = True
    SESSION_COOKIE_SAMESITE = "Lax"
    PERMANENT_SESSION_LIFETIME = 86400

    # Admin dashboard unlock (8 digits)
    ADMIN_PIN = os.environ.get("ADMIN_PIN", DEFAULT_ADMIN_PIN)

    # Shared files bucket
    STORAGE_DIR = os.environ.get("STORAGE_DIR", str(BASE_DIR / "storage"))
    MAX_CONTENT_LENGTH = 25 * 1024 * 1024  # 25 MB

    # LLM proxy
    OPENAI_API_KEY = os.environ.get("OPENAI_API_KEY", "")
    OPENAI_DEFAULT_MODEL = os.environ.get("OPENAI_DEFAULT_MODEL", "gpt-4o-mini")

    # Web push (VAPID)
    VAPID_PRIVATE_KEY = os.environ.get("VAPID_PRIVATE_KEY", "")
    VAPID_PUBLIC_KEY = os.environ.get("VAPID_PUBLIC_KEY", "")
    VAPID_CLAIMS_EMAIL = os.environ.get("VAPID_CLAIMS_EMAIL", "mailto:admin@example.com")
    PUSH_ICON = os.environ.get("PUSH_ICON", "/logo.png")

    # Daily review reminder sweep (local hour, 0-23)
    REVIEW_REMINDER_HOUR = int(os.environ.get("REVIEW_REMINDER_HOUR", "16"))

    # Logging
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")  # "json" or "text"
    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Rate limiting (defaults to in-memory)
    RATELIMIT_STORAGE_URI = os.environ.get("RATELIMIT_STORAGE_URI", "memory://")


class DevelopmentConfig(BaseConfig):
    DEBUG = True
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "text")


class ProductionConfig(BaseConfig):
    DEBUG = False
    LOG_FORMAT = os.environ.get("LOG_FORMAT", "json")
    SESSION_COOKIE_SECURE = True

    @classmethod
    def validate(cls):
        """Fail fast on missing or insecure configuration in production."""
        errors: list[str] = []

        if cls.SECRET_KEY in ("dev-key-change-in-production", ""):
            errors.append("SECRET_KEY must be set to a secure value in production.")

        if cls.ADMIN_PIN == DEFAULT_ADMIN_PIN:
            errors.append("ADMIN_PIN must be changed from the default in production.")
        elif not (len(cls.ADMIN_PIN) == 8 and cls.ADMIN_PIN.isdigit()):
            errors.append("ADMIN_PIN must be exactly 8 digits.")

        if not cls.OPENAI_API_KEY:
            warnings.warn("OPENAI_API_KEY is not set, review quizzes and chat will be unavailable.")

        if not cls.VAPID_PRIVATE_KEY:
            warnings.warn("VAPID_PRIVATE_KEY is not set, push notifications will not be delivered.")

        if errors:
            raise RuntimeError(
                "Production configuration errors:\n" + "\n".join(f"  - {e}" for e in errors)
            )


class TestingConfig(BaseConfig):
    TESTING = True


config_by_name = {
    "development": DevelopmentConfig,
    "production": ProductionConfig,
    "testing": TestingConfig,
}
