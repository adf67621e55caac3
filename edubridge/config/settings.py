"""
edubridge/config/settings.py
Process configuration loaded from the environment.

Runtime-editable policy (upload limits, upload restrictions, platform
toggles) is stored in the system_settings table instead; see
edubridge/services/settings_service.py.
"""
import os
from pathlib import Path
from typing import List

from dotenv import load_dotenv

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
ENV_FILE = PROJECT_ROOT / ".env"

load_dotenv(dotenv_path=ENV_FILE)


def get_int_env(key: str, default: int) -> int:
    """Get an integer value from environment variable."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return int(value)


def get_float_env(key: str, default: float) -> float:
    """Get a float value from environment variable."""
    value = os.getenv(key)
    if value is None or value.strip() == "":
        return default
    return float(value)


def get_list_env(key: str, default: List[str]) -> List[str]:
    """Get a comma-separated list from environment variable."""
    value = os.getenv(key, "")
    items = [item.strip() for item in value.split(",") if item.strip()]
    return items or list(default)


class Settings:
    """
    Environment-driven settings.

    Values are read once at import time. Tests that need different values
    construct the objects that consume them (RetryPolicy, SettingsCache)
    directly instead of patching this class.
    """

    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

    # Persistence
    DATABASE_URL: str = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./edubridge.db")

    # Bearer tokens are issued by the external identity provider
    JWT_SECRET_KEY: str = os.getenv("JWT_SECRET_KEY", "dev-secret-key-change-in-production")
    JWT_ALGORITHM: str = os.getenv("JWT_ALGORITHM", "HS256")
    ACCESS_TOKEN_EXPIRE_MINUTES: int = get_int_env("ACCESS_TOKEN_EXPIRE_MINUTES", 30)

    # HTTP
    ALLOWED_ORIGINS: List[str] = get_list_env(
        "ALLOWED_ORIGINS",
        ["http://localhost:3000", "http://127.0.0.1:3000"],
    )
    DASHBOARD_BASE_URL: str = os.getenv("DASHBOARD_BASE_URL", "")
    UPLOAD_RATE_LIMIT: str = os.getenv("UPLOAD_RATE_LIMIT", "20/minute")
    COMMENT_RATE_LIMIT: str = os.getenv("COMMENT_RATE_LIMIT", "30/minute")

    # Registration rules
    INSTITUTION_CODE: str = os.getenv("INSTITUTION_CODE", "23")
    INSTITUTION_NAME: str = os.getenv("INSTITUTION_NAME", "Politeknik Nilai")
    INSTITUTIONAL_EMAIL_DOMAIN: str = os.getenv("INSTITUTIONAL_EMAIL_DOMAIN", "polinilai.edu.my")

    # Remote-operation retry
    RETRY_MAX_ATTEMPTS: int = get_int_env("RETRY_MAX_ATTEMPTS", 3)
    RETRY_BASE_DELAY_SECONDS: float = get_float_env("RETRY_BASE_DELAY_SECONDS", 1.0)
    RETRY_MAX_DELAY_SECONDS: float = get_float_env("RETRY_MAX_DELAY_SECONDS", 8.0)
    RETRY_JITTER_SECONDS: float = get_float_env("RETRY_JITTER_SECONDS", 0.5)
    OPERATION_TIMEOUT_SECONDS: float = get_float_env("OPERATION_TIMEOUT_SECONDS", 10.0)

    # System settings cache
    SETTINGS_CACHE_TTL_SECONDS: float = get_float_env("SETTINGS_CACHE_TTL_SECONDS", 600.0)

    @classmethod
    def is_development(cls) -> bool:
        return cls.ENVIRONMENT == "development"


settings = Settings()
