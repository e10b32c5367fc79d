"""
Application configuration.

All configuration is loaded from environment variables.
Never hardcode secrets or connection strings in code.
"""

import os
from functools import lru_cache

from dotenv import load_dotenv

# Load .env file into environment variables
load_dotenv()


def _env_flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings:
    """Application settings loaded from environment variables."""

    # Application
    APP_NAME: str = "CryptoVibe Ledger"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = _env_flag("DEBUG")

    # Server
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # Database
    DATABASE_URL: str = os.getenv(
        "DATABASE_URL",
        "postgresql://localhost:5432/cryptovibe"
    )

    # Environment
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")

    # Audit trail
    AUDIT_PAGE_SIZE: int = int(os.getenv("AUDIT_PAGE_SIZE", "50"))
    # When true, a failed audit write propagates so the caller can
    # roll back the business mutation together with it.
    AUDIT_STRICT: bool = _env_flag("AUDIT_STRICT")

    # Rollback
    # When true, rollback refuses to overwrite a row that changed
    # after the audit entry was written.
    ROLLBACK_REQUIRE_UNCHANGED: bool = _env_flag("ROLLBACK_REQUIRE_UNCHANGED")


@lru_cache()
def get_settings() -> Settings:
    """
    Return cached settings instance.

    The Settings object is created once and reused for all
    subsequent calls.
    """
    return Settings()
