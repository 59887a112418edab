"""
Configuration module for Ephemeral Paste.
Loads environment variables and provides config objects.
"""
import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes")


class Settings:
    """Application settings loaded from environment variables."""

    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379")
    STORE_BACKEND: str = os.getenv("STORE_BACKEND", "redis").lower()
    SQLITE_PATH: str = os.getenv("SQLITE_PATH", "pastes.db")
    ALLOW_MEMORY_FALLBACK: bool = _flag("ALLOW_MEMORY_FALLBACK", "True")
    REDIS_EXPIRY_GRACE_SECONDS: int = int(os.getenv("REDIS_EXPIRY_GRACE_SECONDS", "3600"))
    DEBUG: bool = _flag("DEBUG", "True")
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()
    APP_DOMAIN: str = os.getenv("APP_DOMAIN", "http://localhost:8000")
    TEST_MODE: bool = _flag("TEST_MODE", "0")


settings = Settings()
