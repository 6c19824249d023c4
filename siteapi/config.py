"""
Configuration module for the Site Builder API
"""

import os
from pathlib import Path


def env_bool(key: str, default: bool = False) -> bool:
    """Get boolean value from environment variable"""
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _read_version_from_repo(default: str = "dev") -> str:
    try:
        version_file = Path(__file__).resolve().parents[1] / "VERSION"
        v = version_file.read_text(encoding="utf-8").strip()
        if v:
            return v
    except OSError:
        pass
    return os.getenv("APP_VERSION", default)


APP_NAME = os.getenv("APP_NAME", "siteapi")
API_VERSION = _read_version_from_repo()

# API configuration
API_PREFIX = "/api/v1"

# Database configuration
DATABASE_URL = os.getenv("DATABASE_URL", "sqlite+aiosqlite:///./siteapi.db")

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FORMAT = os.getenv("LOG_FORMAT", "json")
HTTP_LOG_SAMPLE_RATE = float(os.getenv("HTTP_LOG_SAMPLE_RATE", "1.0"))
HTTP_LOG_EXCLUDE_PATHS = set(os.getenv("HTTP_LOG_EXCLUDE_PATHS", "/healthz").split(","))

# Pagination
DEFAULT_PAGE = 1
DEFAULT_PER_PAGE = int(os.getenv("DEFAULT_PER_PAGE", "20"))
MAX_PER_PAGE = int(os.getenv("MAX_PER_PAGE", "100"))
# Keeps (page - 1) * per_page inside a 64-bit OFFSET
MAX_PAGE = int(os.getenv("MAX_PAGE", "1000000"))

# API keys
API_KEY_PREFIX = "sk-us"
API_KEY_MIN_LENGTH = 20
DEFAULT_RATE_LIMIT = int(os.getenv("DEFAULT_RATE_LIMIT", "1000"))  # requests per hour
RATE_LIMIT_WINDOW_SECONDS = 3600
RATE_LIMIT_RETRY_AFTER_SECONDS = int(os.getenv("RATE_LIMIT_RETRY_AFTER_SECONDS", "60"))

# Outbound calls (WordPress connection tests, ...)
OUTBOUND_TIMEOUT_SECONDS = float(os.getenv("OUTBOUND_TIMEOUT_SECONDS", "10"))


# Runtime accessors, read per call so flipping the environment takes effect
def get_environment() -> str:
    return os.getenv("ENVIRONMENT", "development").lower()


def is_production() -> bool:
    return get_environment() == "production"


def get_trust_proxy() -> bool:
    return env_bool("TRUST_PROXY", False)


def get_rate_limit_enabled() -> bool:
    return env_bool("RATE_LIMIT_ENABLED", True)
