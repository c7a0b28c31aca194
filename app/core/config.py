"""Application configuration management."""

import os
import sys
from typing import Optional


def _int_env(name: str, default: int) -> int:
    """Get integer environment variable with fallback."""
    try:
        return int(os.getenv(name, str(default)))
    except ValueError:
        return default


def _bool_env(name: str, default: bool) -> bool:
    """Get boolean environment variable; anything but an explicit 'off' value is true."""
    value = os.getenv(name)
    if value is None:
        return default
    return str(value).strip().lower() not in {"0", "false", "no", "off"}


def _optional_int_env(name: str, default: str) -> Optional[int]:
    val = os.getenv(name, default)
    try:
        return int(str(val).strip())
    except ValueError:
        return None


def env_or_die(key: str) -> str:
    v = os.getenv(key)
    if not v:
        print(f"Missing env var: {key}", file=sys.stderr)
        sys.exit(2)
    return v


class Config:
    """Application configuration."""

    # TestRail Configuration
    TESTRAIL_PROJECT_ID = _int_env("TESTRAIL_PROJECT_ID", 1)
    TESTRAIL_SUITE_ID = _optional_int_env("TESTRAIL_SUITE_ID", "1")
    TESTRAIL_PAGE_LIMIT = max(1, min(250, _int_env("TESTRAIL_PAGE_LIMIT", 250)))

    # CORS Configuration
    ALLOWED_ORIGIN = os.getenv("ALLOWED_ORIGIN", "http://localhost:3000")

    # Rate Limit Configuration (100 requests per client per 15 minutes)
    RATE_LIMIT_WINDOW_SECONDS = max(1, _int_env("RATE_LIMIT_WINDOW_SECONDS", 15 * 60))
    RATE_LIMIT_MAX_REQUESTS = max(1, _int_env("RATE_LIMIT_MAX_REQUESTS", 100))

    # Coverage Configuration
    COVERAGE_FETCH_WORKERS = max(1, _int_env("COVERAGE_FETCH_WORKERS", 8))
    COVERAGE_INCLUDE_ANCESTORS = _bool_env("COVERAGE_INCLUDE_ANCESTORS", True)
    DEFAULT_CHART_TITLE = os.getenv("DEFAULT_CHART_TITLE", "Automation Coverage Chart")
    # TestRail case field holding the automation status code
    COVERAGE_AUTOMATION_FIELD = os.getenv("COVERAGE_AUTOMATION_FIELD", "custom_automation")


# Global configuration instance
config = Config()
