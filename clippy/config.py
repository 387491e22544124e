"""Centralized configuration for the Clippy chat service.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/clippy/<VARIABLE_NAME>``.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

# ── Feature flag: running on AWS? ────────────────────────────────────
_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store.

    Returns ``None`` if the parameter does not exist or boto3 is
    unavailable.  Errors are logged but never raised so that local-dev
    fallback still works.
    """
    try:
        import boto3  # noqa: PLC0415

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/clippy/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _optional_secret(name: str) -> str:
    """Return a secret from env-var or SSM, or an empty string."""
    value = os.getenv(name, "")
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        return _get_ssm_parameter(name) or ""
    return ""


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = _optional_secret(name)
    if value:
        return value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store /clippy/{name} (AWS)."
    )


def _int_env(name: str, default: int) -> int:
    return int(os.getenv(name, str(default)))


# ── LLM ─────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY: str = _require_env("ANTHROPIC_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-sonnet-4-5")

# Model used for conversation titles
FAST_MODEL_NAME: str = os.getenv("FAST_MODEL_NAME", "claude-haiku-4-5")

# Circuit breaker for runaway tool calling
MAX_REPLY_ITERATIONS: int = _int_env("MAX_REPLY_ITERATIONS", 15)

# ── External data tools ─────────────────────────────────────────────
# Not required at start-up: the weather tool reports it as unconfigured.
WEATHER_API_KEY: str = _optional_secret("WEATHER_API_KEY")
WEATHER_BASE_URL: str = "http://api.weatherapi.com/v1"

HOLIDAY_CALENDAR_LINK: str = os.getenv(
    "HOLIDAY_CALENDAR_LINK",
    "https://www.officeholidays.com/ics/spain/catalonia",
)

FETCH_MAX_ATTEMPTS: int = _int_env("FETCH_MAX_ATTEMPTS", 3)
FETCH_BACKOFF_BASE_SECONDS: float = _int_env("FETCH_BACKOFF_BASE_MS", 200) / 1000
HTTP_TIMEOUT_SECONDS: float = float(os.getenv("HTTP_TIMEOUT_SECONDS", "5"))

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = _int_env("SERVER_PORT", 8080)
REQUEST_TIMEOUT_SECONDS: float = float(os.getenv("REQUEST_TIMEOUT_SECONDS", "120"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
