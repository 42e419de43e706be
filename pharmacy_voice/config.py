"""Centralized configuration for the pharmacy voice agent backend.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/pharmacy-voice/<VARIABLE_NAME>``.

Secrets are resolved lazily (see :func:`get_retell_api_key`) so the webhook
and tool endpoints keep working even when the call-platform key is absent.
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
        import boto3  # noqa: PLC0415 (lazy import)

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"/pharmacy-voice/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value

    if _ON_AWS:
        ssm_value = _get_ssm_parameter(name)
        if ssm_value:
            return ssm_value

    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store /pharmacy-voice/{name} (AWS)."
    )


def get_retell_api_key() -> str:
    """Resolve the Retell API key on demand."""
    return _require_env("RETELL_API_KEY")


# ── Retell (call platform) ──────────────────────────────────────────
RETELL_BASE_URL: str = os.getenv("RETELL_BASE_URL", "https://api.retellai.com")
RETELL_TIMEOUT_SECONDS: float = float(os.getenv("RETELL_TIMEOUT_SECONDS", "15"))

# ── Product catalog ─────────────────────────────────────────────────
CATALOG_PATH: str | None = os.getenv("CATALOG_PATH") or None

# ── Web-call admission control ──────────────────────────────────────
WEB_CALL_HOURLY_LIMIT_PER_IP: int = int(os.getenv("WEB_CALL_HOURLY_LIMIT_PER_IP", "10"))
WEB_CALL_DAILY_LIMIT: int = int(os.getenv("WEB_CALL_DAILY_LIMIT", "100"))

# ── Metrics ─────────────────────────────────────────────────────────
METRICS_ENABLED: bool = os.getenv("METRICS_ENABLED", "false").lower() == "true"

# ── Server ──────────────────────────────────────────────────────────
SERVICE_VERSION = "0.1.0"
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "3000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
