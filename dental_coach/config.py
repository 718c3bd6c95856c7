"""Centralized configuration for the Dental Coach service.

Secret resolution order (per variable):
  1. Environment variable / ``.env`` file  (local dev)
  2. AWS SSM Parameter Store SecureString  (when ``AWS_EXECUTION_ENV`` is set)

The SSM paths follow the convention ``/dental-coach/<VARIABLE_NAME>``.
"""

from __future__ import annotations

import logging
import os

from dotenv import load_dotenv

load_dotenv()

logger = logging.getLogger(__name__)

_ON_AWS = bool(os.getenv("AWS_EXECUTION_ENV"))
_SSM_PREFIX = "/dental-coach"


# ── Secret resolution ────────────────────────────────────────────────

def _get_ssm_parameter(name: str) -> str | None:
    """Fetch a SecureString from SSM Parameter Store, or ``None``."""
    try:
        import boto3  # noqa: PLC0415 — only needed on AWS

        ssm = boto3.client("ssm")
        resp = ssm.get_parameter(Name=f"{_SSM_PREFIX}/{name}", WithDecryption=True)
        return resp["Parameter"]["Value"]
    except Exception:
        logger.debug("SSM lookup for %s failed (expected locally)", name)
        return None


def _resolve(name: str) -> str | None:
    value = os.getenv(name)
    if value and not value.startswith("your_"):
        return value
    if _ON_AWS:
        return _get_ssm_parameter(name)
    return None


def _require_env(name: str) -> str:
    """Return a config value from env-var or SSM, or raise a clear error."""
    value = _resolve(name)
    if value:
        return value
    raise OSError(
        f"Missing required configuration: {name}. "
        f"Set it in .env (local) or SSM Parameter Store {_SSM_PREFIX}/{name} (AWS)."
    )


def _parse_api_tokens(raw: str) -> dict[str, str]:
    """Parse ``identity:token`` pairs into a ``{token: identity}`` map.

    >>> _parse_api_tokens("alice:abc, bob:xyz")
    {'abc': 'alice', 'xyz': 'bob'}
    """
    tokens: dict[str, str] = {}
    for pair in raw.split(","):
        identity, sep, token = pair.strip().partition(":")
        if not sep or not identity or not token:
            if pair.strip():
                logger.warning("Ignoring malformed API token entry %r", pair.strip())
            continue
        tokens[token] = identity
    return tokens


# ── LLM ─────────────────────────────────────────────────────────────
ANTHROPIC_API_KEY: str = _require_env("ANTHROPIC_API_KEY")
MODEL_NAME: str = os.getenv("MODEL_NAME", "claude-sonnet-4-5")
TEMPERATURE: float = float(os.getenv("TEMPERATURE", "0.3"))
MAX_OUTPUT_TOKENS: int = int(os.getenv("MAX_OUTPUT_TOKENS", "1500"))
# Sampling knobs used to keep the coach from looping on the same phrasing
TOP_P: float | None = float(os.environ["TOP_P"]) if os.getenv("TOP_P") else None
TOP_K: int | None = int(os.environ["TOP_K"]) if os.getenv("TOP_K") else None
COMPLETION_TIMEOUT_SECONDS: float = float(os.getenv("COMPLETION_TIMEOUT_SECONDS", "60"))

# ── Knowledge store ─────────────────────────────────────────────────
DATABASE_URL: str = _resolve("DATABASE_URL") or "sqlite:///dental_coach.db"
SQL_ECHO: bool = os.getenv("SQL_ECHO", "false").lower() == "true"
# Roughly 25k tokens of grounding; raise for larger-context models
KNOWLEDGE_CONTEXT_MAX_CHARS: int = int(os.getenv("KNOWLEDGE_CONTEXT_MAX_CHARS", "100000"))

# ── Auth ────────────────────────────────────────────────────────────
API_TOKENS: dict[str, str] = _parse_api_tokens(_resolve("COACH_API_TOKENS") or "")

# ── Server ──────────────────────────────────────────────────────────
SERVER_HOST: str = os.getenv("SERVER_HOST", "0.0.0.0")
SERVER_PORT: int = int(os.getenv("SERVER_PORT", "8000"))
CORS_ORIGINS: list[str] = os.getenv(
    "CORS_ORIGINS",
    "http://localhost:3000,http://localhost:5173",
).split(",")
