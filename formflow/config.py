import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

from formflow.dependencies import DisabledValuePolicy
from formflow.session_store import DEFAULT_MAX_SESSIONS, DEFAULT_SESSION_TTL

logger = logging.getLogger(__name__)

DEFAULT_SUBMIT_TIMEOUT = 30.0
DEFAULT_MOCK_DELAY = 2.0
DEFAULT_MOCK_SUCCESS_RATE = 0.95


class Settings(BaseModel):
    submit_url: Optional[str] = None
    submit_timeout: float = DEFAULT_SUBMIT_TIMEOUT
    mock_delay: float = DEFAULT_MOCK_DELAY
    mock_success_rate: float = DEFAULT_MOCK_SUCCESS_RATE
    disabled_policy: DisabledValuePolicy = DisabledValuePolicy.PASS_THROUGH
    enable_dev_routes: bool = False
    session_ttl: float = DEFAULT_SESSION_TTL
    max_sessions: int = DEFAULT_MAX_SESSIONS


def _float_env(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; using %s", name, raw, default)
        return default


def _policy_env(name: str) -> DisabledValuePolicy:
    raw = os.getenv(name, DisabledValuePolicy.PASS_THROUGH.value).strip().lower()
    try:
        return DisabledValuePolicy(raw)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r; passing disabled values through", name, raw)
        return DisabledValuePolicy.PASS_THROUGH


def get_settings() -> Settings:
    """Read settings from the environment (and ``.env`` when present)."""
    load_dotenv()
    submit_url = os.getenv("FORMFLOW_SUBMIT_URL", "").strip() or None
    return Settings(
        submit_url=submit_url,
        submit_timeout=_float_env("FORMFLOW_SUBMIT_TIMEOUT", DEFAULT_SUBMIT_TIMEOUT),
        mock_delay=_float_env("FORMFLOW_MOCK_DELAY", DEFAULT_MOCK_DELAY),
        mock_success_rate=_float_env("FORMFLOW_MOCK_SUCCESS_RATE", DEFAULT_MOCK_SUCCESS_RATE),
        disabled_policy=_policy_env("FORMFLOW_DISABLED_POLICY"),
        enable_dev_routes=os.getenv("ENABLE_DEV_ROUTES", "false").lower() == "true",
        session_ttl=_float_env("FORMFLOW_SESSION_TTL", DEFAULT_SESSION_TTL),
        max_sessions=_int_env("FORMFLOW_MAX_SESSIONS", DEFAULT_MAX_SESSIONS),
    )
