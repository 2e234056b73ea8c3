"""Configuration utilities.

Every tunable of the pipeline is a named environment variable read once at
startup into a frozen ``Settings`` value. A ``.env`` file next to the working
directory is loaded first so local runs need no exported variables:

Example .env:
    AI_API_KEY=sk-...
    AI_MODEL=gpt-4o
    REQUEST_TIMEOUT_S=30
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Callable, FrozenSet, Optional, TypeVar

from dotenv import load_dotenv

from meal_processor.domain.analysis.requests import MAX_PLAN_DAYS
from meal_processor.domain.shared.errors import ConfigurationError

T = TypeVar("T")

DEFAULT_RETRYABLE_STATUS_CODES: FrozenSet[int] = frozenset({408, 409, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class Settings:
    """Process configuration.

    ``api_key`` may be ``None``: the app still starts, and every request
    fails fast with ``ConfigurationError`` before any network call.
    """

    api_key: Optional[str] = None
    base_url: Optional[str] = None
    model: str = "gpt-4o"
    max_tokens: int = 4096
    temperature: float = 0.3

    request_timeout_s: float = 30.0
    pipeline_timeout_s: float = 90.0
    max_attempts: int = 3
    retry_backoff_s: float = 1.0
    retry_backoff_max_s: float = 8.0
    retryable_status_codes: FrozenSet[int] = field(
        default_factory=lambda: DEFAULT_RETRYABLE_STATUS_CODES
    )

    default_portion: str = "medium"
    default_participant_count: int = 4
    default_plan_days: int = 7

    log_level: str = "INFO"
    log_format: str = "console"

    def require_api_key(self) -> str:
        """Return the backend credential or raise ``ConfigurationError``."""
        if not self.api_key:
            raise ConfigurationError("AI_API_KEY not configured")
        return self.api_key


def _env(name: str, cast: Callable[[str], T], default: T) -> T:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return cast(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"{name} has an invalid value: {raw!r}") from exc


def _status_codes(raw: str) -> FrozenSet[int]:
    return frozenset(int(part) for part in raw.split(",") if part.strip())


def _in_range(name: str, value: int, low: int, high: int) -> int:
    if not low <= value <= high:
        raise ConfigurationError(f"{name} must be between {low} and {high}, got {value}")
    return value


def load_settings(env_file: Optional[str] = None) -> Settings:
    """
    Build ``Settings`` from the environment.

    Args:
        env_file: Optional explicit .env path (defaults to ``.env`` lookup)

    Returns:
        Frozen Settings instance

    Raises:
        ConfigurationError: If a numeric variable cannot be parsed or is out of range
    """
    load_dotenv(env_file)

    api_key = os.getenv("AI_API_KEY") or os.getenv("OPENAI_API_KEY") or None

    return Settings(
        api_key=api_key,
        base_url=os.getenv("AI_BASE_URL") or None,
        model=os.getenv("AI_MODEL", "gpt-4o"),
        max_tokens=_env("AI_MAX_TOKENS", int, 4096),
        temperature=_env("AI_TEMPERATURE", float, 0.3),
        request_timeout_s=_env("REQUEST_TIMEOUT_S", float, 30.0),
        pipeline_timeout_s=_env("PIPELINE_TIMEOUT_S", float, 90.0),
        max_attempts=max(1, _env("MAX_ATTEMPTS", int, 3)),
        retry_backoff_s=_env("RETRY_BACKOFF_S", float, 1.0),
        retry_backoff_max_s=_env("RETRY_BACKOFF_MAX_S", float, 8.0),
        retryable_status_codes=_env(
            "RETRYABLE_STATUS_CODES", _status_codes, DEFAULT_RETRYABLE_STATUS_CODES
        ),
        default_portion=_env("DEFAULT_PORTION", str, "medium"),
        default_participant_count=max(1, _env("DEFAULT_PARTICIPANT_COUNT", int, 4)),
        default_plan_days=_in_range(
            "DEFAULT_PLAN_DAYS", _env("DEFAULT_PLAN_DAYS", int, 7), 1, MAX_PLAN_DAYS
        ),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        log_format=os.getenv("LOG_FORMAT", "console").lower(),
    )
