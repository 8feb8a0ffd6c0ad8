"""
Runtime configuration for the review pipeline.

Values come from environment variables (optionally seeded from a ``.env`` file)
and are gathered into a single ``ReviewerConfig`` that the factories below turn
into explicitly constructed pipeline objects. Nothing here keeps a process-wide
client around; callers build what they need and pass it in.
"""

import logging
import os
from pathlib import Path
from typing import Callable, Optional, TypeVar, Union

from dotenv import load_dotenv
from pydantic import BaseModel, Field

from . import DEFAULT_DEADLINE_SECONDS, DEFAULT_MODEL

T = TypeVar("T")

logger = logging.getLogger(__name__)

TRUTHY = ("true", "1", "yes", "on")


def read_env_setting(
    key: str,
    default: T,
    cast_to: Callable[[str], T] = str,
    accept: Optional[Callable[[T], bool]] = None,
) -> T:
    """
    Read one ``CURSED_*`` style setting from the environment.

    Unset or blank values give ``default`` silently. Values that fail to
    cast, or that ``accept`` rejects, also give ``default`` but log a warning
    naming the variable, so a typo in a deployment does not quietly change
    which path the pipeline takes.
    """
    raw = os.environ.get(key)
    if raw is None or (raw.strip() == "" and cast_to is not str):
        return default
    if cast_to is bool:
        return raw.strip().lower() in TRUTHY
    try:
        value = cast_to(raw.strip() if cast_to is not str else raw)
    except (ValueError, TypeError):
        logger.warning(f"Ignoring {key}={raw!r}: not a valid {cast_to.__name__}; using {default!r}")
        return default
    if accept is not None and not accept(value):
        logger.warning(f"Ignoring {key}={raw!r}: out of range; using {default!r}")
        return default
    return value


def _positive(value) -> bool:
    return value > 0


def _temperature(value: float) -> bool:
    return 0.0 <= value <= 2.0


class ReviewerConfig(BaseModel):
    """Settings for the generative endpoint, the resilience layer and the scan service."""
    model: str = DEFAULT_MODEL
    max_retries: int = Field(3, ge=0)
    initial_delay: float = Field(1.0, ge=0.0, description="Seconds before the first retry.")
    max_delay: float = Field(5.0, ge=0.0)
    backoff_multiplier: float = Field(2.0, ge=1.0)
    deadline_seconds: float = Field(DEFAULT_DEADLINE_SECONDS, gt=0.0)
    analysis_max_tokens: int = Field(4096, gt=0)
    analysis_temperature: float = Field(0.3, ge=0.0, le=2.0)
    oracle_max_tokens: int = Field(500, gt=0)
    oracle_temperature: float = Field(0.8, ge=0.0, le=2.0)
    payload_threshold: int = Field(100_000, gt=0, description="Bytes above which code is offloaded.")
    github_token: Optional[str] = None


def load_config(env_file: Optional[Union[str, Path]] = None) -> ReviewerConfig:
    """
    Build a ReviewerConfig from the environment.

    Args:
        env_file: Optional path to a dotenv file. When omitted, a ``.env`` in the
            current working directory is loaded if present.

    Returns:
        ReviewerConfig with defaults for anything unset or unparseable.
    """
    if env_file is not None:
        load_dotenv(dotenv_path=env_file, override=False)
    else:
        load_dotenv(override=False)

    defaults = ReviewerConfig()
    env = read_env_setting

    # Retry knobs clamp to their floor; budgets and temperatures that the
    # endpoint would reject fall back to the default instead.
    return ReviewerConfig(
        model=env("CURSED_MODEL", defaults.model, accept=lambda v: bool(v.strip())),
        max_retries=max(0, env("CURSED_MAX_RETRIES", defaults.max_retries, int)),
        initial_delay=max(0.0, env("CURSED_INITIAL_DELAY", defaults.initial_delay, float)),
        max_delay=max(0.0, env("CURSED_MAX_DELAY", defaults.max_delay, float)),
        backoff_multiplier=max(1.0, env("CURSED_BACKOFF_MULTIPLIER", defaults.backoff_multiplier, float)),
        deadline_seconds=env("CURSED_DEADLINE_SECONDS", defaults.deadline_seconds, float, _positive),
        analysis_max_tokens=env("CURSED_ANALYSIS_MAX_TOKENS", defaults.analysis_max_tokens, int, _positive),
        analysis_temperature=env(
            "CURSED_ANALYSIS_TEMPERATURE", defaults.analysis_temperature, float, _temperature
        ),
        oracle_max_tokens=env("CURSED_ORACLE_MAX_TOKENS", defaults.oracle_max_tokens, int, _positive),
        oracle_temperature=env("CURSED_ORACLE_TEMPERATURE", defaults.oracle_temperature, float, _temperature),
        payload_threshold=env("CURSED_PAYLOAD_THRESHOLD", defaults.payload_threshold, int, _positive),
        github_token=env("GITHUB_TOKEN", defaults.github_token) or None,
    )
