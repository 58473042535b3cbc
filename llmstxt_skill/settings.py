"""Runtime settings read from the environment.

Values are read at call time (inside :func:`load_settings`) so that tests
can monkeypatch the environment and late ``.env`` loading is honoured.

Environment Variables:
    LLMSTXT_TIMEOUT: Per-request timeout in seconds (default: 30)
    LLMSTXT_BATCH_SIZE: Concurrent downloads per batch (default: 5)
    LLMSTXT_USER_AGENT: User-Agent header for outbound requests
"""

from __future__ import annotations

import logging
import math
import os
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0
DEFAULT_BATCH_SIZE = 5
DEFAULT_USER_AGENT = "llmstxt-to-skill/1.0"
ACCEPT_HEADER = "text/plain, text/markdown, */*"

T = TypeVar("T")


@dataclass(slots=True, frozen=True)
class Settings:
    timeout: float = DEFAULT_TIMEOUT
    batch_size: int = DEFAULT_BATCH_SIZE
    user_agent: str = DEFAULT_USER_AGENT


def _read_env(name: str, convert: Callable[[str], T], default: T) -> T:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = convert(raw.strip())
    except ValueError:
        LOGGER.warning("Ignoring invalid %s=%r; using %s.", name, raw, default)
        return default
    if isinstance(value, (int, float)) and (not math.isfinite(value) or value <= 0):
        LOGGER.warning("Ignoring out-of-range %s=%r; using %s.", name, raw, default)
        return default
    return value


def load_settings() -> Settings:
    """Build :class:`Settings` from ``LLMSTXT_*`` environment variables."""
    return Settings(
        timeout=_read_env("LLMSTXT_TIMEOUT", float, DEFAULT_TIMEOUT),
        batch_size=_read_env("LLMSTXT_BATCH_SIZE", int, DEFAULT_BATCH_SIZE),
        user_agent=os.getenv("LLMSTXT_USER_AGENT") or DEFAULT_USER_AGENT,
    )


def resolve_timeout(timeout: Optional[float]) -> float:
    if timeout is not None and math.isfinite(timeout) and timeout > 0:
        return float(timeout)
    return load_settings().timeout


def resolve_batch_size(batch_size: Optional[int]) -> int:
    if batch_size is not None and batch_size > 0:
        return int(batch_size)
    return load_settings().batch_size
