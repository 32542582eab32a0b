"""Bounded exponential backoff for collaborator calls.

Transient failures (rate limits, timeouts, 5xx) are retried up to
``retry_max_attempts`` total attempts. When the last attempt still fails on a
quota limit the caller gets one quota-flagged ``CollaboratorError`` instead of
the provider's raw exception.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from .config import get_config
from .errors import QUOTA_MESSAGE, CollaboratorError, is_quota_error

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_MARKERS: tuple[str, ...] = (
    "429",
    "quota",
    "resource_exhausted",
    "rate limit",
    "timeout",
    "502",
    "503",
    "service unavailable",
    "overloaded",
)


def _is_retryable(exc: Exception) -> bool:
    if isinstance(exc, CollaboratorError) and exc.is_quota:
        return True
    msg = str(exc).lower()
    return any(marker in msg for marker in _TRANSIENT_MARKERS)


def _backoff(attempt: int, base: float, cap: float) -> float:
    return min(base * (2 ** attempt) + random.random(), cap)


async def with_retry(coro_factory: Callable[[], Awaitable[T]], *, label: str = "collaborator") -> T:
    """Await ``coro_factory()`` until it succeeds or attempts run out.

    Args:
        coro_factory: Zero-arg callable returning a fresh awaitable per attempt.
        label: Name used in retry log lines (provider or client).

    Raises:
        CollaboratorError: ``is_quota=True`` when the final attempt hit a quota limit.
        Exception: The original error when it is not transient, or when a
            non-quota transient error persists through every attempt.
    """
    cfg = get_config()
    attempts = cfg.retry_max_attempts

    for attempt in range(attempts):
        try:
            return await coro_factory()
        except Exception as exc:
            if not _is_retryable(exc):
                raise
            if attempt + 1 >= attempts:
                if is_quota_error(exc):
                    raise CollaboratorError(QUOTA_MESSAGE, is_quota=True) from exc
                raise
            delay = _backoff(attempt, cfg.retry_base_delay, cfg.retry_max_delay)
            logger.warning("%s attempt %d/%d failed, retrying in %.1fs: %s", label, attempt + 1, attempts, delay, exc)
            await asyncio.sleep(delay)
    raise RuntimeError("retry loop exited without a result")  # attempts >= 1 is validated by config
