"""Retrying model turns that fail for transient reasons.

Every adapter call in a session goes through retry_with_backoff. Network
failures (socket, httpx transport, OpenAI connection errors) and provider
answers with a rate-limit or server-error status are retried with
exponential backoff and full jitter; any other error is raised at once.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

import httpx
import openai

logger = logging.getLogger(__name__)

TRANSIENT_EXCEPTIONS: tuple[type[Exception], ...] = (
    TimeoutError,
    ConnectionError,
    httpx.TransportError,
    openai.APIConnectionError,
)

TRANSIENT_STATUS_CODES: frozenset[int] = frozenset({408, 429, 500, 502, 503, 504})


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to retry a turn and how long to wait in between."""

    max_retries: int = 3
    base_delay: float = 1.0
    max_delay: float = 30.0

    def delay_for(self, attempt: int) -> float:
        """Jittered delay before retry number ``attempt`` (0-based)."""
        ceiling = min(self.base_delay * (2**attempt), self.max_delay)
        return random.uniform(0, ceiling)  # noqa: S311


def _status_of(exc: Exception) -> int | None:
    # ProviderRequestError and the OpenAI SDK use status_code; some clients use status.
    status = getattr(exc, "status_code", None)
    if status is None:
        status = getattr(exc, "status", None)
    return status if isinstance(status, int) else None


def _is_transient(exc: Exception) -> bool:
    if isinstance(exc, TRANSIENT_EXCEPTIONS):
        return True
    return _status_of(exc) in TRANSIENT_STATUS_CODES


async def retry_with_backoff(
    coro_factory: Callable[[], Awaitable[Any]],
    max_retries: int = 3,
    base_delay: float = 1.0,
    max_delay: float = 30.0,
) -> tuple[Any, int, list[str]]:
    """Await ``coro_factory()`` until it succeeds or a non-transient error occurs.

    Args:
        coro_factory: Creates a fresh awaitable for every attempt.
        max_retries: Retries after the first attempt.
        base_delay: Backoff ceiling for the first retry, doubled each time.
        max_delay: Upper bound for the backoff ceiling.

    Returns:
        (result, number of retries used, type names of the retried errors)

    Raises:
        Exception: A non-transient error, or the last transient one once
            retries are exhausted.
    """
    policy = RetryPolicy(max_retries=max_retries, base_delay=base_delay, max_delay=max_delay)
    retried: list[str] = []
    attempt = 0
    while True:
        try:
            result = await coro_factory()
        except Exception as exc:
            if attempt >= policy.max_retries or not _is_transient(exc):
                raise
            delay = policy.delay_for(attempt)
            retried.append(type(exc).__name__)
            logger.warning(
                "Model turn failed with %s (%s); retry %d/%d in %.2fs",
                type(exc).__name__,
                exc,
                attempt + 1,
                policy.max_retries,
                delay,
            )
            attempt += 1
            await asyncio.sleep(delay)
        else:
            return result, len(retried), retried
