"""Bounded retry with exponential backoff for backend calls."""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from ..config import config
from .exceptions import RoundtableError

logger = logging.getLogger(__name__)

T = TypeVar("T")


def compute_delay(attempt: int, base_delay: float, max_delay: float, backoff_factor: float) -> float:
    """Return the wait before retry number ``attempt`` (0-based).

    The capped exponential delay is jittered into ``[delay / 2, delay]`` so
    concurrent agents hitting the same limit do not retry in lockstep.
    """
    delay = min(base_delay * (backoff_factor**attempt), max_delay)
    floor = delay * 0.5
    return floor + random.random() * (delay - floor)


def is_retryable(error: BaseException, retryable_codes: list[str] | None = None) -> bool:
    """Decide whether ``error`` may be retried.

    Only ``RoundtableError`` instances are considered; anything else is a bug
    or an un-normalised backend error and propagates immediately.
    """
    if not isinstance(error, RoundtableError):
        return False
    if retryable_codes:
        return error.code in retryable_codes
    return error.retryable


async def with_retry(
    fn: Callable[[], Awaitable[T]],
    *,
    max_retries: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
    backoff_factor: float | None = None,
    retryable_codes: list[str] | None = None,
) -> T:
    """Run ``fn`` with up to ``max_retries`` retries after the first attempt.

    Args:
        fn: Zero-argument coroutine factory
        max_retries: Retries after the initial call (default from config)
        base_delay: First backoff delay in seconds
        max_delay: Backoff ceiling in seconds
        backoff_factor: Multiplier applied per attempt
        retryable_codes: Restrict retries to these error codes

    Returns:
        Whatever ``fn`` returns

    Raises:
        The last error when it is not retryable or attempts are exhausted
    """
    retries = config.max_retries if max_retries is None else max_retries
    base = config.retry_base_delay if base_delay is None else base_delay
    ceiling = config.retry_max_delay if max_delay is None else max_delay
    factor = config.retry_backoff_factor if backoff_factor is None else backoff_factor

    attempt = 0
    while True:
        try:
            return await fn()
        except RoundtableError as e:
            if not is_retryable(e, retryable_codes) or attempt >= retries:
                raise
            delay = compute_delay(attempt, base, ceiling, factor)
            logger.debug(
                f"Retry {attempt + 1}/{retries} after {delay:.2f}s "
                f"({e.code}{f' from {e.provider}' if e.provider else ''}): {e}"
            )
            attempt += 1
            await asyncio.sleep(delay)
