"""Backoff for transient Gemini failures.

This sits below the workflow: a 503 while generating scene code is retried
here and never costs one of the pipeline's guided retries.
"""

from __future__ import annotations

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from typing import TypeVar

from google.genai import errors as genai_errors

from .config import get_config

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Request timeout, rate limit/quota, and the server-side statuses Gemini
# returns while overloaded.
RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})


def _is_retryable(exc: BaseException) -> bool:
    if isinstance(exc, genai_errors.APIError):
        return exc.code in RETRYABLE_STATUS_CODES
    return isinstance(exc, TimeoutError)


def _describe(exc: BaseException) -> str:
    if isinstance(exc, genai_errors.APIError):
        return f"{exc.code} {exc.status or ''}".strip()
    return type(exc).__name__


async def with_retry(call: Callable[[], Awaitable[T]]) -> T:
    """Await ``call()`` until it succeeds or fails for a non-transient reason.

    Delays grow as ``base * 2**n`` plus up to a second of jitter, capped at
    ``retry_max_delay``; ``retry_max_attempts`` counts the first call.
    """
    cfg = get_config()
    attempts = cfg.retry_max_attempts
    for n in range(attempts):
        try:
            return await call()
        except Exception as exc:
            if n == attempts - 1 or not _is_retryable(exc):
                raise
            delay = min(cfg.retry_base_delay * 2 ** n + random.random(), cfg.retry_max_delay)
            logger.warning(
                "Gemini %s, retry %d/%d in %.1fs", _describe(exc), n + 1, attempts - 1, delay,
            )
            await asyncio.sleep(delay)
    raise AssertionError("unreachable")
