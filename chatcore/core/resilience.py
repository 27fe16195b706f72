"""Resilience module — retry policy for collaborator calls.

Provides the standard retry configuration (exponential backoff) and a safe
execution wrapper for external HTTP collaborators: safety classifiers,
context providers and alert webhooks.

Provider adapters are deliberately *not* wrapped: the router's ordered
fallback across providers is their retry mechanism.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

import httpx
from tenacity import (
    AsyncRetrying,
    RetryError,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")

RETRYABLE_ERRORS = (OSError, asyncio.TimeoutError, httpx.TransportError)


def retry_policy(attempts: int = 3) -> AsyncRetrying:
    """Wait 1s, 2s, 4s... up to 10s.  Stop after *attempts* attempts."""
    return AsyncRetrying(
        stop=stop_after_attempt(attempts),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type(RETRYABLE_ERRORS),
        reraise=True,
    )


async def safe_execute(
    func: Callable[P, Awaitable[R]],
    *args: P.args,
    **kwargs: P.kwargs,
) -> R:
    """Execute an async function with the standard retry policy.

    Retries on network/timeout errors only.  HTTP status errors and logical
    errors propagate on the first attempt.
    """
    try:
        async for attempt in retry_policy():
            with attempt:
                return await func(*args, **kwargs)
    except RetryError as e:
        logger.error("Operation failed after retries: %s", func.__name__)
        raise e.last_attempt.result() if e.last_attempt else e
    except Exception as e:
        logger.error("Operation failed: %s - %s", func.__name__, e)
        raise
