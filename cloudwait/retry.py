"""Bounded retry for idempotent-but-flaky calls.

Retries a fixed number of times with a fixed delay and no state inspection:
the right tool for create/modify calls that occasionally fail on a cold
backend. Slow, eventually consistent state changes belong to
``cloudwait.poll`` instead, which is bounded by time rather than attempts.

Example:
    from cloudwait.retry import RetryPolicy, retry, retry_call

    # Retry on any exception, sleeping 1s before each attempt
    storage = await retry_call(
        lambda: client.create_object_storage(req),
        RetryPolicy(max_attempts=3, delay=1.0),
        description="create object storage",
    )

    # Retry only while the failure looks transient
    @retry(RetryPolicy(max_attempts=20, delay=5.0), on=is_transient)
    async def modify_storage():
        ...
"""

from __future__ import annotations

import asyncio
import functools
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import ParamSpec, TypeVar

from loguru import logger

P = ParamSpec("P")
T = TypeVar("T")

# Type for the retry predicate
RetryPredicate = Callable[[Exception], bool]


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """How many times to call an operation and how long to sleep before each call.

    Attributes:
        max_attempts: Total number of calls, including the first one.
        delay: Seconds slept before every attempt, the first included.
            Pass 0 for an immediate first try.
    """

    max_attempts: int
    delay: float = 0.0

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError(f"max_attempts must be >= 1, got {self.max_attempts}")
        if self.delay < 0:
            raise ValueError(f"delay must be >= 0, got {self.delay}")


async def retry_call[R](
    op: Callable[[], Awaitable[R]],
    policy: RetryPolicy,
    *,
    on: RetryPredicate | None = None,
    description: str = "operation",
) -> R:
    """Call ``op`` until it succeeds or ``policy.max_attempts`` is reached.

    Args:
        op: Async callable to invoke. Must be safe to call repeatedly.
        policy: Attempt count and per-attempt delay.
        on: Optional predicate; when it returns False for a failure the
            exception propagates without further attempts. Default: retry
            on any exception.
        description: Used in log messages.

    Returns:
        The result of the first successful call.

    Raises:
        The exception of the final attempt, or the first one ``on``
        rejects. Failures of earlier attempts are attached to it as notes.
    """
    log = logger.bind(component="retry")
    failures: list[str] = []

    for attempt in range(1, policy.max_attempts + 1):
        if policy.delay > 0:
            await asyncio.sleep(policy.delay)
        try:
            return await op()
        except Exception as e:
            if attempt == policy.max_attempts or (on is not None and not on(e)):
                for n, failure in enumerate(failures, start=1):
                    e.add_note(f"attempt {n}/{policy.max_attempts}: {failure}")
                raise

            failures.append(f"{type(e).__name__}: {e}")
            log.warning(
                "Retry {attempt}/{max_attempts} for {description} after {error}",
                attempt=attempt,
                max_attempts=policy.max_attempts,
                description=description,
                error=failures[-1],
            )

    raise AssertionError("unreachable")


def retry(
    policy: RetryPolicy,
    *,
    on: RetryPredicate | None = None,
) -> Callable[[Callable[P, Awaitable[T]]], Callable[P, Awaitable[T]]]:
    """Decorator form of ``retry_call``.

    Example:
        @retry(RetryPolicy(max_attempts=3, delay=1.0))
        async def create_bucket(name: str) -> Bucket:
            return await client.create_bucket(name)
    """

    def decorator(func: Callable[P, Awaitable[T]]) -> Callable[P, Awaitable[T]]:
        @functools.wraps(func)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> T:
            return await retry_call(
                lambda: func(*args, **kwargs),
                policy,
                on=on,
                description=func.__qualname__,
            )

        return wrapper

    return decorator
