"""State poller: the convergence engine.

Repeatedly fetches a remote resource until a target predicate holds, the
resource disappears (delete-polling), the time budget runs out, or the
caller cancels. Polling is bounded by wall-clock time, not by attempt
count, so the polling frequency is independent of the total patience.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum

from loguru import logger

from cloudwait.classify import ErrorClass, classify
from cloudwait.exceptions import UnexpectedStateError, WaitCancelledError, WaitTimeoutError
from cloudwait.types import Fetch, Predicate


class PollMode(StrEnum):
    """What a successful poll looks like.

    PRESENCE: the resource must exist; success is ``is_target(state)``.
    DELETE: success is the fetch failing with a not-found error.
    """

    PRESENCE = "presence"
    DELETE = "delete"


def _never(_: object) -> bool:
    return False


@dataclass(frozen=True, slots=True)
class PollRequest[T]:
    """One convergence attempt.

    Attributes:
        fetch: Async callable returning the current remote state. Must not
            retry internally.
        is_target: Pure predicate that is True once the state is the desired
            one. Ignored in DELETE mode.
        interval: Seconds between fetches.
        timeout: Total wall-clock budget in seconds, or None for no limit.
        cancel: Optional event; once set, the poll stops with
            WaitCancelledError, including mid-sleep.
        description: Human-readable name of the awaited condition, used in
            logs and errors.
        is_failed: Optional predicate for states the resource cannot
            recover from; matching raises UnexpectedStateError.
    """

    fetch: Fetch[T]
    is_target: Predicate[T] = _never
    interval: float = 5.0
    timeout: float | None = 300.0
    cancel: asyncio.Event | None = None
    description: str = "resource"
    is_failed: Predicate[T] | None = None

    def __post_init__(self) -> None:
        if self.interval < 0:
            raise ValueError(f"interval must be >= 0, got {self.interval}")
        if self.timeout is not None:
            if self.timeout <= 0:
                raise ValueError(f"timeout must be > 0, got {self.timeout}")
            if self.interval == 0:
                raise ValueError("interval must be > 0 when timeout is finite")


async def cancellable_sleep(delay: float, cancel: asyncio.Event | None) -> bool:
    """Sleep ``delay`` seconds; return True if ``cancel`` fired first."""
    if cancel is None:
        await asyncio.sleep(delay)
        return False
    try:
        await asyncio.wait_for(cancel.wait(), timeout=delay)
    except TimeoutError:
        return False
    return True


async def poll_until[T](
    request: PollRequest[T],
    mode: PollMode = PollMode.PRESENCE,
) -> T | None:
    """Poll ``request.fetch`` until the request's terminal condition holds.

    Args:
        request: What to fetch, what to wait for, and for how long.
        mode: PRESENCE waits for ``is_target``; DELETE waits for not-found.

    Returns:
        The state that satisfied ``is_target`` (PRESENCE), or None once the
        resource is gone (DELETE).

    Raises:
        WaitTimeoutError: The budget ran out before the condition held.
        WaitCancelledError: The cancel event was set.
        UnexpectedStateError: ``is_failed`` matched the fetched state.
        Exception: Any fetch error other than not-found during DELETE mode,
            re-raised unchanged.
    """
    log = logger.bind(component="poll")
    loop = asyncio.get_running_loop()
    start = loop.time()
    deadline = None if request.timeout is None else start + request.timeout
    state: T | None = None
    fetches = 0

    while True:
        if request.cancel is not None and request.cancel.is_set():
            raise WaitCancelledError(request.description)

        fetches += 1
        try:
            state = await request.fetch()
        except Exception as e:
            if mode is PollMode.DELETE and classify(e) is ErrorClass.NOT_FOUND:
                log.info(
                    "{description} gone after {fetches} fetch(es)",
                    description=request.description, fetches=fetches,
                )
                return None
            raise

        if mode is PollMode.PRESENCE:
            if request.is_target(state):
                log.info(
                    "{description} reached after {elapsed:.1f}s",
                    description=request.description, elapsed=loop.time() - start,
                )
                return state
            if request.is_failed is not None and request.is_failed(state):
                raise UnexpectedStateError(request.description, state)

        log.debug(
            "Waiting for {description}: {state}",
            description=request.description, state=state,
        )

        if deadline is None:
            if await cancellable_sleep(request.interval, request.cancel):
                raise WaitCancelledError(request.description)
            continue

        remaining = deadline - loop.time()
        if remaining > request.interval:
            if await cancellable_sleep(request.interval, request.cancel):
                raise WaitCancelledError(request.description)
            continue

        # Budget ends before the next fetch would be due.
        if await cancellable_sleep(max(remaining, 0.0), request.cancel):
            raise WaitCancelledError(request.description)
        raise WaitTimeoutError(request.description, request.timeout, state)


async def poll_until_deleted(request: PollRequest[object]) -> None:
    """Delete-polling shorthand for ``poll_until(request, PollMode.DELETE)``."""
    await poll_until(request, PollMode.DELETE)
