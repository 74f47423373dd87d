"""Convergence facades built on the state poller.

Resource handlers call these after issuing an asynchronous API mutation,
passing a fetch closure already bound to the resource id and API client.
They only observe; they never mutate the remote resource.

Example:
    async def fetch() -> ManagedDatabase:
        return await client.get_managed_database(uuid)

    db = await wait_until_fully_provisioned(fetch, description=f"database {uuid}")
    await wait_until_deleted(fetch, description=f"database {uuid} deletion")

Intervals and timeouts left as None fall back to ``config.get_settings()``.
"""

from __future__ import annotations

import asyncio
import socket
from collections.abc import Awaitable, Callable, Collection
from typing import cast

from loguru import logger
from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_fixed,
)

from cloudwait.classify import is_transient
from cloudwait.config import get_settings
from cloudwait.exceptions import WaitCancelledError, WaitTimeoutError
from cloudwait.poll import PollMode, PollRequest, cancellable_sleep, poll_until
from cloudwait.types import DatabaseState, Fetch, Predicate, Provisionable, Stateful


def is_fully_provisioned(db: Provisionable) -> bool:
    """True once a managed service is running AND its first backup and user exist.

    The API reports ``running`` before the default backup schedule and admin
    user are materialized; reading them back at that point can 404.
    """
    return db.state == DatabaseState.RUNNING and len(db.backups) > 0 and len(db.users) > 0


async def wait_until_deleted(
    fetch: Fetch[object],
    *,
    description: str = "resource deletion",
    interval: float | None = None,
    timeout: float | None = None,
    cancel: asyncio.Event | None = None,
) -> None:
    """Wait until ``fetch`` fails with a not-found error.

    Any other fetch error propagates unchanged.
    """
    settings = get_settings()
    request: PollRequest[object] = PollRequest(
        fetch=fetch,
        interval=settings.delete_interval if interval is None else interval,
        timeout=settings.delete_timeout if timeout is None else timeout,
        cancel=cancel,
        description=description,
    )
    await poll_until(request, PollMode.DELETE)


async def wait_until_desired_state[T: Stateful](
    fetch: Fetch[T],
    desired_state: str,
    *,
    description: str | None = None,
    interval: float | None = None,
    timeout: float | None = None,
    cancel: asyncio.Event | None = None,
    is_failed: Predicate[T] | None = None,
) -> T:
    """Wait until the fetched resource's ``state`` equals ``desired_state``.

    Used for server start/stop and managed database power transitions.
    """
    settings = get_settings()
    request = PollRequest(
        fetch=fetch,
        is_target=lambda current: current.state == desired_state,
        interval=settings.state_interval if interval is None else interval,
        timeout=settings.server_state_timeout if timeout is None else timeout,
        cancel=cancel,
        description=description or f"state {desired_state}",
        is_failed=is_failed,
    )
    return cast(T, await poll_until(request))


async def wait_until_fully_provisioned[T: Provisionable](
    fetch: Fetch[T],
    *,
    description: str = "full provisioning",
    interval: float | None = None,
    timeout: float | None = None,
    cancel: asyncio.Event | None = None,
) -> T:
    """Wait until ``is_fully_provisioned`` holds for the fetched resource."""
    settings = get_settings()
    request = PollRequest(
        fetch=fetch,
        is_target=is_fully_provisioned,
        interval=settings.state_interval if interval is None else interval,
        timeout=settings.database_provision_timeout if timeout is None else timeout,
        cancel=cancel,
        description=description,
    )
    return cast(T, await poll_until(request))


async def wait_until_any_state[T: Stateful](
    fetch: Fetch[T],
    target_states: Collection[str],
    *,
    pending_states: Collection[str] | None = None,
    description: str | None = None,
    interval: float | None = None,
    timeout: float | None = None,
    cancel: asyncio.Event | None = None,
) -> T:
    """Wait until the resource's ``state`` is one of ``target_states``.

    With no target states the first fetched state is returned as-is. When
    ``pending_states`` is given, any state outside both sets is treated as
    a failure. The interval never drops below ``min_state_interval``.
    """
    settings = get_settings()
    targets = frozenset(target_states)
    allowed = None if pending_states is None else targets | frozenset(pending_states)

    is_failed: Predicate[T] | None = None
    if allowed is not None:
        is_failed = lambda current: current.state not in allowed  # noqa: E731

    request = PollRequest(
        fetch=fetch,
        is_target=lambda current: not targets or current.state in targets,
        interval=max(
            settings.state_interval if interval is None else interval,
            settings.min_state_interval,
        ),
        timeout=settings.server_state_timeout if timeout is None else timeout,
        cancel=cancel,
        description=description or f"any of states {', '.join(sorted(targets))}",
        is_failed=is_failed,
    )
    return cast(T, await poll_until(request))


async def wait_until_left_state[T: Stateful](
    fetch: Fetch[T],
    left_state: str,
    *,
    description: str | None = None,
    interval: float | None = None,
    timeout: float | None = None,
    cancel: asyncio.Event | None = None,
) -> T:
    """Wait until the resource's ``state`` is anything but ``left_state``."""
    settings = get_settings()
    request = PollRequest(
        fetch=fetch,
        is_target=lambda current: current.state != left_state,
        interval=settings.state_interval if interval is None else interval,
        timeout=settings.server_state_timeout if timeout is None else timeout,
        cancel=cancel,
        description=description or f"leaving state {left_state}",
    )
    return cast(T, await poll_until(request))


# =============================================================================
# DNS propagation
# =============================================================================


class NameNotPropagatedError(Exception):
    """Hostname does not resolve yet - retry."""


type Resolver = Callable[[str], Awaitable[list[str]]]


async def resolve_host(hostname: str) -> list[str]:
    loop = asyncio.get_running_loop()
    infos = await loop.getaddrinfo(hostname, None)
    return sorted({str(info[4][0]) for info in infos})


async def wait_for_name_to_propagate(
    hostname: str,
    *,
    attempts: int | None = None,
    interval: float | None = None,
    resolver: Resolver = resolve_host,
    cancel: asyncio.Event | None = None,
) -> list[str]:
    """Wait until ``hostname`` resolves to at least one address.

    Lookups failing with a "no such name" or "try again" error, or returning
    no addresses, are retried. Other resolution errors propagate.

    Returns:
        The resolved addresses.

    Raises:
        WaitTimeoutError: The name did not resolve within ``attempts`` lookups.
        WaitCancelledError: ``cancel`` was set, including between lookups.
    """
    settings = get_settings()
    attempts = settings.dns_attempts if attempts is None else attempts
    interval = settings.dns_interval if interval is None else interval
    description = f"{hostname} to resolve"
    log = logger.bind(component="dns")

    async def _sleep(delay: float) -> None:
        if await cancellable_sleep(delay, cancel):
            raise WaitCancelledError(description)

    def _log_retry(state: RetryCallState) -> None:
        log.debug(
            "{hostname} not resolvable yet (lookup {n}/{attempts})",
            hostname=hostname, n=state.attempt_number, attempts=attempts,
        )

    @retry(
        stop=stop_after_attempt(attempts),
        wait=wait_fixed(interval),
        retry=retry_if_exception_type(NameNotPropagatedError),
        before_sleep=_log_retry,
        sleep=_sleep,
        reraise=True,
    )
    async def _lookup() -> list[str]:
        if cancel is not None and cancel.is_set():
            raise WaitCancelledError(description)
        try:
            addresses = await resolver(hostname)
        except socket.gaierror as e:
            if not is_transient(e):
                raise
            raise NameNotPropagatedError(str(e)) from e
        if not addresses:
            raise NameNotPropagatedError(f"{hostname} has no addresses")
        return addresses

    try:
        addresses = await _lookup()
    except NameNotPropagatedError as e:
        raise WaitTimeoutError(description, attempts * interval) from e

    log.info("{hostname} resolves to {addresses}", hostname=hostname, addresses=addresses)
    return addresses
