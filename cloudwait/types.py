"""Remote-state shapes read by the convergence facades.

The poller itself treats fetched state as opaque. The facades only need a
``state`` attribute, and for full provisioning the ``backups`` and ``users``
collections, so they are typed against these protocols rather than concrete
API models.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Sized
from enum import StrEnum
from typing import Protocol, runtime_checkable

type Fetch[T] = Callable[[], Awaitable[T]]
type Predicate[T] = Callable[[T], bool]


@runtime_checkable
class Stateful(Protocol):
    @property
    def state(self) -> str: ...


@runtime_checkable
class Provisionable(Stateful, Protocol):
    """A managed service whose sub-resources materialize after it reports running."""

    @property
    def backups(self) -> Sized: ...

    @property
    def users(self) -> Sized: ...


# =============================================================================
# Remote states
# =============================================================================


class DatabaseState(StrEnum):
    """Managed database states."""

    RUNNING = "running"
    STOPPED = "stopped"
    PENDING = "pending"
    REBALANCING = "rebalancing"
    REBUILDING = "rebuilding"
    STARTING = "starting"
    STOPPING = "stopping"
    DELETING = "deleting"


class ServerState(StrEnum):
    """Cloud server states."""

    STARTED = "started"
    STOPPED = "stopped"
    MAINTENANCE = "maintenance"
    ERROR = "error"


class OperationalState(StrEnum):
    """Operational states of gateways, load balancers and object storage."""

    RUNNING = "running"
    PENDING = "pending"
    SETUP_AGENT = "setup-agent"
    SETUP_SERVER = "setup-server"
    CHECKUP = "checkup"
    DELETE_DNS = "delete-dns"
    DELETE_SERVER = "delete-server"
    DELETE_NETWORK = "delete-network"
    STOPPED = "stopped"


class PeeringState(StrEnum):
    """Network peering states."""

    ACTIVE = "active"
    PENDING_PEER = "pending-peer"
    PROVISIONING = "provisioning"
    DISABLED = "disabled"
    DELETED_BY_PEER = "deleted-by-peer"
    ERROR = "error"
