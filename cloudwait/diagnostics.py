"""Turning convergence outcomes into user-facing diagnostics.

The core raises typed errors; resource handlers decide how each one is
reported. A timeout while waiting for full provisioning is usually a
warning (the resource most likely converges shortly after), a timeout
while waiting for deletion is an error, and cancellation is always an
error.
"""

from __future__ import annotations

from collections.abc import Awaitable, Iterator
from dataclasses import dataclass, field
from enum import StrEnum

from loguru import logger

from cloudwait.classify import is_not_found
from cloudwait.exceptions import WaitTimeoutError
from cloudwait.http import Problem, ServiceError


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    severity: Severity
    summary: str
    detail: str = ""


@dataclass(slots=True)
class Diagnostics:
    items: list[Diagnostic] = field(default_factory=list)

    def add_error(self, summary: str, detail: str = "") -> None:
        self.items.append(Diagnostic(Severity.ERROR, summary, detail))

    def add_warning(self, summary: str, detail: str = "") -> None:
        self.items.append(Diagnostic(Severity.WARNING, summary, detail))

    def extend(self, other: Diagnostics) -> None:
        self.items.extend(other.items)

    @property
    def has_error(self) -> bool:
        return any(d.severity is Severity.ERROR for d in self.items)

    @property
    def warnings(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity is Severity.WARNING]

    @property
    def errors(self) -> list[Diagnostic]:
        return [d for d in self.items if d.severity is Severity.ERROR]

    def __iter__(self) -> Iterator[Diagnostic]:
        return iter(self.items)

    def __len__(self) -> int:
        return len(self.items)


def error_detail(exc: BaseException) -> str:
    """Describe ``exc`` for a diagnostic detail, including API error metadata."""
    match exc:
        case Problem():
            parts = [exc.title or f"HTTP {exc.status}", f"status: {exc.status}"]
            if exc.type:
                parts.append(f"type: {exc.type}")
            if exc.correlation_id:
                parts.append(f"correlation id: {exc.correlation_id}")
            return "\n".join(parts)
        case ServiceError():
            return f"{exc.error_message}\nerror code: {exc.error_code}"
        case _:
            return str(exc) or type(exc).__name__


def handle_resource_error(exc: Exception, name: str) -> Diagnostics:
    """Diagnostics for a failed read of resource ``name``.

    A not-found error means the remote object is gone: it becomes a warning
    so the binding can be dropped from state. Anything else is an error.
    """
    diags = Diagnostics()
    if is_not_found(exc):
        diags.add_warning(
            str(exc),
            f"Binding to an existing remote object '{name}' will be removed from the state. "
            "Next plan will include action to re-create the object if you choose to keep it in config.",
        )
    else:
        diags.add_error(f"Unable to read {name}", error_detail(exc))
    return diags


async def converge[T](
    awaitable: Awaitable[T],
    summary: str,
    *,
    downgrade_timeout: bool = False,
) -> tuple[T | None, Diagnostics]:
    """Await a wait call and report its failure as diagnostics instead of raising.

    Args:
        awaitable: The facade call, e.g. ``wait_until_fully_provisioned(...)``.
        summary: Diagnostic summary used if the wait fails.
        downgrade_timeout: Report WaitTimeoutError as a warning rather than
            an error.

    Returns:
        ``(result, diagnostics)``; result is None when the wait failed.
    """
    diags = Diagnostics()
    try:
        return await awaitable, diags
    except WaitTimeoutError as e:
        if downgrade_timeout:
            logger.bind(component="diagnostics").warning("{summary}: {error}", summary=summary, error=e)
            diags.add_warning(summary, error_detail(e))
        else:
            diags.add_error(summary, error_detail(e))
    except Exception as e:
        diags.add_error(summary, error_detail(e))
    return None, diags
