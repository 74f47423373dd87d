"""Exception hierarchy for cloudwait.

All cloudwait-specific exceptions inherit from CloudwaitError, so callers
can catch every convergence failure with a single except clause. Errors
raised by the fetch closures themselves (API problems, network errors) are
never wrapped; they propagate as-is.
"""

from __future__ import annotations


class CloudwaitError(Exception):
    """Base exception for all cloudwait errors."""


class ConfigurationError(CloudwaitError):
    """Raised for invalid configuration or unknown settings keys."""


class WaitTimeoutError(CloudwaitError):
    """Raised when a wait exhausts its time budget.

    The resource usually keeps converging after the caller stops watching,
    so callers may downgrade this to a warning.
    """

    def __init__(
        self,
        description: str,
        timeout: float,
        last_state: object = None,
    ) -> None:
        self.description = description
        self.timeout = timeout
        self.last_state = last_state
        super().__init__(f"Timeout waiting for {description} after {timeout:.1f}s")


class WaitCancelledError(CloudwaitError):
    """Raised when the caller's cancel signal fires during a wait. Never downgraded."""

    def __init__(self, description: str) -> None:
        self.description = description
        super().__init__(f"Wait for {description} cancelled")


class UnexpectedStateError(CloudwaitError):
    """Raised when a polled resource reaches a state it cannot leave."""

    def __init__(self, description: str, state: object) -> None:
        self.description = description
        self.state = state
        super().__init__(f"{description} reached unexpected state: {state}")
