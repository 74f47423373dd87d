"""cloudwait - convergence core for asynchronously provisioned cloud resources.

Example:

    from cloudwait import RetryPolicy, retry_call, wait_until_deleted, wait_until_fully_provisioned

    db = await retry_call(lambda: client.create_managed_database(req), RetryPolicy(3, 1.0))
    db = await wait_until_fully_provisioned(lambda: client.get_managed_database(db.uuid))
    ...
    await client.delete_managed_database(db.uuid)
    await wait_until_deleted(lambda: client.get_managed_database(db.uuid))
"""

from cloudwait.classify import ErrorClass, classify, is_not_found, is_transient
from cloudwait.config import WaitSettings, get_settings, load_config, load_settings, set_settings
from cloudwait.diagnostics import (
    Diagnostic,
    Diagnostics,
    Severity,
    converge,
    error_detail,
    handle_resource_error,
)
from cloudwait.exceptions import (
    CloudwaitError,
    ConfigurationError,
    UnexpectedStateError,
    WaitCancelledError,
    WaitTimeoutError,
)
from cloudwait.http import Problem, ServiceError, parse_problem, raise_for_problem
from cloudwait.logging import disable_logging, enable_logging, enable_logging_from_config
from cloudwait.poll import PollMode, PollRequest, poll_until, poll_until_deleted
from cloudwait.retry import RetryPolicy, retry, retry_call
from cloudwait.types import DatabaseState, OperationalState, PeeringState, ServerState
from cloudwait.wait import (
    is_fully_provisioned,
    wait_for_name_to_propagate,
    wait_until_any_state,
    wait_until_deleted,
    wait_until_desired_state,
    wait_until_fully_provisioned,
    wait_until_left_state,
)

__all__ = [
    "CloudwaitError",
    "ConfigurationError",
    "DatabaseState",
    "Diagnostic",
    "Diagnostics",
    "ErrorClass",
    "OperationalState",
    "PeeringState",
    "PollMode",
    "PollRequest",
    "Problem",
    "RetryPolicy",
    "ServerState",
    "ServiceError",
    "Severity",
    "UnexpectedStateError",
    "WaitCancelledError",
    "WaitSettings",
    "WaitTimeoutError",
    "classify",
    "converge",
    "disable_logging",
    "enable_logging",
    "enable_logging_from_config",
    "error_detail",
    "get_settings",
    "handle_resource_error",
    "is_fully_provisioned",
    "is_not_found",
    "is_transient",
    "load_config",
    "load_settings",
    "parse_problem",
    "poll_until",
    "poll_until_deleted",
    "raise_for_problem",
    "retry",
    "retry_call",
    "set_settings",
    "wait_for_name_to_propagate",
    "wait_until_any_state",
    "wait_until_deleted",
    "wait_until_desired_state",
    "wait_until_fully_provisioned",
    "wait_until_left_state",
]
