"""Error classification for remote fetch and mutate calls.

Every convergence routine decides what to do with a failed call through
``classify``: a resource that is already gone, a failure likely to resolve
on its own, or a failure that will not go away without a different request.

Example:
    from cloudwait.classify import ErrorClass, classify

    try:
        await fetch()
    except Exception as e:
        if classify(e) is ErrorClass.NOT_FOUND:
            return
        raise
"""

from __future__ import annotations

import socket
from enum import StrEnum

import aiohttp

from cloudwait.http import Problem, ServiceError


class ErrorClass(StrEnum):
    NOT_FOUND = "not_found"
    TRANSIENT = "transient"
    FATAL = "fatal"


NOT_FOUND_SUFFIX = "_NOT_FOUND"

TRANSIENT_STATUSES: frozenset[int] = frozenset({408, 425, 429})

# getaddrinfo errors that mean "no record yet" or "try again later".
TRANSIENT_DNS_ERRNOS: frozenset[int] = frozenset(
    code
    for code in (
        getattr(socket, "EAI_NONAME", None),
        getattr(socket, "EAI_AGAIN", None),
        getattr(socket, "EAI_NODATA", None),
    )
    if code is not None
)


def _status_of(exc: BaseException) -> int | None:
    if isinstance(exc, Problem):
        return exc.status
    for attr in ("status", "status_code"):
        value = getattr(exc, attr, None)
        if isinstance(value, int) and not isinstance(value, bool):
            return value
    return None


def _is_not_found_code(code: str) -> bool:
    code = code.upper()
    return code == "NOT_FOUND" or code.endswith(NOT_FOUND_SUFFIX)


def classify(exc: BaseException) -> ErrorClass:
    """Classify ``exc`` as NOT_FOUND, TRANSIENT or FATAL. Pure, never logs.

    A not-found error code wins over the HTTP status; otherwise API errors
    are judged by status like any other status-carrying exception.
    """
    if isinstance(exc, ServiceError | Problem) and _is_not_found_code(exc.error_code):
        return ErrorClass.NOT_FOUND

    # gaierror is an OSError, check it before the generic connection errors
    if isinstance(exc, socket.gaierror):
        if exc.errno in TRANSIENT_DNS_ERRNOS:
            return ErrorClass.TRANSIENT
        return ErrorClass.FATAL

    status = _status_of(exc)
    if status is not None and status > 0:
        if status == 404:
            return ErrorClass.NOT_FOUND
        if status in TRANSIENT_STATUSES or status >= 500:
            return ErrorClass.TRANSIENT
        return ErrorClass.FATAL

    if isinstance(exc, aiohttp.ClientConnectionError | aiohttp.ServerTimeoutError):
        return ErrorClass.TRANSIENT
    if isinstance(exc, ConnectionError | TimeoutError):
        return ErrorClass.TRANSIENT

    return ErrorClass.FATAL


def is_not_found(exc: BaseException) -> bool:
    return classify(exc) is ErrorClass.NOT_FOUND


def is_transient(exc: BaseException) -> bool:
    return classify(exc) is ErrorClass.TRANSIENT
