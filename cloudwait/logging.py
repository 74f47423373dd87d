"""Opt-in log output for cloudwait.

cloudwait logs through loguru under the ``cloudwait`` namespace, which stays
disabled until the embedding application routes it somewhere. Every record
carries the component that emitted it (``poll``, ``retry``, ``dns``,
``http`` or ``converge``).

Example:
    from cloudwait.logging import disable_logging, enable_logging

    handler_id = enable_logging("DEBUG")
    ...
    disable_logging(handler_id)

The ``[logging]`` table of cloudwait.toml drives the same call::

    [logging]
    level = "DEBUG"
    sink = "cloudwait.log"

    enable_logging_from_config(load_config())
"""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Any, TextIO

from loguru import logger

from cloudwait.config import RawConfig
from cloudwait.exceptions import ConfigurationError

NAMESPACE = "cloudwait"
LOGGING_SECTION = "logging"
LEVELS = ("TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL")

# Markup is stripped for sinks that are not a terminal.
LOG_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
    "<cyan>{extra[component]}</cyan> | <level>{message}</level>"
)

logger.disable(NAMESPACE)

type Sink = TextIO | str | Path

_handler_ids: set[int] = set()


def enable_logging(level: str = "INFO", sink: Sink = sys.stderr) -> int:
    """Route cloudwait records at ``level`` and above to ``sink``.

    ``sink`` is a text stream or a file path. File sinks are written from a
    background queue and render tracebacks without local variable values.

    Returns:
        The loguru handler id, to pass to ``disable_logging``.
    """
    level = level.upper()
    if level not in LEVELS:
        raise ConfigurationError(f"Unknown log level {level!r}. Valid: {', '.join(LEVELS)}")

    options: dict[str, Any] = {}
    if isinstance(sink, str | Path):
        options = {"enqueue": True, "diagnose": False}

    handler_id = logger.add(sink, level=level, format=LOG_FORMAT, filter=NAMESPACE, **options)
    _handler_ids.add(handler_id)
    logger.enable(NAMESPACE)
    return handler_id


def disable_logging(handler_id: int | None = None) -> None:
    """Remove one cloudwait handler, or every one when ``handler_id`` is None.

    The namespace goes quiet again once no cloudwait handler remains.
    """
    targets = set(_handler_ids) if handler_id is None else {handler_id}
    for hid in targets:
        logger.remove(hid)
        _handler_ids.discard(hid)
    if not _handler_ids:
        logger.disable(NAMESPACE)


def enable_logging_from_config(config: RawConfig) -> int | None:
    """Apply the ``[logging]`` table of a loaded config.

    Returns the handler id, or None when the table is absent or empty.
    ``sink`` defaults to stderr; any other value is a file path.
    """
    section = config.get(LOGGING_SECTION, {})
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{LOGGING_SECTION}' must be a table")
    unknown = sorted(set(section) - {"level", "sink"})
    if unknown:
        raise ConfigurationError(f"Unknown logging settings: {', '.join(unknown)}. Valid: level, sink")
    if not section:
        return None

    level = section.get("level", "INFO")
    sink = section.get("sink", "stderr")
    for key, value in (("level", level), ("sink", sink)):
        if not isinstance(value, str):
            raise ConfigurationError(f"Logging setting '{key}' must be a string, got {value!r}")

    return enable_logging(level, sys.stderr if sink == "stderr" else Path(sink))
