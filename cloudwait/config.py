"""TOML-based wait configuration.

Loads ~/.cloudwait/defaults.toml (global) and cloudwait.toml (project),
merges them, and builds the ``WaitSettings`` used as defaults by the
convergence facades. Explicit arguments passed to a facade always win.

Example ``cloudwait.toml``::

    [wait]
    delete_interval = 2.0
    server_state_timeout = 600
"""

from __future__ import annotations

import math
import tomllib
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any

from cloudwait.exceptions import ConfigurationError
from cloudwait.retry import RetryPolicy

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".cloudwait" / "defaults.toml"
PROJECT_CONFIG_NAME = "cloudwait.toml"
SECTION = "wait"

# Settings that may be 0. All others must be positive.
ZERO_ALLOWED = frozenset({"min_state_interval", "retry_delay"})


@dataclass(frozen=True, slots=True)
class WaitSettings:
    """Poll intervals, time budgets and retry policy defaults, in seconds.

    Attributes:
        delete_interval: Delay between fetches while waiting for deletion.
        delete_timeout: Time budget for deletion waits.
        state_interval: Delay between fetches while waiting for a state.
        min_state_interval: Floor for the interval of multi-state waits.
        server_state_timeout: Time budget for server start/stop waits.
        database_provision_timeout: Time budget for full database provisioning.
        dns_attempts: Lookups performed while waiting for a hostname to resolve.
        dns_interval: Delay between hostname lookups.
        retry_attempts: Default attempt count for bounded retry.
        retry_delay: Default delay before each bounded-retry attempt.
    """

    delete_interval: float = 5.0
    delete_timeout: float = 2500.0
    state_interval: float = 5.0
    min_state_interval: float = 2.0
    server_state_timeout: float = 300.0
    database_provision_timeout: float = 1500.0
    dns_attempts: int = 12
    dns_interval: float = 10.0
    retry_attempts: int = 20
    retry_delay: float = 5.0

    def retry_policy(self) -> RetryPolicy:
        return RetryPolicy(max_attempts=self.retry_attempts, delay=self.retry_delay)


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    with path.open("rb") as f:
        return tomllib.load(f)


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault(SECTION, {})
    return merged


def settings_from_raw(raw: RawConfig) -> WaitSettings:
    """Build ``WaitSettings`` from a ``[wait]`` table, rejecting unknown keys."""
    known = [f.name for f in fields(WaitSettings)]
    unknown = sorted(set(raw) - set(known))
    if unknown:
        raise ConfigurationError(
            f"Unknown wait settings: {', '.join(unknown)}. "
            f"Valid: {', '.join(known)}"
        )

    defaults = asdict(WaitSettings())
    values: dict[str, Any] = {}
    for key, value in raw.items():
        if isinstance(value, bool) or not isinstance(value, int | float) or math.isnan(value):
            raise ConfigurationError(f"Wait setting '{key}' must be a number, got {value!r}")
        if key in ZERO_ALLOWED:
            if value < 0:
                raise ConfigurationError(f"Wait setting '{key}' must be >= 0, got {value!r}")
        elif value <= 0:
            raise ConfigurationError(f"Wait setting '{key}' must be > 0, got {value!r}")
        if isinstance(defaults[key], int):
            if isinstance(value, float) and not value.is_integer():
                raise ConfigurationError(f"Wait setting '{key}' must be a whole number, got {value!r}")
            value = int(value)
        values[key] = type(defaults[key])(value)
    return WaitSettings(**values)


def load_settings(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> WaitSettings:
    config = load_config(project_dir=project_dir, global_path=global_path)
    section = config[SECTION]
    if not isinstance(section, dict):
        raise ConfigurationError(f"'{SECTION}' must be a table")
    return settings_from_raw(section)


_settings = WaitSettings()


def get_settings() -> WaitSettings:
    return _settings


def set_settings(settings: WaitSettings) -> WaitSettings:
    """Replace the process-wide defaults, returning the previous ones."""
    global _settings
    previous, _settings = _settings, settings
    return previous
