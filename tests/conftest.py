from __future__ import annotations

import pytest

from cloudwait.config import WaitSettings, set_settings


@pytest.fixture(autouse=True)
def fast_settings():
    previous = set_settings(
        WaitSettings(
            delete_interval=0.01,
            delete_timeout=1.0,
            state_interval=0.01,
            min_state_interval=0.0,
            server_state_timeout=1.0,
            database_provision_timeout=1.0,
            dns_attempts=3,
            dns_interval=0.01,
            retry_attempts=3,
            retry_delay=0.0,
        )
    )
    yield
    set_settings(previous)
