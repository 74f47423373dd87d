from __future__ import annotations

import asyncio

import pytest

from cloudwait.diagnostics import (
    Diagnostics,
    Severity,
    converge,
    error_detail,
    handle_resource_error,
)
from cloudwait.exceptions import WaitCancelledError, WaitTimeoutError
from cloudwait.http import Problem, ServiceError
from cloudwait.wait import wait_until_fully_provisioned
from tests.fakes import FakeDatabase, ScriptedFetch

pytestmark = [pytest.mark.unit]


async def _raise(exc: BaseException) -> None:
    raise exc


class TestDiagnostics:
    def test_collects_by_severity(self) -> None:
        diags = Diagnostics()
        diags.add_warning("slow")
        diags.add_error("broken", "detail")

        assert len(diags) == 2
        assert diags.has_error
        assert [d.summary for d in diags.warnings] == ["slow"]
        assert [d.summary for d in diags.errors] == ["broken"]
        assert [d.severity for d in diags] == [Severity.WARNING, Severity.ERROR]

    def test_extend(self) -> None:
        first, second = Diagnostics(), Diagnostics()
        second.add_warning("w")
        first.extend(second)
        assert not first.has_error
        assert len(first) == 1


class TestErrorDetail:
    def test_problem(self) -> None:
        problem = Problem(
            status=409,
            title="Database is busy",
            type="https://developers.upcloud.com/1.3/errors#ERROR_RESOURCE_BUSY",
            correlation_id="01HX",
        )
        detail = error_detail(problem)
        assert "Database is busy" in detail
        assert "status: 409" in detail
        assert "correlation id: 01HX" in detail

    def test_service_error(self) -> None:
        assert error_detail(ServiceError("STORAGE_NOT_FOUND", "Storage not found")) == (
            "Storage not found\nerror code: STORAGE_NOT_FOUND"
        )

    def test_plain_exception(self) -> None:
        assert error_detail(RuntimeError("boom")) == "boom"
        assert error_detail(RuntimeError()) == "RuntimeError"


class TestHandleResourceError:
    def test_not_found_becomes_warning(self) -> None:
        diags = handle_resource_error(ServiceError("ROUTER_NOT_FOUND", "Router not found"), "router-1")

        assert not diags.has_error
        assert "router-1" in diags.warnings[0].detail

    def test_other_errors_are_errors(self) -> None:
        diags = handle_resource_error(Problem(status=500, title="oops"), "router-1")
        assert diags.errors[0].summary == "Unable to read router-1"


class TestConverge:
    async def test_success_has_no_diagnostics(self) -> None:
        fetch = ScriptedFetch(FakeDatabase("running", backups=["b"], users=["u"]))

        db, diags = await converge(wait_until_fully_provisioned(fetch), "Database not fully created")

        assert db is not None
        assert len(diags) == 0

    async def test_timeout_downgraded_to_warning(self) -> None:
        fetch = ScriptedFetch(FakeDatabase("running"))

        db, diags = await converge(
            wait_until_fully_provisioned(fetch, timeout=0.05),
            "Database not fully created",
            downgrade_timeout=True,
        )

        assert db is None
        assert not diags.has_error
        assert diags.warnings[0].summary == "Database not fully created"

    async def test_timeout_is_error_by_default(self) -> None:
        _, diags = await converge(_raise(WaitTimeoutError("deletion", 1.0)), "Error while waiting")
        assert diags.has_error

    async def test_cancellation_is_never_downgraded(self) -> None:
        _, diags = await converge(
            _raise(WaitCancelledError("deletion")),
            "Error while waiting",
            downgrade_timeout=True,
        )
        assert diags.has_error
        assert not diags.warnings

    async def test_api_errors_become_errors(self) -> None:
        _, diags = await converge(_raise(Problem(status=403, title="Forbidden")), "Error while waiting")
        assert "Forbidden" in diags.errors[0].detail

    async def test_task_cancellation_propagates(self) -> None:
        with pytest.raises(asyncio.CancelledError):
            await converge(_raise(asyncio.CancelledError()), "Error while waiting")
