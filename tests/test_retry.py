from __future__ import annotations

import asyncio

import pytest

from cloudwait.classify import is_transient
from cloudwait.http import Problem, ServiceError
from cloudwait.retry import RetryPolicy, retry, retry_call

from tests.fakes import ScriptedFetch

pytestmark = [pytest.mark.unit]


def _now() -> float:
    return asyncio.get_running_loop().time()


class TestRetryPolicy:
    def test_defaults_to_no_delay(self) -> None:
        assert RetryPolicy(max_attempts=3).delay == 0.0

    @pytest.mark.parametrize("attempts", [0, -1])
    def test_rejects_non_positive_attempts(self, attempts: int) -> None:
        with pytest.raises(ValueError, match="max_attempts"):
            RetryPolicy(max_attempts=attempts)

    def test_rejects_negative_delay(self) -> None:
        with pytest.raises(ValueError, match="delay"):
            RetryPolicy(max_attempts=1, delay=-0.1)


class TestRetryCall:
    async def test_first_success_returns_immediately(self) -> None:
        op = ScriptedFetch("ok")
        assert await retry_call(op, RetryPolicy(max_attempts=5)) == "ok"
        assert op.calls == 1

    async def test_success_after_k_failures(self) -> None:
        delay = 0.02
        op = ScriptedFetch(RuntimeError("1"), RuntimeError("2"), "created")
        start = _now()

        result = await retry_call(op, RetryPolicy(max_attempts=5, delay=delay))

        assert result == "created"
        assert op.calls == 3
        assert _now() - start >= 3 * delay - 1e-3

    async def test_exhaustion_raises_last_error(self) -> None:
        errors = [RuntimeError(f"attempt {n}") for n in range(1, 5)]
        op = ScriptedFetch(*errors)

        with pytest.raises(RuntimeError) as exc_info:
            await retry_call(op, RetryPolicy(max_attempts=4))

        assert op.calls == 4
        assert exc_info.value is errors[-1]

    async def test_exhaustion_notes_earlier_failures(self) -> None:
        op = ScriptedFetch(RuntimeError("cold backend"), RuntimeError("still cold"), RuntimeError("last"))

        with pytest.raises(RuntimeError, match="last") as exc_info:
            await retry_call(op, RetryPolicy(max_attempts=3))

        notes = exc_info.value.__notes__
        assert notes == [
            "attempt 1/3: RuntimeError: cold backend",
            "attempt 2/3: RuntimeError: still cold",
        ]

    async def test_sleeps_before_first_attempt(self) -> None:
        op = ScriptedFetch("ok")
        start = _now()

        await retry_call(op, RetryPolicy(max_attempts=1, delay=0.05))

        assert op.times[0] - start >= 0.05 - 1e-3

    async def test_zero_delay_calls_immediately(self) -> None:
        op = ScriptedFetch(RuntimeError("x"), "ok")
        start = _now()

        await retry_call(op, RetryPolicy(max_attempts=2, delay=0))

        assert op.times[-1] - start < 0.05

    async def test_single_attempt_does_not_retry(self) -> None:
        op = ScriptedFetch(RuntimeError("once"), "never")
        with pytest.raises(RuntimeError, match="once"):
            await retry_call(op, RetryPolicy(max_attempts=1))
        assert op.calls == 1

    async def test_predicate_false_propagates_immediately(self) -> None:
        op = ScriptedFetch(Problem(status=400, title="bad request"), "never")

        with pytest.raises(Problem) as exc_info:
            await retry_call(op, RetryPolicy(max_attempts=5), on=is_transient)

        assert exc_info.value.status == 400
        assert op.calls == 1

    async def test_retries_only_while_transient(self) -> None:
        op = ScriptedFetch(Problem(status=503), Problem(status=502), Problem(status=422), "never")

        with pytest.raises(Problem) as exc_info:
            await retry_call(op, RetryPolicy(max_attempts=10), on=is_transient)

        assert exc_info.value.status == 422
        assert op.calls == 3
        assert exc_info.value.__notes__ == [
            "attempt 1/10: Problem: HTTP 503",
            "attempt 2/10: Problem: HTTP 502",
        ]

    async def test_legacy_envelope_outage_is_retried(self) -> None:
        outage = ServiceError("SERVICE_UNAVAILABLE", "Backend is starting", status=503)
        op = ScriptedFetch(outage, outage, "created")

        assert await retry_call(op, RetryPolicy(max_attempts=5), on=is_transient) == "created"
        assert op.calls == 3

    async def test_task_cancellation_is_not_retried(self) -> None:
        op = ScriptedFetch(asyncio.CancelledError(), "never")

        with pytest.raises(asyncio.CancelledError):
            await retry_call(op, RetryPolicy(max_attempts=3))

        assert op.calls == 1


class TestRetryDecorator:
    async def test_passes_arguments_and_retries(self) -> None:
        calls: list[tuple[str, int]] = []

        @retry(RetryPolicy(max_attempts=3))
        async def create_bucket(name: str, *, size: int) -> str:
            calls.append((name, size))
            if len(calls) < 2:
                raise ConnectionResetError("reset")
            return f"{name}:{size}"

        assert await create_bucket("logs", size=10) == "logs:10"
        assert calls == [("logs", 10), ("logs", 10)]

    def test_preserves_metadata(self) -> None:
        @retry(RetryPolicy(max_attempts=2))
        async def modify_storage() -> None:
            """Modify a storage device."""

        assert modify_storage.__name__ == "modify_storage"
        assert modify_storage.__doc__ == "Modify a storage device."
