"""Тесты Saga: последовательные шаги и компенсации в обратном порядке."""

import pytest

from bullion.settlement.errors import InsufficientFundsError, SettlementStepError
from bullion.settlement.saga import Saga

pytestmark = pytest.mark.asyncio


class _Recorder:
    def __init__(self):
        self.calls: list[str] = []

    def action(self, name: str, result=None):
        async def _run():
            self.calls.append(name)
            return result
        return _run

    def failing(self, name: str, error: Exception):
        async def _run():
            self.calls.append(name)
            raise error
        return _run


class TestSaga:
    """Тесты Saga."""

    async def test_returns_action_result(self):
        rec = _Recorder()
        saga = Saga("test")

        assert await saga.run("read", rec.action("read", 42)) == 42
        assert saga.completed_steps == ["read"]

    async def test_compensates_in_reverse_order(self):
        rec = _Recorder()
        saga = Saga("test")
        await saga.run("a", rec.action("a"), rec.action("undo_a"))
        await saga.run("b", rec.action("b"), rec.action("undo_b"))
        await saga.run("c", rec.action("c"))

        with pytest.raises(SettlementStepError) as exc_info:
            await saga.run("d", rec.failing("d", RuntimeError("boom")), rec.action("undo_d"))

        assert rec.calls == ["a", "b", "c", "d", "undo_b", "undo_a"]
        err = exc_info.value
        assert err.step == "d"
        assert isinstance(err.cause, RuntimeError)
        assert err.compensated == ["b", "a"]
        assert not err.requires_reconciliation
        assert saga.completed_steps == []

    async def test_domain_error_before_mutation_passes_through(self):
        saga = Saga("test")
        rec = _Recorder()

        with pytest.raises(InsufficientFundsError):
            await saga.run("debit", rec.failing("debit", InsufficientFundsError(10.0, 20.0)))

    async def test_generic_error_on_first_step_wrapped(self):
        saga = Saga("test")
        rec = _Recorder()

        with pytest.raises(SettlementStepError) as exc_info:
            await saga.run("debit", rec.failing("debit", ConnectionError("db down")))
        assert exc_info.value.compensated == []

    async def test_failed_compensation_reported_and_others_continue(self, caplog):
        rec = _Recorder()
        saga = Saga("test")
        await saga.run("a", rec.action("a"), rec.action("undo_a"))
        await saga.run("b", rec.action("b"), rec.failing("undo_b", ConnectionError("lost")))

        with pytest.raises(SettlementStepError) as exc_info:
            await saga.run("c", rec.failing("c", RuntimeError("boom")))

        err = exc_info.value
        assert rec.calls[-2:] == ["undo_b", "undo_a"]
        assert err.compensated == ["a"]
        assert [name for name, _ in err.compensation_failures] == ["b"]
        assert err.requires_reconciliation
        assert "manual reconciliation" in str(err)
        assert "compensation for 'b' failed" in caplog.text
