from __future__ import annotations

from kungfu import Ok, Error

from emporium import saga as S


class Ledger:
    def __init__(self) -> None:
        self.events: list[str] = []
        self.fail_undo = False

    async def create(self, name: str) -> str:
        self.events.append(f"create:{name}")
        return name

    async def broken(self) -> str:
        self.events.append("broken")
        raise RuntimeError("gateway down")

    async def undo(self, name: str) -> None:
        self.events.append(f"undo:{name}")
        if self.fail_undo:
            raise RuntimeError("undo refused")


def chain(ledger: Ledger, *, second_fails: bool):
    first = S.from_async(lambda: ledger.create("order"), on_error=str, compensate=ledger.undo)

    def second(order: str) -> S.SagaStep[str, str]:
        if second_fails:
            return S.from_async(ledger.broken, on_error=str)
        return S.from_async(lambda: ledger.create(f"session-for-{order}"), on_error=str)

    return first.then(second)


async def test_chain_success_keeps_compensation() -> None:
    ledger = Ledger()

    match await S.run_chain(chain(ledger, second_fails=False)):
        case Ok(done):
            assert done.value == "session-for-order"
            assert done.steps_executed == 2
            assert done.compensators_recorded == 1
        case Error(failed):
            raise AssertionError(failed.error)
    assert ledger.events == ["create:order", "create:session-for-order"]


async def test_rollback_policy_undoes_first_step() -> None:
    ledger = Ledger()

    match await S.run_chain(chain(ledger, second_fails=True), policy=S.policy.rollback()):
        case Error(failed):
            assert failed.error == "gateway down"
            assert failed.step_failed == 2
            assert failed.rollback_complete is True
            assert failed.retained is None
        case Ok(_):
            raise AssertionError("expected failure")
    assert ledger.events == ["create:order", "broken", "undo:order"]


async def test_retain_policy_hands_back_compensation() -> None:
    ledger = Ledger()

    match await S.run_chain(chain(ledger, second_fails=True), policy=S.policy.retain()):
        case Error(failed):
            assert failed.rollback_complete is False
            assert failed.retained is not None
            compensation = failed.retained
        case Ok(_):
            raise AssertionError("expected failure")
    assert ledger.events == ["create:order", "broken"]

    report = await compensation.run()

    assert report.complete is True
    assert report.compensators_run == 1
    assert ledger.events[-1] == "undo:order"


async def test_compensation_failures_are_counted() -> None:
    ledger = Ledger()
    ledger.fail_undo = True
    compensation = S.Compensation()
    compensation.record("a", ledger.undo)
    compensation.record("b", ledger.undo)

    report = await compensation.run()

    assert report.complete is False
    assert report.compensators_failed == 2
    assert report.errors == ("undo refused", "undo refused")
    assert ledger.events == ["undo:b", "undo:a"]


async def test_single_step_failure() -> None:
    ledger = Ledger()

    match await S.run(S.from_async(ledger.broken, on_error=lambda exc: f"wrapped: {exc}")):
        case Error(failed):
            assert failed.error == "wrapped: gateway down"
            assert failed.step_failed == 1
        case Ok(_):
            raise AssertionError("expected failure")
