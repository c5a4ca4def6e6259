"""
Saga execution.
"""

from __future__ import annotations

from kungfu import Result, Ok, Error

from emporium.saga._types import (
    Compensation,
    SagaStep,
    SagaResult,
    SagaError,
    Then,
)
from emporium.saga.policy import FailurePolicy, RetainPolicy, rollback

# ═══════════════════════════════════════════════════════════════════════════════
# run_step() — Execute single step
# ═══════════════════════════════════════════════════════════════════════════════

async def run_step[T, E](
    step: SagaStep[T, E],
    compensation: Compensation,
) -> Result[T, E]:
    """Execute single step, recording compensator on success."""
    result = await step.action
    match result:
        case Ok(value):
            if step.compensate is not None:
                compensation.record(value, step.compensate)
            return Ok(value)
        case Error(e):
            return Error(e)


async def _fail[E](
    error: E,
    step_failed: int,
    compensation: Compensation,
    policy: FailurePolicy,
) -> SagaError[E]:
    if isinstance(policy, RetainPolicy):
        return SagaError(
            error=error,
            step_failed=step_failed,
            compensators_run=0,
            compensators_failed=0,
            rollback_complete=False,
            retained=compensation,
        )

    report = await compensation.run()
    return SagaError(
        error=error,
        step_failed=step_failed,
        compensators_run=report.compensators_run,
        compensators_failed=report.compensators_failed,
        rollback_complete=report.complete,
    )


# ═══════════════════════════════════════════════════════════════════════════════
# run() — Execute Saga Step
# ═══════════════════════════════════════════════════════════════════════════════

async def run[T, E](
    saga: SagaStep[T, E],
    policy: FailurePolicy = rollback(),
) -> Result[SagaResult[T], SagaError[E]]:
    """
    Execute a single saga step.

    Example:
        result = await S.run(S.from_async(lambda: gateway.create_session(req), on_error=...))
    """
    compensation = Compensation()
    result = await run_step(saga, compensation)

    match result:
        case Ok(value):
            return Ok(SagaResult(value=value, steps_executed=1, compensation=compensation))
        case Error(error):
            return Error(await _fail(error, 1, compensation, policy))


# ═══════════════════════════════════════════════════════════════════════════════
# run_chain() — Execute Then chain
# ═══════════════════════════════════════════════════════════════════════════════

async def run_chain[T, U, E, E2](
    chain: Then[T, U, E, E2],
    policy: FailurePolicy = rollback(),
) -> Result[SagaResult[U], SagaError[E | E2]]:
    """
    Execute chained saga steps.

    Runs the inner step, applies f to its value to get the next step, and
    runs that. On failure the policy decides: rollback runs the recorded
    compensators in reverse, retain hands them back in SagaError.retained.

    Example:
        commit = (
            S.step(create_order, compensate=cancel_order)
            .then(lambda order: S.step(create_session(order)))
        )

        match await S.run_chain(commit, policy=S.policy.retain()):
            case Ok(r):
                r.value, r.compensation
            case Error(e):
                e.error, e.retained
    """
    compensation = Compensation()

    inner_result = await run_step(chain.inner, compensation)

    match inner_result:
        case Error(e):
            return Error(await _fail(e, 1, compensation, policy))
        case Ok(value):
            pass

    next_result = await run_step(chain.f(value), compensation)

    match next_result:
        case Ok(final_value):
            return Ok(SagaResult(
                value=final_value,
                steps_executed=2,
                compensation=compensation,
            ))
        case Error(e2):
            return Error(await _fail(e2, 2, compensation, policy))


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = ("run_step", "run", "run_chain")
