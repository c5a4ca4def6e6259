"""
Saga — multi-system commits with compensation.

    from emporium import saga as S

    commit = S.step(create_order, cancel_order).then(lambda o: S.step(create_session(o)))
    result = await S.run_chain(commit, policy=S.policy.retain())
"""

from __future__ import annotations

from emporium.saga._types import (
    CompensatorWithValue,
    RecordedCompensator,
    SagaStep,
    Then,
    CompensationReport,
    Compensation,
    SagaResult,
    SagaError,
)
from emporium.saga._step import step, from_async
from emporium.saga._run import run_step, run, run_chain
from emporium.saga import policy

__all__ = (
    "CompensatorWithValue",
    "RecordedCompensator",
    "SagaStep",
    "Then",
    "CompensationReport",
    "Compensation",
    "SagaResult",
    "SagaError",
    "step",
    "from_async",
    "run_step",
    "run",
    "run_chain",
    "policy",
)
