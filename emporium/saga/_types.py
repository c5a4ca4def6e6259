"""
Saga types — core data structures.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from collections.abc import Callable, Awaitable
from typing import Any

import structlog
from kungfu import LazyCoroResult

logger = structlog.get_logger(__name__)

# ═══════════════════════════════════════════════════════════════════════════════
# Compensator — Undo Action
# ═══════════════════════════════════════════════════════════════════════════════

type CompensatorWithValue[T] = Callable[[T], Awaitable[None]]
"""Compensation function that receives the action result and undoes it."""

type RecordedCompensator = tuple[Any, CompensatorWithValue[Any]]

# ═══════════════════════════════════════════════════════════════════════════════
# SagaStep — Single Step with Compensation
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaStep[T, E]:
    """
    A single saga step: action + compensator.

    When the action succeeds its compensator is recorded together with the
    value it produced.
    """

    action: LazyCoroResult[T, E]
    compensate: CompensatorWithValue[T] | None

    def then[U, E2](
        self,
        f: Callable[[T], SagaStep[U, E2]],
    ) -> Then[T, U, E, E2]:
        """Chain another saga step after this one."""
        return Then(self, f)


@dataclass(frozen=True, slots=True)
class Then[T, U, E, E2]:
    """Sequential composition (monadic bind)."""

    inner: SagaStep[T, E]
    f: Callable[[T], SagaStep[U, E2]]


# ═══════════════════════════════════════════════════════════════════════════════
# Compensation — recorded undo actions, runnable later
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class CompensationReport:
    compensators_run: int
    compensators_failed: int
    errors: tuple[str, ...] = ()

    @property
    def complete(self) -> bool:
        return self.compensators_failed == 0


@dataclass(slots=True)
class Compensation:
    """
    Compensators recorded by a saga, in execution order.

    Running it undoes the steps in reverse. It may be run more than once;
    compensators are expected to be idempotent.
    """

    recorded: list[RecordedCompensator] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.recorded)

    def record[T](self, value: T, compensate: CompensatorWithValue[T]) -> None:
        self.recorded.append((value, compensate))

    async def run(self) -> CompensationReport:
        """Run compensators in reverse. Failures are counted, not raised."""
        comp_run = 0
        errors: list[str] = []

        for value, comp in reversed(self.recorded):
            try:
                await comp(value)
                comp_run += 1
            except Exception as exc:
                logger.error("Compensator failed", value=repr(value), error=str(exc))
                errors.append(str(exc) or type(exc).__name__)

        return CompensationReport(
            compensators_run=comp_run,
            compensators_failed=len(errors),
            errors=tuple(errors),
        )


# ═══════════════════════════════════════════════════════════════════════════════
# Result Types
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class SagaResult[T]:
    """Successful saga result; compensation stays available for a later undo."""

    value: T
    steps_executed: int
    compensation: Compensation

    @property
    def compensators_recorded(self) -> int:
        return len(self.compensation)


@dataclass(frozen=True, slots=True)
class SagaError[E]:
    """
    Saga error with rollback status.

    Under the retain policy nothing is rolled back and `retained` holds the
    compensation for the caller to run.
    """

    error: E
    step_failed: int
    compensators_run: int
    compensators_failed: int
    rollback_complete: bool
    retained: Compensation | None = None


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    "CompensatorWithValue",
    "RecordedCompensator",
    "SagaStep",
    "Then",
    "CompensationReport",
    "Compensation",
    "SagaResult",
    "SagaError",
)
