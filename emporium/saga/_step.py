"""
Saga step creation.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable
from kungfu import LazyCoroResult
from combinators import lift as L

from emporium.saga._types import SagaStep, CompensatorWithValue

# ═══════════════════════════════════════════════════════════════════════════════
# step() — Primary Constructor
# ═══════════════════════════════════════════════════════════════════════════════


def step[T, E](
    action: LazyCoroResult[T, E],
    compensate: CompensatorWithValue[T] | None = None,
) -> SagaStep[T, E]:
    """
    Create a compensated saga step.

    Example:
        from emporium import saga as S
        from emporium.lift import service_call

        create = S.step(
            action=service_call("commerce", lambda: backend.create_order(payload)),
            compensate=lambda order: backend.cancel_order(order.id),
        )
    """
    return SagaStep(action=action, compensate=compensate)


# ═══════════════════════════════════════════════════════════════════════════════
# from_async() — Create step from async callable
# ═══════════════════════════════════════════════════════════════════════════════


def from_async[T, E](
    action: Callable[[], Awaitable[T]],
    on_error: Callable[[Exception], E],
    compensate: CompensatorWithValue[T] | None = None,
) -> SagaStep[T, E]:
    """
    Create step from async callable with error handling.

    Example:
        S.from_async(
            lambda: gateway.create_session(request),
            on_error=lambda e: SessionCreationFailed(order, str(e)),
        )
    """
    return SagaStep(
        action=L.catching_async(action, on_error=on_error),
        compensate=compensate,
    )


__all__ = ("step", "from_async")
