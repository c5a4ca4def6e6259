"""
Core types for emporium.

Re-exports from kungfu + shared aliases and the service error.
"""

from __future__ import annotations

from typing import Never
from collections.abc import Callable, Awaitable
from dataclasses import dataclass

# Re-export from kungfu
from kungfu import Result, Ok, Error, LazyCoroResult

# ═══════════════════════════════════════════════════════════════════════════════
# Lazy Computation Aliases
# ═══════════════════════════════════════════════════════════════════════════════

type Lazy[T, E] = LazyCoroResult[T, E]
"""Lazy async computation that may fail."""

type Pure[T] = Lazy[T, Never]
"""Lazy computation that cannot fail."""

type Compensator = Callable[[], Awaitable[None]]
"""A compensation action that undoes a committed step."""

# ═══════════════════════════════════════════════════════════════════════════════
# Service Error — anything an external collaborator raised
# ═══════════════════════════════════════════════════════════════════════════════


@dataclass(frozen=True, slots=True)
class ServiceError:
    """
    Failure of an external collaborator (commerce, gateway, zones, coupons).

    Carries the service name so callers can tell the user what to retry.
    """

    service: str
    message: str

    @classmethod
    def of(cls, service: str) -> Callable[[Exception], ServiceError]:
        """Build an on_error mapper for catching_async."""
        return lambda exc: cls(service=service, message=str(exc) or type(exc).__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# Exports
# ═══════════════════════════════════════════════════════════════════════════════

__all__ = (
    # Re-exports from kungfu
    "Result",
    "Ok",
    "Error",
    "LazyCoroResult",
    # Type aliases
    "Lazy",
    "Pure",
    "Compensator",
    # Errors
    "ServiceError",
)
