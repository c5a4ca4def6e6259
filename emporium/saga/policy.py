"""
Saga failure policies.

    S.run_chain(chain, policy=S.policy.rollback())   # undo on failure
    S.run_chain(chain, policy=S.policy.retain())     # keep compensation for later
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class RollbackPolicy:
    """Run recorded compensators as soon as a step fails."""
    pass


def rollback() -> RollbackPolicy:
    return RollbackPolicy()


@dataclass(frozen=True, slots=True)
class RetainPolicy:
    """Leave completed steps in place; hand the compensation to the caller."""
    pass


def retain() -> RetainPolicy:
    return RetainPolicy()


type FailurePolicy = RollbackPolicy | RetainPolicy


__all__ = (
    "RollbackPolicy",
    "rollback",
    "RetainPolicy",
    "retain",
    "FailurePolicy",
)
