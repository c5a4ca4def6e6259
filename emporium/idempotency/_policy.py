"""
Idempotency policy.
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import timedelta
from enum import Enum, auto


class OnPending(Enum):
    """
    What a second caller does while the key is still pending.

    WAIT: poll until the first caller finishes, then return its result.
    FAIL: return CONFLICT immediately.
    """

    WAIT = auto()
    FAIL = auto()


WAIT = OnPending.WAIT
FAIL = OnPending.FAIL


@dataclass(frozen=True, slots=True)
class Policy:
    """
    Immutable; each `with_*` returns a new Policy.

        Policy().with_ttl(hours=24).with_on_pending(FAIL)
    """

    result_ttl: timedelta | None = None
    conflict_strategy: OnPending = OnPending.WAIT
    pending_wait_timeout: timedelta = timedelta(seconds=30)
    poll_interval: timedelta = timedelta(milliseconds=50)
    # Failures are forgotten by default so the caller may retry.
    persist_failed: bool = False
    failed_result_ttl: timedelta | None = None

    def with_ttl(
        self,
        *,
        seconds: float | None = None,
        minutes: float | None = None,
        hours: float | None = None,
        delta: timedelta | None = None,
    ) -> Policy:
        if delta is None:
            total = (seconds or 0) + (minutes or 0) * 60 + (hours or 0) * 3600
            delta = timedelta(seconds=total) if total > 0 else None
        return replace(self, result_ttl=delta)

    def with_on_pending(self, strategy: OnPending) -> Policy:
        return replace(self, conflict_strategy=strategy)

    def with_wait_timeout(self, *, seconds: float | None = None, delta: timedelta | None = None) -> Policy:
        return replace(self, pending_wait_timeout=delta if delta else timedelta(seconds=seconds or 30))

    def with_store_failed(self, store: bool = True, *, ttl: timedelta | None = None) -> Policy:
        """Keep failed outcomes so repeats return the same error instead of re-running."""
        return replace(self, persist_failed=store, failed_result_ttl=ttl)


__all__ = (
    "OnPending",
    "WAIT",
    "FAIL",
    "Policy",
)
