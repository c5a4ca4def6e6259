"""
Lift — collaborator calls as Results.
"""

from __future__ import annotations

from collections.abc import Callable, Awaitable

import structlog
from combinators.lift import catching_async
from kungfu import LazyCoroResult, Result, Ok, Error

from emporium._types import ServiceError

logger = structlog.get_logger(__name__)


def service_call[T](
    service: str,
    fn: Callable[[], Awaitable[T]],
) -> LazyCoroResult[T, ServiceError]:
    """
    Call an external collaborator, lifting exceptions into ServiceError.

    Failures are logged once here so callers only deal with the Result.

    Example:
        result = await service_call("zones", lambda: source.fetch_zones(q))
    """
    lifted = catching_async(fn, on_error=ServiceError.of(service))

    async def _run() -> Result[T, ServiceError]:
        result = await lifted
        match result:
            case Error(err):
                logger.warning("Service call failed", service=service, error=err.message)
            case Ok(_):
                pass
        return result

    return LazyCoroResult(_run)


__all__ = ("catching_async", "service_call")
