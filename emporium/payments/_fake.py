"""
Scriptable gateway for local runs and tests.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
from dataclasses import dataclass, field

from emporium.payments._types import (
    GatewayRejected,
    PaymentSession,
    PaymentSessionRequest,
    SubmitHandler,
    WidgetSubmission,
)


def sign(answer: str, key: str) -> str:
    return hmac.new(key.encode(), answer.encode(), hashlib.sha256).hexdigest()


@dataclass(slots=True)
class FakePaymentGateway:
    """
    Records every call in `calls`. `configure` scripts the next sessions;
    set `release` to an Event to hold create_session until it is set.
    """

    public_key: str = "test-public-key"
    hmac_key: str = "test-hmac-key"
    should_succeed: bool = True
    failure_reason: str = "gateway unavailable"
    release: asyncio.Event | None = None
    calls: list[tuple[str, str | None]] = field(default_factory=list)
    requests: list[PaymentSessionRequest] = field(default_factory=list)
    handlers: list[SubmitHandler] = field(default_factory=list)
    active_token: str | None = None
    torn_down: int = 0
    _issued: int = 0

    def configure(self, *, should_succeed: bool = True, failure_reason: str | None = None) -> None:
        self.should_succeed = should_succeed
        if failure_reason is not None:
            self.failure_reason = failure_reason

    async def create_session(self, request: PaymentSessionRequest) -> PaymentSession:
        self.calls.append(("create_session", request.order_id))
        self.requests.append(request)
        if self.release is not None:
            await self.release.wait()
        if not self.should_succeed:
            raise GatewayRejected(self.failure_reason)
        self._issued += 1
        self.active_token = f"token-{request.order_id}-{self._issued}"
        return PaymentSession(
            token=self.active_token,
            gateway_public_key=self.public_key,
            correlation_order_id=request.correlation_id,
        )

    def on_submit(self, handler: SubmitHandler) -> None:
        self.handlers.append(handler)

    def submit(self, submission: WidgetSubmission) -> None:
        """Simulate the embedded form reporting back."""
        for handler in list(self.handlers):
            handler(submission)

    async def teardown(self) -> None:
        self.calls.append(("teardown", None))
        self.torn_down += 1
        self.active_token = None
        self.handlers.clear()

    def verify_notification(self, answer: str, signature: str) -> bool:
        return hmac.compare_digest(sign(answer, self.hmac_key), signature)


__all__ = ("sign", "FakePaymentGateway")
