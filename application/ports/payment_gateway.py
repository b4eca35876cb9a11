"""
Payment gateway ports (application/ports) exposing replaceable protocols.

Application depends on these Protocols; infrastructure implements adapters.
"""
from __future__ import annotations

from typing import Mapping, Protocol, runtime_checkable

from application.dtos.payments import GatewayOrderRequest, OrderDetails, PaymentSession


@runtime_checkable
class PaymentGateway(Protocol):
    """Hosted-checkout gateway (order creation and order lookup).

    Implementations should be async and side-effect free beyond IO.
    """

    provider: str

    async def create_order(self, req: GatewayOrderRequest) -> PaymentSession: ...

    async def fetch_order(self, order_id: str) -> OrderDetails: ...

    async def aclose(self) -> None: ...


@runtime_checkable
class WebhookVerifier(Protocol):
    """Authenticates a webhook delivery from its headers and exact raw body."""

    def verify(self, headers: Mapping[str, str], body: bytes) -> bool: ...
