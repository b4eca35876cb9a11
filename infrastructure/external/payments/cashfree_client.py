"""
Cashfree PG adapter over the REST API (``x-api-version`` 2023-08-01).

Notes:
- Orders are created with ``POST /pg/orders``; the response carries the
  ``payment_session_id`` consumed by the hosted checkout.
- Order status comes from ``GET /pg/orders/{order_id}`` and payment attempts
  from ``GET /pg/orders/{order_id}/payments``.
- Creation is never retried here (a retried POST could surface as
  ``order_already_exists``); lookups retry transient transport errors.
"""
from __future__ import annotations

import uuid
from datetime import datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Optional

import httpx

from application.dtos.payments import GatewayOrderRequest, OrderDetails, PaymentSession
from core.logging_config import get_logger
from core.settings import CashfreeSettings, PaymentRetry, PaymentTimeouts
from infrastructure.external.payments.base import BasePaymentClient
from infrastructure.external.payments.exceptions import (
    OrderNotFoundError,
    PaymentAuthenticationError,
    PaymentProviderError,
    PaymentValidationError,
)


logger = get_logger(__name__)

_EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


class CashfreeClient(BasePaymentClient):
    provider = "cashfree"

    def __init__(
        self,
        config: CashfreeSettings,
        *,
        timeouts: Optional[PaymentTimeouts] = None,
        retry: Optional[PaymentRetry] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        if not config.app_id or not config.secret_key:
            raise RuntimeError("CASHFREE__APP_ID / CASHFREE__SECRET_KEY not configured")
        timeouts = timeouts or PaymentTimeouts()
        retry = retry or PaymentRetry()
        super().__init__(
            base_url=config.base_url,
            timeouts=timeouts.model_dump(),
            retry={"max": retry.max, "base": retry.base_backoff},
            transport=transport,
        )
        self.config = config

    def default_headers(self) -> dict[str, str]:
        return {
            "x-api-version": self.config.api_version,
            "x-client-id": self.config.app_id or "",
            "x-client-secret": self.config.secret_key or "",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    async def create_order(self, req: GatewayOrderRequest) -> PaymentSession:
        payload = req.to_payload()
        self._log("cashfree_request", op="create_order", order_id=req.order_id, amount=str(req.order_amount))
        async with self.client() as client:
            try:
                resp = await client.post(
                    "/pg/orders",
                    json=payload,
                    headers={"x-request-id": str(uuid.uuid4())},
                )
            except httpx.HTTPError as e:
                raise PaymentProviderError(
                    "Cashfree order creation failed (transport)",
                    provider=self.provider,
                    details={"order_id": req.order_id, "error": type(e).__name__},
                ) from e

        body = self._json(resp)
        if not isinstance(body, dict):
            body = {}
        self._log("cashfree_response", op="create_order", order_id=req.order_id, status_code=resp.status_code)
        if resp.status_code >= 400:
            self._raise_for_status(resp.status_code, body, order_id=req.order_id)

        session_id = body.get("payment_session_id")
        if not session_id:
            raise PaymentProviderError(
                "Cashfree response missing payment_session_id",
                provider=self.provider,
                details={"order_id": req.order_id},
            )
        cf_order_id = body.get("cf_order_id")
        return PaymentSession(
            order_id=str(body.get("order_id") or req.order_id),
            payment_session_id=str(session_id),
            cf_order_id=str(cf_order_id) if cf_order_id is not None else None,
            order_status=body.get("order_status"),
        )

    async def fetch_order(self, order_id: str) -> OrderDetails:
        order = await self._get(f"/pg/orders/{order_id}", order_id=order_id)
        if not isinstance(order, dict):
            order = {}
        payments = await self._get(f"/pg/orders/{order_id}/payments", order_id=order_id)
        attempt = self._pick_payment(payments if isinstance(payments, list) else [])

        details = OrderDetails(
            order_id=str(order.get("order_id") or order_id),
            amount=self._decimal(order.get("order_amount")),
            currency=order.get("order_currency"),
            order_status=str(order.get("order_status") or "UNKNOWN"),
        )
        if attempt is not None:
            payment_id = attempt.get("cf_payment_id")
            details.payment_status = attempt.get("payment_status")
            details.payment_method = self._payment_method(attempt)
            details.payment_time = self._parse_time(attempt.get("payment_time"))
            details.payment_id = str(payment_id) if payment_id is not None else None
        return details

    async def _get(self, path: str, *, order_id: str) -> Any:
        async def _do() -> httpx.Response:
            async with self.client() as client:
                return await client.get(path, headers={"x-request-id": str(uuid.uuid4())})

        self._log("cashfree_request", op="get", path=path, order_id=order_id)
        try:
            resp = await self._retry(_do)
        except httpx.HTTPError as e:
            raise PaymentProviderError(
                "Cashfree lookup failed (transport)",
                provider=self.provider,
                details={"order_id": order_id, "error": type(e).__name__},
            ) from e
        body = self._json(resp)
        self._log("cashfree_response", op="get", path=path, order_id=order_id, status_code=resp.status_code)
        if resp.status_code >= 400:
            self._raise_for_status(resp.status_code, body if isinstance(body, dict) else {}, order_id=order_id)
        return body

    def _raise_for_status(self, status_code: int, body: dict, *, order_id: str) -> None:
        code = body.get("code")
        message = body.get("message") or f"Cashfree returned HTTP {status_code}"
        details = {"order_id": order_id, "status_code": status_code, "type": body.get("type")}
        logger.warning(
            "cashfree_error",
            order_id=order_id,
            status_code=status_code,
            provider_code=code,
        )
        if status_code in (401, 403):
            raise PaymentAuthenticationError(message, provider=self.provider, provider_code=code, details=details)
        if status_code == 404:
            raise OrderNotFoundError(order_id, provider=self.provider, provider_code=code)
        if 400 <= status_code < 500 and status_code != 429:
            raise PaymentValidationError(message, provider=self.provider, provider_code=code, details=details)
        raise PaymentProviderError(message, provider=self.provider, provider_code=code, details=details)

    @staticmethod
    def _json(resp: httpx.Response) -> Any:
        try:
            return resp.json()
        except ValueError:
            return {}

    @classmethod
    def _pick_payment(cls, payments: list[dict]) -> Optional[dict]:
        """Latest successful attempt wins, otherwise the most recent attempt."""
        attempts = [p for p in payments if isinstance(p, dict)]
        if not attempts:
            return None
        attempts.sort(key=cls._attempt_time, reverse=True)
        for p in attempts:
            if p.get("payment_status") == "SUCCESS":
                return p
        return attempts[0]

    @classmethod
    def _attempt_time(cls, attempt: dict) -> datetime:
        # attempts without a parseable time sort last
        parsed = cls._parse_time(attempt.get("payment_time"))
        if parsed is None:
            return _EPOCH
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed

    @staticmethod
    def _payment_method(attempt: dict) -> Optional[str]:
        group = attempt.get("payment_group")
        if group:
            return str(group)
        method = attempt.get("payment_method")
        if isinstance(method, dict) and method:
            return next(iter(method))
        if isinstance(method, str):
            return method
        return None

    @staticmethod
    def _parse_time(value: Any) -> Optional[datetime]:
        if not value:
            return None
        try:
            return datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except ValueError:
            return None

    @staticmethod
    def _decimal(value: Any) -> Optional[Decimal]:
        if value is None:
            return None
        try:
            return Decimal(str(value))
        except (InvalidOperation, ValueError):
            return None
