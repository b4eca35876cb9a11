from decimal import Decimal

import pytest

from application.dtos.payments import OrderDetails
from domain.donation.entity import DonationStatus
from infrastructure.external.payments.exceptions import (
    OrderNotFoundError,
    PaymentAuthenticationError,
    PaymentProviderError,
    PaymentValidationError,
)
from shared.codes.payment_codes import PaymentCode


ORDER_URL = "/api/v1/payments/orders/donation_1_aaaaaa"


@pytest.mark.asyncio
async def test_verify_returns_gateway_view_without_writes(client, store, gateway):
    store.seed("donation_1_aaaaaa")
    gateway.order_details = OrderDetails(
        order_id="donation_1_aaaaaa",
        order_status="PAID",
        amount=Decimal("1000"),
        currency="INR",
        payment_status="SUCCESS",
        payment_id="p1",
    )

    resp = await client.get(ORDER_URL)

    assert resp.status_code == 200
    body = resp.json()
    assert body["code"] == 0
    assert body["error"] is None
    assert body["data"]["order"]["order_status"] == "PAID"
    assert body["data"]["order"]["payment_id"] == "p1"
    assert "reconciliation" not in body["data"]
    assert store.repository.writes == 0
    assert store.by_order("donation_1_aaaaaa").payment_status == DonationStatus.PENDING


@pytest.mark.asyncio
async def test_reconcile_flag_applies_paid_status(client, store, gateway):
    store.seed("donation_1_aaaaaa")
    gateway.order_details = OrderDetails(
        order_id="donation_1_aaaaaa", order_status="PAID", payment_status="SUCCESS", payment_id="p1"
    )

    resp = await client.get(ORDER_URL, params={"reconcile": "true"})

    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["order"]["order_status"] == "PAID"
    assert data["reconciliation"]["outcome"] == "updated"
    assert data["reconciliation"]["new_status"] == "completed"
    donation = store.by_order("donation_1_aaaaaa")
    assert donation.payment_status == DonationStatus.COMPLETED
    assert donation.payment_id == "p1"


@pytest.mark.asyncio
async def test_reconcile_flag_on_active_order_changes_nothing(client, store):
    store.seed("donation_1_aaaaaa")

    resp = await client.get(ORDER_URL, params={"reconcile": "true"})

    assert resp.status_code == 200
    assert resp.json()["data"]["reconciliation"] is None
    assert store.repository.writes == 0


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "error, status_code, code",
    [
        (OrderNotFoundError("donation_1_aaaaaa", provider="cashfree"), 404, PaymentCode.ORDER_NOT_FOUND),
        (PaymentAuthenticationError("authentication failed", provider="cashfree"), 502, PaymentCode.AUTHENTICATION_ERROR),
        (PaymentValidationError("bad order id", provider="cashfree"), 400, PaymentCode.VALIDATION_ERROR),
        (PaymentProviderError("gateway timeout", provider="cashfree"), 502, PaymentCode.PROVIDER_ERROR),
    ],
)
async def test_gateway_errors_map_to_http_status(client, store, gateway, error, status_code, code):
    store.seed("donation_1_aaaaaa")
    gateway.error = error

    resp = await client.get(ORDER_URL, params={"reconcile": "true"})

    assert resp.status_code == status_code
    body = resp.json()
    assert body["code"] == int(code)
    assert body["data"] is None
    assert body["error"]["type"] == error.error_type
    assert body["error"]["request_id"]
    assert store.repository.writes == 0
