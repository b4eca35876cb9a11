import json
import time

import httpx
import pytest

from domain.donation.entity import DonationStatus
from tests.fakes import encode, signed_headers, webhook_payload


WEBHOOK_URL = "/api/v1/webhooks/cashfree"


async def _deliver(client: httpx.AsyncClient, payload: dict, **header_overrides) -> httpx.Response:
    body = encode(payload)
    headers = signed_headers(body)
    headers.update(header_overrides)
    return await client.post(WEBHOOK_URL, content=body, headers=headers)


@pytest.mark.asyncio
async def test_route_registered():
    from main import app

    routes = {getattr(r, "path", None) for r in app.routes}
    assert WEBHOOK_URL in routes
    assert "/api/v1/payments/sessions" in routes
    assert "/api/v1/payments/orders/{order_id}" in routes


@pytest.mark.asyncio
async def test_invalid_signature_rejected_before_store_access(client, store):
    store.seed("donation_1_aaaaaa")
    body = encode(webhook_payload("PAYMENT_SUCCESS_WEBHOOK", "donation_1_aaaaaa"))
    headers = signed_headers(body, secret="someone-else")

    resp = await client.post(WEBHOOK_URL, content=body, headers=headers)

    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "Invalid signature"}
    assert store.repository.reads == 0
    assert store.by_order("donation_1_aaaaaa").payment_status == DonationStatus.PENDING


@pytest.mark.asyncio
async def test_unsigned_request_rejected(client):
    resp = await client.post(WEBHOOK_URL, content=b"garbage", headers={"content-type": "application/json"})
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_signed_invalid_json_is_bad_request(client, store):
    body = b'{"type": "PAYMENT_SUCCESS_WEBHOOK", '
    resp = await client.post(WEBHOOK_URL, content=body, headers=signed_headers(body))

    assert resp.status_code == 400
    assert resp.json() == {"success": False, "error": "Invalid JSON payload"}
    assert store.repository.reads == 0


@pytest.mark.asyncio
async def test_known_event_without_order_is_bad_request(client):
    resp = await _deliver(client, {"type": "PAYMENT_SUCCESS_WEBHOOK", "data": {}})
    assert resp.status_code == 400
    assert resp.json()["error"] == "Invalid webhook payload"


@pytest.mark.asyncio
async def test_unhandled_event_type_acknowledged_and_ignored(client, store):
    store.seed("donation_1_aaaaaa")
    resp = await _deliver(client, webhook_payload("SETTLEMENT_WEBHOOK", "donation_1_aaaaaa"))

    assert resp.status_code == 200
    assert resp.json() == {"success": True, "ignored": True, "event_type": "SETTLEMENT_WEBHOOK"}
    assert store.repository.writes == 0
    assert store.by_order("donation_1_aaaaaa").payment_status == DonationStatus.PENDING


@pytest.mark.asyncio
async def test_unknown_order_acknowledged_without_writes(client, store):
    resp = await _deliver(client, webhook_payload("PAYMENT_SUCCESS_WEBHOOK", "donation_missing"))

    assert resp.status_code == 200
    body = resp.json()
    assert body["success"] is True
    assert body["not_found"] is True
    assert body["order_id"] == "donation_missing"
    assert store.repository.writes == 0
    assert store.repository.rows == {}


@pytest.mark.asyncio
async def test_failure_after_success_keeps_completed(client, store):
    store.seed("donation_1_aaaaaa")
    first = await _deliver(client, webhook_payload("PAYMENT_SUCCESS_WEBHOOK", "donation_1_aaaaaa"))
    late = await _deliver(client, webhook_payload("PAYMENT_USER_DROPPED_WEBHOOK", "donation_1_aaaaaa"))

    assert first.json()["new_status"] == "completed"
    assert late.status_code == 200
    assert late.json()["new_status"] == "completed"
    assert store.by_order("donation_1_aaaaaa").payment_status == DonationStatus.COMPLETED


@pytest.mark.asyncio
async def test_refund_for_pending_donation_is_flagged(client, store):
    store.seed("donation_1_aaaaaa")
    payload = {"type": "REFUND_SUCCESS", "data": {"refund": {"order_id": "donation_1_aaaaaa", "cf_refund_id": 7}}}
    resp = await _deliver(client, payload)

    assert resp.status_code == 200
    assert resp.json()["rejected"] is True
    assert store.by_order("donation_1_aaaaaa").payment_status == DonationStatus.PENDING


@pytest.mark.asyncio
async def test_storage_failure_asks_for_redelivery(client, store):
    store.seed("donation_1_aaaaaa")
    store.repository.fail_writes = True

    resp = await _deliver(client, webhook_payload("PAYMENT_SUCCESS_WEBHOOK", "donation_1_aaaaaa"))

    assert resp.status_code == 500
    assert resp.json() == {"success": False, "error": "Processing failed"}
    assert store.by_order("donation_1_aaaaaa").payment_status == DonationStatus.PENDING


@pytest.mark.asyncio
async def test_checkout_then_duplicate_success_delivery(client, store, gateway):
    resp = await client.post(
        "/api/v1/payments/sessions",
        json={
            "amount": "1000",
            "currency": "INR",
            "donor_name": "Test User",
            "donor_email": "test@example.com",
            "donor_phone": "9876543210",
        },
    )
    assert resp.status_code == 200
    session = resp.json()["data"]
    order_id = session["order_id"]
    assert session["payment_session_id"] == f"session_{order_id}"
    assert store.by_order(order_id).payment_status == DonationStatus.PENDING

    payload = webhook_payload("PAYMENT_SUCCESS_WEBHOOK", order_id)
    first = await _deliver(client, payload)
    writes = store.repository.writes
    second = await _deliver(client, payload)

    expected = {
        "success": True,
        "order_id": order_id,
        "event_type": "PAYMENT_SUCCESS_WEBHOOK",
        "new_status": "completed",
    }
    assert first.status_code == second.status_code == 200
    assert first.json() == second.json() == expected
    assert store.repository.writes == writes
    donation = store.by_order(order_id)
    assert donation.payment_status == DonationStatus.COMPLETED
    assert donation.payment_id == "5114910428374"


@pytest.mark.asyncio
async def test_checkout_rejects_invalid_intent(client, store):
    resp = await client.post(
        "/api/v1/payments/sessions",
        json={"amount": "-5", "donor_name": "Test User", "donor_email": "nope", "donor_phone": "1"},
    )
    assert resp.status_code == 422
    assert store.repository.rows == {}


@pytest.mark.asyncio
async def test_liveness_probe(client):
    resp = await client.get(WEBHOOK_URL)
    assert resp.status_code == 200
    body = resp.json()
    assert body["status"] == "ok"
    assert "test" not in body

    resp = await client.get(WEBHOOK_URL, params={"test": "webhook"})
    body = resp.json()
    assert body["test"] is True
    assert body["has_secret"] is True
    assert body["insecure_mode"] is False


@pytest.mark.asyncio
async def test_head_and_preflight(client):
    head = await client.head(WEBHOOK_URL)
    assert head.status_code == 200
    assert head.headers["x-webhook-status"] == "active"

    preflight = await client.options(
        WEBHOOK_URL,
        headers={
            "Origin": "https://merchant.cashfree.com",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "x-webhook-signature, x-webhook-timestamp",
        },
    )
    assert preflight.status_code == 204
    assert preflight.headers["access-control-allow-origin"] == "*"
    assert "POST" in preflight.headers["access-control-allow-methods"]


@pytest.mark.asyncio
async def test_api_preflight_still_uses_origin_allowlist(client):
    headers = {"Access-Control-Request-Method": "POST"}

    allowed = await client.options(
        "/api/v1/payments/sessions", headers={**headers, "Origin": "http://localhost:3000"}
    )
    denied = await client.options(
        "/api/v1/payments/sessions", headers={**headers, "Origin": "https://evil.example"}
    )

    assert allowed.status_code == 200
    assert allowed.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert denied.status_code == 400
    assert "access-control-allow-origin" not in denied.headers


@pytest.mark.asyncio
async def test_stale_timestamp_rejected(client, store):
    store.seed("donation_1_aaaaaa")
    body = encode(webhook_payload("PAYMENT_SUCCESS_WEBHOOK", "donation_1_aaaaaa"))
    headers = signed_headers(body, timestamp=str(int(time.time()) - 3600))

    resp = await client.post(WEBHOOK_URL, content=body, headers=headers)

    assert resp.status_code == 401
    assert json.loads(resp.content)["success"] is False
