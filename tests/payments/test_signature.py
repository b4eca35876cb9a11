import base64
import hashlib
import hmac

from core.settings import PaymentSettings
from infrastructure.external.payments import get_webhook_verifier
from infrastructure.external.payments.signature import WebhookSignatureVerifier, compute_signature
from tests.fakes import WEBHOOK_SECRET


NOW = 1_736_923_229.0
BODY = b'{"type":"PAYMENT_SUCCESS_WEBHOOK","data":{"order":{"order_id":"donation_1_abcdef"}}}'


def _verifier(**kwargs) -> WebhookSignatureVerifier:
    kwargs.setdefault("clock", lambda: NOW)
    return WebhookSignatureVerifier(WEBHOOK_SECRET, **kwargs)


def _headers(ts: str, body: bytes = BODY, secret: str = WEBHOOK_SECRET) -> dict:
    return {"x-webhook-timestamp": ts, "x-webhook-signature": compute_signature(secret, ts, body)}


def test_compute_signature_matches_hmac_sha256_base64():
    ts = "1736923229"
    expected = base64.b64encode(
        hmac.new(WEBHOOK_SECRET.encode(), ts.encode() + BODY, hashlib.sha256).digest()
    ).decode()
    assert compute_signature(WEBHOOK_SECRET, ts, BODY) == expected


def test_valid_signature_accepted():
    assert _verifier().verify(_headers(str(int(NOW))), BODY) is True


def test_header_names_are_case_insensitive():
    ts = str(int(NOW))
    headers = {"X-Webhook-Timestamp": ts, "X-Webhook-Signature": compute_signature(WEBHOOK_SECRET, ts, BODY)}
    assert _verifier().verify(headers, BODY) is True


def test_millisecond_timestamp_accepted():
    assert _verifier().verify(_headers(str(int(NOW * 1000))), BODY) is True


def test_tampered_body_rejected():
    headers = _headers(str(int(NOW)))
    assert _verifier().verify(headers, BODY.replace(b"abcdef", b"zzzzzz")) is False


def test_wrong_secret_rejected():
    assert _verifier().verify(_headers(str(int(NOW)), secret="other-secret"), BODY) is False


def test_stale_timestamp_rejected():
    old = str(int(NOW) - 301)
    assert _verifier(tolerance_seconds=300).verify(_headers(old), BODY) is False
    assert _verifier(tolerance_seconds=300).verify(_headers(str(int(NOW) - 299)), BODY) is True


def test_missing_headers_or_body_rejected():
    ts = str(int(NOW))
    v = _verifier()
    assert v.verify({"x-webhook-timestamp": ts}, BODY) is False
    assert v.verify({"x-webhook-signature": compute_signature(WEBHOOK_SECRET, ts, BODY)}, BODY) is False
    assert v.verify(_headers(ts, body=b""), b"") is False
    assert v.verify({"x-webhook-timestamp": "not-a-number", "x-webhook-signature": "abc"}, BODY) is False


def test_missing_secret_rejects_everything():
    v = WebhookSignatureVerifier(None, clock=lambda: NOW)
    assert v.has_secret is False
    assert v.verify(_headers(str(int(NOW))), BODY) is False


def test_insecure_bypass_only_outside_production():
    dev = WebhookSignatureVerifier(WEBHOOK_SECRET, allow_insecure=True, production=False, clock=lambda: NOW)
    assert dev.insecure is True
    assert dev.verify({}, b"garbage") is True

    prod = WebhookSignatureVerifier(WEBHOOK_SECRET, allow_insecure=True, production=True, clock=lambda: NOW)
    assert prod.insecure is False
    assert prod.verify({}, b"garbage") is False


def test_insecure_bypass_off_by_default():
    v = get_webhook_verifier(PaymentSettings())
    assert v.insecure is False
    assert v.verify({}, BODY) is False
