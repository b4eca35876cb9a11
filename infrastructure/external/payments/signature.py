"""
Cashfree webhook signature verification.

signature = base64(HMAC-SHA256(secret, x-webhook-timestamp + raw_body))

The raw body must be the exact bytes received; re-serialized JSON will not
match. Verification is a pure function of (headers, body, secret, clock).
"""
from __future__ import annotations

import base64
import hashlib
import hmac
import time
from typing import Callable, Mapping, Optional

from core.logging_config import get_logger


logger = get_logger(__name__)

SIGNATURE_HEADER = "x-webhook-signature"
TIMESTAMP_HEADER = "x-webhook-timestamp"
VERSION_HEADER = "x-webhook-version"

# Values above this are epoch milliseconds rather than seconds
_MILLIS_THRESHOLD = 100_000_000_000


def compute_signature(secret: str, timestamp: str, body: bytes) -> str:
    digest = hmac.new(secret.encode("utf-8"), timestamp.encode("utf-8") + body, hashlib.sha256).digest()
    return base64.b64encode(digest).decode("ascii")


def _header(headers: Mapping[str, str], name: str) -> Optional[str]:
    value = headers.get(name)
    if value is None:
        # plain dicts are case-sensitive, starlette Headers are not
        for key, v in headers.items():
            if key.lower() == name:
                value = v
                break
    if value is None:
        return None
    value = str(value).strip()
    return value or None


class WebhookSignatureVerifier:
    """Implements the WebhookVerifier port for Cashfree deliveries."""

    provider = "cashfree"

    def __init__(
        self,
        secret: Optional[str],
        *,
        tolerance_seconds: int = 300,
        allow_insecure: bool = False,
        production: bool = True,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._secret = secret
        self._tolerance = tolerance_seconds
        # the bypass can never be enabled in production
        self._insecure = bool(allow_insecure) and not production
        self._clock = clock
        if allow_insecure and production:
            logger.warning("webhook_insecure_mode_ignored", provider=self.provider)

    @property
    def has_secret(self) -> bool:
        return bool(self._secret)

    @property
    def insecure(self) -> bool:
        return self._insecure

    def verify(self, headers: Mapping[str, str], body: bytes) -> bool:
        if self._insecure:
            logger.warning("webhook_signature_bypassed", provider=self.provider)
            return True

        if not self._secret:
            logger.error("webhook_secret_missing", provider=self.provider)
            return False
        if not body:
            return False

        signature = _header(headers, SIGNATURE_HEADER)
        timestamp = _header(headers, TIMESTAMP_HEADER)
        if signature is None or timestamp is None:
            return False

        if not self._timestamp_fresh(timestamp):
            logger.info("webhook_timestamp_stale", provider=self.provider, timestamp=timestamp)
            return False

        expected = compute_signature(self._secret, timestamp, body)
        return hmac.compare_digest(expected.encode("ascii"), signature.encode("utf-8", "ignore"))

    def _timestamp_fresh(self, timestamp: str) -> bool:
        try:
            ts = float(timestamp)
        except ValueError:
            return False
        if ts > _MILLIS_THRESHOLD:
            ts = ts / 1000.0
        return abs(self._clock() - ts) <= self._tolerance
