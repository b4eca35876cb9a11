"""
Factories for the payment gateway client and webhook verifier.

Both are built from explicit config objects; nothing is cached at module level.
"""
from __future__ import annotations

from typing import Optional

from core.config import settings
from core.settings import PaymentSettings, payment_settings
from application.ports.payment_gateway import PaymentGateway, WebhookVerifier


def get_payment_gateway(config: Optional[PaymentSettings] = None) -> PaymentGateway:
    from .cashfree_client import CashfreeClient

    cfg = config or payment_settings
    return CashfreeClient(cfg.cashfree, timeouts=cfg.timeouts, retry=cfg.retry)


def get_webhook_verifier(config: Optional[PaymentSettings] = None) -> WebhookVerifier:
    from .signature import WebhookSignatureVerifier

    cfg = config or payment_settings
    return WebhookSignatureVerifier(
        cfg.cashfree.signing_secret,
        tolerance_seconds=cfg.webhook.tolerance_seconds,
        allow_insecure=cfg.cashfree.webhook_allow_insecure,
        production=settings.is_production,
    )
