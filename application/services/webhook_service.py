"""
Webhook handling boundary: signature gate -> envelope parse -> classify -> reconcile.

``WebhookService.handle`` never raises; every path ends in a flat JSON ack
with the HTTP status the gateway should see (2xx stops its retries, 5xx asks
for redelivery).
"""
from __future__ import annotations

from typing import Mapping

from pydantic import ValidationError

from application.dtos.webhooks import (
    UnknownWebhook,
    WebhookAck,
    WebhookResult,
    parse_webhook_envelope,
)
from application.ports.payment_gateway import WebhookVerifier
from application.services.event_classifier import classify
from application.services.reconciliation_service import ReconciliationEngine
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException


logger = get_logger(__name__)


def _is_json_error(exc: ValidationError) -> bool:
    return any(err.get("type") == "json_invalid" for err in exc.errors())


class WebhookService:
    def __init__(self, verifier: WebhookVerifier, engine: ReconciliationEngine) -> None:
        self.verifier = verifier
        self.engine = engine

    async def handle(self, headers: Mapping[str, str], body: bytes) -> WebhookResult:
        logger.info(
            "webhook_received",
            body_bytes=len(body or b""),
            has_signature="x-webhook-signature" in {k.lower() for k in headers.keys()},
        )

        if not self.verifier.verify(headers, body):
            logger.warning("webhook_rejected", reason="invalid_signature")
            return WebhookResult(status_code=401, ack=WebhookAck(success=False, error="Invalid signature"))

        try:
            event = parse_webhook_envelope(body)
        except ValidationError as exc:
            message = "Invalid JSON payload" if _is_json_error(exc) else "Invalid webhook payload"
            logger.warning("webhook_rejected", reason="invalid_payload", errors=exc.error_count())
            return WebhookResult(status_code=400, ack=WebhookAck(success=False, error=message))

        target = None if isinstance(event, UnknownWebhook) else classify(event)
        if target is None:
            logger.info("webhook_ignored", event_type=event.type)
            return WebhookResult(
                status_code=200,
                ack=WebhookAck(success=True, ignored=True, event_type=event.type),
            )

        order_id = event.order_id
        try:
            result = await self.engine.reconcile(order_id, target, payment_id=event.payment_id)
        except BusinessException as exc:
            logger.error(
                "webhook_error",
                order_id=order_id,
                event_type=event.type,
                error_type=exc.error_type,
                code=int(exc.code),
            )
            return WebhookResult(status_code=500, ack=WebhookAck(success=False, error="Processing failed"))
        except Exception:
            logger.exception("webhook_error", order_id=order_id, event_type=event.type)
            return WebhookResult(status_code=500, ack=WebhookAck(success=False, error="Processing failed"))

        logger.info(
            "webhook_processed",
            order_id=order_id,
            event_type=event.type,
            outcome=result.outcome,
            new_status=result.new_status,
        )
        ack = WebhookAck(success=True, order_id=order_id, event_type=event.type)
        if result.outcome == "not_found":
            ack.not_found = True
        elif result.outcome == "rejected":
            ack.rejected = True
        else:
            ack.new_status = result.new_status
        return WebhookResult(status_code=200, ack=ack)
