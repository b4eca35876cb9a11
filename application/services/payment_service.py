"""
Application services for starting a donation payment.

``PaymentSessionCreator`` only talks to the gateway; ``DonationCheckoutService``
records the pending donation first and then asks the creator for a session.
Gateway implementations are provided by infrastructure and must be injected
from the composition root (API/tasks), keeping dependencies one-way.
"""
from __future__ import annotations

import re
import secrets
import time
from datetime import datetime, timezone
from typing import Callable, Optional

from application.dtos.payments import (
    CheckoutResult,
    CustomerDetails,
    DonationIntent,
    GatewayOrderRequest,
    OrderMeta,
    PaymentSession,
)
from application.ports.payment_gateway import PaymentGateway
from application.services.reconciliation_service import ReconciliationEngine
from core.logging_config import get_logger
from core.settings import CashfreeSettings
from domain.common.exceptions import BusinessException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.donation.entity import Donation, DonationStatus
from shared.codes.payment_codes import PaymentCode


logger = get_logger(__name__)

_PHONE_STRIP = re.compile(r"[^\d+]")
_PREFIX_STRIP = re.compile(r"[^A-Za-z0-9_-]")
_CUSTOMER_STRIP = re.compile(r"[^A-Za-z0-9_]")

CUSTOMER_ID_MAX_LEN = 50

# Gateway said no to the request itself; retrying the same order cannot succeed
_DETERMINISTIC_GATEWAY_FAILURES = {PaymentCode.VALIDATION_ERROR, PaymentCode.AUTHENTICATION_ERROR}


def _now_millis() -> int:
    return int(time.time() * 1000)


def normalize_phone(raw: str, default_country_code: str = "+91") -> str:
    """
    Normalize a donor phone number for the gateway.

    - strip everything but digits and '+'
    - '+'-prefixed numbers are kept as-is
    - a bare 10-digit number gets the default country code
    - a number already starting with the country code digits plus 10 digits gets '+'
    - anything else is passed through (the gateway validates it)
    """
    cleaned = _PHONE_STRIP.sub("", raw or "")
    if cleaned.startswith("+"):
        return cleaned
    cc_digits = default_country_code.lstrip("+")
    if len(cleaned) == 10:
        return f"+{cc_digits}{cleaned}"
    if cc_digits and cleaned.startswith(cc_digits) and len(cleaned) == len(cc_digits) + 10:
        return f"+{cleaned}"
    return cleaned


def generate_order_id(prefix: Optional[str] = None, *, now_ms: Optional[int] = None) -> str:
    """`{prefix}_{epoch_millis}_{random6}`; the gateway rejects duplicates."""
    safe_prefix = _PREFIX_STRIP.sub("", prefix or "") or "donation"
    millis = now_ms if now_ms is not None else _now_millis()
    return f"{safe_prefix}_{millis}_{secrets.token_hex(3)}"


def generate_customer_id(email: str, *, now_ms: Optional[int] = None) -> str:
    millis = str(now_ms if now_ms is not None else _now_millis())
    base = _CUSTOMER_STRIP.sub("_", email or "") or "donor"
    # keep the timestamp suffix intact
    base = base[: CUSTOMER_ID_MAX_LEN - len(millis) - 1]
    return f"{base}_{millis}"


class PaymentSessionCreator:
    def __init__(self, gateway: PaymentGateway, config: CashfreeSettings) -> None:
        self.gateway = gateway
        self.config = config

    def build_request(self, intent: DonationIntent, order_id: str) -> GatewayOrderRequest:
        notify_url = self.config.notify_url
        return GatewayOrderRequest(
            order_id=order_id,
            order_amount=intent.amount,
            order_currency=intent.currency,
            customer_details=CustomerDetails(
                customer_id=generate_customer_id(intent.donor_email),
                customer_name=intent.donor_name,
                customer_email=intent.donor_email,
                customer_phone=normalize_phone(intent.donor_phone, self.config.default_country_code),
            ),
            order_meta=OrderMeta(
                return_url=self.config.return_url.replace("{order_id}", order_id),
                notify_url=notify_url or None,
            ),
            order_note=intent.note,
        )

    async def create_session(self, intent: DonationIntent, order_id: str) -> PaymentSession:
        req = self.build_request(intent, order_id)
        logger.info(
            "payment_session_request",
            order_id=order_id,
            provider=self.gateway.provider,
            amount=str(req.order_amount),
            currency=req.order_currency,
        )
        session = await self.gateway.create_order(req)
        logger.info(
            "payment_session_created",
            order_id=session.order_id,
            provider=self.gateway.provider,
            order_status=session.order_status,
        )
        return session


class DonationCheckoutService:
    def __init__(
        self,
        uow_factory: Callable[[], AbstractUnitOfWork],
        creator: PaymentSessionCreator,
        engine: ReconciliationEngine,
    ) -> None:
        self._uow_factory = uow_factory
        self.creator = creator
        self.engine = engine

    async def checkout(self, intent: DonationIntent) -> CheckoutResult:
        order_id = generate_order_id(intent.order_id_prefix or self.creator.config.order_id_prefix)
        now = datetime.now(timezone.utc)
        donation = Donation(
            gateway_order_id=order_id,
            amount=intent.amount,
            currency=intent.currency,
            user_id=intent.user_id,
            donation_type=intent.donation_type,
            payment_status=DonationStatus.PENDING,
            created_at=now,
            updated_at=now,
        )
        async with self._uow_factory() as uow:
            donation = await uow.donation_repository.add(donation)
            await uow.commit()

        try:
            session = await self.creator.create_session(intent, order_id)
        except BusinessException as exc:
            if exc.code in _DETERMINISTIC_GATEWAY_FAILURES:
                await self.engine.reconcile(order_id, DonationStatus.FAILED)
            logger.warning(
                "payment_session_failed",
                order_id=order_id,
                donation_id=donation.id,
                error_type=exc.error_type,
            )
            raise

        return CheckoutResult(
            donation_id=donation.id,
            order_id=session.order_id,
            payment_session_id=session.payment_session_id,
            cf_order_id=session.cf_order_id,
            order_status=session.order_status,
            amount=donation.amount,
            currency=donation.currency,
        )
