"""
Pull-based order status verification and stale-pending compensation.
"""
from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Callable

from application.dtos.payments import OrderDetails, OrderStatusView, ReconciliationResult
from application.ports.payment_gateway import PaymentGateway
from application.services.event_classifier import classify_order_status
from application.services.reconciliation_service import ReconciliationEngine
from core.logging_config import get_logger
from domain.common.exceptions import BusinessException
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.donation.entity import DonationStatus
from shared.codes.payment_codes import PaymentCode


logger = get_logger(__name__)

# retry on the next run; anything else (bad credentials) fails the job
_SKIPPABLE_GATEWAY_FAILURES = {PaymentCode.PROVIDER_ERROR, PaymentCode.VALIDATION_ERROR}


class OrderStatusService:
    def __init__(self, gateway: PaymentGateway, engine: ReconciliationEngine) -> None:
        self.gateway = gateway
        self.engine = engine

    async def verify(self, order_id: str) -> OrderDetails:
        """Read-only: what does the gateway say about this order right now."""
        details = await self.gateway.fetch_order(order_id)
        logger.info(
            "order_status_verified",
            order_id=order_id,
            order_status=details.order_status,
            payment_status=details.payment_status,
        )
        return details

    async def reconcile(self, order_id: str) -> OrderStatusView:
        """Verify, then feed a terminal gateway status into the engine."""
        details = await self.verify(order_id)
        target = classify_order_status(details.order_status)
        if target is None:
            return OrderStatusView(order=details)
        result = await self.engine.reconcile(order_id, target, payment_id=details.payment_id)
        return OrderStatusView(order=details, reconciliation=result)


async def expire_stale_pending(
    uow_factory: Callable[[], AbstractUnitOfWork],
    service: OrderStatusService,
    *,
    older_than_minutes: int,
    limit: int = 200,
    now: datetime | None = None,
) -> list[ReconciliationResult]:
    """
    Settle donations stuck in pending past the cutoff.

    The gateway is asked first: PAID completes the donation, EXPIRED/TERMINATED
    or an order the gateway does not know fails it, and an order that is still
    ACTIVE stays pending for the next run. A transient gateway error skips the
    row; it is picked up again on the next run.
    """
    cutoff = (now or datetime.now(timezone.utc)) - timedelta(minutes=older_than_minutes)
    async with uow_factory() as uow:
        stale = await uow.donation_repository.list_stale_pending(cutoff, limit=limit)

    results = []
    skipped = 0
    for donation in stale:
        order_id = donation.gateway_order_id
        try:
            view = await service.reconcile(order_id)
        except BusinessException as exc:
            if exc.code == PaymentCode.ORDER_NOT_FOUND:
                results.append(await service.engine.reconcile(order_id, DonationStatus.FAILED))
                continue
            if exc.code in _SKIPPABLE_GATEWAY_FAILURES:
                logger.warning("stale_pending_lookup_failed", order_id=order_id, error_type=exc.error_type)
                skipped += 1
                continue
            raise
        if view.reconciliation is None:
            skipped += 1
            continue
        results.append(view.reconciliation)

    logger.info(
        "stale_pending_settled",
        cutoff=cutoff.isoformat(),
        scanned=len(stale),
        completed=sum(1 for r in results if r.changed and r.new_status == DonationStatus.COMPLETED.value),
        expired=sum(1 for r in results if r.changed and r.new_status == DonationStatus.FAILED.value),
        skipped=skipped,
    )
    return results
