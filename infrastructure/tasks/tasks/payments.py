"""
Celery tasks for payment compensation: pull reconciliation and stale-pending expiry.
"""
from __future__ import annotations

import asyncio

from celery import shared_task

from application.services.order_status_service import OrderStatusService, expire_stale_pending
from application.services.reconciliation_service import ReconciliationEngine
from core.logging_config import get_logger
from core.settings import payment_settings
from domain.common.exceptions import PersistenceException
from domain.donation.entity import DonationStatus
from infrastructure.database import dispose_engine
from infrastructure.external.payments import get_payment_gateway
from infrastructure.external.payments.exceptions import PaymentProviderError
from infrastructure.tasks.utils.base_task import BaseTask
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


logger = get_logger(__name__)

# transient failures worth another attempt; validation/auth/not-found are final
_RETRYABLE = (PaymentProviderError, PersistenceException)


@shared_task(name="payments.reconcile_order", base=BaseTask, bind=True, max_retries=3, default_retry_delay=30)
def task_reconcile_order(self, order_id: str):
    async def _run():
        gateway = get_payment_gateway(payment_settings)
        service = OrderStatusService(gateway, ReconciliationEngine(SQLAlchemyUnitOfWork))
        try:
            return await service.reconcile(order_id)
        finally:
            await gateway.aclose()
            # pooled connections are bound to this loop
            await dispose_engine()

    try:
        view = asyncio.run(_run())
    except _RETRYABLE as exc:
        logger.warning("order_reconcile_retry", order_id=order_id, error_type=exc.error_type)
        raise self.retry(exc=exc)

    outcome = view.reconciliation.outcome if view.reconciliation else None
    logger.info(
        "order_reconciled",
        order_id=order_id,
        order_status=view.order.order_status,
        outcome=outcome,
    )
    return {"order_status": view.order.order_status, "outcome": outcome}


@shared_task(name="payments.expire_stale_pending", base=BaseTask, bind=True, max_retries=3, default_retry_delay=60)
def task_expire_stale_pending(self):
    async def _run():
        gateway = get_payment_gateway(payment_settings)
        service = OrderStatusService(gateway, ReconciliationEngine(SQLAlchemyUnitOfWork))
        try:
            return await expire_stale_pending(
                SQLAlchemyUnitOfWork,
                service,
                older_than_minutes=payment_settings.stale_pending_minutes,
                limit=payment_settings.stale_pending_batch_size,
            )
        finally:
            await gateway.aclose()
            await dispose_engine()

    try:
        results = asyncio.run(_run())
    except PersistenceException as exc:
        raise self.retry(exc=exc)

    changed = [r for r in results if r.changed]
    return {
        "settled": len(results),
        "completed": sum(1 for r in changed if r.new_status == DonationStatus.COMPLETED.value),
        "expired": sum(1 for r in changed if r.new_status == DonationStatus.FAILED.value),
    }
