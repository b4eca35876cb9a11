"""
Reconciliation engine - applies a target status to a donation at most once.

Every writer (webhook, pull verifier, stale-pending expiry) goes through
``ReconciliationEngine.reconcile`` so the same state machine and the same
compare-and-set write guard every path.
"""
from __future__ import annotations

from datetime import datetime, timezone
from typing import Callable, Optional

from application.dtos.payments import ReconciliationResult
from core.logging_config import get_logger
from domain.common.unit_of_work import AbstractUnitOfWork
from domain.donation.entity import DonationStatus, TransitionDecision
from domain.donation.service import TransitionConflictException


logger = get_logger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ReconciliationEngine:
    def __init__(
        self,
        uow_factory: Callable[[], AbstractUnitOfWork],
        *,
        max_attempts: int = 3,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._uow_factory = uow_factory
        self._max_attempts = max(1, max_attempts)
        self._clock = clock

    async def reconcile(
        self,
        order_id: str,
        target: DonationStatus,
        payment_id: Optional[str] = None,
    ) -> ReconciliationResult:
        """
        Lookup -> decide -> conditional write.

        A lost compare-and-set means another writer got there first; re-read and
        decide again against the fresh status.
        """
        for attempt in range(1, self._max_attempts + 1):
            async with self._uow_factory() as uow:
                donation = await uow.donation_repository.get_by_gateway_order_id(order_id)
                if donation is None:
                    logger.info("donation_not_found", order_id=order_id, target=target.value)
                    return ReconciliationResult(outcome="not_found", order_id=order_id)

                current = donation.payment_status
                decision = donation.decide(target)
                if decision == TransitionDecision.NOOP:
                    return ReconciliationResult(
                        outcome="idempotent",
                        order_id=order_id,
                        donation_id=donation.id,
                        previous_status=current.value,
                        new_status=current.value,
                        payment_id=donation.payment_id,
                    )
                if decision == TransitionDecision.REJECT:
                    logger.warning(
                        "donation_transition_rejected",
                        order_id=order_id,
                        donation_id=donation.id,
                        current=current.value,
                        target=target.value,
                    )
                    return ReconciliationResult(
                        outcome="rejected",
                        order_id=order_id,
                        donation_id=donation.id,
                        previous_status=current.value,
                        new_status=current.value,
                        payment_id=donation.payment_id,
                    )

                verified_at = self._clock()
                applied = await uow.donation_repository.transition_status(
                    donation.id,
                    expected=current,
                    new_status=target,
                    verified_at=verified_at,
                    payment_id=payment_id,
                )
                if applied:
                    await uow.commit()
                    logger.info(
                        "donation_status_transitioned",
                        order_id=order_id,
                        donation_id=donation.id,
                        previous=current.value,
                        new=target.value,
                        payment_id=payment_id,
                    )
                    return ReconciliationResult(
                        outcome="updated",
                        order_id=order_id,
                        donation_id=donation.id,
                        previous_status=current.value,
                        new_status=target.value,
                        payment_id=payment_id or donation.payment_id,
                    )
                await uow.rollback()

            logger.info(
                "donation_transition_conflict",
                order_id=order_id,
                attempt=attempt,
                target=target.value,
            )

        raise TransitionConflictException(order_id, self._max_attempts, target.value)
