"""
Maps a gateway event (or order status) to the donation status it implies.
"""
from __future__ import annotations

from typing import Any, Optional

from domain.donation.entity import DonationStatus
from shared.codes.payment_codes import (
    EVENT_TYPE_TO_DONATION_STATUS,
    ORDER_STATUS_TO_DONATION_STATUS,
)


def classify_event_type(event_type: Optional[str]) -> Optional[DonationStatus]:
    """None means the event is not ours to act on and must be ignored."""
    if not event_type:
        return None
    target = EVENT_TYPE_TO_DONATION_STATUS.get(event_type)
    return DonationStatus(target) if target else None


def classify(event: Any) -> Optional[DonationStatus]:
    return classify_event_type(getattr(event, "type", None))


def classify_order_status(order_status: Optional[str]) -> Optional[DonationStatus]:
    if not order_status:
        return None
    target = ORDER_STATUS_TO_DONATION_STATUS.get(order_status.upper())
    return DonationStatus(target) if target else None
