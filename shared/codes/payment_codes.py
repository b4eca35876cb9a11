"""
Payment specific codes and gateway status mapping.
"""
from __future__ import annotations

from enum import IntEnum


class PaymentCode(IntEnum):
    # Generic success
    SUCCESS = 0

    # Provider/Network errors (6xxxx)
    PROVIDER_ERROR = 60000
    # Gateway rejected the request itself (4xx)
    VALIDATION_ERROR = 60010
    AUTHENTICATION_ERROR = 60011
    ORDER_NOT_FOUND = 60012


# Webhook event type -> donation status. Unlisted types are ignored.
EVENT_TYPE_TO_DONATION_STATUS = {
    "PAYMENT_SUCCESS_WEBHOOK": "completed",
    "PAYMENT_FAILED_WEBHOOK": "failed",
    "PAYMENT_USER_DROPPED_WEBHOOK": "failed",
    "PAYMENT_REFUND_SUCCESS": "refunded",
    "REFUND_SUCCESS": "refunded",
}

# Cashfree order_status -> donation status; None means still in flight.
ORDER_STATUS_TO_DONATION_STATUS = {
    "PAID": "completed",
    "EXPIRED": "failed",
    "TERMINATED": "failed",
    "TERMINATION_REQUESTED": None,
    "ACTIVE": None,
}

