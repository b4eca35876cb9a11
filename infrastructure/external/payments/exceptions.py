"""
Exceptions for payment providers mapped to unified BusinessException variants.
"""
from __future__ import annotations

from typing import Optional
from domain.common.exceptions import BusinessException
from shared.codes.payment_codes import PaymentCode


def _provider_details(provider: str, provider_code: str | None, details: Optional[dict]) -> dict:
    full_details = {"provider": provider, "provider_code": provider_code}
    if details:
        full_details.update(details)
    return full_details


class PaymentProviderError(BusinessException):
    """Transport failures and gateway 5xx; safe to retry later."""

    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        super().__init__(
            code=PaymentCode.PROVIDER_ERROR,
            message=message,
            error_type="PaymentProviderError",
            details=_provider_details(provider, provider_code, details),
        )


class PaymentValidationError(BusinessException):
    """Gateway rejected the request body (bad amount, phone, duplicate order id...)."""

    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        super().__init__(
            code=PaymentCode.VALIDATION_ERROR,
            message=message,
            error_type="PaymentValidationError",
            details=_provider_details(provider, provider_code, details),
        )


class PaymentAuthenticationError(BusinessException):
    """Gateway rejected our credentials."""

    def __init__(self, message: str, *, provider: str, provider_code: str | None = None, details: Optional[dict] = None):
        super().__init__(
            code=PaymentCode.AUTHENTICATION_ERROR,
            message=message,
            error_type="PaymentAuthenticationError",
            details=_provider_details(provider, provider_code, details),
        )


class OrderNotFoundError(BusinessException):
    def __init__(self, order_id: str, *, provider: str, provider_code: str | None = None):
        super().__init__(
            code=PaymentCode.ORDER_NOT_FOUND,
            message=f"Order {order_id} not found at gateway",
            error_type="OrderNotFoundError",
            details=_provider_details(provider, provider_code, {"order_id": order_id}),
        )
