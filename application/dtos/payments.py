"""
Payment DTOs (Pydantic v2) used at application boundaries.
"""
from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator
from pydantic.types import condecimal


def _upper_iso_currency(v: str) -> str:
    u = (v or "").strip().upper()
    if len(u) != 3 or not u.isalpha():
        raise ValueError("currency must be ISO-4217 alpha-3")
    return u


class DonationIntent(BaseModel):
    """What the donor submitted on the donate page."""

    amount: condecimal(gt=0, max_digits=15, decimal_places=2)  # type: ignore[valid-type]
    currency: str = Field(default="INR")
    donor_name: str = Field(min_length=1, max_length=100)
    donor_email: EmailStr
    donor_phone: str = Field(min_length=1, max_length=20)
    order_id_prefix: Optional[str] = Field(default=None, max_length=20)
    user_id: Optional[str] = None
    donation_type: Optional[str] = Field(default=None, max_length=50)
    note: Optional[str] = Field(default=None, max_length=200)

    @field_validator("currency")
    @classmethod
    def _upper_and_validate_currency(cls, v: str) -> str:
        return _upper_iso_currency(v)

    @field_validator("donor_name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("donor_name must not be blank")
        return v


class CustomerDetails(BaseModel):
    customer_id: str
    customer_name: str
    customer_email: str
    customer_phone: str


class OrderMeta(BaseModel):
    return_url: Optional[str] = None
    notify_url: Optional[str] = None


class GatewayOrderRequest(BaseModel):
    """Body of Cashfree ``POST /pg/orders``."""

    order_id: str
    order_amount: Decimal
    order_currency: str
    customer_details: CustomerDetails
    order_meta: OrderMeta = Field(default_factory=OrderMeta)
    order_note: Optional[str] = None

    def to_payload(self) -> dict:
        payload = self.model_dump(mode="json", exclude_none=True)
        # Cashfree expects a JSON number here
        payload["order_amount"] = float(self.order_amount)
        return payload


class PaymentSession(BaseModel):
    order_id: str
    payment_session_id: str
    cf_order_id: Optional[str] = None
    order_status: Optional[str] = None


class CheckoutResult(BaseModel):
    donation_id: str
    order_id: str
    payment_session_id: str
    cf_order_id: Optional[str] = None
    order_status: Optional[str] = None
    amount: Decimal
    currency: str


class OrderDetails(BaseModel):
    """Normalized view of a gateway order plus its latest payment attempt."""

    order_id: str
    amount: Optional[Decimal] = None
    currency: Optional[str] = None
    order_status: str
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    payment_time: Optional[datetime] = None
    payment_id: Optional[str] = None


class ReconciliationResult(BaseModel):
    outcome: Literal["updated", "idempotent", "rejected", "not_found"]
    order_id: str
    donation_id: Optional[str] = None
    previous_status: Optional[str] = None
    new_status: Optional[str] = None
    payment_id: Optional[str] = None

    @property
    def changed(self) -> bool:
        return self.outcome == "updated"


class OrderStatusView(BaseModel):
    order: OrderDetails
    reconciliation: Optional[ReconciliationResult] = None
