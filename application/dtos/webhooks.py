"""
Cashfree webhook envelopes as a tagged union.

Known event families get a strict model each; anything else lands in
``UnknownWebhook`` and is acknowledged without touching the store.
"""
from __future__ import annotations

from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Discriminator, Field, Tag, TypeAdapter, model_validator

from shared.codes.payment_codes import EVENT_TYPE_TO_DONATION_STATUS


class WebhookOrder(BaseModel):
    model_config = ConfigDict(extra="allow")

    order_id: str = Field(min_length=1)
    order_amount: Optional[float] = None
    order_currency: Optional[str] = None


class WebhookPayment(BaseModel):
    model_config = ConfigDict(extra="allow")

    cf_payment_id: Optional[Union[str, int]] = None
    payment_status: Optional[str] = None
    payment_amount: Optional[float] = None
    payment_currency: Optional[str] = None
    payment_message: Optional[str] = None
    payment_time: Optional[str] = None
    payment_group: Optional[str] = None
    payment_method: Optional[Any] = None


class WebhookRefund(BaseModel):
    model_config = ConfigDict(extra="allow")

    order_id: Optional[str] = None
    cf_refund_id: Optional[Union[str, int]] = None
    cf_payment_id: Optional[Union[str, int]] = None
    refund_id: Optional[str] = None
    refund_amount: Optional[float] = None
    refund_status: Optional[str] = None


class PaymentEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    order: WebhookOrder
    payment: Optional[WebhookPayment] = None
    customer_details: Optional[dict[str, Any]] = None


class RefundEventData(BaseModel):
    model_config = ConfigDict(extra="allow")

    order: Optional[WebhookOrder] = None
    payment: Optional[WebhookPayment] = None
    refund: Optional[WebhookRefund] = None


class _PaymentEnvelope(BaseModel):
    model_config = ConfigDict(extra="allow")

    data: PaymentEventData
    event_time: Optional[str] = None

    @property
    def order_id(self) -> str:
        return self.data.order.order_id

    @property
    def payment_id(self) -> Optional[str]:
        if self.data.payment is None or self.data.payment.cf_payment_id is None:
            return None
        return str(self.data.payment.cf_payment_id)


class PaymentSuccessWebhook(_PaymentEnvelope):
    type: Literal["PAYMENT_SUCCESS_WEBHOOK"]


class PaymentFailedWebhook(_PaymentEnvelope):
    type: Literal["PAYMENT_FAILED_WEBHOOK"]


class PaymentUserDroppedWebhook(_PaymentEnvelope):
    type: Literal["PAYMENT_USER_DROPPED_WEBHOOK"]


class RefundSuccessWebhook(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Literal["PAYMENT_REFUND_SUCCESS", "REFUND_SUCCESS"]
    data: RefundEventData
    event_time: Optional[str] = None

    @model_validator(mode="after")
    def _require_order_id(self) -> "RefundSuccessWebhook":
        if not self.order_id:
            raise ValueError("refund webhook carries no order_id")
        return self

    @property
    def order_id(self) -> Optional[str]:
        if self.data.order is not None:
            return self.data.order.order_id
        if self.data.refund is not None:
            return self.data.refund.order_id
        return None

    @property
    def payment_id(self) -> Optional[str]:
        # keep the original payment id; the refund id is not a payment id
        return None


class UnknownWebhook(BaseModel):
    model_config = ConfigDict(extra="allow")

    type: Optional[str] = None
    data: Optional[Any] = None
    event_time: Optional[str] = None


def _event_tag(value: Any) -> str:
    if isinstance(value, dict):
        event_type = value.get("type")
    else:
        event_type = getattr(value, "type", None)
    if isinstance(event_type, str) and event_type in EVENT_TYPE_TO_DONATION_STATUS:
        return event_type
    return "unknown"


WebhookEnvelope = Annotated[
    Union[
        Annotated[PaymentSuccessWebhook, Tag("PAYMENT_SUCCESS_WEBHOOK")],
        Annotated[PaymentFailedWebhook, Tag("PAYMENT_FAILED_WEBHOOK")],
        Annotated[PaymentUserDroppedWebhook, Tag("PAYMENT_USER_DROPPED_WEBHOOK")],
        Annotated[RefundSuccessWebhook, Tag("PAYMENT_REFUND_SUCCESS")],
        Annotated[RefundSuccessWebhook, Tag("REFUND_SUCCESS")],
        Annotated[UnknownWebhook, Tag("unknown")],
    ],
    Discriminator(_event_tag),
]

webhook_envelope_adapter: TypeAdapter[WebhookEnvelope] = TypeAdapter(WebhookEnvelope)


def parse_webhook_envelope(body: bytes) -> WebhookEnvelope:
    """Parse raw webhook bytes; raises pydantic.ValidationError on bad JSON or shape."""
    return webhook_envelope_adapter.validate_json(body)


class WebhookAck(BaseModel):
    """Flat JSON acknowledgement returned to the gateway."""

    success: bool
    error: Optional[str] = None
    ignored: Optional[bool] = None
    not_found: Optional[bool] = None
    rejected: Optional[bool] = None
    order_id: Optional[str] = None
    new_status: Optional[str] = None
    event_type: Optional[str] = None


class WebhookResult(BaseModel):
    status_code: int
    ack: WebhookAck
