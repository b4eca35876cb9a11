"""
Payment-related settings using pydantic-settings v2 with nested env keys.

Kept apart from core.config.Settings so the gateway client can be handed an
explicit config object, e.g. ``CASHFREE__APP_ID`` / ``CASHFREE__SECRET_KEY``.
"""
from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


CASHFREE_HOSTS = {
    "sandbox": "https://sandbox.cashfree.com",
    "production": "https://api.cashfree.com",
}


class PaymentTimeouts(BaseModel):
    connect: float = 2.0
    read: float = 5.0
    write: float = 5.0
    total: float = 10.0


class PaymentRetry(BaseModel):
    max: int = 2
    base_backoff: float = 0.2


class WebhookSettings(BaseModel):
    tolerance_seconds: int = 300
    version: str = "2025-01-01"


class CashfreeSettings(BaseModel):
    app_id: Optional[str] = None
    secret_key: Optional[str] = None
    environment: Literal["sandbox", "production"] = "sandbox"
    api_version: str = "2023-08-01"
    webhook_secret: Optional[str] = None
    # Skips signature checks outside production only; never set this in prod.
    webhook_allow_insecure: bool = False
    return_url: str = "http://localhost:3000/donate/success?order_id={order_id}"
    notify_url: Optional[str] = None
    default_country_code: str = "+91"
    order_id_prefix: str = "donation"

    @property
    def base_url(self) -> str:
        return CASHFREE_HOSTS[self.environment]

    @property
    def signing_secret(self) -> Optional[str]:
        # Cashfree signs webhooks with the API secret unless a dedicated one is set
        return self.webhook_secret or self.secret_key


class PaymentSettings(BaseSettings):
    timeouts: PaymentTimeouts = Field(default_factory=PaymentTimeouts)
    retry: PaymentRetry = Field(default_factory=PaymentRetry)
    webhook: WebhookSettings = Field(default_factory=WebhookSettings)
    cashfree: CashfreeSettings = Field(default_factory=CashfreeSettings)

    # pending donations untouched for this long are expired by the beat job
    stale_pending_minutes: int = 60
    stale_pending_batch_size: int = 200

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )


payment_settings = PaymentSettings()
