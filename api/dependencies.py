"""
API依赖项 - 组装应用服务（组合根）

测试中通过 app.dependency_overrides 替换 get_uow_factory / get_payment_gateway /
get_webhook_verifier 即可注入假实现。
"""
from typing import AsyncIterator, Callable

from fastapi import Depends

from application.ports.payment_gateway import PaymentGateway, WebhookVerifier
from application.services.order_status_service import OrderStatusService
from application.services.payment_service import DonationCheckoutService, PaymentSessionCreator
from application.services.reconciliation_service import ReconciliationEngine
from application.services.webhook_service import WebhookService
from core.settings import payment_settings
from domain.common.unit_of_work import AbstractUnitOfWork
from infrastructure.external.payments import get_payment_gateway as build_payment_gateway
from infrastructure.external.payments import get_webhook_verifier as build_webhook_verifier
from infrastructure.unit_of_work import SQLAlchemyUnitOfWork


UowFactory = Callable[[], AbstractUnitOfWork]


async def get_uow_factory() -> UowFactory:
    return SQLAlchemyUnitOfWork


async def get_payment_gateway() -> AsyncIterator[PaymentGateway]:
    gateway = build_payment_gateway(payment_settings)
    try:
        yield gateway
    finally:
        await gateway.aclose()


async def get_webhook_verifier() -> WebhookVerifier:
    return build_webhook_verifier(payment_settings)


async def get_reconciliation_engine(uow_factory: UowFactory = Depends(get_uow_factory)) -> ReconciliationEngine:
    return ReconciliationEngine(uow_factory)


async def get_webhook_service(
    verifier: WebhookVerifier = Depends(get_webhook_verifier),
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> WebhookService:
    return WebhookService(verifier=verifier, engine=engine)


async def get_checkout_service(
    uow_factory: UowFactory = Depends(get_uow_factory),
    gateway: PaymentGateway = Depends(get_payment_gateway),
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> DonationCheckoutService:
    creator = PaymentSessionCreator(gateway, payment_settings.cashfree)
    return DonationCheckoutService(uow_factory, creator, engine)


async def get_order_status_service(
    gateway: PaymentGateway = Depends(get_payment_gateway),
    engine: ReconciliationEngine = Depends(get_reconciliation_engine),
) -> OrderStatusService:
    return OrderStatusService(gateway, engine)
