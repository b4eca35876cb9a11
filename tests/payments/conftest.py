import httpx
import pytest

from api.dependencies import get_payment_gateway, get_uow_factory, get_webhook_verifier
from infrastructure.external.payments.signature import WebhookSignatureVerifier
from tests.fakes import WEBHOOK_SECRET


@pytest.fixture
async def client(store, gateway):
    from main import app

    async def _uow_factory():
        return store.uow_factory

    async def _gateway():
        return gateway

    async def _verifier():
        return WebhookSignatureVerifier(WEBHOOK_SECRET, production=False)

    app.dependency_overrides[get_uow_factory] = _uow_factory
    app.dependency_overrides[get_payment_gateway] = _gateway
    app.dependency_overrides[get_webhook_verifier] = _verifier
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as c:
        yield c
    app.dependency_overrides.clear()
