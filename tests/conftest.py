"""Pytest bootstrap configuration.

Ensure mandatory environment variables are set before test collection
and module imports that depend on application settings.
"""
import os

os.environ.setdefault("ENVIRONMENT", "test")
os.environ.setdefault("DEBUG", "false")
os.environ.setdefault("DATABASE__URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("CASHFREE__APP_ID", "test_app_id")
os.environ.setdefault("CASHFREE__SECRET_KEY", "test_secret_key")
os.environ.setdefault("CASHFREE__WEBHOOK_SECRET", "test-webhook-secret")

import pytest

from tests.fakes import InMemoryStore, StubGateway


@pytest.fixture
def store() -> InMemoryStore:
    return InMemoryStore()


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()
