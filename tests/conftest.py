"""
Test configuration and fixtures for Zomieks.

Provides shared fixtures for unit and API tests. API tests run against the
real application with the database session, session store, gateways and
reconciler replaced through ``dependency_overrides``.
"""

import pytest
from datetime import datetime, timedelta, timezone
from typing import Optional
from unittest.mock import AsyncMock, MagicMock

from fastapi.testclient import TestClient

from app.domain.models import Identity


def make_session_mock() -> MagicMock:
    """AsyncSession double: awaitable commit/rollback/flush, usable savepoints."""
    session = MagicMock()
    session.commit = AsyncMock()
    session.rollback = AsyncMock()
    session.flush = AsyncMock()
    session.refresh = AsyncMock()
    session.execute = AsyncMock()
    session.get = AsyncMock(return_value=None)
    session.delete = AsyncMock()

    savepoint = MagicMock()
    savepoint.__aenter__ = AsyncMock(return_value=savepoint)
    savepoint.__aexit__ = AsyncMock(return_value=False)
    session.begin_nested = MagicMock(return_value=savepoint)
    return session


# =============================================================================
# App Fixtures
# =============================================================================

@pytest.fixture
def app():
    """Get the FastAPI application with overrides cleared after the test."""
    from app.main import app
    yield app
    app.dependency_overrides.clear()


@pytest.fixture
def db_session():
    return make_session_mock()


@pytest.fixture
def client(app, db_session):
    """Synchronous test client with the database session replaced."""
    from app.infrastructure.db.database import get_session

    async def override_get_session():
        yield db_session

    app.dependency_overrides[get_session] = override_get_session
    return TestClient(app)


@pytest.fixture
def identity() -> Identity:
    now = datetime.now(timezone.utc)
    return Identity(
        user_id="user_1",
        email="thandi@example.co.za",
        name="Thandi Mokoena",
        role="user",
        is_email_verified=True,
        is_id_verified=False,
        created_at=now,
        expires_at=now + timedelta(days=7),
    )


@pytest.fixture
def admin_identity() -> Identity:
    now = datetime.now(timezone.utc)
    return Identity(
        user_id="admin_1",
        email="admin@zomieks.co.za",
        name="Admin",
        role="admin",
        is_email_verified=True,
        is_id_verified=True,
        created_at=now,
        expires_at=now + timedelta(days=7),
    )


@pytest.fixture
def login_as(app):
    """Make every request run as the given identity (or anonymously with None)."""
    from app.api.dependencies import get_optional_identity

    def _login(user: Optional[Identity]):
        async def override_identity():
            return user

        app.dependency_overrides[get_optional_identity] = override_identity

    return _login


# =============================================================================
# Payment Fixtures
# =============================================================================

@pytest.fixture
def mock_reconciler(app, db_session):
    from app.api.dependencies import get_reconciler

    reconciler = MagicMock()
    reconciler.session = db_session
    reconciler.reconcile = AsyncMock()
    app.dependency_overrides[get_reconciler] = lambda: reconciler
    return reconciler


@pytest.fixture
def mock_payfast(app):
    from app.api.dependencies import get_payfast_gateway

    gateway = MagicMock()
    gateway.verify_webhook = AsyncMock()
    app.dependency_overrides[get_payfast_gateway] = lambda: gateway
    return gateway


@pytest.fixture
def mock_ozow(app):
    from app.api.dependencies import get_ozow_gateway

    gateway = MagicMock()
    gateway.verify_webhook = AsyncMock()
    app.dependency_overrides[get_ozow_gateway] = lambda: gateway
    return gateway


@pytest.fixture
def mock_transactions(app):
    from app.infrastructure.db.dependencies import get_transaction_repository

    repo = MagicMock()
    repo.get_by_reference = AsyncMock(return_value=None)

    async def override():
        yield repo

    app.dependency_overrides[get_transaction_repository] = override
    return repo


@pytest.fixture
def mock_notification_repo(app):
    from app.infrastructure.db.dependencies import get_notification_repository

    repo = MagicMock()
    for name in ("count_unread", "list_for_user", "mark_read", "mark_all_read"):
        setattr(repo, name, AsyncMock())

    async def override():
        yield repo

    app.dependency_overrides[get_notification_repository] = override
    return repo


@pytest.fixture
def sample_payfast_itn():
    """Escrow ITN as PayFast posts it, fields in wire order."""
    return {
        "m_payment_id": "ORD-LX2K9A-7QZP",
        "pf_payment_id": "1089250",
        "payment_status": "COMPLETE",
        "item_name": "Logo design",
        "amount_gross": "515.00",
        "amount_fee": "-11.85",
        "amount_net": "503.15",
        "custom_str1": "ord_7",
        "custom_str2": "",
        "email_address": "buyer@example.co.za",
        "merchant_id": "10000100",
        "signature": "ad8e7685c9522c24365d7ccea8cb3db7",
    }


@pytest.fixture
def sample_ozow_notification():
    """Ozow notification for a subscription checkout."""
    return {
        "SiteCode": "ZOM-001",
        "TransactionId": "txn_abc",
        "TransactionReference": "SUB-MONTHLY-1718000000000-user_42",
        "Amount": "99.00",
        "Status": "Complete",
        "Optional1": "user_42",
        "Optional2": "monthly",
        "CurrencyCode": "ZAR",
        "IsTest": "false",
        "StatusMessage": "",
        "Hash": "0" * 128,
    }
