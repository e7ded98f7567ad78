# tests/conftest.py
import os

# Settings are read once at import time; point them at test values first.
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-jwt-secret")
os.environ.setdefault("CRON_SECRET", "test-cron-secret")
os.environ.setdefault("PAYMONGO_WEBHOOK_SECRET", "whsk_test_secret")
os.environ.setdefault("RATE_LIMIT_ENABLED", "false")
os.environ.setdefault("ENABLE_SCHEDULER", "false")

import pytest
from unittest.mock import MagicMock
from fastapi import Depends
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from starlette.testclient import TestClient

import portl.models  # noqa: F401  registers every table on Base.metadata
from portl.db.base_class import Base
from tests.utils.payment import make_mock_provider

# --- Test Database Setup ---
# One SQLite file per test: separate sessions get separate connections, which
# the concurrent-confirmation tests rely on.
@pytest.fixture(scope="function")
def engine(tmp_path):
    test_engine = create_engine(
        f"sqlite:///{tmp_path / 'test.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(bind=test_engine)
    yield test_engine
    test_engine.dispose()

@pytest.fixture(scope="function")
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)

@pytest.fixture(scope="function")
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()

# --- Test Client Fixtures ---
@pytest.fixture(scope="function")
def client(session_factory):
    """
    TestClient backed by the test database.

    The payment gateway and confirmation emails are mocked; the mocks are
    available as ``client.provider`` and ``client.notifier``.
    """
    from portl.main import app
    from portl.api import deps
    from portl.db.session import get_db
    from portl.services.checkout.order_service import OrderService

    provider = make_mock_provider()
    notifier = MagicMock()

    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    def override_get_order_service(db: Session = Depends(get_db)):
        return OrderService(db, provider=provider, notifier=notifier)

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[deps.get_order_service] = override_get_order_service

    with TestClient(app) as test_client:
        test_client.provider = provider
        test_client.notifier = notifier
        yield test_client

    app.dependency_overrides = {}
