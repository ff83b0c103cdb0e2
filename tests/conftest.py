import datetime as dt
import os

import pytest

# Stable env before finance_coach.config is imported
os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("DATABASE_URL", "sqlite:///:memory:")
os.environ.setdefault("LOG_JSON", "0")
os.environ.pop("PROMETHEUS_MULTIPROC_DIR", None)

from fastapi.testclient import TestClient  # noqa: E402

from finance_coach.deps import get_today  # noqa: E402
from finance_coach.main import create_app  # noqa: E402
from finance_coach.store import InMemoryTransactionStore  # noqa: E402

TODAY = dt.date(2025, 9, 28)


@pytest.fixture
def today():
    return TODAY


@pytest.fixture
def make_client():
    """Factory: TestClient over an in-memory store seeded with ``txns``."""

    def _make(txns=(), today=TODAY):
        app = create_app(store=InMemoryTransactionStore(txns))
        app.dependency_overrides[get_today] = lambda: today
        return TestClient(app)

    return _make


@pytest.fixture
def client(make_client):
    return make_client()
