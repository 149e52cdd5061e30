import pytest
from fastapi.testclient import TestClient

from deposit_service.ledger import Ledger
from deposit_service.main import app, get_ledger
from deposit_service.store import MemoryStore


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def ledger(store):
    return Ledger(store)


@pytest.fixture
def client(ledger):
    app.dependency_overrides[get_ledger] = lambda: ledger
    yield TestClient(app)
    app.dependency_overrides.clear()
