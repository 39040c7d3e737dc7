import pytest
from fastapi.testclient import TestClient

from accounts import Accounts
from catalog import Catalog
from database import JsonStore
from main import app, get_store


class ReadOnlyStore(JsonStore):
    """Store whose writes always fail, as on a full or read-only disk."""

    def save(self, collection, items):
        return False


@pytest.fixture
def store(tmp_path):
    return JsonStore(str(tmp_path))


@pytest.fixture
def catalog(store):
    return Catalog(store)


@pytest.fixture
def accounts(store):
    return Accounts(store)


@pytest.fixture
def client(store):
    app.dependency_overrides[get_store] = lambda: store
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def dune():
    return {"title": "Dune", "author": "Herbert", "isbn": "111", "price": 12.5}


@pytest.fixture
def bob(accounts):
    return accounts.register("bob", "secret1", "bob@x.com", "Bob", "Lee")
