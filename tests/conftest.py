import mongomock
import pytest
from fastapi.testclient import TestClient

from cache import TTLCache
from database import get_optional_db
from main import app, get_catalog_cache


class FakeClock:
    def __init__(self, now=1000.0):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def mongo_db():
    return mongomock.MongoClient()["requisition_desk_test"]


@pytest.fixture
def catalog_cache(clock):
    return TTLCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def client(mongo_db, catalog_cache):
    app.dependency_overrides[get_optional_db] = lambda: mongo_db
    app.dependency_overrides[get_catalog_cache] = lambda: catalog_cache
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()
