import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from expirysignal.db import make_engine
from expirysignal.db_expiry import ExpiryStore
from expirysignal.main import create_app
from expirysignal.settings import Settings


@pytest.fixture
def engine():
    # One shared in-memory connection, usable from the TestClient threadpool.
    engine = make_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    yield engine
    engine.dispose()


@pytest.fixture
def store(engine):
    store = ExpiryStore(engine)
    store.create_schema()
    return store


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://")


@pytest.fixture
def app(settings, store):
    return create_app(settings=settings, store=store)


@pytest.fixture
def client(app):
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
