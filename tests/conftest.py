import os

os.environ.setdefault("LOCAL_CART_DATABASE_URL", "sqlite://")
os.environ.setdefault("CELERY_TASK_ALWAYS_EAGER", "true")

import fakeredis
import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from storefront.data import models  # noqa: F401
from storefront.data.database import Base
from storefront.domain.schemas import PageContext
from storefront.services.cart_store import CartStore, LocalCartBackend, RemoteCartBackend
from storefront.services.selection_tracker import SelectionTracker
from storefront.services.submit_guard import SubmitGuard
from tests.fakes import FakeStorefrontClient


@pytest.fixture
def db():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    session = sessionmaker(bind=engine)()
    try:
        yield session
    finally:
        session.close()
        engine.dispose()


@pytest.fixture
def fake_redis():
    return fakeredis.FakeRedis(decode_responses=True)


@pytest.fixture
def client():
    return FakeStorefrontClient()


@pytest.fixture
def selection(fake_redis):
    return SelectionTracker("sess-1", client=fake_redis)


@pytest.fixture
def guard(fake_redis):
    return SubmitGuard("sess-1", client=fake_redis)


@pytest.fixture
def remote_store(client):
    return CartStore(RemoteCartBackend(client))


@pytest.fixture
def local_store(db, client):
    return CartStore(LocalCartBackend(db, "device-1", client))


@pytest.fixture
def page_ctx():
    return PageContext(authenticated=True, device_id="device-1", session_id="sess-1", auth_token="jwt")
