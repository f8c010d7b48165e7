import os

os.environ["ENV"] = "test"

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from sensor_relay.main import app
from sensor_relay.db import Base, get_db
from sensor_relay.models.device import Device
from sensor_relay.schemas.notification import DeliveryDetail
from sensor_relay.services.push_notification import MulticastResult, get_push_service
from sensor_relay.utils.datetime import utc_now

# Use SQLite in-memory for test DB
TEST_DATABASE_URL = "sqlite+pysqlite:///:memory:"
# StaticPool keeps one shared connection so TestClient requests and the test's
# own session see the same in-memory database.
engine = create_engine(
    TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


# Dependency override
def override_get_db():
    try:
        db = TestingSessionLocal()
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture(autouse=True)
def setup_test_db():
    # recreate schema for each test to ensure isolation
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db_session():
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.rollback()
        db.close()


class FakePushService:
    """Records multicast calls; tokens listed in ``failures`` fail with that code."""

    def __init__(self):
        self.calls = []
        self.failures = {}

    def send_multicast(self, tokens, title, body, data=None):
        self.calls.append({"tokens": list(tokens), "title": title, "body": body, "data": data})
        details = []
        for token in tokens:
            code = self.failures.get(token)
            details.append(DeliveryDetail(
                token=token,
                success=code is None,
                error_code=code,
                error_msg=f"{code}: token rejected" if code else None,
            ))
        ok = sum(1 for d in details if d.success)
        return MulticastResult(ok, len(details) - ok, details)


@pytest.fixture
def fake_push():
    push = FakePushService()
    app.dependency_overrides[get_push_service] = lambda: push
    yield push
    app.dependency_overrides.pop(get_push_service, None)


@pytest.fixture
def auth_headers():
    # mock token resolves to uid "user-1" outside production
    return {"Authorization": "Bearer mock-user-token"}


@pytest.fixture
def add_device(db_session):
    """Factory inserting a device row directly."""
    def _make(user_id, device_id, token="tok", is_active=True, **fields):
        device = Device(
            user_id=user_id,
            device_id=device_id,
            token=token,
            is_active=is_active,
            updated_at=utc_now(),
            **fields,
        )
        db_session.add(device)
        db_session.commit()
        return device
    return _make
