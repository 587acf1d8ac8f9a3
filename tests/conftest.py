"""Pytest fixtures for agency tests."""

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

import agency.data.models  # noqa: F401
from agency.api.deps import AppState
from agency.data.database import Base, build_engine, build_session_factory
from agency.data.models import (
    ClientProfileModel,
    PackModel,
    ProjectMilestoneModel,
    ProjectUpdateModel,
    ServiceModuleModel,
)
from agency.domain.errors import FunctionCallError
from agency.domain.types import CartOwner
from agency.services.anonymous_cart_store import AnonymousCartStore
from agency.services.cart_service import CartService
from agency.services.order_service import OrderService
from agency.services.project_service import ProjectService
from agency.services.realtime_service import ProjectChangeBus

USER_ID = "11111111-1111-1111-1111-111111111111"
OTHER_USER_ID = "22222222-2222-2222-2222-222222222222"
ADMIN_ID = "99999999-9999-9999-9999-999999999999"
DEVICE_ID = "device-abc"


class FakePubSub:
    def __init__(self, messages, client=None):
        self.messages = list(messages)
        self.subscribed = []
        self.closed = False
        self.client = client

    def subscribe(self, channel):
        self.subscribed.append(channel)

    def get_message(self, timeout=None):
        return self.messages.pop(0) if self.messages else None

    def unsubscribe(self, channel):
        self.subscribed.remove(channel)

    def close(self):
        self.closed = True
        if self.client is not None:
            self.client.subscribers.remove(self)


class InMemoryRedis:
    """Just enough of redis.Redis for the anonymous store and the change bus."""

    def __init__(self):
        self.data = {}
        self.ttls = {}
        self.published = []
        self.subscribers = []
        self.fail = False

    def _check(self):
        if self.fail:
            from redis.exceptions import ConnectionError

            raise ConnectionError("redis down")

    def get(self, name):
        self._check()
        return self.data.get(name)

    def set(self, name, value, ex=None):
        self._check()
        self.data[name] = value
        if ex is not None:
            self.ttls[name] = ex
        return True

    def expire(self, name, time):
        self._check()
        if name in self.data:
            self.ttls[name] = time
            return True
        return False

    def delete(self, *names):
        self._check()
        removed = 0
        for name in names:
            if self.data.pop(name, None) is not None:
                removed += 1
            self.ttls.pop(name, None)
        return removed

    def publish(self, channel, message):
        self._check()
        self.published.append((channel, message))
        receivers = [s for s in self.subscribers if channel in s.subscribed]
        for pubsub in receivers:
            pubsub.messages.append({"type": "message", "channel": channel, "data": message})
        return len(receivers)

    def pubsub(self, **kwargs):
        self._check()
        pubsub = FakePubSub([], client=self)
        self.subscribers.append(pubsub)
        return pubsub

    def close(self):
        pass


class RecordingFunctionsClient:
    """
    Records privileged calls and performs the inserts the real functions
    would do, on the same session as the service under test.
    """

    def __init__(self, db):
        self.db = db
        self.calls = []
        self.fail_on = set()

    def invoke(self, name, payload, access_token=None, user_id=None):
        self.calls.append((name, payload, access_token, user_id))
        if name in self.fail_on:
            raise FunctionCallError(name, "Error: 500", status_code=500)

        if name == "create-project-milestones":
            from datetime import datetime

            for m in payload["milestones"]:
                self.db.add(
                    ProjectMilestoneModel(
                        project_id=payload["projectId"],
                        title=m["title"],
                        description=m["description"],
                        due_date=datetime.fromisoformat(m["due_date"]),
                        is_completed=m["is_completed"],
                        position=m["position"],
                    )
                )
            self.db.commit()
        elif name == "create-project-update":
            self.db.add(
                ProjectUpdateModel(
                    project_id=payload["projectId"],
                    title=payload["title"],
                    content=payload["content"],
                    admin_id=payload["adminId"],
                    is_read=False,
                )
            )
            self.db.commit()
        return {"success": True}

    def names(self):
        return [c[0] for c in self.calls]

    def close(self):
        pass


class RecordingNotifications:
    def __init__(self):
        self.sent = []

    def send_order_confirmation(self, user_id, order_id):
        self.sent.append((user_id, order_id))


@pytest.fixture
def engine():
    engine = build_engine("sqlite://")
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def redis_client():
    return InMemoryRedis()


@pytest.fixture
def anonymous_store(redis_client):
    return AnonymousCartStore(redis_client, ttl=3600)


@pytest.fixture
def change_bus(redis_client):
    return ProjectChangeBus(redis_client)


@pytest.fixture
def functions_client(db):
    return RecordingFunctionsClient(db)


@pytest.fixture
def notifications():
    return RecordingNotifications()


@pytest.fixture
def cart_service(db, anonymous_store):
    return CartService(db, anonymous_store)


@pytest.fixture
def order_service(db, cart_service, notifications):
    return OrderService(db, cart_service, notifications)


@pytest.fixture
def project_service(db, functions_client, change_bus):
    return ProjectService(db, functions_client, change_bus)


@pytest.fixture
def catalog(db):
    """Pack Base 890, Pack Pro 1490, Pack Premium 2490, Pack Mini 150 and two services."""
    packs = {
        "base": PackModel(id="pack-base", name="Pack Base", slug="pack-base", price=Decimal("890.00"), position=1),
        "pro": PackModel(id="pack-pro", name="Pack Pro", slug="pack-pro", price=Decimal("1490.00"), position=2),
        "premium": PackModel(
            id="pack-premium", name="Pack Premium", slug="pack-premium", price=Decimal("2490.00"), position=3
        ),
        "mini": PackModel(id="pack-mini", name="Pack Mini", slug="pack-mini", price=Decimal("150.00"), position=4),
        "hidden": PackModel(
            id="pack-old", name="Pack Antiguo", slug="pack-old", price=Decimal("10.00"), is_active=False
        ),
    }
    services = {
        "seo": ServiceModuleModel(id="svc-seo", name="SEO", category="marketing", price=Decimal("200.00")),
        "blog": ServiceModuleModel(id="svc-blog", name="Blog", category="content", price=Decimal("120.00")),
    }
    db.add_all(list(packs.values()) + list(services.values()))
    db.add(ClientProfileModel(user_id=USER_ID, full_name="Cliente", email="cliente@example.com"))
    db.add(ClientProfileModel(user_id=ADMIN_ID, full_name="Admin", email="admin@example.com", is_admin=True))
    db.commit()
    return {"packs": packs, "services": services}


@pytest.fixture
def user():
    return CartOwner(user_id=USER_ID, device_id=DEVICE_ID, access_token="token-user")


@pytest.fixture
def other_user():
    return CartOwner(user_id=OTHER_USER_ID, access_token="token-other")


@pytest.fixture
def admin():
    return CartOwner(user_id=ADMIN_ID, access_token="token-admin")


@pytest.fixture
def anonymous():
    return CartOwner(device_id=DEVICE_ID)


@pytest.fixture
def app_state(engine, session_factory, anonymous_store, change_bus):
    functions = RecordingFunctionsClient(session_factory())
    return AppState(
        engine=engine,
        session_factory=session_factory,
        anonymous_store=anonymous_store,
        functions_client=functions,
        change_bus=change_bus,
    )


@pytest.fixture
def api_client(app_state, catalog, monkeypatch):
    """TestClient over an app wired to the in-memory state."""
    from agency.api import deps
    from agency.main import create_app

    monkeypatch.setattr(deps, "OrderService", _order_service_without_celery)
    app = create_app(app_state)
    with TestClient(app) as client:
        yield client


def _order_service_without_celery(db, cart_service):
    return OrderService(db, cart_service, RecordingNotifications())


def user_headers(user_id=USER_ID, device_id=DEVICE_ID):
    headers = {"X-Device-Id": device_id, "Authorization": "Bearer token"}
    if user_id:
        headers["X-User-Id"] = user_id
    return headers
