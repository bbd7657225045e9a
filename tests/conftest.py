import threading

import pytest
from fastapi.testclient import TestClient

import database as db
import live_mirror
import routing
from main import create_app
from simulation import VehicleSimulator

EMAIL = "driver1@example.com"


class FakeClock:
    def __init__(self, start=1_700_000_000.0):
        self.now = start

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


class RecordingNotifier:
    def __init__(self, fail=False):
        self.fail = fail
        self.sent = []
        self._lock = threading.Lock()

    def send(self, token, title, body, data):
        with self._lock:
            self.sent.append({"token": token, "title": title, "body": body, "data": data})
        if self.fail:
            raise RuntimeError("FCM unavailable")
        return "projects/demo/messages/1"


class FakeRealtimeDatabase:
    """Stands in for firebase_admin.db: records every write per path."""

    def __init__(self):
        self.data = {}
        self.writes = []
        self._lock = threading.Lock()

    def reference(self, path, app=None):
        return FakeReference(self, path)


class FakeReference:
    def __init__(self, database, path):
        self.database = database
        self.path = path

    def set(self, value):
        with self.database._lock:
            self.database.data[self.path] = dict(value)
            self.database.writes.append(("set", self.path, dict(value)))

    def update(self, value):
        with self.database._lock:
            self.database.data.setdefault(self.path, {}).update(value)
            self.database.writes.append(("update", self.path, dict(value)))


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def rtdb(monkeypatch):
    fake = FakeRealtimeDatabase()
    monkeypatch.setattr(live_mirror.rtdb, "reference", fake.reference)
    return fake


@pytest.fixture
def mirror(rtdb):
    return live_mirror.FirebaseLiveMirror(app=None)


@pytest.fixture
def engine():
    engine = db.make_engine("sqlite://")
    db.init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def sim(engine, mirror, notifier, clock):
    db.set_user_token(engine, EMAIL, "token-abc")
    return VehicleSimulator(engine, mirror, notifier, clock)


@pytest.fixture
def client(engine, mirror, notifier, clock):
    async def fake_route(start_lat, start_lng, end_lat, end_lng):
        return routing.straight_line_route(start_lat, start_lng, end_lat, end_lng)

    app = create_app(
        engine=engine,
        mirror=mirror,
        notifier=notifier,
        clock=clock,
        route_fetcher=fake_route,
        seed=True,
    )
    with TestClient(app) as c:
        yield c
