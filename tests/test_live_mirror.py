from types import SimpleNamespace

import config
import live_mirror


def test_mirror_key_encodes_dots():
    assert live_mirror.mirror_key("driver1@example.com") == "vehicles/driver1@example,com"
    assert live_mirror.mirror_key("a.b.c@mail.co.in") == "vehicles/a,b,c@mail,co,in"


def test_set_replaces_and_update_merges(rtdb):
    mirror = live_mirror.FirebaseLiveMirror(app=None)
    mirror.set("driver1@example.com", {"email": "driver1@example.com", "isRunning": True, "batteryLevel": 100})
    mirror.update("driver1@example.com", {"batteryLevel": 64})

    key = "vehicles/driver1@example,com"
    assert rtdb.data[key] == {"email": "driver1@example.com", "isRunning": True, "batteryLevel": 64}
    assert [op for op, path, _ in rtdb.writes if path == key] == ["set", "update"]


def test_default_mirror_without_credentials_only_logs(monkeypatch, rtdb):
    monkeypatch.setattr(config, "FIREBASE_SERVICE_ACCOUNT_KEY", "")
    mirror = live_mirror.default_mirror()
    assert isinstance(mirror, live_mirror.LogOnlyMirror)

    mirror.set("driver1@example.com", {"isRunning": False})
    mirror.update("driver1@example.com", {"batteryLevel": 50})
    assert rtdb.writes == []


def test_default_mirror_needs_database_url(monkeypatch):
    monkeypatch.setattr(live_mirror, "firebase_app", lambda: SimpleNamespace(options={}))
    assert isinstance(live_mirror.default_mirror(), live_mirror.LogOnlyMirror)

    app = SimpleNamespace(options={"databaseURL": "https://ev-demo.firebaseio.com"})
    monkeypatch.setattr(live_mirror, "firebase_app", lambda: app)
    mirror = live_mirror.default_mirror()
    assert isinstance(mirror, live_mirror.FirebaseLiveMirror)
    assert mirror.app is app


def test_mirror_write_failure_does_not_fail_the_poll(sim, clock, monkeypatch):
    def unavailable(path, app=None):
        raise RuntimeError("RTDB unavailable")

    monkeypatch.setattr(live_mirror.rtdb, "reference", unavailable)
    sim.start("driver1@example.com", initial_battery=100, drain_rate=2)
    clock.advance(5)
    assert sim.status("driver1@example.com")["batteryLevel"] == 90
