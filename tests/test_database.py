import config
import database as db
from conftest import EMAIL


def test_postgres_connect_args_bound_statements_and_locks():
    assert db.postgres_connect_args(2.5) == {
        "connect_timeout": 2,
        "options": "-c statement_timeout=2500 -c lock_timeout=2500",
    }
    assert db.postgres_connect_args(0.2)["connect_timeout"] == 1


def test_postgres_engine_uses_configured_timeouts(monkeypatch):
    captured = {}

    def fake_create_engine(url, **kwargs):
        captured.update(kwargs, url=url)
        return "engine"

    monkeypatch.setattr(config, "DB_TIMEOUT_SECONDS", 4.0)
    monkeypatch.setattr(db, "create_engine", fake_create_engine)
    assert db.make_engine("postgresql://ev:ev@localhost/ev") == "engine"
    assert captured["pool_timeout"] == 4.0
    assert captured["connect_args"] == {
        "connect_timeout": 4,
        "options": "-c statement_timeout=4000 -c lock_timeout=4000",
    }


def test_conditional_update_reports_lost_claims(engine):
    db.upsert_vehicle(engine, EMAIL, {"is_running": True, "start_time": 10.0})
    assert db.update_vehicle(engine, EMAIL, {"is_running": False}, only_if={"start_time": 10.0}) == 1
    assert db.update_vehicle(engine, EMAIL, {"is_running": False}, only_if={"is_running": True}) == 0
