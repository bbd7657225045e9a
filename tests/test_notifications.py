import json

import pytest

import config
import notifications
from errors import ConfigError

SERVICE_ACCOUNT = {"type": "service_account", "project_id": "ev-demo"}


def test_low_battery_message():
    message = notifications.low_battery_message("driver1@example.com", 17)
    assert message["title"] == "Low Battery Alert!"
    assert message["body"] == "Your EV's battery is at 17%. Find a charging station soon."
    assert message["data"]["batteryLevel"] == "17"
    assert message["data"]["screen"] == "charging_station_finder"


def test_parse_service_account_plain_json():
    assert notifications.parse_service_account(json.dumps(SERVICE_ACCOUNT)) == SERVICE_ACCOUNT


def test_parse_service_account_quoted_with_escaped_newlines():
    raw = '"' + json.dumps(SERVICE_ACCOUNT).replace(", ", ",\\n") + '"'
    assert notifications.parse_service_account(raw) == SERVICE_ACCOUNT


def test_parse_service_account_rejects_garbage():
    with pytest.raises(ConfigError):
        notifications.parse_service_account("not json at all")


def test_default_notifier_without_credentials_only_logs(monkeypatch):
    monkeypatch.setattr(config, "FIREBASE_SERVICE_ACCOUNT_KEY", "")
    notifier = notifications.default_notifier()
    assert isinstance(notifier, notifications.LogOnlyNotifier)
    assert notifier.send("token-123456789", "t", "b", {}) is None


def test_firebase_app_is_not_initialized_without_credentials(monkeypatch):
    monkeypatch.setattr(config, "FIREBASE_SERVICE_ACCOUNT_KEY", "")
    monkeypatch.setattr(notifications.firebase_admin, "initialize_app", pytest.fail)
    assert notifications.firebase_app() is None
