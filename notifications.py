# notifications.py
import json
import logging
import re

import firebase_admin
from firebase_admin import credentials, messaging

import config
from errors import ConfigError

logger = logging.getLogger(__name__)


def low_battery_message(email, battery_level):
    return {
        "title": "Low Battery Alert!",
        "body": f"Your EV's battery is at {battery_level}%. Find a charging station soon.",
        "data": {
            "batteryLevel": str(battery_level),
            "email": email,
            "screen": "charging_station_finder",
        },
    }


def parse_service_account(raw):
    """Parse the service-account JSON from the environment. Accepts the value
    wrapped in quotes with escaped newlines, as some hosts store it."""
    try:
        return json.loads(raw)
    except json.JSONDecodeError:
        stripped = re.sub(r'^\s*"(.*)"\s*$', r"\1", raw, flags=re.S).replace("\\n", "\n")
        try:
            return json.loads(stripped)
        except json.JSONDecodeError as e:
            raise ConfigError("Unable to parse FIREBASE_SERVICE_ACCOUNT_KEY as JSON.") from e


def firebase_app():
    """The shared Firebase app, initialized on first use. None when no service
    account is configured."""
    if not config.FIREBASE_SERVICE_ACCOUNT_KEY:
        return None
    try:
        return firebase_admin.get_app()
    except ValueError:
        pass

    service_account = parse_service_account(config.FIREBASE_SERVICE_ACCOUNT_KEY)
    options = {"httpTimeout": config.HTTP_TIMEOUT_SECONDS}
    database_url = config.FIREBASE_DATABASE_URL
    if not database_url and service_account.get("project_id"):
        database_url = f"https://{service_account['project_id']}.firebaseio.com"
    if database_url:
        options["databaseURL"] = database_url

    app = firebase_admin.initialize_app(credentials.Certificate(service_account), options)
    logger.info("✅ Firebase Admin SDK initialized.")
    return app


class FirebaseNotifier:
    """Sends push notifications through Firebase Cloud Messaging."""

    def __init__(self, app):
        self.app = app

    def send(self, token, title, body, data):
        message = messaging.Message(
            notification=messaging.Notification(title=title, body=body),
            data=data,
            token=token,
        )
        return messaging.send(message, app=self.app)


class LogOnlyNotifier:
    """Used when no Firebase credentials are configured."""

    def send(self, token, title, body, data):
        logger.warning(f"⚠️ Push disabled; would send '{title}' to token {token[:8]}...")
        return None


def default_notifier():
    app = firebase_app()
    if app is None:
        logger.warning("⚠️ FIREBASE_SERVICE_ACCOUNT_KEY not set. Push notifications are logged only.")
        return LogOnlyNotifier()
    return FirebaseNotifier(app)
