# live_mirror.py
import logging

from firebase_admin import db as rtdb

from notifications import firebase_app

logger = logging.getLogger(__name__)


def mirror_key(email):
    # RTDB keys cannot contain '.'
    return f"vehicles/{email.replace('.', ',')}"


class FirebaseLiveMirror:
    """Mirrors the live vehicle fields into the Firebase Realtime Database."""

    def __init__(self, app):
        self.app = app

    def _ref(self, email):
        return rtdb.reference(mirror_key(email), app=self.app)

    def set(self, email, data):
        self._ref(email).set(data)

    def update(self, email, fields):
        self._ref(email).update(fields)


class LogOnlyMirror:
    """Used when the Realtime Database is not configured."""

    def set(self, email, data):
        logger.debug(f"RTDB disabled; set ignored for {mirror_key(email)}: {data}")

    def update(self, email, fields):
        logger.debug(f"RTDB disabled; update ignored for {mirror_key(email)}: {fields}")


def default_mirror():
    app = firebase_app()
    if app is None or not app.options.get("databaseURL"):
        logger.warning("⚠️ Realtime Database not configured. Live mirror writes are logged only.")
        return LogOnlyMirror()
    return FirebaseLiveMirror(app)
