# simulation.py
"""Per-user vehicle simulation.

Nothing here keeps state between requests: every call loads the vehicle and
navigation records, derives the live battery level from the elapsed wall-clock
time, and writes back only what changed. One-shot flags (`notification_sent`,
`vehicle_reached_station`) are claimed with conditional updates so overlapping
polls fire each side effect at most once per run.
"""
import logging
import math
import time

import config
import database as db
from errors import ConflictError, NotFoundError, SimulatorValidationError
from notifications import low_battery_message

logger = logging.getLogger(__name__)


# --- 1. MATH HELPERS ---
def haversine(lat1, lon1, lat2, lon2):
    R = 6371
    dLat = math.radians(lat2 - lat1)
    dLon = math.radians(lon2 - lon1)
    a = math.sin(dLat/2)**2 + math.cos(math.radians(lat1)) * math.cos(math.radians(lat2)) * math.sin(dLon/2)**2
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return R * c


def round_level(value):
    # half up, not banker's rounding
    return int(math.floor(value + 0.5))


def project_battery_level(start_level, drain_rate, elapsed_seconds):
    """Battery level after draining for `elapsed_seconds` at `drain_rate` percent
    per second, clamped to [0, FULL_BATTERY]. `drain_rate` must be positive;
    it is validated before it is ever stored."""
    elapsed_seconds = max(0.0, elapsed_seconds)
    level = round_level(start_level - elapsed_seconds * drain_rate)
    return max(0, min(config.FULL_BATTERY, level))


def has_arrived(lat, lng, end_lat, end_lng, radius_km=None):
    if radius_km is None:
        radius_km = config.ARRIVAL_RADIUS_KM
    return haversine(lat, lng, end_lat, end_lng) < radius_km


# --- 2. VALIDATION ---
def _require_email(email):
    if email is None or not str(email).strip():
        raise SimulatorValidationError("Email is required.")
    return str(email).strip()


def _require(value, name):
    if value is None:
        raise SimulatorValidationError(f"{name} is required.")
    return value


def _check_battery(value, name):
    _require(value, name)
    if not 0 <= value <= config.FULL_BATTERY:
        raise SimulatorValidationError(f"{name} must be between 0 and {config.FULL_BATTERY}.")
    return float(value)


def _check_drain_rate(value):
    _require(value, "drainRate")
    if value <= 0:
        raise SimulatorValidationError("drainRate must be greater than 0.")
    return float(value)


def _check_position(latitude, longitude):
    _require(latitude, "latitude")
    _require(longitude, "longitude")
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise SimulatorValidationError("latitude/longitude out of range.")
    return float(latitude), float(longitude)


def check_navigation_request(email, start_lat, start_lng, end_lat, end_lng):
    email = _require_email(email)
    start_lat, start_lng = _check_position(start_lat, start_lng)
    end_lat, end_lng = _check_position(end_lat, end_lng)
    return email, start_lat, start_lng, end_lat, end_lng


def _run_now(func, *args):
    func(*args)


# --- 3. SIMULATOR ---
class VehicleSimulator:
    def __init__(self, engine, mirror, notifier, clock=time.time):
        self.engine = engine
        self.mirror = mirror
        self.notifier = notifier
        self.clock = clock

    def _mirror(self, email, fields, replace=False):
        try:
            if replace:
                self.mirror.set(email, {"email": email, **fields})
            else:
                self.mirror.update(email, fields)
        except Exception as e:
            logger.error(f"❌ Live mirror write failed for {email}: {e}")

    def _current_level(self, vehicle, now):
        start_level = vehicle["start_battery_level"]
        if start_level is None or vehicle["start_time"] is None:
            return vehicle["battery_level"]
        level = project_battery_level(start_level, vehicle["drain_rate"], now - vehicle["start_time"])
        # never report more than an earlier poll already persisted
        return min(level, vehicle["battery_level"])

    def _end_navigation_run(self, email):
        db.update_navigation(self.engine, email, {"is_running": False}, only_if={"is_running": True})

    @staticmethod
    def _snapshot(email, is_running, battery_level, vehicle=None, arrival_completed=False):
        return {
            "email": email,
            "isRunning": is_running,
            "batteryLevel": battery_level,
            "latitude": vehicle["latitude"] if vehicle else None,
            "longitude": vehicle["longitude"] if vehicle else None,
            "arrivalCompleted": arrival_completed,
        }

    # --- run lifecycle ---
    def start(self, email, initial_battery=None, drain_rate=None):
        email = _require_email(email)
        drain_rate = config.DEFAULT_DRAIN_RATE if drain_rate is None else _check_drain_rate(drain_rate)
        if initial_battery is None:
            vehicle = db.get_vehicle(self.engine, email)
            if vehicle and vehicle["battery_level"] > 0:
                start_level = float(vehicle["battery_level"])
            else:
                start_level = float(config.FULL_BATTERY)
        else:
            start_level = _check_battery(initial_battery, "initialBattery")

        now = self.clock()
        level = project_battery_level(start_level, drain_rate, 0)
        started = db.begin_run(self.engine, email, {
            "is_running": True,
            "start_time": now,
            "start_battery_level": start_level,
            "drain_rate": drain_rate,
            "battery_level": level,
            "notification_sent": False,
            "last_updated": now,
        })
        if not started:
            raise ConflictError(f"A car is already running for {email}. Stop it first.")

        db.update_navigation(self.engine, email, {"is_running": True}, only_if={"is_navigating": True})
        self._mirror(email, {"isRunning": True, "batteryLevel": level}, replace=True)
        logger.info(f"🚗 Run started for {email} at {level}% draining {drain_rate}%/s")
        return {"message": f"EV car simulation started for {email}."}

    def stop(self, email):
        email = _require_email(email)
        vehicle = db.get_vehicle(self.engine, email)
        if not vehicle or not vehicle["is_running"]:
            raise ConflictError("Car is not running.")

        now = self.clock()
        level = self._current_level(vehicle, now)
        stopped = db.update_vehicle(
            self.engine, email,
            {"is_running": False, "battery_level": level, "last_updated": now},
            only_if={"is_running": True, "start_time": vehicle["start_time"]},
        )
        if not stopped:
            raise ConflictError("Car is not running.")

        self._end_navigation_run(email)
        self._mirror(email, {"isRunning": False, "batteryLevel": level})
        logger.info(f"🛑 Run stopped for {email} at {level}%")
        return {"message": f"EV car stopped for {email}."}

    def reset(self, email):
        email = _require_email(email)
        db.upsert_vehicle(self.engine, email, {
            "is_running": False,
            "start_time": None,
            "start_battery_level": None,
            "drain_rate": config.DEFAULT_DRAIN_RATE,
            "battery_level": config.FULL_BATTERY,
            "notification_sent": False,
            "latitude": None,
            "longitude": None,
            "last_updated": self.clock(),
        })
        self._end_navigation_run(email)
        self._mirror(email, {
            "isRunning": False,
            "batteryLevel": config.FULL_BATTERY,
            "latitude": None,
            "longitude": None,
        }, replace=True)
        logger.info(f"🔄 Vehicle reset for {email}")
        return {"message": f"Vehicle state reset for {email}."}

    # --- polling ---
    def status(self, email, schedule=None):
        """Project the battery, then run arrival, low-battery and depletion
        checks in that order. `schedule(func, *args)` defers the push dispatch;
        by default it runs inline."""
        email = _require_email(email)
        vehicle = db.get_vehicle(self.engine, email)
        navigation = db.get_navigation(self.engine, email)
        arrival_completed = bool(navigation and navigation["vehicle_reached_station"])

        if vehicle is None:
            return self._snapshot(email, False, config.FULL_BATTERY, arrival_completed=arrival_completed)
        if not vehicle["is_running"]:
            return self._snapshot(email, False, vehicle["battery_level"], vehicle, arrival_completed)

        now = self.clock()
        level = self._current_level(vehicle, now)

        if self._detect_arrival(email, vehicle, navigation, level, now):
            return self._snapshot(email, False, level, vehicle, True)

        if level <= config.LOW_BATTERY_THRESHOLD and not vehicle["notification_sent"]:
            self._claim_low_battery_alert(email, vehicle, level, schedule or _run_now)

        if level <= 0:
            depleted = db.update_vehicle(
                self.engine, email,
                {"is_running": False, "battery_level": 0, "last_updated": now},
                only_if={"is_running": True, "start_time": vehicle["start_time"]},
            )
            if depleted:
                self._end_navigation_run(email)
                logger.info(f"🪫 Battery depleted for {email}. Stopping car.")
            self._mirror(email, {"isRunning": False, "batteryLevel": 0})
            return self._snapshot(email, False, 0, vehicle, arrival_completed)

        db.lower_battery_snapshot(self.engine, email, level, now)
        self._mirror(email, {"batteryLevel": level})
        return self._snapshot(email, True, level, vehicle, arrival_completed)

    def _detect_arrival(self, email, vehicle, navigation, level, now):
        if not navigation or not navigation["is_navigating"]:
            return False
        if navigation["vehicle_reached_station"]:
            # the claiming poll may not have stopped this run yet
            return navigation["arrival_run"] == vehicle["start_time"]
        if vehicle["latitude"] is None or vehicle["longitude"] is None:
            return False
        if navigation["end_lat"] is None or navigation["end_lng"] is None:
            return False
        if not has_arrived(vehicle["latitude"], vehicle["longitude"], navigation["end_lat"], navigation["end_lng"]):
            return False

        claimed = db.update_navigation(
            self.engine, email,
            {"vehicle_reached_station": True, "is_running": False, "arrival_run": vehicle["start_time"]},
            only_if={"vehicle_reached_station": False, "is_navigating": True},
        )
        if not claimed:
            # a concurrent poll got there first and owns the side effects
            return True

        db.update_vehicle(
            self.engine, email,
            {"is_running": False, "battery_level": level, "last_updated": now},
            only_if={"is_running": True, "start_time": vehicle["start_time"]},
        )
        self._mirror(email, {"isRunning": False, "batteryLevel": level})
        logger.info(f"🏁 {email} reached the destination at {level}%")
        return True

    def _claim_low_battery_alert(self, email, vehicle, level, schedule):
        claimed = db.update_vehicle(
            self.engine, email,
            {"notification_sent": True},
            only_if={"notification_sent": False, "is_running": True, "start_time": vehicle["start_time"]},
        )
        if claimed:
            schedule(self.send_low_battery_alert, email, level)
        return bool(claimed)

    def send_low_battery_alert(self, email, battery_level):
        """Look up the user's push token and send the alert. Failures are logged;
        the run's flag is already set so they are never retried."""
        try:
            user = db.get_user(self.engine, email)
            token = user["fcm_token"] if user else None
            if not token:
                logger.info(f"No push token for {email}; low battery alert skipped.")
                return False

            message = low_battery_message(email, battery_level)
            self.notifier.send(token, message["title"], message["body"], message["data"])
            logger.info(f"✅ Sent low battery notification to {email}")
            return True
        except Exception as e:
            logger.error(f"❌ Error sending push notification to {email}: {e}")
            return False

    # --- manual overrides ---
    def update_location(self, email, latitude, longitude):
        email = _require_email(email)
        latitude, longitude = _check_position(latitude, longitude)
        db.upsert_vehicle(self.engine, email, {
            "latitude": latitude,
            "longitude": longitude,
            "last_updated": self.clock(),
        })
        self._mirror(email, {"latitude": latitude, "longitude": longitude})
        return {"message": f"Location updated for {email}."}

    def update_battery(self, email, battery_level):
        email = _require_email(email)
        level = round_level(_check_battery(battery_level, "batteryLevel"))
        fields = {"battery_level": level, "last_updated": self.clock()}
        if not db.update_vehicle(self.engine, email, fields, only_if={"is_running": False}):
            if db.get_vehicle(self.engine, email):
                raise ConflictError("Cannot change the battery level while the car is running.")
            db.upsert_vehicle(self.engine, email, fields)
        self._mirror(email, {"batteryLevel": level})
        return {"message": f"Battery level set to {level}% for {email}."}

    def update_drain_rate(self, email, drain_rate):
        email = _require_email(email)
        drain_rate = _check_drain_rate(drain_rate)
        vehicle = db.get_vehicle(self.engine, email)
        if not vehicle or not vehicle["is_running"]:
            raise ConflictError("Car is not running.")

        # rebase the run so the new rate only applies from now on
        now = self.clock()
        level = self._current_level(vehicle, now)
        updated = db.update_vehicle(
            self.engine, email,
            {
                "start_time": now,
                "start_battery_level": float(level),
                "drain_rate": drain_rate,
                "battery_level": level,
                "last_updated": now,
            },
            only_if={"is_running": True, "start_time": vehicle["start_time"]},
        )
        if not updated:
            raise ConflictError("Car is not running.")
        logger.info(f"Drain rate for {email} changed to {drain_rate}%/s at {level}%")
        return {"message": f"Drain rate updated to {drain_rate}%/s for {email}."}

    # --- navigation ---
    def set_navigation_target(self, email, start_lat, start_lng, end_lat, end_lng, route=None):
        email, start_lat, start_lng, end_lat, end_lng = check_navigation_request(
            email, start_lat, start_lng, end_lat, end_lng,
        )
        vehicle = db.get_vehicle(self.engine, email)
        db.put_navigation(self.engine, email, {
            "is_navigating": True,
            "is_running": bool(vehicle and vehicle["is_running"]),
            "start_lat": start_lat,
            "start_lng": start_lng,
            "end_lat": end_lat,
            "end_lng": end_lng,
            "vehicle_reached_station": False,
            "arrival_run": None,
            "route_distance_km": route["distance_km"] if route else None,
            "route_polyline": route["polyline"] if route else None,
        })
        logger.info(f"🧭 Navigation set for {email} to ({end_lat}, {end_lng})")
        return self.navigation_status(email)

    def navigation_status(self, email):
        email = _require_email(email)
        navigation = db.get_navigation(self.engine, email)
        if navigation is None:
            return {
                "isNavigating": False,
                "isRunning": False,
                "start_lat": None,
                "start_lng": None,
                "end_lat": None,
                "end_lng": None,
                "vehicleReachedStation": False,
            }
        return {
            "isNavigating": navigation["is_navigating"],
            "isRunning": navigation["is_running"],
            "start_lat": navigation["start_lat"],
            "start_lng": navigation["start_lng"],
            "end_lat": navigation["end_lat"],
            "end_lng": navigation["end_lng"],
            "vehicleReachedStation": navigation["vehicle_reached_station"],
            "routeDistanceKm": navigation["route_distance_km"],
            "polyline": navigation["route_polyline"],
        }

    def end_navigation(self, email):
        """Client acknowledgment: the only way an arrival is retired."""
        email = _require_email(email)
        cleared = db.update_navigation(self.engine, email, {
            "is_navigating": False,
            "is_running": False,
            "vehicle_reached_station": False,
            "arrival_run": None,
        })
        if not cleared:
            raise NotFoundError(f"No navigation found for {email}.")
        return {"message": f"Navigation ended for {email}."}

    # --- users ---
    def register_token(self, email, token):
        email = _require_email(email)
        if not token or not str(token).strip():
            raise SimulatorValidationError("fcmToken is required.")
        db.set_user_token(self.engine, email, str(token).strip())
        return {"message": f"Push token registered for {email}."}

    def list_users(self):
        return {"users": db.list_user_emails(self.engine)}
