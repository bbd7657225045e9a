# database.py
import logging

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Float,
    Integer,
    MetaData,
    String,
    Table,
    Text,
    create_engine,
    func,
    insert,
    select,
    update,
)
from sqlalchemy.exc import IntegrityError
from sqlalchemy.pool import StaticPool

import config
import simulated_db

logger = logging.getLogger(__name__)

metadata = MetaData()

vehicles = Table(
    "vehicles",
    metadata,
    Column("email", String(255), primary_key=True),
    Column("is_running", Boolean, nullable=False, default=False),
    Column("start_time", Float),
    Column("start_battery_level", Float),
    Column("drain_rate", Float, nullable=False),
    Column("battery_level", Integer, nullable=False),
    Column("notification_sent", Boolean, nullable=False, default=False),
    Column("latitude", Float),
    Column("longitude", Float),
    Column("last_updated", Float),
)

navigation = Table(
    "navigation",
    metadata,
    Column("email", String(255), primary_key=True),
    Column("is_navigating", Boolean, nullable=False, default=False),
    Column("is_running", Boolean, nullable=False, default=False),
    Column("start_lat", Float),
    Column("start_lng", Float),
    Column("end_lat", Float),
    Column("end_lng", Float),
    Column("vehicle_reached_station", Boolean, nullable=False, default=False),
    Column("arrival_run", Float),
    Column("route_distance_km", Float),
    Column("route_polyline", Text),
)

users = Table(
    "users",
    metadata,
    Column("email", String(255), primary_key=True),
    Column("fcm_token", Text),
)

stations = Table(
    "stations",
    metadata,
    Column("id", String(64), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("address", Text),
    Column("latitude", Float),
    Column("longitude", Float),
    Column("slots", JSON, nullable=False),
)


# --- 1. ENGINE ---
def make_engine(url=None):
    url = url or config.DATABASE_URL
    if url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": config.DB_TIMEOUT_SECONDS}}
        if url in ("sqlite://", "sqlite:///:memory:"):
            # one shared connection, otherwise every checkout sees an empty database
            kwargs["poolclass"] = StaticPool
        return create_engine(url, **kwargs)

    return create_engine(
        url,
        pool_pre_ping=True,
        pool_timeout=config.DB_TIMEOUT_SECONDS,
        connect_args=postgres_connect_args(),
    )


def postgres_connect_args(timeout=None):
    """psycopg2 arguments bounding connects, statements and row-lock waits."""
    timeout = config.DB_TIMEOUT_SECONDS if timeout is None else timeout
    ms = int(timeout * 1000)
    return {
        "connect_timeout": max(1, int(timeout)),
        "options": f"-c statement_timeout={ms} -c lock_timeout={ms}",
    }


def init_db(engine, seed=False):
    metadata.create_all(engine)
    logger.info("✅ Database schema ready.")
    if seed:
        seed_demo_data(engine)


def seed_demo_data(engine):
    with engine.begin() as conn:
        if conn.execute(select(func.count()).select_from(stations)).scalar() == 0:
            conn.execute(insert(stations), list(simulated_db.STATIONS_DB.values()))
            logger.info(f"✅ Seeded {len(simulated_db.STATIONS_DB)} demo stations.")
        if conn.execute(select(func.count()).select_from(users)).scalar() == 0:
            conn.execute(
                insert(users),
                [{"email": u["email"], "fcm_token": u["fcmToken"]} for u in simulated_db.USERS_DB.values()],
            )
            logger.info(f"✅ Seeded {len(simulated_db.USERS_DB)} demo users.")


# --- 2. GENERIC HELPERS ---
def _get_one(engine, table, key_clause):
    with engine.connect() as conn:
        row = conn.execute(select(table).where(key_clause)).first()
    return dict(row._mapping) if row else None


def _update(engine, table, key_clause, fields, only_if=None):
    """Field-merge update. `only_if` maps column names to the values they must
    currently hold; returns the number of rows changed."""
    stmt = update(table).where(key_clause).values(**fields)
    for column, expected in (only_if or {}).items():
        stmt = stmt.where(table.c[column] == expected)
    with engine.begin() as conn:
        return conn.execute(stmt).rowcount


def _upsert(engine, table, key_clause, defaults, fields):
    if _update(engine, table, key_clause, fields):
        return
    try:
        with engine.begin() as conn:
            conn.execute(insert(table).values(**{**defaults, **fields}))
    except IntegrityError:
        # inserted concurrently; merge on top of the winner
        _update(engine, table, key_clause, fields)


# --- 3. VEHICLES ---
def vehicle_defaults(email):
    return {
        "email": email,
        "is_running": False,
        "start_time": None,
        "start_battery_level": None,
        "drain_rate": config.DEFAULT_DRAIN_RATE,
        "battery_level": config.FULL_BATTERY,
        "notification_sent": False,
        "latitude": None,
        "longitude": None,
        "last_updated": None,
    }


def get_vehicle(engine, email):
    return _get_one(engine, vehicles, vehicles.c.email == email)


def update_vehicle(engine, email, fields, only_if=None):
    return _update(engine, vehicles, vehicles.c.email == email, fields, only_if)


def upsert_vehicle(engine, email, fields):
    _upsert(engine, vehicles, vehicles.c.email == email, vehicle_defaults(email), fields)


def begin_run(engine, email, fields):
    """Start a run unless one is already going. Returns False when the vehicle is running."""
    if update_vehicle(engine, email, fields, only_if={"is_running": False}):
        return True
    try:
        with engine.begin() as conn:
            conn.execute(insert(vehicles).values(**{**vehicle_defaults(email), **fields}))
    except IntegrityError:
        return False
    return True


def lower_battery_snapshot(engine, email, level, now):
    """Persist a running vehicle's projected level, never raising it."""
    stmt = (
        update(vehicles)
        .where(vehicles.c.email == email)
        .where(vehicles.c.is_running == True)  # noqa: E712
        .where(vehicles.c.battery_level > level)
        .values(battery_level=level, last_updated=now)
    )
    with engine.begin() as conn:
        return conn.execute(stmt).rowcount


# --- 4. NAVIGATION ---
def get_navigation(engine, email):
    return _get_one(engine, navigation, navigation.c.email == email)


def put_navigation(engine, email, fields):
    defaults = {
        "email": email,
        "is_navigating": False,
        "is_running": False,
        "vehicle_reached_station": False,
    }
    _upsert(engine, navigation, navigation.c.email == email, defaults, fields)


def update_navigation(engine, email, fields, only_if=None):
    return _update(engine, navigation, navigation.c.email == email, fields, only_if)


# --- 5. USERS ---
def list_user_emails(engine):
    with engine.connect() as conn:
        return list(conn.execute(select(users.c.email).order_by(users.c.email)).scalars())


def get_user(engine, email):
    return _get_one(engine, users, users.c.email == email)


def set_user_token(engine, email, token):
    _upsert(engine, users, users.c.email == email, {"email": email}, {"fcm_token": token})


# --- 6. STATIONS ---
def list_stations(engine):
    with engine.connect() as conn:
        rows = conn.execute(select(stations).order_by(stations.c.id)).all()
    return [dict(row._mapping) for row in rows]


def get_station(engine, station_id):
    return _get_one(engine, stations, stations.c.id == station_id)


def set_station_slots(engine, station_id, slots):
    return _update(engine, stations, stations.c.id == station_id, {"slots": slots})


def bulk_set_station_slots(engine, updates):
    """Write every (station_id, slots) pair in a single transaction."""
    with engine.begin() as conn:
        for station_id, slots in updates:
            conn.execute(update(stations).where(stations.c.id == station_id).values(slots=slots))
