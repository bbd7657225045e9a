# config.py
import os
from dotenv import load_dotenv

from errors import ConfigError

load_dotenv()

# --- Database ---
DATABASE_URL = os.getenv("DATABASE_URL")

if not DATABASE_URL:
    DB_HOST = os.getenv("DB_HOST", "127.0.0.1")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_DATABASE", "ev_simulator")
    DB_USER = os.getenv("DB_USERNAME", "postgres")
    DB_PASS = os.getenv("DB_PASSWORD", "root")

    DATABASE_URL = f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"

# Render/Heroku style URLs
if DATABASE_URL.startswith("postgres://"):
    DATABASE_URL = DATABASE_URL.replace("postgres://", "postgresql://", 1)

DB_TIMEOUT_SECONDS = float(os.getenv("DB_TIMEOUT_SECONDS", "10"))
HTTP_TIMEOUT_SECONDS = float(os.getenv("HTTP_TIMEOUT_SECONDS", "10"))

# --- Simulation ---
FULL_BATTERY = 100
DEFAULT_DRAIN_RATE = float(os.getenv("DEFAULT_DRAIN_RATE", "2.0"))
LOW_BATTERY_THRESHOLD = int(os.getenv("LOW_BATTERY_THRESHOLD", "20"))
ARRIVAL_RADIUS_KM = float(os.getenv("ARRIVAL_RADIUS_KM", "0.05"))

if DEFAULT_DRAIN_RATE <= 0:
    raise ConfigError(f"DEFAULT_DRAIN_RATE must be positive, got {DEFAULT_DRAIN_RATE}")

# --- Push notifications ---
FIREBASE_SERVICE_ACCOUNT_KEY = os.getenv("FIREBASE_SERVICE_ACCOUNT_KEY", "").strip()
FIREBASE_DATABASE_URL = os.getenv("FIREBASE_DATABASE_URL", "").strip()

# --- Routing ---
GOOGLE_MAPS_API_KEY = os.getenv("GOOGLE_MAPS_API_KEY")
OSRM_BASE_URL = os.getenv("OSRM_BASE_URL", "https://router.project-osrm.org").rstrip("/")
FALLBACK_SPEED_KMH = 40

# --- Server ---
SEED_DEMO_DATA = os.getenv("SEED_DEMO_DATA", "true").strip().lower() in ("1", "true", "yes")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", "8001"))
