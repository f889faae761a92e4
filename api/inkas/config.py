import logging
import os
from sqlalchemy import create_engine

logger = logging.getLogger("inkas_api")

LOG_LEVEL = (os.getenv("LOG_LEVEL") or "INFO").strip().upper()


def _env_float(name: str, default: float) -> float:
    try:
        return float((os.getenv(name) or str(default)).strip() or default)
    except ValueError:
        logger.warning("bad float in %s, using default %s", name, default)
        return float(default)


def _env_int(name: str, default: int) -> int:
    try:
        return int((os.getenv(name) or str(default)).strip() or default)
    except ValueError:
        logger.warning("bad int in %s, using default %s", name, default)
        return int(default)


# --- Soliton device API ---
SOLITON_API_BASE = (os.getenv("SOLITON_API_BASE") or "https://soliton.net.ua/water/api").strip().rstrip("/")
API_CONNECT_TIMEOUT = _env_float("API_CONNECT_TIMEOUT", 10)
API_READ_TIMEOUT = _env_float("API_READ_TIMEOUT", 30)

# --- Completeness check (backfill) ---
COMPLETENESS_DAYS_BACK = _env_int("COMPLETENESS_DAYS_BACK", 30)
COMPLETENESS_MAX_RETRIES = _env_int("COMPLETENESS_MAX_RETRIES", 3)
COMPLETENESS_RETRY_DELAY = _env_float("COMPLETENESS_RETRY_DELAY", 2)
COMPLETENESS_BATCH_SIZE = _env_int("COMPLETENESS_BATCH_SIZE", 5)
COMPLETENESS_DEVICE_DELAY = _env_float("COMPLETENESS_DEVICE_DELAY", 0.5)
COMPLETENESS_BATCH_DELAY = _env_float("COMPLETENESS_BATCH_DELAY", 1)
COMPLETENESS_DATE_DELAY = _env_float("COMPLETENESS_DATE_DELAY", 1)

# --- Schedules (civil time in SCHEDULE_TZ) ---
SCHEDULE_TZ = (os.getenv("SCHEDULE_TZ") or "Europe/Kyiv").strip()
COMPLETENESS_HOUR = _env_int("COMPLETENESS_HOUR", 13)
SUMMARY_HOUR = _env_int("SUMMARY_HOUR", 8)
SCHEDULERS_ENABLED = (os.getenv("SCHEDULERS_ENABLED") or "1").strip().lower() in ("1", "true", "yes", "on")

# --- Telegram push: API sends reports directly ---
TG_BOT_TOKEN = (os.getenv("TG_BOT_TOKEN") or os.getenv("BOT_TOKEN") or "").strip()
ADMIN_CHAT_ID = (os.getenv("ADMIN_CHAT_ID") or os.getenv("DEFAULT_CHAT_ID") or "").strip()
TG_MESSAGE_MAX_LENGTH = _env_int("TG_MESSAGE_MAX_LENGTH", 4000)
TG_CHUNK_DELAY = _env_float("TG_CHUNK_DELAY", 0.5)

# DB
DATABASE_URL = os.getenv("DATABASE_URL", "")
engine = create_engine(DATABASE_URL, pool_pre_ping=True) if DATABASE_URL else None
