import threading
import time

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from inkas.config import DATABASE_URL, engine, logger
from inkas.models import Base

# --- schema init guard (prevents concurrent DDL from parallel requests) ---
_SCHEMA_INIT_LOCK = threading.Lock()
_SCHEMA_INIT_DONE = set()


def db_ready() -> bool:
    return engine is not None and bool(DATABASE_URL)


def ensure_tables(eng=None) -> None:
    """Create the schema once per process (per database URL).

    Called from startup and from every entry point that touches storage, so it
    is guarded by a lock and cheap after the first success.
    """
    eng = eng if eng is not None else engine
    if eng is None:
        return
    key = str(eng.url)
    if key in _SCHEMA_INIT_DONE:
        return
    with _SCHEMA_INIT_LOCK:
        if key in _SCHEMA_INIT_DONE:
            return
        # DDL may fail if several workers start at once. Retry a few times.
        for attempt in range(1, 6):
            try:
                Base.metadata.create_all(eng)
                _SCHEMA_INIT_DONE.add(key)
                return
            except SQLAlchemyError as e:
                if attempt >= 5:
                    logger.exception("ensure_tables failed after retries")
                    raise
                logger.warning("ensure_tables retry %s after error: %s", attempt, str(e))
                time.sleep(0.2 * attempt)


def ping(eng=None) -> None:
    eng = eng if eng is not None else engine
    if eng is None:
        raise RuntimeError("DB is not configured")
    with eng.connect() as conn:
        conn.execute(text("SELECT 1"))
