import asyncio
import logging

from fastapi import FastAPI

from inkas.config import LOG_LEVEL, SCHEDULERS_ENABLED, SOLITON_API_BASE, logger
from inkas.db import db_ready, ensure_tables
from inkas.services import build_schedulers, get_schedulers, get_sink, register_schedulers
from routes.collections import router as collections_router
from routes.completeness import router as completeness_router
from routes.devices import router as devices_router
from routes.reports import router as reports_router


app = FastAPI(title="Inkas Backend API")
app.include_router(collections_router)
app.include_router(completeness_router)
app.include_router(reports_router)
app.include_router(devices_router)

_TASKS = []


@app.on_event("startup")
async def _startup():
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    if not db_ready():
        logger.warning("[startup] DATABASE_URL is not set, storage and schedulers disabled")
        return
    try:
        ensure_tables()
    except Exception as e:
        logger.error("[startup] ensure_tables failed: %s", e)
        return
    if not SCHEDULERS_ENABLED:
        logger.info("[startup] schedulers disabled")
        return
    schedulers = build_schedulers()
    register_schedulers(schedulers)
    for s in schedulers:
        _TASKS.append(asyncio.create_task(s.start()))


@app.on_event("shutdown")
async def _shutdown():
    for s in get_schedulers():
        await s.stop()
    for t in _TASKS:
        t.cancel()
    await asyncio.gather(*_TASKS, return_exceptions=True)
    _TASKS.clear()
    register_schedulers([])


@app.get("/health")
def health():
    return {
        "ok": True,
        "api_base": SOLITON_API_BASE,
        "db": "ok" if db_ready() else "disabled",
        "telegram": "ok" if get_sink().ready() else "disabled",
        "schedulers": [s.name for s in get_schedulers()],
    }
