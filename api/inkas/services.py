"""Process-wide service objects, built lazily from config.

Routes get them through FastAPI Depends so tests can override each one.
"""
from typing import List, Optional

from fastapi import HTTPException

from inkas.completeness import CompletenessChecker
from inkas.config import ADMIN_CHAT_ID, COMPLETENESS_HOUR, SUMMARY_HOUR, engine
from inkas.dates import is_ymd
from inkas.db import db_ready, ensure_tables
from inkas.device_api import DeviceApiClient
from inkas.jobs import daily_summary_job, run_and_report
from inkas.messages import TelegramSink
from inkas.repository import CollectionRepository, WorkerRepository
from inkas.scheduler import DailyScheduler

_repo: Optional[CollectionRepository] = None
_workers: Optional[WorkerRepository] = None
_client: Optional[DeviceApiClient] = None
_checker: Optional[CompletenessChecker] = None
_sink: Optional[TelegramSink] = None


def get_repository() -> CollectionRepository:
    global _repo
    if not db_ready():
        raise HTTPException(status_code=503, detail="db_disabled")
    if _repo is None:
        ensure_tables()
        _repo = CollectionRepository(engine)
    return _repo


def get_worker_repository() -> WorkerRepository:
    global _workers
    if not db_ready():
        raise HTTPException(status_code=503, detail="db_disabled")
    if _workers is None:
        ensure_tables()
        _workers = WorkerRepository(engine)
    return _workers


def get_client() -> DeviceApiClient:
    global _client
    if _client is None:
        _client = DeviceApiClient()
    return _client


def get_checker() -> CompletenessChecker:
    global _checker
    if _checker is None:
        _checker = CompletenessChecker(get_repository(), get_client())
    return _checker


def get_sink() -> TelegramSink:
    global _sink
    if _sink is None:
        _sink = TelegramSink()
    return _sink


def build_schedulers():
    """Completeness check at 13:00 and workers' summary at 08:00 (local time)."""
    checker = get_checker()
    repo = get_repository()
    workers = get_worker_repository()
    sink = get_sink()

    async def completeness_job():
        await run_and_report(checker, sink, ADMIN_CHAT_ID)

    async def summary_job():
        await daily_summary_job(repo, workers, sink, ADMIN_CHAT_ID)

    return [
        DailyScheduler(completeness_job, hour=COMPLETENESS_HOUR, name="completeness"),
        DailyScheduler(summary_job, hour=SUMMARY_HOUR, name="daily_summary"),
    ]


_schedulers: List[DailyScheduler] = []


def register_schedulers(items: List[DailyScheduler]) -> None:
    _schedulers[:] = list(items)


def get_schedulers() -> List[DailyScheduler]:
    return list(_schedulers)


def require_day(v: Optional[str], name: str = "date") -> str:
    s = str(v or "").strip()
    if not is_ymd(s):
        raise HTTPException(status_code=400, detail=f"{name} must be YYYY-MM-DD")
    return s
