from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from inkas.dates import current_week_range, month_range, previous_month, previous_week_range, today, yesterday
from inkas.jobs import send_daily_summary_to_all_workers
from inkas.messages import TelegramSink
from inkas.reports import format_daily_summary, format_period_summary
from inkas.repository import CollectionRepository, WorkerRepository
from inkas.services import get_repository, get_sink, get_worker_repository, require_day

router = APIRouter()


@router.get("/reports/daily")
def report_daily(date: Optional[str] = None, repo: CollectionRepository = Depends(get_repository)):
    day = require_day(date) if date else yesterday()
    out = format_daily_summary(day, repo.list_range(day, day))
    return {"date": day, **out}


@router.get("/reports/period")
def report_period(
    kind: Optional[str] = None,
    start: Optional[str] = None,
    end: Optional[str] = None,
    repo: CollectionRepository = Depends(get_repository),
):
    if kind == "week":
        s, e = previous_week_range()
        title = "Тижневий звіт з інкасації"
    elif kind == "month":
        s, e = month_range(*previous_month())
        title = "Місячний звіт з інкасації"
    elif kind == "current_week":
        s, e = current_week_range()
        title = "Тижневий звіт з інкасації (поточний тиждень)"
    elif kind == "current_month":
        t = today()
        s, e = month_range(t.year, t.month)
        title = "Місячний звіт з інкасації (поточний місяць)"
    elif kind is None:
        s = require_day(start, "start")
        e = require_day(end, "end")
        if e < s:
            raise HTTPException(status_code=400, detail="end must be >= start")
        title = "Звіт з інкасації за період"
    else:
        raise HTTPException(status_code=400, detail="kind must be week, month, current_week or current_month")

    out = format_period_summary(s, e, repo.list_range(s, e), title=title)
    return {"start": s, "end": e, **out}


@router.post("/reports/daily/send-all")
async def report_daily_send_all(
    date: Optional[str] = None,
    repo: CollectionRepository = Depends(get_repository),
    workers: WorkerRepository = Depends(get_worker_repository),
    sink: TelegramSink = Depends(get_sink),
):
    day = require_day(date) if date else yesterday()
    if not sink.ready():
        raise HTTPException(status_code=503, detail="telegram_disabled")
    result = await send_daily_summary_to_all_workers(repo, workers, sink, day)
    return {"date": day, **result}
