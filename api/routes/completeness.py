import asyncio

from fastapi import APIRouter, Depends, HTTPException

from inkas.completeness import CompletenessChecker
from inkas.config import ADMIN_CHAT_ID, logger
from inkas.jobs import run_and_report
from inkas.reports import format_run_report
from inkas.schemas import FillIn
from inkas.services import get_checker, get_schedulers, get_sink, require_day

router = APIRouter()

# keep references, the loop only holds weak ones
_BACKGROUND = set()


@router.post("/completeness/run")
async def completeness_run(wait: bool = True, checker: CompletenessChecker = Depends(get_checker)):
    if checker.running:
        raise HTTPException(status_code=409, detail="already running")

    if not wait:
        task = asyncio.create_task(run_and_report(checker, get_sink(), ADMIN_CHAT_ID))
        _BACKGROUND.add(task)
        task.add_done_callback(_BACKGROUND.discard)
        logger.info("completeness check started in background")
        return {"ok": True, "started": True}

    run = await checker.run()
    return {**run.model_dump(), "message": format_run_report(run)}


@router.post("/completeness/fill")
async def completeness_fill(payload: FillIn, checker: CompletenessChecker = Depends(get_checker)):
    day = require_day(payload.date)
    if checker.running:
        raise HTTPException(status_code=409, detail="already running")
    run = await checker.fill_date(day)
    return {**run.model_dump(), "message": format_run_report(run)}


@router.get("/completeness/schedule")
def completeness_schedule():
    items = []
    for s in get_schedulers():
        items.append({
            "name": s.name,
            "time": f"{s.hour:02d}:{s.minute:02d}",
            "tz": s.tz.key,
            "next_run_at": s.next_run_at().isoformat(),
            "busy": s.busy,
            "runs": s.runs,
            "failures": s.failures,
        })
    return {"items": items}
