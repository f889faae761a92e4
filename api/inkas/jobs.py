import asyncio
from typing import Any, Dict, Optional

from inkas.config import logger
from inkas.dates import yesterday
from inkas.messages import send_chunked_message
from inkas.reports import format_daily_summary, format_run_report
from inkas.schemas import ReconciliationRun


async def notify(sink, chat_id: Optional[str], text_msg: str) -> bool:
    """Best effort: a notification failure must not break a scheduled job."""
    if sink is None or not chat_id:
        return False
    try:
        await send_chunked_message(sink, chat_id, text_msg)
        return True
    except Exception:
        logger.exception("notify failed chat_id=%s", chat_id)
        return False


async def run_and_report(checker, sink=None, chat_id: Optional[str] = None) -> ReconciliationRun:
    logger.info("running scheduled database completeness check")
    run = await checker.run()
    await notify(sink, chat_id, format_run_report(run))
    return run


async def build_daily_summary(repo, day: str) -> Dict[str, Any]:
    rows = await asyncio.to_thread(repo.list_range, day, day)
    return format_daily_summary(day, rows)


async def send_daily_summary_to_all_workers(repo, worker_repo, sink, day: Optional[str] = None) -> Dict[str, int]:
    """Generate the daily summary once and send it to every active worker."""
    day = day or yesterday()
    workers = await asyncio.to_thread(worker_repo.list_active)
    if not workers:
        logger.warning("no active workers found")
        return {"total_workers": 0, "successful_sends": 0, "failed_sends": 0}

    summary = await build_daily_summary(repo, day)
    ok = failed = 0
    for w in workers:
        try:
            chunks = await send_chunked_message(sink, w.chat_id, summary["message"])
            ok += 1
            logger.info("daily summary for %s sent to %s (%s) in %s chunks", day, w.name, w.chat_id, chunks)
        except Exception as e:
            failed += 1
            logger.error("summary to worker %s (%s) failed: %s", w.name, w.chat_id, e)
        await asyncio.sleep(0.1)

    logger.info("daily summary distribution: %s/%s sent", ok, len(workers))
    return {"total_workers": len(workers), "successful_sends": ok, "failed_sends": failed}


async def daily_summary_job(repo, worker_repo, sink, admin_chat_id: Optional[str] = None) -> Dict[str, int]:
    day = yesterday()
    try:
        result = await send_daily_summary_to_all_workers(repo, worker_repo, sink, day)
    except Exception as e:
        logger.exception("daily summary failed")
        await notify(sink, admin_chat_id, f"❌ Помилка щоденного звіту інкасації\n\nПомилка: {e}")
        raise
    await notify(
        sink,
        admin_chat_id,
        f"📊 Щоденний звіт інкасації завершено\n\nДата: {day}\n"
        f"Успішно надіслано: {result['successful_sends']}/{result['total_workers']} працівникам",
    )
    return result
