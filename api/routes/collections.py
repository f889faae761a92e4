from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException

from inkas.config import logger
from inkas.repository import CollectionRepository
from inkas.services import get_repository, require_day

router = APIRouter()


def _out(row: Dict[str, Any]) -> Dict[str, Any]:
    d = dict(row)
    for k in ("date", "created_at", "updated_at", "last_collection_time"):
        v = d.get(k)
        if v is not None and hasattr(v, "isoformat"):
            d[k] = v.isoformat()
    return d


def _range(start: Optional[str], end: Optional[str]):
    s = require_day(start, "start")
    e = require_day(end or s, "end")
    if e < s:
        raise HTTPException(status_code=400, detail="end must be >= start")
    return s, e


@router.get("/collections")
def list_collections(
    start: str,
    end: Optional[str] = None,
    device_id: Optional[str] = None,
    repo: CollectionRepository = Depends(get_repository),
):
    s, e = _range(start, end)
    rows = repo.list_range(s, e, device_id=device_id)
    return {"start": s, "end": e, "count": len(rows), "items": [_out(r) for r in rows]}


@router.get("/collections/check")
def check_date(date: str, repo: CollectionRepository = Depends(get_repository)):
    day = require_day(date)
    count = repo.count_for_date(day)
    return {
        "date": day,
        "has_data": count > 0,
        "count": count,
        "devices": [_out(r) for r in repo.summary_by_date(day)],
    }


@router.get("/collections/stats")
def collection_stats(start: str, end: Optional[str] = None, repo: CollectionRepository = Depends(get_repository)):
    s, e = _range(start, end)
    st = repo.statistics(s, e)
    return {
        "start": s,
        "end": e,
        "total_collections": int(st["total_collections"] or 0),
        "devices_with_collections": int(st["devices_with_collections"] or 0),
        "unique_collectors": int(st["unique_collectors"] or 0),
        "total_banknotes": float(st["total_banknotes"] or 0),
        "total_coins": float(st["total_coins"] or 0),
        "total_amount": float(st["total_amount"] or 0),
        "average_collection_amount": float(st["average_collection_amount"]),
    }


@router.get("/collections/by-collector")
def collections_by_collector(start: str, end: Optional[str] = None, repo: CollectionRepository = Depends(get_repository)):
    s, e = _range(start, end)
    return {"start": s, "end": e, "items": [_out(r) for r in repo.summary_by_collector(s, e)]}


@router.delete("/collections")
def delete_collections(start: str, end: Optional[str] = None, repo: CollectionRepository = Depends(get_repository)):
    s, e = _range(start, end)
    rows = repo.delete_range(s, e)
    logger.warning("admin range delete %s..%s removed %s rows", s, e, len(rows))
    return {"ok": True, "start": s, "end": e, "deleted": len(rows)}
