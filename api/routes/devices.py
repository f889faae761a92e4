from typing import Optional

from fastapi import APIRouter, Depends, HTTPException

from inkas.dates import as_date, today
from inkas.device_api import DeviceApiClient, DeviceApiError
from inkas.reports import format_device_collections
from inkas.sanitizer import sanitize_entry
from inkas.services import get_client, require_day

router = APIRouter()


@router.get("/devices")
async def list_devices(client: DeviceApiClient = Depends(get_client)):
    try:
        devices = await client.list_devices(strict=True)
    except DeviceApiError as e:
        raise HTTPException(status_code=502, detail=str(e))
    return {
        "count": len(devices),
        "active": sum(1 for d in devices if d.is_active),
        "items": [{**d.model_dump(), "label": d.label, "is_active": d.is_active} for d in devices],
    }


@router.get("/devices/{device_id}/collections")
async def device_collections(
    device_id: str,
    start: Optional[str] = None,
    end: Optional[str] = None,
    client: DeviceApiClient = Depends(get_client),
):
    """Live upstream view; nothing is stored."""
    s = require_day(start, "start") if start else today().replace(day=1).isoformat()
    e = require_day(end, "end") if end else today().isoformat()
    if as_date(e) < as_date(s):
        raise HTTPException(status_code=400, detail="end must be >= start")

    payload = await client.fetch_collections(device_id, s, e)
    if payload.get("error"):
        raise HTTPException(status_code=502, detail=payload["error"])
    entries = [sanitize_entry(x) for x in payload.get("data") or [] if isinstance(x, dict)]
    return {
        "device_id": device_id,
        "start": s,
        "end": e,
        "address": payload.get("address"),
        "count": len(entries),
        "items": entries,
        "message": format_device_collections(device_id, s, e, payload),
    }
