import asyncio
from typing import Any, Dict, List

import requests

from inkas.config import API_CONNECT_TIMEOUT, API_READ_TIMEOUT, SOLITON_API_BASE, logger
from inkas.dates import DayLike, as_date
from inkas.schemas import Device


class DeviceApiError(Exception):
    pass


class DeviceApiClient:
    """Soliton water API: device list and per-device collections ("inkas")."""

    def __init__(
        self,
        base_url: str = SOLITON_API_BASE,
        *,
        connect_timeout: float = API_CONNECT_TIMEOUT,
        read_timeout: float = API_READ_TIMEOUT,
        session: requests.Session = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = (connect_timeout, read_timeout)
        self.session = session or requests.Session()

    def _post_sync(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        url = f"{self.base_url}/{path.lstrip('/')}"
        try:
            r = self.session.post(url, json=payload, timeout=self.timeout)
        except requests.RequestException as e:
            raise DeviceApiError(f"{type(e).__name__}: {e}") from e
        if not r.ok:
            raise DeviceApiError(f"HTTP {r.status_code}: {(r.text or '')[:200]}")
        try:
            js = r.json()
        except ValueError as e:
            raise DeviceApiError(f"malformed response: {(r.text or '')[:200]!r}") from e
        if not isinstance(js, dict):
            raise DeviceApiError(f"malformed response: {type(js).__name__}")
        return js

    async def _post(self, path: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await asyncio.to_thread(self._post_sync, path, payload)

    async def list_devices(self, strict: bool = False) -> List[Device]:
        """All devices. Non-strict mode logs failures and returns []."""
        try:
            js = await self._post("devices", {})
            raw = js.get("devices")
            if not isinstance(raw, list):
                raise DeviceApiError("No devices returned from API")
            return [Device.from_api(d) for d in raw if isinstance(d, dict) and d.get("id") is not None]
        except DeviceApiError as e:
            if strict:
                raise
            logger.error("fetch devices failed: %s", e)
            return []

    async def fetch_collections_raw(self, device_id: str, start: DayLike, end: DayLike) -> Dict[str, Any]:
        """Transport problems raise DeviceApiError; an upstream error status comes back as {"error"}."""
        payload = {
            "device_id": str(device_id),
            "ds": as_date(start).isoformat(),
            "de": as_date(end).isoformat(),
        }
        js = await self._post("device_inkas.php", payload)
        if js.get("status") == "success":
            if not isinstance(js.get("data"), list):
                js["data"] = []
            return js
        descr = js.get("descr") or f"status={js.get('status')!r}"
        logger.warning("API error for device %s %s..%s: %s", device_id, payload["ds"], payload["de"], descr)
        return {"error": str(descr)}

    async def fetch_collections(self, device_id: str, start: DayLike, end: DayLike) -> Dict[str, Any]:
        try:
            return await self.fetch_collections_raw(device_id, start, end)
        except DeviceApiError as e:
            logger.error("fetch collections failed device=%s: %s", device_id, e)
            return {"error": str(e)}
