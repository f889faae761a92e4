from datetime import datetime
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field


class Device(BaseModel):
    id: str
    name: Optional[str] = None
    lat: Optional[str] = None
    lon: Optional[str] = None

    @property
    def is_active(self) -> bool:
        return bool((self.lat or "").strip() and (self.lon or "").strip())

    @property
    def label(self) -> str:
        return (self.name or "").strip() or f"Device {self.id}"

    @classmethod
    def from_api(cls, raw: Dict[str, Any]) -> "Device":
        def _s(v):
            return None if v is None else str(v)

        return cls(id=str(raw.get("id")), name=_s(raw.get("name")), lat=_s(raw.get("lat")), lon=_s(raw.get("lon")))


class CollectionRecord(BaseModel):
    device_id: str
    timestamp: datetime  # naive UTC
    banknote_amount: float = Field(ge=0)
    coin_amount: float = Field(ge=0)
    total_amount: float = Field(ge=0)
    note: Optional[str] = None
    collector_id: Optional[str] = None
    collector_label: Optional[str] = None
    machine_label: Optional[str] = None

    @property
    def dedup_key(self):
        return (self.device_id, self.timestamp, self.banknote_amount, self.coin_amount)


class DateOutcome(BaseModel):
    date: str
    status: Literal["skipped", "completed"]
    reason: Optional[str] = None
    processed_devices: int = 0
    devices_with_data: int = 0
    total_saved: int = 0


class ReconciliationRun(BaseModel):
    success: bool
    error: Optional[str] = None
    duration: float = 0.0
    dates: List[str] = []
    dates_checked: int = 0
    dates_processed: int = 0
    dates_skipped: int = 0
    total_saved: int = 0
    devices: int = 0
    results: List[DateOutcome] = []


class Worker(BaseModel):
    chat_id: str
    name: Optional[str] = None
    phone: Optional[str] = None


class FillIn(BaseModel):
    date: str
