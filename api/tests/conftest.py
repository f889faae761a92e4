from datetime import datetime

import pytest
from sqlalchemy import create_engine

from inkas.dates import local_to_utc
from inkas.db import ensure_tables
from inkas.device_api import DeviceApiError
from inkas.repository import CollectionRepository, WorkerRepository
from inkas.schemas import CollectionRecord, Device


@pytest.fixture()
def engine(tmp_path):
    eng = create_engine(
        f"sqlite:///{tmp_path / 'inkas.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    ensure_tables(eng)
    yield eng
    eng.dispose()


@pytest.fixture()
def repo(engine):
    return CollectionRepository(engine)


@pytest.fixture()
def worker_repo(engine):
    return WorkerRepository(engine)


def make_record(device_id="1", local=datetime(2025, 1, 10, 9, 0), banknotes=100.0, coins=0.0, collector=None):
    return CollectionRecord(
        device_id=device_id,
        timestamp=local_to_utc(local),
        banknote_amount=banknotes,
        coin_amount=coins,
        total_amount=banknotes + coins,
        collector_label=collector,
        machine_label=f"Device {device_id}",
    )


class FakeClient:
    """Scripted device API: `per_day[day]` is a list of entries or an exception."""

    def __init__(self, devices=("1",), per_day=None, devices_error=None):
        self.devices = [Device(id=d, lat="50.4", lon="30.5") for d in devices]
        self.per_day = per_day or {}
        self.devices_error = devices_error
        self.calls = []

    async def list_devices(self, strict=False):
        if self.devices_error:
            if strict:
                raise DeviceApiError(self.devices_error)
            return []
        return list(self.devices)

    async def fetch_collections_raw(self, device_id, start, end):
        self.calls.append((device_id, str(start)))
        item = self.per_day.get(str(start), [])
        if isinstance(item, Exception):
            raise item
        if isinstance(item, dict):
            return item
        return {"status": "success", "data": list(item)}

    async def fetch_collections(self, device_id, start, end):
        try:
            return await self.fetch_collections_raw(device_id, start, end)
        except DeviceApiError as e:
            return {"error": str(e)}


class FakeSink:
    def __init__(self, fail_for=()):
        self.sent = []
        self.fail_for = set(fail_for)

    def ready(self):
        return True

    async def send(self, chat_id, text_msg):
        if str(chat_id) in self.fail_for:
            raise RuntimeError("blocked by user")
        self.sent.append((str(chat_id), text_msg))


async def no_sleep(_delay):
    return None


@pytest.fixture()
def fake_client():
    return FakeClient()


@pytest.fixture()
def fake_sink():
    return FakeSink()
