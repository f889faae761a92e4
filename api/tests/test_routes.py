from datetime import date, datetime

import pytest
from fastapi.testclient import TestClient

from inkas.completeness import CompletenessChecker, CompletenessConfig
from inkas.db import db_ready
from inkas.services import get_checker, get_client, get_repository, get_sink, get_worker_repository
from main import app

from conftest import FakeClient, FakeSink, make_record, no_sleep


@pytest.fixture()
def client(repo, worker_repo):
    fake_api = FakeClient(devices=("1", "2"), per_day={
        "2025-01-09": [{"banknotes": "150.50", "coins": "0", "date": "2025-01-09T09:00:00"}],
    })
    checker = CompletenessChecker(repo, fake_api, CompletenessConfig(days_back=2), sleep=no_sleep, today=lambda: date(2025, 1, 11))
    app.dependency_overrides[get_repository] = lambda: repo
    app.dependency_overrides[get_worker_repository] = lambda: worker_repo
    app.dependency_overrides[get_client] = lambda: fake_api
    app.dependency_overrides[get_checker] = lambda: checker
    app.dependency_overrides[get_sink] = lambda: FakeSink()
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["ok"] is True


def test_bad_date_is_rejected(client):
    r = client.get("/collections/check", params={"date": "10.01.2025"})
    assert r.status_code == 400
    assert r.json()["detail"] == "date must be YYYY-MM-DD"


def test_collections_list_check_stats_and_delete(client, repo):
    repo.insert_if_new(make_record(device_id="1", local=datetime(2025, 1, 10, 9, 0), banknotes=100, collector="Kirk"))
    repo.insert_if_new(make_record(device_id="2", local=datetime(2025, 1, 10, 11, 0), banknotes=50, collector="Anna"))

    r = client.get("/collections", params={"start": "2025-01-10"})
    assert r.status_code == 200
    body = r.json()
    assert body["count"] == 2
    assert body["items"][0]["date"] == "2025-01-10T07:00:00"

    r = client.get("/collections/check", params={"date": "2025-01-10"})
    assert r.json()["has_data"] is True
    assert len(r.json()["devices"]) == 2

    r = client.get("/collections/stats", params={"start": "2025-01-01", "end": "2025-01-31"})
    assert r.json()["total_amount"] == 150.0
    assert r.json()["average_collection_amount"] == 75.0

    r = client.get("/collections/by-collector", params={"start": "2025-01-10"})
    assert [x["collector_nik"] for x in r.json()["items"]] == ["Kirk", "Anna"]

    r = client.delete("/collections", params={"start": "2025-01-10", "end": "2025-01-10"})
    assert r.json()["deleted"] == 2
    assert client.get("/collections/check", params={"date": "2025-01-10"}).json()["has_data"] is False


def test_range_must_be_ordered(client):
    r = client.get("/collections", params={"start": "2025-01-10", "end": "2025-01-01"})
    assert r.status_code == 400


def test_completeness_run_and_fill(client, repo):
    r = client.post("/completeness/run")
    assert r.status_code == 200
    body = r.json()
    assert body["success"] is True
    assert body["dates"] == ["2025-01-10", "2025-01-09"]
    assert body["total_saved"] == 2
    assert "Перевірка повноти" in body["message"]

    r = client.post("/completeness/fill", json={"date": "2025-01-09"})
    assert r.json()["total_saved"] == 0
    assert repo.count_for_date("2025-01-09") == 2

    assert client.post("/completeness/fill", json={"date": "yesterday"}).status_code == 400


def test_completeness_schedule_empty_without_startup(client):
    assert client.get("/completeness/schedule").json() == {"items": []}


def test_reports(client, repo):
    repo.insert_if_new(make_record(local=datetime(2025, 1, 10, 9, 0), collector="Kirk"))
    r = client.get("/reports/daily", params={"date": "2025-01-10"})
    assert r.json()["has_data"] is True
    assert "Kirk" in r.json()["message"]

    r = client.get("/reports/period", params={"start": "2025-01-01", "end": "2025-01-31"})
    assert r.json()["stats"]["total_collections"] == 1

    assert client.get("/reports/period", params={"kind": "year"}).status_code == 400
    assert client.get("/reports/period", params={"kind": "week"}).status_code == 200
    for kind in ("month", "current_week", "current_month"):
        r = client.get("/reports/period", params={"kind": kind})
        assert r.status_code == 200
        assert r.json()["start"] <= r.json()["end"]


def test_send_all_without_workers(client):
    r = client.post("/reports/daily/send-all", params={"date": "2025-01-10"})
    assert r.status_code == 200
    assert r.json()["total_workers"] == 0


def test_devices(client):
    r = client.get("/devices")
    assert r.json()["count"] == 2
    assert r.json()["active"] == 2

    r = client.get("/devices/1/collections", params={"start": "2025-01-09", "end": "2025-01-09"})
    assert r.status_code == 200
    assert r.json()["count"] == 1
    assert r.json()["items"][0]["banknotes"] == 150.5
    assert "150.50 грн" in r.json()["message"]


def test_storage_disabled_without_database_url():
    if db_ready():
        pytest.skip("DATABASE_URL is configured")
    r = TestClient(app).get("/collections", params={"start": "2025-01-10"})
    assert r.status_code == 503
    assert r.json()["detail"] == "db_disabled"
