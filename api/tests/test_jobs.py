import asyncio
from datetime import datetime

from inkas.jobs import daily_summary_job, run_and_report, send_daily_summary_to_all_workers
from inkas.schemas import ReconciliationRun, Worker

from conftest import FakeSink, make_record


class FakeChecker:
    def __init__(self, run):
        self._run = run

    async def run(self):
        return self._run


class FakeWorkers:
    def __init__(self, items):
        self.items = items

    def list_active(self):
        return list(self.items)


def test_run_and_report_sends_summary():
    sink = FakeSink()
    run = asyncio.run(run_and_report(FakeChecker(ReconciliationRun(success=True, dates_checked=30)), sink, "100"))
    assert run.dates_checked == 30
    assert sink.sent[0][0] == "100"
    assert "Перевірено дат: 30" in sink.sent[0][1]


def test_run_and_report_survives_notification_failure():
    sink = FakeSink(fail_for={"100"})
    run = asyncio.run(run_and_report(FakeChecker(ReconciliationRun(success=False, error="x")), sink, "100"))
    assert run.error == "x"


def test_run_and_report_without_chat():
    sink = FakeSink()
    asyncio.run(run_and_report(FakeChecker(ReconciliationRun(success=True)), sink, ""))
    assert sink.sent == []


def test_summary_to_all_workers_counts_failures(repo):
    repo.insert_if_new(make_record(local=datetime(2025, 1, 10, 9, 0), collector="Kirk"))
    workers = FakeWorkers([Worker(chat_id="1", name="A"), Worker(chat_id="2", name="B"), Worker(chat_id="3", name="C")])
    sink = FakeSink(fail_for={"2"})

    out = asyncio.run(send_daily_summary_to_all_workers(repo, workers, sink, "2025-01-10"))

    assert out == {"total_workers": 3, "successful_sends": 2, "failed_sends": 1}
    assert [chat for chat, _ in sink.sent] == ["1", "3"]
    assert "Kirk" in sink.sent[0][1]


def test_summary_without_workers(repo):
    out = asyncio.run(send_daily_summary_to_all_workers(repo, FakeWorkers([]), FakeSink(), "2025-01-10"))
    assert out["total_workers"] == 0


def test_daily_summary_job_reports_to_admin(repo):
    sink = FakeSink()
    out = asyncio.run(daily_summary_job(repo, FakeWorkers([Worker(chat_id="1")]), sink, "900"))
    assert out["successful_sends"] == 1
    assert sink.sent[-1][0] == "900"
    assert "Успішно надіслано: 1/1" in sink.sent[-1][1]
