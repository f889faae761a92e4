import asyncio
import importlib.util
from pathlib import Path

import pytest

pytest.importorskip("aiogram")
from aiogram.filters import CommandObject

BOT_PATH = Path(__file__).resolve().parents[2] / "telegram-bot" / "bot.py"


@pytest.fixture()
def bot(monkeypatch):
    spec = importlib.util.spec_from_file_location("inkas_bot", BOT_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    calls = []

    async def fake_api(method, path, *, params=None, json_body=None, read_timeout=None):
        calls.append((method, path, params))
        return {"message": f"report for {path}"}

    monkeypatch.setattr(module, "_api_json", fake_api)
    module.api_calls = calls
    return module


class FakeMessage:
    def __init__(self):
        self.answers = []

    async def answer(self, text_msg):
        self.answers.append(text_msg)


def _cmd(name, args=None):
    return CommandObject(prefix="/", command=name, args=args)


@pytest.mark.parametrize(
    "command, kind",
    [
        ("report_previous_week", "week"),
        ("report_previous_month", "month"),
        ("report_week", "current_week"),
        ("report_month", "current_month"),
    ],
)
def test_period_report_commands(bot, command, kind):
    msg = FakeMessage()
    asyncio.run(bot.period_report_cmd(msg, _cmd(command)))
    assert bot.api_calls == [("GET", "/reports/period", {"kind": kind})]
    assert msg.answers[-1] == "report for /reports/period"
    assert f"/{command}" in bot.HELP_TEXT


def test_collection_with_single_date_asks_for_both(bot):
    msg = FakeMessage()
    asyncio.run(bot.collection_cmd(msg, _cmd("collection", "12 2025-01-01")))
    assert msg.answers == [bot.COLLECTION_USAGE]
    assert bot.api_calls == []


def test_collection_with_range(bot):
    msg = FakeMessage()
    asyncio.run(bot.collection_cmd(msg, _cmd("collection", "12 2025-01-01 2025-01-31")))
    assert bot.api_calls == [("GET", "/devices/12/collections", {"start": "2025-01-01", "end": "2025-01-31"})]


def test_collection_without_dates_uses_default_period(bot):
    msg = FakeMessage()
    asyncio.run(bot.collection_cmd(msg, _cmd("collection", "12")))
    assert bot.api_calls == [("GET", "/devices/12/collections", {})]
