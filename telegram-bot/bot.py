import os
import asyncio
from typing import Optional, Dict, Any, List

import requests

import logging
logging.basicConfig(level=logging.INFO)

from aiogram import Bot, Dispatcher, Router
from aiogram.filters import Command, CommandObject
from aiogram.types import Message

from inkas.dates import is_ymd as _is_ymd, today, yesterday as _yesterday
from inkas.messages import split_message_into_chunks


BOT_TOKEN = os.getenv("BOT_TOKEN", "").strip()
API_BASE = os.getenv("API_BASE", "http://api:8000").strip().rstrip("/")

# ---- Timeouts (seconds)
# a full completeness run walks 30 days x all devices, allow a long read
HTTP_CONNECT_TIMEOUT = 10
HTTP_READ_TIMEOUT_FAST = 25
HTTP_READ_TIMEOUT_LONG = 1800

MAX_MESSAGE_LENGTH = 4000

router = Router()


HELP_TEXT = (
    "Команди бота інкасації:\n"
    "/completeness_check - перевірити повноту бази за 30 днів і дозавантажити пропуски\n"
    "/fetch_daily - завантажити інкасації за вчора\n"
    "/summary [YYYY-MM-DD] - щоденний звіт (за замовчуванням вчора)\n"
    "/summary_today - звіт за сьогодні\n"
    "/send_summary_all [YYYY-MM-DD] - надіслати звіт усім працівникам\n"
    "/check_data [YYYY-MM-DD] - чи є дані за дату\n"
    "/devices - список апаратів\n"
    "/report_previous_week - звіт за попередній тиждень\n"
    "/report_previous_month - звіт за попередній місяць\n"
    "/report_week - звіт за поточний тиждень\n"
    "/report_month - звіт за поточний місяць\n"
    "/collection <id> [YYYY-MM-DD YYYY-MM-DD] - інкасації апарату з API"
)

COLLECTION_USAGE = "Використання: /collection <id> [YYYY-MM-DD YYYY-MM-DD]"

# command -> (kind for /reports/period, label)
PERIOD_REPORTS = {
    "report_previous_week": ("week", "тижневого звіту за попередній тиждень"),
    "report_previous_month": ("month", "місячного звіту за попередній місяць"),
    "report_week": ("current_week", "тижневого звіту за поточний тиждень"),
    "report_month": ("current_month", "місячного звіту за поточний місяць"),
}


async def _http_post(url: str, *, json_body=None, params=None, read_timeout=HTTP_READ_TIMEOUT_FAST) -> requests.Response:
    def _do():
        return requests.post(
            url,
            json=json_body,
            params=params,
            timeout=(HTTP_CONNECT_TIMEOUT, read_timeout),
        )
    return await asyncio.to_thread(_do)


async def _http_get(url: str, *, params=None, read_timeout=HTTP_READ_TIMEOUT_FAST) -> requests.Response:
    def _do():
        return requests.get(
            url,
            params=params,
            timeout=(HTTP_CONNECT_TIMEOUT, read_timeout),
        )
    return await asyncio.to_thread(_do)


def _error_text(resp: requests.Response) -> str:
    try:
        detail = resp.json().get("detail")
    except Exception:
        detail = None
    return str(detail or f"HTTP {resp.status_code}")


async def _api_json(method: str, path: str, *, params=None, json_body=None, read_timeout=HTTP_READ_TIMEOUT_FAST) -> Dict[str, Any]:
    """Call the API, returns parsed JSON or {"error": ...}."""
    url = f"{API_BASE}{path}"
    try:
        if method == "GET":
            resp = await _http_get(url, params=params, read_timeout=read_timeout)
        else:
            resp = await _http_post(url, params=params, json_body=json_body, read_timeout=read_timeout)
    except requests.RequestException as e:
        logging.warning(f"API {method} {path} failed: {e}")
        return {"error": str(e)}
    if resp.status_code != 200:
        logging.warning(f"API {method} {path}: non-200 status={resp.status_code} text={resp.text[:300]!r}")
        return {"error": _error_text(resp)}
    return resp.json()


async def _answer_long(message: Message, text_msg: str) -> None:
    chunks = split_message_into_chunks(text_msg, MAX_MESSAGE_LENGTH)
    for i, chunk in enumerate(chunks):
        await message.answer(chunk)
        if i < len(chunks) - 1:
            await asyncio.sleep(0.5)


def _date_arg(command: CommandObject, default: str) -> Optional[str]:
    arg = (command.args or "").strip()
    if not arg:
        return default
    return arg if _is_ymd(arg) else None


@router.message(Command("start", "help"))
async def start_cmd(message: Message):
    await message.answer("Вітаю! Це бот звітів інкасації водоматів.\n\n" + HELP_TEXT)


@router.message(Command("completeness_check"))
async def completeness_check_cmd(message: Message):
    await message.answer("🔄 Запуск перевірки повноти бази даних...\nЦе може зайняти кілька хвилин.")
    js = await _api_json("POST", "/completeness/run", params={"wait": "true"}, read_timeout=HTTP_READ_TIMEOUT_LONG)
    if js.get("error") and not js.get("message"):
        await message.answer(f"❌ Помилка під час перевірки повноти: {js['error']}")
        return
    await _answer_long(message, js["message"])


@router.message(Command("fetch_daily"))
async def fetch_daily_cmd(message: Message):
    day = _yesterday()
    await message.answer(f"🔄 Завантаження даних інкасації за {day}...")
    js = await _api_json("POST", "/completeness/fill", json_body={"date": day}, read_timeout=HTTP_READ_TIMEOUT_LONG)
    if js.get("error") and not js.get("message"):
        await message.answer(f"❌ Помилка завантаження: {js['error']}")
        return
    await _answer_long(message, js["message"])


async def _send_summary(message: Message, day: str) -> None:
    js = await _api_json("GET", "/reports/daily", params={"date": day})
    if js.get("error"):
        await message.answer(f"❌ Помилка формування звіту: {js['error']}")
        return
    await _answer_long(message, js["message"])


@router.message(Command("summary"))
async def summary_cmd(message: Message, command: CommandObject):
    day = _date_arg(command, _yesterday())
    if not day:
        await message.answer("Формат дати: YYYY-MM-DD")
        return
    await _send_summary(message, day)


@router.message(Command("summary_today"))
async def summary_today_cmd(message: Message):
    await _send_summary(message, today().isoformat())


@router.message(Command("send_summary_all"))
async def send_summary_all_cmd(message: Message, command: CommandObject):
    day = _date_arg(command, _yesterday())
    if not day:
        await message.answer("Формат дати: YYYY-MM-DD")
        return
    await message.answer(f"📤 Надсилаю звіт за {day} усім працівникам...")
    js = await _api_json("POST", "/reports/daily/send-all", params={"date": day}, read_timeout=300)
    if js.get("error"):
        await message.answer(f"❌ Помилка розсилки: {js['error']}")
        return
    await message.answer(
        f"✅ Розсилку завершено\n\n"
        f"Працівників: {js.get('total_workers', 0)}\n"
        f"Успішно: {js.get('successful_sends', 0)}\n"
        f"Помилок: {js.get('failed_sends', 0)}"
    )


@router.message(Command("check_data"))
async def check_data_cmd(message: Message, command: CommandObject):
    day = _date_arg(command, _yesterday())
    if not day:
        await message.answer("Формат дати: YYYY-MM-DD")
        return
    js = await _api_json("GET", "/collections/check", params={"date": day})
    if js.get("error"):
        await message.answer(f"❌ Помилка перевірки: {js['error']}")
        return
    if not js.get("has_data"):
        await message.answer(f"📅 {day}: даних інкасації немає")
        return
    lines = [f"📅 {day}: {js['count']} записів інкасації", ""]
    for d in js.get("devices") or []:
        lines.append(f"Апарат {d['device_id']}: {float(d['total_sum'] or 0):.2f} грн ({d['collection_count']})")
    await _answer_long(message, "\n".join(lines))


@router.message(Command("devices"))
async def devices_cmd(message: Message):
    js = await _api_json("GET", "/devices")
    if js.get("error"):
        await message.answer(f"❌ Помилка отримання апаратів: {js['error']}")
        return
    items: List[Dict[str, Any]] = js.get("items") or []
    lines = [f"🚰 Апаратів: {js.get('count', 0)} (активних: {js.get('active', 0)})", ""]
    for d in items:
        mark = "🟢" if d.get("is_active") else "⚪"
        lines.append(f"{mark} {d['id']}: {d.get('label')}")
    await _answer_long(message, "\n".join(lines))


@router.message(Command(*PERIOD_REPORTS))
async def period_report_cmd(message: Message, command: CommandObject):
    kind, label = PERIOD_REPORTS[command.command]
    await message.answer(f"📊 Генерація {label}...")
    js = await _api_json("GET", "/reports/period", params={"kind": kind}, read_timeout=60)
    if js.get("error"):
        await message.answer(f"❌ Помилка формування звіту: {js['error']}")
        return
    await _answer_long(message, js["message"])


@router.message(Command("collection"))
async def collection_cmd(message: Message, command: CommandObject):
    args = (command.args or "").split()
    # a single date is ambiguous, ask for both
    if not args or len(args) == 2:
        await message.answer(COLLECTION_USAGE)
        return
    params = {}
    if len(args) >= 3:
        if not (_is_ymd(args[1]) and _is_ymd(args[2])):
            await message.answer("Формат дати: YYYY-MM-DD")
            return
        params = {"start": args[1], "end": args[2]}
    js = await _api_json("GET", f"/devices/{args[0]}/collections", params=params, read_timeout=60)
    if js.get("error"):
        await message.answer(f"❌ Помилка отримання даних інкасації апарату {args[0]}: {js['error']}")
        return
    await _answer_long(message, js["message"])


async def main():
    bot = Bot(token=BOT_TOKEN)
    dp = Dispatcher()
    dp.include_router(router)
    await dp.start_polling(bot, allowed_updates=["message"])


if __name__ == "__main__":
    asyncio.run(main())
