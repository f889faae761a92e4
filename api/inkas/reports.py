from collections import OrderedDict
from typing import Any, Dict, List

from inkas.collectors import resolve_collector
from inkas.dates import to_local
from inkas.sanitizer import sanitize_entry
from inkas.schemas import ReconciliationRun


def _f(v) -> float:
    try:
        return float(v or 0)
    except (TypeError, ValueError):
        return 0.0


def _money(v: float) -> str:
    return f"{v:.2f} грн"


def format_run_report(run: ReconciliationRun) -> str:
    if not run.success:
        return f"❌ Помилка під час перевірки повноти: {run.error}"

    lines = [
        "✅ Перевірка повноти бази даних завершена!",
        "",
        "Результати:",
        f"• Тривалість: {round(run.duration)}с",
        f"• Перевірено дат: {run.dates_checked}",
        f"• Оброблено дат: {run.dates_processed}",
        f"• Пропущено дат: {run.dates_skipped}",
        f"• Всього записів збережено: {run.total_saved}",
    ]
    with_data = [r for r in run.results if r.status == "completed" and r.total_saved > 0]
    if with_data:
        lines += ["", "Дати з новими даними:"]
        for r in with_data:
            lines.append(f"  {r.date}: {r.total_saved} записів з {r.devices_with_data} апаратів")
    return "\n".join(lines)


def _group_totals(rows: List[Dict[str, Any]]):
    collectors: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    devices: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    totals = {"sum": 0.0, "banknotes": 0.0, "coins": 0.0}

    for r in rows:
        total, banknotes, coins = _f(r.get("total_sum")), _f(r.get("sum_banknotes")), _f(r.get("sum_coins"))
        collector = r.get("collector_nik") or "Unknown"
        device_id = str(r.get("device_id"))

        c = collectors.setdefault(collector, {"sum": 0.0, "banknotes": 0.0, "coins": 0.0, "devices": [], "entries": 0})
        c["sum"] += total
        c["banknotes"] += banknotes
        c["coins"] += coins
        c["entries"] += 1
        if device_id not in c["devices"]:
            c["devices"].append(device_id)

        d = devices.setdefault(device_id, {"name": r.get("machine") or f"Device {device_id}", "sum": 0.0, "entries": 0})
        d["sum"] += total
        d["entries"] += 1

        totals["sum"] += total
        totals["banknotes"] += banknotes
        totals["coins"] += coins
    return collectors, devices, totals


def format_daily_summary(day: str, rows: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Daily report: overall totals, split by collectors, per-device details."""
    if not rows:
        return {
            "has_data": False,
            "message": f"📊 Щоденний звіт з інкасації\n\n📅 Дата: {day}\n\n❌ Дані інкасації за цю дату не знайдено",
            "stats": None,
        }

    collectors, devices, totals = _group_totals(rows)
    first = to_local(rows[0]["date"]).strftime("%d.%m.%Y %H:%M")
    last = to_local(rows[-1]["date"]).strftime("%d.%m.%Y %H:%M")

    lines = [
        "📊 Щоденний звіт з інкасації",
        "",
        f"Дата: {day}",
        f"Час інкасації: {first} - {last}",
        "",
        "Загальний підсумок:",
        f"Всього інкасацій: {len(rows)}",
        f"Всього апаратів: {len(devices)}",
        f"Всього купюр: {_money(totals['banknotes'])}",
        f"Всього монет: {_money(totals['coins'])}",
        f"Загальна сума: {_money(totals['sum'])}",
        "",
        "Розподіл за інкасаторами:",
        "",
    ]
    for name, c in collectors.items():
        lines += [
            f"{name}:",
            f"  Інкасацій: {c['entries']}",
            f"  Апаратів: {len(c['devices'])} (ID: {', '.join(c['devices'])})",
            f"  Купюри: {_money(c['banknotes'])}",
            f"  Монети: {_money(c['coins'])}",
            f"  Всього: {_money(c['sum'])}",
            "",
        ]

    if len(devices) <= 20:
        lines.append("Деталі по апаратах:")
        for device_id, d in devices.items():
            lines += [
                f"  Апарат {device_id} ({d['name']}):",
                f"    Інкасацій: {d['entries']}",
                f"    Всього: {_money(d['sum'])}",
            ]

    return {
        "has_data": True,
        "message": "\n".join(lines).rstrip(),
        "stats": {
            "total_collections": len(rows),
            "total_devices": len(devices),
            "total_sum": totals["sum"],
            "total_banknotes": totals["banknotes"],
            "total_coins": totals["coins"],
            "collectors": len(collectors),
        },
    }


def format_period_summary(start: str, end: str, rows: List[Dict[str, Any]], title: str = "Тижневий звіт з інкасації") -> Dict[str, Any]:
    if not rows:
        return {
            "has_data": False,
            "message": f"📊 {title}\n\n📅 Період: {start} - {end}\n\n❌ Дані інкасації за цей період не знайдено",
            "stats": None,
        }

    collectors, devices, totals = _group_totals(rows)
    per_day: "OrderedDict[str, Dict[str, Any]]" = OrderedDict()
    for r in rows:
        key = to_local(r["date"]).date().isoformat()
        d = per_day.setdefault(key, {"sum": 0.0, "entries": 0})
        d["sum"] += _f(r.get("total_sum"))
        d["entries"] += 1

    lines = [
        f"📊 {title}",
        "",
        f"📅 Період: {start} - {end}",
        "",
        "Загальний підсумок:",
        f"Всього інкасацій: {len(rows)}",
        f"Всього апаратів: {len(devices)}",
        f"Всього купюр: {_money(totals['banknotes'])}",
        f"Всього монет: {_money(totals['coins'])}",
        f"Загальна сума: {_money(totals['sum'])}",
        "",
        "По днях:",
    ]
    for key, d in per_day.items():
        lines.append(f"  {key}: {_money(d['sum'])} ({d['entries']} інкасацій)")
    lines += ["", "Розподіл за інкасаторами:"]
    for name, c in collectors.items():
        lines.append(f"  {name}: {_money(c['sum'])} ({c['entries']} інкасацій, {len(c['devices'])} апаратів)")

    return {
        "has_data": True,
        "message": "\n".join(lines),
        "stats": {
            "total_collections": len(rows),
            "total_devices": len(devices),
            "total_sum": totals["sum"],
            "days": len(per_day),
            "collectors": len(collectors),
        },
    }


def format_device_collections(device_id: str, start: str, end: str, payload: Dict[str, Any]) -> str:
    """Live view of upstream entries for one device (not stored data)."""
    if payload.get("error"):
        return f"❌ Помилка отримання даних інкасації апарату {device_id}: {payload['error']}"

    entries = [sanitize_entry(e) for e in (payload.get("data") or []) if isinstance(e, dict)]
    header = f"💰 Інкасація апарату {device_id}"
    if payload.get("address"):
        header += f"\n📍 {payload['address']}"
    header += f"\n📅 Період: {start} - {end}"
    if not entries:
        return header + "\n\n❌ Дані інкасації за вказаний період не знайдено"

    lines = [header, ""]
    total = 0.0
    for e in entries:
        who = resolve_collector(e.get("descr")).label or "-"
        lines.append(f"{e.get('date')}: {_money(e['total_sum'])} (купюри {e['banknotes']:.2f}, монети {e['coins']:.2f}), {who}")
        total += e["total_sum"]
    lines += ["", f"Всього: {_money(total)} ({len(entries)} записів)"]
    return "\n".join(lines)
