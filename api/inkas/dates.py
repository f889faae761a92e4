"""
Calendar helpers. All "days" are civil days in SCHEDULE_TZ (Kyiv by default);
storage keeps naive UTC timestamps.
"""
from datetime import date, datetime, time, timedelta, timezone
from typing import List, Optional, Tuple, Union
from zoneinfo import ZoneInfo

from inkas.config import SCHEDULE_TZ

LOCAL_TZ = ZoneInfo(SCHEDULE_TZ)

DayLike = Union[str, date]


def as_date(day: DayLike) -> date:
    if isinstance(day, datetime):
        return day.date()
    if isinstance(day, date):
        return day
    return date.fromisoformat(str(day).strip())


def is_ymd(s: str) -> bool:
    try:
        as_date(s)
    except (TypeError, ValueError):
        return False
    return len(str(s).strip()) == 10


def today(now: Optional[datetime] = None, tz: ZoneInfo = LOCAL_TZ) -> date:
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    return now.astimezone(tz).date()


def yesterday(now: Optional[datetime] = None, tz: ZoneInfo = LOCAL_TZ) -> str:
    return (today(now, tz) - timedelta(days=1)).isoformat()


def dates_to_check(days_back: int = 30, today_: Optional[date] = None) -> List[str]:
    """`days_back` dates ending yesterday, newest first."""
    base = today_ or today()
    return [(base - timedelta(days=i)).isoformat() for i in range(1, int(days_back) + 1)]


def previous_week_range(today_: Optional[date] = None) -> Tuple[str, str]:
    end = (today_ or today()) - timedelta(days=1)
    start = end - timedelta(days=6)
    return start.isoformat(), end.isoformat()


def current_week_range(today_: Optional[date] = None) -> Tuple[str, str]:
    """Monday..Sunday of the week that contains today."""
    base = today_ or today()
    start = base - timedelta(days=base.weekday())
    return start.isoformat(), (start + timedelta(days=6)).isoformat()


def previous_month(today_: Optional[date] = None) -> Tuple[int, int]:
    first = (today_ or today()).replace(day=1)
    prev = first - timedelta(days=1)
    return prev.year, prev.month


def month_range(year: int, month: int) -> Tuple[str, str]:
    start = date(int(year), int(month), 1)
    nxt = date(start.year + (start.month == 12), start.month % 12 + 1, 1)
    return start.isoformat(), (nxt - timedelta(days=1)).isoformat()


def local_day_bounds_utc(day: DayLike, tz: ZoneInfo = LOCAL_TZ) -> Tuple[datetime, datetime]:
    """Naive UTC [start, end) of a local calendar day (23h/25h on DST switch days)."""
    d = as_date(day)
    start = datetime.combine(d, time(0, 0), tzinfo=tz)
    end = datetime.combine(d + timedelta(days=1), time(0, 0), tzinfo=tz)
    return (
        start.astimezone(timezone.utc).replace(tzinfo=None),
        end.astimezone(timezone.utc).replace(tzinfo=None),
    )


def local_range_bounds_utc(start: DayLike, end: DayLike, tz: ZoneInfo = LOCAL_TZ) -> Tuple[datetime, datetime]:
    lo, _ = local_day_bounds_utc(start, tz)
    _, hi = local_day_bounds_utc(end, tz)
    return lo, hi


def parse_upstream_timestamp(raw) -> Optional[datetime]:
    if raw is None:
        return None
    if isinstance(raw, datetime):
        return raw
    s = str(raw).strip()
    if not s:
        return None
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"
    try:
        return datetime.fromisoformat(s)
    except ValueError:
        return None


def local_to_utc(dt: datetime, tz: ZoneInfo = LOCAL_TZ) -> datetime:
    """Upstream civil time -> naive UTC.

    Naive values are read as wall-clock time in `tz`, so the offset is +2 in
    winter and +3 in summer.
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=tz)
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_local(dt_utc: datetime, tz: ZoneInfo = LOCAL_TZ) -> datetime:
    if dt_utc.tzinfo is None:
        dt_utc = dt_utc.replace(tzinfo=timezone.utc)
    return dt_utc.astimezone(tz)
