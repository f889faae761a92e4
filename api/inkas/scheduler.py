import asyncio
from datetime import datetime, time, timedelta, timezone
from typing import Any, Awaitable, Callable, Optional
from zoneinfo import ZoneInfo

from inkas.config import SCHEDULE_TZ, logger


class DailyScheduler:
    """Runs `job` once a day at a fixed civil time in `tz`.

    The next run is recomputed from wall-clock time after every run, so DST
    switches are handled and a failed run never stops the schedule.
    """

    def __init__(
        self,
        job: Callable[[], Awaitable[Any]],
        *,
        hour: int,
        minute: int = 0,
        tz: str = SCHEDULE_TZ,
        name: str = "daily",
        now: Optional[Callable[[], datetime]] = None,
    ):
        self.job = job
        self.hour = int(hour)
        self.minute = int(minute)
        self.tz = ZoneInfo(tz)
        self.name = name
        self._now = now or (lambda: datetime.now(timezone.utc))
        self._stop = asyncio.Event()
        self._current: Optional[asyncio.Task] = None
        self.runs = 0
        self.failures = 0

    def next_run_at(self, now: Optional[datetime] = None) -> datetime:
        now = now or self._now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        local_now = now.astimezone(self.tz)
        target = datetime.combine(local_now.date(), time(self.hour, self.minute), tzinfo=self.tz)
        if local_now >= target:
            target = datetime.combine(local_now.date() + timedelta(days=1), time(self.hour, self.minute), tzinfo=self.tz)
        return target

    def seconds_until_next_run(self, now: Optional[datetime] = None) -> float:
        now = now or self._now()
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
        target = self.next_run_at(now)
        # compare in UTC: same-tzinfo subtraction ignores DST offsets
        return max(0.0, (target.astimezone(timezone.utc) - now.astimezone(timezone.utc)).total_seconds())

    @property
    def busy(self) -> bool:
        return self._current is not None and not self._current.done()

    async def run_once(self) -> None:
        if self.busy:
            logger.warning("[%s] previous run still in progress, skipping", self.name)
            return
        self._current = asyncio.ensure_future(self.job())
        try:
            # shield: shutdown waits for the run instead of cancelling it
            await asyncio.shield(self._current)
            self.runs += 1
        except asyncio.CancelledError:
            raise
        except Exception:
            self.failures += 1
            logger.exception("[%s] scheduled run failed", self.name)

    async def start(self) -> None:
        logger.info("[%s] scheduler started (%02d:%02d %s)", self.name, self.hour, self.minute, self.tz.key)
        while not self._stop.is_set():
            delay = self.seconds_until_next_run()
            logger.info("[%s] next run at %s (in %d minutes)", self.name, self.next_run_at().isoformat(), int(delay // 60))
            try:
                await asyncio.wait_for(self._stop.wait(), timeout=delay)
                break
            except asyncio.TimeoutError:
                pass
            logger.info("[%s] running scheduled job", self.name)
            await self.run_once()
        logger.info("[%s] scheduler stopped", self.name)

    def request_stop(self) -> None:
        self._stop.set()

    async def stop(self) -> None:
        """Stop re-arming and wait for an in-flight run to finish."""
        self.request_stop()
        if self.busy:
            logger.info("[%s] waiting for the current run to finish", self.name)
            try:
                await self._current
            except Exception:
                logger.exception("[%s] run failed during shutdown", self.name)
