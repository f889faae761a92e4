"""
Daily completeness check: walks back over the last N days and backfills
dates that have no collection records yet.

Per date: PENDING -> SKIPPED (storage already has data) or
PENDING -> PROCESSING -> COMPLETED. There are no retries at the date level,
only per device inside fetch_with_retry.
"""
import asyncio
import time
from dataclasses import dataclass
from datetime import date
from typing import Any, Awaitable, Callable, Dict, List, Optional

from inkas.collectors import resolve_collector
from inkas.config import (
    COMPLETENESS_BATCH_DELAY,
    COMPLETENESS_BATCH_SIZE,
    COMPLETENESS_DATE_DELAY,
    COMPLETENESS_DAYS_BACK,
    COMPLETENESS_DEVICE_DELAY,
    COMPLETENESS_MAX_RETRIES,
    COMPLETENESS_RETRY_DELAY,
    logger,
)
from inkas.dates import as_date, dates_to_check, local_to_utc, parse_upstream_timestamp
from inkas.device_api import DeviceApiError
from inkas.retry import fetch_with_retry
from inkas.sanitizer import log_sanitization_issue, sanitize_entry
from inkas.schemas import CollectionRecord, DateOutcome, Device, ReconciliationRun


@dataclass
class CompletenessConfig:
    days_back: int = COMPLETENESS_DAYS_BACK
    max_retries: int = COMPLETENESS_MAX_RETRIES
    retry_delay: float = COMPLETENESS_RETRY_DELAY
    batch_size: int = COMPLETENESS_BATCH_SIZE
    device_delay: float = COMPLETENESS_DEVICE_DELAY
    batch_delay: float = COMPLETENESS_BATCH_DELAY
    date_delay: float = COMPLETENESS_DATE_DELAY


def build_record(entry: Dict[str, Any], device: Device) -> Optional[CollectionRecord]:
    """Sanitized record for one upstream entry, or None if it must not be stored."""
    clean = sanitize_entry(entry)
    for field in ("banknotes", "coins"):
        log_sanitization_issue(entry.get(field), clean[field], f"device {device.id} {field}")

    banknotes, coins = clean["banknotes"], clean["coins"]
    if banknotes < 0 or coins < 0:
        logger.warning("negative amounts for device %s: %r", device.id, entry)
        return None
    if banknotes + coins == 0:
        # zero entry = nothing collected yet
        logger.debug("skip zero-sum entry for device %s", device.id)
        return None

    ts = parse_upstream_timestamp(entry.get("date"))
    if ts is None:
        logger.warning("bad date for device %s: %r", device.id, entry.get("date"))
        return None

    descr = entry.get("descr")
    note = str(descr) if descr is not None else ""
    who = resolve_collector(note)
    return CollectionRecord(
        device_id=device.id,
        timestamp=local_to_utc(ts),
        banknote_amount=banknotes,
        coin_amount=coins,
        total_amount=clean["total_sum"],
        note=note or None,
        collector_id=who.id,
        collector_label=who.label,
        machine_label=device.label,
    )


class CompletenessChecker:
    def __init__(
        self,
        repo,
        client,
        config: Optional[CompletenessConfig] = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        today: Optional[Callable[[], date]] = None,
    ):
        self.repo = repo
        self.client = client
        self.config = config or CompletenessConfig()
        self._sleep = sleep
        self._today = today
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    async def run(self) -> ReconciliationRun:
        """Check the whole window. Only setup failures produce success=False."""
        today = self._today() if self._today else None
        dates = dates_to_check(self.config.days_back, today)
        logger.info("starting completeness check for %s dates", len(dates))
        return await self._execute(dates, skip_if_has_data=True)

    async def fill_date(self, day) -> ReconciliationRun:
        """Fetch one date unconditionally. Dedup keeps this safe to repeat."""
        return await self._execute([as_date(day).isoformat()], skip_if_has_data=False)

    async def _execute(self, dates: List[str], *, skip_if_has_data: bool) -> ReconciliationRun:
        if self._running:
            logger.warning("completeness check already running, new run refused")
            return ReconciliationRun(success=False, error="already running", dates=dates)

        self._running = True
        started = time.monotonic()
        try:
            try:
                await asyncio.to_thread(self.repo.ping)
                logger.info("database connection established")
            except Exception as e:
                logger.error("database unavailable: %s", e)
                return ReconciliationRun(success=False, error=f"Database unavailable: {e}", dates=dates)

            try:
                devices = await self.client.list_devices(strict=True)
            except DeviceApiError as e:
                logger.error("device list unavailable: %s", e)
                return ReconciliationRun(success=False, error=f"Device list unavailable: {e}", dates=dates)
            logger.info("found %s devices", len(devices))

            results: List[DateOutcome] = []
            for i, day in enumerate(dates):
                outcome = await self._process_date(day, devices, skip_if_has_data)
                results.append(outcome)
                if outcome.status == "completed" and i < len(dates) - 1:
                    await self._sleep(self.config.date_delay)

            run = ReconciliationRun(
                success=True,
                duration=time.monotonic() - started,
                dates=dates,
                dates_checked=len(dates),
                dates_processed=sum(1 for r in results if r.status == "completed"),
                dates_skipped=sum(1 for r in results if r.status == "skipped"),
                total_saved=sum(r.total_saved for r in results),
                devices=len(devices),
                results=results,
            )
            logger.info(
                "completeness check done in %.1fs: checked=%s processed=%s skipped=%s saved=%s",
                run.duration, run.dates_checked, run.dates_processed, run.dates_skipped, run.total_saved,
            )
            return run
        finally:
            self._running = False
            try:
                await asyncio.to_thread(self.repo.release)
                logger.info("database connection released")
            except Exception:
                logger.exception("database release failed")

    async def _has_data(self, day: str) -> bool:
        try:
            return await asyncio.to_thread(self.repo.has_any_data_for_date, day)
        except Exception as e:
            logger.error("error checking data for %s: %s", day, e)
            return False

    async def _process_date(self, day: str, devices: List[Device], skip_if_has_data: bool) -> DateOutcome:
        if skip_if_has_data and await self._has_data(day):
            logger.info("date %s already has collection data, skipping", day)
            return DateOutcome(date=day, status="skipped", reason="has_data")

        logger.info("date %s has no data, fetching from API", day)
        size = max(1, int(self.config.batch_size))
        processed = with_data = saved_total = 0

        for start in range(0, len(devices), size):
            batch = devices[start:start + size]
            for saved in await asyncio.gather(*(self._process_device(d, day) for d in batch)):
                if saved is None:
                    continue
                processed += 1
                saved_total += saved
                if saved > 0:
                    with_data += 1
            if start + size < len(devices):
                await self._sleep(self.config.batch_delay)

        logger.info("date %s completed: %s devices processed, %s with data, %s entries saved", day, processed, with_data, saved_total)
        return DateOutcome(
            date=day,
            status="completed",
            processed_devices=processed,
            devices_with_data=with_data,
            total_saved=saved_total,
        )

    async def _process_device(self, device: Device, day: str) -> Optional[int]:
        """Saved count for one device, None when the device was skipped."""
        try:
            payload = await fetch_with_retry(
                self.client,
                device.id,
                day,
                max_retries=self.config.max_retries,
                retry_delay=self.config.retry_delay,
                sleep=self._sleep,
            )
            if "error" in payload:
                logger.warning("device %s on %s skipped: %s", device.id, day, payload["error"])
                return None

            saved = await asyncio.to_thread(self._save_entries, payload.get("data") or [], device, day)
            if saved:
                logger.info("device %s: saved %s entries for %s", device.id, saved, day)
            await self._sleep(self.config.device_delay)
            return saved
        except Exception:
            logger.exception("error processing device %s for %s", device.id, day)
            return None

    def _save_entries(self, entries: List[Dict[str, Any]], device: Device, day: str) -> int:
        saved = 0
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            try:
                record = build_record(entry, device)
            except Exception as e:
                logger.warning("bad entry for device %s on %s: %s (%r)", device.id, day, e, entry)
                continue
            if record is None:
                continue
            try:
                if self.repo.insert_if_new(record):
                    saved += 1
            except Exception as e:
                logger.error("database error for device %s on %s: %s", device.id, day, e)
        return saved
