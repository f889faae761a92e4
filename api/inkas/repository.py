from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, func, insert, select, true
from sqlalchemy.exc import IntegrityError

from inkas.config import logger
from inkas.dates import DayLike, local_day_bounds_utc, local_range_bounds_utc
from inkas.db import ping
from inkas.models import collections, workers
from inkas.schemas import CollectionRecord, Worker


class CollectionRepository:
    """Storage of collection records. Days are local calendar days."""

    def __init__(self, engine):
        self.engine = engine

    def ping(self) -> None:
        ping(self.engine)

    def release(self) -> None:
        # pooled connections are reopened on demand
        self.engine.dispose()

    def exists(self, device_id: str, day: DayLike) -> bool:
        lo, hi = local_day_bounds_utc(day)
        q = (
            select(collections.c.id)
            .where(collections.c.device_id == str(device_id))
            .where(collections.c.date >= lo, collections.c.date < hi)
            .limit(1)
        )
        with self.engine.connect() as conn:
            return conn.execute(q).first() is not None

    def has_any_data_for_date(self, day: DayLike) -> bool:
        lo, hi = local_day_bounds_utc(day)
        q = select(collections.c.id).where(collections.c.date >= lo, collections.c.date < hi).limit(1)
        with self.engine.connect() as conn:
            return conn.execute(q).first() is not None

    def count_for_date(self, day: DayLike) -> int:
        lo, hi = local_day_bounds_utc(day)
        q = select(func.count()).select_from(collections).where(collections.c.date >= lo, collections.c.date < hi)
        with self.engine.connect() as conn:
            return int(conn.execute(q).scalar() or 0)

    def insert_if_new(self, record: CollectionRecord) -> bool:
        """Insert unless (device, date, banknotes, coins) is already stored."""
        device_id, ts, banknotes, coins = record.dedup_key
        dedup = and_(
            collections.c.device_id == device_id,
            collections.c.date == ts,
            collections.c.sum_banknotes == banknotes,
            collections.c.sum_coins == coins,
        )
        now = datetime.now(timezone.utc)
        try:
            with self.engine.begin() as conn:
                if conn.execute(select(collections.c.id).where(dedup).limit(1)).first():
                    return False
                conn.execute(
                    insert(collections).values(
                        device_id=record.device_id,
                        date=record.timestamp,
                        sum_banknotes=record.banknote_amount,
                        sum_coins=record.coin_amount,
                        total_sum=record.total_amount,
                        note=record.note,
                        machine=record.machine_label or f"Device {record.device_id}",
                        collector_id=record.collector_id,
                        collector_nik=record.collector_label,
                        created_at=now,
                        updated_at=now,
                    )
                )
        except IntegrityError:
            # lost a race with a parallel insert of the same tuple
            logger.debug("duplicate collection device=%s date=%s", record.device_id, record.timestamp)
            return False
        return True

    def list_range(self, start: DayLike, end: DayLike, device_id: Optional[str] = None) -> List[Dict[str, Any]]:
        lo, hi = local_range_bounds_utc(start, end)
        q = select(collections).where(collections.c.date >= lo, collections.c.date < hi)
        if device_id is not None:
            q = q.where(collections.c.device_id == str(device_id))
        q = q.order_by(collections.c.date.asc(), collections.c.device_id.asc())
        with self.engine.connect() as conn:
            return [dict(r) for r in conn.execute(q).mappings().all()]

    def delete_range(self, start: DayLike, end: DayLike) -> List[Dict[str, Any]]:
        lo, hi = local_range_bounds_utc(start, end)
        where = and_(collections.c.date >= lo, collections.c.date < hi)
        with self.engine.begin() as conn:
            rows = [dict(r) for r in conn.execute(select(collections).where(where)).mappings().all()]
            conn.execute(delete(collections).where(where))
        logger.info("deleted %s collection records for %s..%s", len(rows), start, end)
        return rows

    def summary_by_date(self, day: DayLike) -> List[Dict[str, Any]]:
        lo, hi = local_day_bounds_utc(day)
        q = (
            select(
                collections.c.device_id,
                func.sum(collections.c.sum_banknotes).label("total_banknotes"),
                func.sum(collections.c.sum_coins).label("total_coins"),
                func.sum(collections.c.total_sum).label("total_sum"),
                func.count().label("collection_count"),
                func.max(collections.c.date).label("last_collection_time"),
            )
            .where(collections.c.date >= lo, collections.c.date < hi)
            .group_by(collections.c.device_id)
            .order_by(collections.c.device_id)
        )
        with self.engine.connect() as conn:
            return [dict(r) for r in conn.execute(q).mappings().all()]

    def summary_by_collector(self, start: DayLike, end: DayLike) -> List[Dict[str, Any]]:
        lo, hi = local_range_bounds_utc(start, end)
        q = (
            select(
                collections.c.collector_nik,
                func.sum(collections.c.total_sum).label("total_sum"),
                func.sum(collections.c.sum_banknotes).label("total_banknotes"),
                func.sum(collections.c.sum_coins).label("total_coins"),
                func.count().label("collection_count"),
                func.count(func.distinct(collections.c.device_id)).label("devices"),
            )
            .where(collections.c.date >= lo, collections.c.date < hi)
            .group_by(collections.c.collector_nik)
            .order_by(func.sum(collections.c.total_sum).desc())
        )
        with self.engine.connect() as conn:
            return [dict(r) for r in conn.execute(q).mappings().all()]

    def statistics(self, start: DayLike, end: DayLike) -> Dict[str, Any]:
        lo, hi = local_range_bounds_utc(start, end)
        q = select(
            func.count().label("total_collections"),
            func.count(func.distinct(collections.c.device_id)).label("devices_with_collections"),
            func.coalesce(func.sum(collections.c.sum_banknotes), 0).label("total_banknotes"),
            func.coalesce(func.sum(collections.c.sum_coins), 0).label("total_coins"),
            func.coalesce(func.sum(collections.c.total_sum), 0).label("total_amount"),
            func.count(func.distinct(collections.c.collector_nik)).label("unique_collectors"),
        ).where(collections.c.date >= lo, collections.c.date < hi)
        with self.engine.connect() as conn:
            row = dict(conn.execute(q).mappings().one())
        n = int(row["total_collections"] or 0)
        row["average_collection_amount"] = (float(row["total_amount"]) / n) if n else 0.0
        return row


class WorkerRepository:
    def __init__(self, engine):
        self.engine = engine

    def list_active(self) -> List[Worker]:
        q = (
            select(workers.c.chat_id, workers.c.name, workers.c.phone)
            .where(workers.c.chat_id.is_not(None), workers.c.active == true())
            .order_by(workers.c.name.asc())
        )
        with self.engine.connect() as conn:
            rows = conn.execute(q).mappings().all()
        return [Worker(chat_id=str(r["chat_id"]), name=r["name"], phone=r["phone"]) for r in rows]
