from sqlalchemy import BigInteger, Boolean, Column, DateTime, Float, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import declarative_base
from sqlalchemy.sql import func

Base = declarative_base()


class Collection(Base):
    __tablename__ = "collections"
    __table_args__ = (
        # the only identity upstream gives us
        UniqueConstraint("device_id", "date", "sum_banknotes", "sum_coins", name="uq_collections_dedup"),
        Index("idx_collections_date", "date"),
        Index("idx_collections_device_date", "device_id", "date"),
    )

    id = Column(Integer, primary_key=True)
    device_id = Column(String, nullable=False)
    date = Column(DateTime, nullable=False)  # UTC
    sum_banknotes = Column(Float, nullable=False, default=0)
    sum_coins = Column(Float, nullable=False, default=0)
    total_sum = Column(Float, nullable=False, default=0)
    note = Column(Text)
    machine = Column(String)
    collector_id = Column(String)
    collector_nik = Column(String)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now())


class Worker(Base):
    __tablename__ = "workers"

    id = Column(Integer, primary_key=True)
    chat_id = Column(BigInteger, unique=True, nullable=False)
    name = Column(String)
    phone = Column(String)
    active = Column(Boolean)


collections = Collection.__table__
workers = Worker.__table__
