from sqlalchemy import Column, BigInteger, String, Text, DateTime, Enum, Index, func
from sqlalchemy.dialects.postgresql import JSONB
from models.base import Base, RunStatus


class IngestRun(Base):
    """
    Append-only log of ingestion attempts.

    Purpose:
    - One row per task attempt, plus one heartbeat row per invocation
    - Rows are never updated or deleted
    """
    __tablename__ = "ingest_runs"

    id = Column(BigInteger, primary_key=True, autoincrement=True)
    source = Column(String(100), nullable=False)
    status = Column(
        Enum(RunStatus, name="run_status", values_callable=lambda e: [m.value for m in e]),
        nullable=False,
    )
    detail = Column(Text, nullable=True)
    counts = Column(JSONB, nullable=False, default=dict)
    ran_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now())

    __table_args__ = (
        Index("idx_ingest_runs_source_ran", "source", "ran_at"),
    )
