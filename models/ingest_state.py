from sqlalchemy import Column, String, DateTime, func
from sqlalchemy.dialects.postgresql import JSONB
from models.base import Base


class IngestState(Base):
    """
    Resumption cursor per paginated source.

    Design:
    - One row per source, upserted on ``source``
    - ``cursor`` is ``{"offset": n}`` while a scan is in progress and
      ``{}`` once the source has been exhausted, so the next run starts over
    """
    __tablename__ = "ingest_state"

    source = Column(String(100), primary_key=True)
    cursor = Column(JSONB, nullable=False, default=dict)
    updated_at = Column(DateTime(timezone=True), nullable=False, server_default=func.now(), onupdate=func.now())
