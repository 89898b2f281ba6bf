from sqlalchemy import Column, Integer, DateTime, Text
from sqlalchemy.dialects.postgresql import JSONB
from models.base import Base


class IntelCurrent(Base):
    """Latest scores per parcel; each load replaces the previous row."""
    __tablename__ = "intel_current"

    bbl = Column(Text, primary_key=True)
    distress_score = Column(Integer, nullable=True)
    permit_score = Column(Integer, nullable=True)
    ownership_score = Column(Integer, nullable=True)
    market_score = Column(Integer, nullable=True)
    flags = Column(JSONB, nullable=False, default=list)  # Array of flag codes
    updated_at = Column(DateTime(timezone=True), nullable=False)
