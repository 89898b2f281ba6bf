from sqlalchemy import Column, String, Integer, Float, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from models.base import Base


class PlutoRaw(Base):
    """
    Parcel attributes from the PLUTO open dataset.

    Loaded page by page through the resumable cursor; ``raw`` holds the
    full source row.
    """
    __tablename__ = "pluto_raw"

    bbl = Column(String(10), primary_key=True)
    borough = Column(String(2), nullable=True, index=True)
    zoning_district = Column(String(20), nullable=True)
    land_use = Column(String(10), nullable=True)
    year_built = Column(Integer, nullable=True)
    num_floors = Column(Float, nullable=True)
    units_res = Column(Integer, nullable=True)
    units_total = Column(Integer, nullable=True)
    raw = Column(JSONB, nullable=False)
    ingested_at = Column(DateTime(timezone=True), nullable=False)
