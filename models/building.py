from sqlalchemy import Column, String, Float, Text
from models.base import Base


class Building(Base):
    """
    One row per tax parcel we track, loaded from the buildings CSV.

    Upserted on ``bbl``.
    """
    __tablename__ = "buildings"

    bbl = Column(Text, primary_key=True)  # 10-digit BBL when the source gives a clean one
    neighborhood_id = Column(String(100), nullable=False, index=True)
    address_norm = Column(String(500), nullable=False, index=True)
    address_display = Column(String(500), nullable=False)
    lat = Column(Float, nullable=True)
    lng = Column(Float, nullable=True)
