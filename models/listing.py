from sqlalchemy import Column, String, Float, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from models.base import Base


class Listing(Base):
    """
    Sale/rental listings keyed by their canonical URL.

    ``raw`` keeps the listing's source payload so fields we do not map
    yet are not lost.
    """
    __tablename__ = "listings"

    listing_url = Column(String(2048), primary_key=True)
    bbl = Column(String(10), nullable=True, index=True)
    source = Column(String(100), nullable=True)
    status = Column(String(50), nullable=True, index=True)
    price = Column(Float, nullable=True)
    listed_date = Column(DateTime(timezone=True), nullable=True)
    raw = Column(JSONB, nullable=False, default=dict)
