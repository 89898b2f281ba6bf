from sqlalchemy import Column, String, DateTime
from sqlalchemy.dialects.postgresql import JSONB
from models.base import Base


class DobPermit(Base):
    """
    Building permits from the DOB permit issuance dataset.

    ``source_id`` is the permit sequence number when the source has one,
    otherwise a key derived from the parcel and job identifiers.
    """
    __tablename__ = "dob_permits"

    source_id = Column(String(255), primary_key=True)
    bbl = Column(String(10), nullable=True, index=True)
    filed_date = Column(DateTime(timezone=True), nullable=True, index=True)
    job_type = Column(String(20), nullable=True)
    job_status = Column(String(50), nullable=True)
    raw = Column(JSONB, nullable=False)
    ingested_at = Column(DateTime(timezone=True), nullable=False)
