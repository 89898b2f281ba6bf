"""
Pydantic record types, one per destination table.

Each record names the table it is written to and the conflict key the
store merges on. Records are frozen once built; transforms in
``ingestion.transformers.normalizer`` are the only place they are made.
"""

from datetime import datetime
from typing import Any, ClassVar, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class IngestionRecord(BaseModel):
    """Base for all destination records"""

    model_config = ConfigDict(frozen=True)

    table: ClassVar[str]
    conflict_key: ClassVar[str]

    def to_row(self) -> Dict[str, Any]:
        """Column -> value mapping handed to the upsert store"""
        return self.model_dump()


class BuildingRecord(IngestionRecord):
    """Row for ``buildings``"""

    table: ClassVar[str] = "buildings"
    conflict_key: ClassVar[str] = "bbl"

    neighborhood_id: str = Field(..., min_length=1, max_length=100)
    bbl: str = Field(..., min_length=1)
    address_norm: str = Field(..., min_length=1, max_length=500)
    address_display: str = Field(..., min_length=1, max_length=500)
    lat: Optional[float] = Field(None, ge=-90, le=90)
    lng: Optional[float] = Field(None, ge=-180, le=180)


class ListingRecord(IngestionRecord):
    """Row for ``listings``"""

    table: ClassVar[str] = "listings"
    conflict_key: ClassVar[str] = "listing_url"

    listing_url: str = Field(..., min_length=1, max_length=2048)
    bbl: Optional[str] = Field(None, max_length=10)
    source: Optional[str] = None
    status: Optional[str] = None
    price: Optional[float] = None
    listed_date: Optional[datetime] = None
    raw: Dict[str, Any] = Field(default_factory=dict)


class IntelScoreRecord(IngestionRecord):
    """Row for ``intel_current``"""

    table: ClassVar[str] = "intel_current"
    conflict_key: ClassVar[str] = "bbl"

    bbl: str = Field(..., min_length=1)
    distress_score: Optional[int] = None
    permit_score: Optional[int] = None
    ownership_score: Optional[int] = None
    market_score: Optional[int] = None
    flags: List[Any] = Field(default_factory=list)
    updated_at: datetime


class PlutoRecord(IngestionRecord):
    """Row for ``pluto_raw``"""

    table: ClassVar[str] = "pluto_raw"
    conflict_key: ClassVar[str] = "bbl"

    bbl: str = Field(..., min_length=10, max_length=10)
    borough: Optional[str] = None
    zoning_district: Optional[str] = None
    land_use: Optional[str] = None
    year_built: Optional[int] = None
    num_floors: Optional[float] = None
    units_res: Optional[int] = None
    units_total: Optional[int] = None
    raw: Dict[str, Any]
    ingested_at: datetime


class PermitRecord(IngestionRecord):
    """Row for ``dob_permits``"""

    table: ClassVar[str] = "dob_permits"
    conflict_key: ClassVar[str] = "source_id"

    source_id: str = Field(..., min_length=1, max_length=255)
    bbl: Optional[str] = Field(None, max_length=10)
    filed_date: Optional[datetime] = None
    job_type: Optional[str] = None
    job_status: Optional[str] = None
    raw: Dict[str, Any]
    ingested_at: datetime
