"""
SQLAlchemy ORM models for the destination tables.

Models:
    base: Declarative base and the RunStatus enum
    building: buildings (conflict key: bbl)
    listing: listings (conflict key: listing_url)
    intel: intel_current (conflict key: bbl)
    pluto: pluto_raw (conflict key: bbl)
    permit: dob_permits (conflict key: source_id)
    ingest_state: ingest_state cursors (conflict key: source)
    ingest_run: ingest_runs append-only run log

Importing this package registers every table on ``Base.metadata``,
which the Postgres store uses to look tables up by name.
"""

from models.base import Base, RunStatus
from models.building import Building
from models.listing import Listing
from models.intel import IntelCurrent
from models.pluto import PlutoRaw
from models.permit import DobPermit
from models.ingest_state import IngestState
from models.ingest_run import IngestRun

__all__ = [
    "Base",
    "RunStatus",
    "Building",
    "Listing",
    "IntelCurrent",
    "PlutoRaw",
    "DobPermit",
    "IngestState",
    "IngestRun",
]
