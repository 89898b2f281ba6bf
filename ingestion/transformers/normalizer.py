"""
Transform source rows into destination records.

Every ``normalize_*`` function returns a validated record, or None when
the row cannot produce its conflict key (or fails validation). Callers
count the Nones as dropped rows; a bad row never aborts the batch.
"""

from datetime import datetime, timezone
from typing import Any, Mapping, Optional, Type, TypeVar
import logging

from pydantic import ValidationError

from ingestion.coercion import to_integer, to_json, to_number, to_timestamp
from schemas.records import (
    BuildingRecord,
    IngestionRecord,
    IntelScoreRecord,
    ListingRecord,
    PermitRecord,
    PlutoRecord,
)

logger = logging.getLogger(__name__)

R = TypeVar("R", bound=IngestionRecord)

# Borough code, two-letter abbreviation and name all map to the BBL digit
BOROUGH_CODES = {
    "1": "1", "MN": "1", "MANHATTAN": "1",
    "2": "2", "BX": "2", "BRONX": "2",
    "3": "3", "BK": "3", "BROOKLYN": "3",
    "4": "4", "QN": "4", "QUEENS": "4",
    "5": "5", "SI": "5", "STATEN ISLAND": "5", "STATEN IS": "5",
}

# Columns requested from the paged datasets
PLUTO_COLUMNS = [
    "bbl", "borough", "borocode", "block", "lot", "zonedist1", "landuse",
    "yearbuilt", "numfloors", "unitsres", "unitstotal",
]
PERMIT_COLUMNS = [
    "permit_si_no", "bbl", "borough", "block", "lot", "job__", "job_doc___",
    "job_type", "permit_status", "filing_date",
]


def _text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _build(model: Type[R], **fields) -> Optional[R]:
    try:
        return model(**fields)
    except ValidationError as e:
        logger.debug(f"Dropping {model.table} row: {e.error_count()} validation errors")
        return None


def clean_bbl(raw: Any) -> Optional[str]:
    """
    Normalize a BBL value to its 10-digit string.

    Datasets publish it as ``1000010010``, ``"1000010010"`` or
    ``"1000010010.00000000"``.
    """
    text = _text(raw)
    if text is None:
        return None
    whole, _, fraction = text.partition(".")
    if fraction.strip("0"):
        return None
    if len(whole) != 10 or not whole.isdigit():
        return None
    return whole


def derive_bbl(borough: Any, block: Any, lot: Any) -> Optional[str]:
    """Compose borough digit + 5-digit block + 4-digit lot"""
    code = BOROUGH_CODES.get((_text(borough) or "").upper())
    block_no = to_integer(block)
    lot_no = to_integer(lot)
    if code is None or block_no is None or lot_no is None:
        return None
    if not (0 <= block_no <= 99999 and 0 <= lot_no <= 9999):
        return None
    return f"{code}{block_no:05d}{lot_no:04d}"


def parcel_key(raw: Any) -> Optional[str]:
    """Clean 10-digit BBL when it parses, otherwise the trimmed source text"""
    return clean_bbl(raw) or _text(raw)


def coordinate(raw: Any, limit: float) -> Optional[float]:
    """Degrees within +/-limit; anything else is treated as missing"""
    value = to_number(raw)
    if value is None or abs(value) > limit:
        return None
    return value


def normalize_building(row: Mapping[str, Any]) -> Optional[BuildingRecord]:
    bbl = parcel_key(row.get("bbl"))
    neighborhood_id = _text(row.get("neighborhood_id"))
    address_display = _text(row.get("address_display"))
    if not (bbl and neighborhood_id and address_display):
        return None

    return _build(
        BuildingRecord,
        neighborhood_id=neighborhood_id,
        bbl=bbl,
        address_norm=_text(row.get("address_norm")) or address_display.lower(),
        address_display=address_display,
        lat=coordinate(row.get("lat"), 90),
        lng=coordinate(row.get("lng"), 180),
    )


def normalize_listing(row: Mapping[str, Any]) -> Optional[ListingRecord]:
    listing_url = _text(row.get("listing_url")) or _text(row.get("url"))
    if not listing_url:
        return None

    return _build(
        ListingRecord,
        listing_url=listing_url,
        bbl=clean_bbl(row.get("bbl")),
        source=_text(row.get("source")),
        status=_text(row.get("status")),
        price=to_number(row.get("price")),
        listed_date=to_timestamp(row.get("listed_date")),
        raw=to_json(row.get("raw"), dict),
    )


def normalize_intel(row: Mapping[str, Any], now: datetime) -> Optional[IntelScoreRecord]:
    bbl = parcel_key(row.get("bbl"))
    if not bbl:
        return None

    return _build(
        IntelScoreRecord,
        bbl=bbl,
        distress_score=to_integer(row.get("distress_score")),
        permit_score=to_integer(row.get("permit_score")),
        ownership_score=to_integer(row.get("ownership_score")),
        market_score=to_integer(row.get("market_score")),
        flags=to_json(row.get("flags"), list),
        updated_at=to_timestamp(row.get("updated_at")) or now,
    )


def normalize_pluto(row: Mapping[str, Any], now: datetime) -> Optional[PlutoRecord]:
    bbl = clean_bbl(row.get("bbl")) or derive_bbl(
        row.get("borocode") or row.get("borough"), row.get("block"), row.get("lot")
    )
    if bbl is None:
        return None

    return _build(
        PlutoRecord,
        bbl=bbl,
        borough=_text(row.get("borough")),
        zoning_district=_text(row.get("zonedist1")),
        land_use=_text(row.get("landuse")),
        year_built=to_integer(row.get("yearbuilt")),
        num_floors=to_number(row.get("numfloors")),
        units_res=to_integer(row.get("unitsres")),
        units_total=to_integer(row.get("unitstotal")),
        raw=dict(row),
        ingested_at=now,
    )


def permit_source_id(row: Mapping[str, Any], bbl: Optional[str]) -> Optional[str]:
    """
    Natural id is the permit sequence number. Without it, fall back to
    parcel + job + document + filing date, which requires a parcel id.
    """
    source_id = _text(row.get("permit_si_no"))
    if source_id:
        return source_id
    if bbl is None:
        return None
    parts = [bbl] + [
        _text(row.get(field)) or ""
        for field in ("job__", "job_doc___", "filing_date")
    ]
    return ":".join(parts)


def normalize_permit(row: Mapping[str, Any], now: datetime) -> Optional[PermitRecord]:
    bbl = clean_bbl(row.get("bbl")) or derive_bbl(
        row.get("borough"), row.get("block"), row.get("lot")
    )
    source_id = permit_source_id(row, bbl)
    if source_id is None:
        return None

    return _build(
        PermitRecord,
        source_id=source_id,
        bbl=bbl,
        filed_date=to_timestamp(row.get("filing_date")),
        job_type=_text(row.get("job_type")),
        job_status=_text(row.get("permit_status")) or _text(row.get("job_status")),
        raw=dict(row),
        ingested_at=now,
    )


def utcnow() -> datetime:
    return datetime.now(timezone.utc)
