"""
Named ingestion tasks built from the job settings.

Order: buildings, listings, intel, pluto, dob_permits. Only ``buildings``
is mandatory; the others are scheduled when their source URL is set.
"""

from functools import partial
from typing import Any, Callable, Dict, List, Mapping, Optional, Type
import logging

import httpx

from core.config import Settings
from ingestion.extractors.csv_extractor import CSVSource
from ingestion.extractors.paged_extractor import PagedJSONSource
from ingestion.loaders.base import UpsertStore
from ingestion.paginator import PaginatedIngestion
from ingestion.runner import IngestTask
from ingestion.state import CursorStore
from ingestion.transformers.normalizer import (
    PERMIT_COLUMNS,
    PLUTO_COLUMNS,
    normalize_building,
    normalize_intel,
    normalize_listing,
    normalize_permit,
    normalize_pluto,
    utcnow,
)
from schemas.records import (
    BuildingRecord,
    IngestionRecord,
    IntelScoreRecord,
    ListingRecord,
    PermitRecord,
    PlutoRecord,
)

logger = logging.getLogger(__name__)

Transform = Callable[[Mapping[str, Any]], Optional[IngestionRecord]]


async def ingest_csv(
    source: CSVSource,
    url: str,
    transform: Transform,
    record_type: Type[IngestionRecord],
    store: UpsertStore
) -> Dict[str, Any]:
    """Read a whole CSV export and upsert it in one batch"""
    rows = await source.read(url)

    records = []
    dropped = 0
    for row in rows:
        record = transform(row)
        if record is None:
            dropped += 1
        else:
            records.append(record.to_row())

    if not records:
        logger.info(f"No {record_type.table} rows found in CSV (nothing to upsert)")

    upserted = await store.upsert(record_type.table, records, record_type.conflict_key)
    return {"rows": len(rows), "upserted": upserted, "dropped": dropped}


async def ingest_intel(source: CSVSource, url: str, store: UpsertStore) -> Dict[str, Any]:
    # One timestamp for the whole load so rows without updated_at agree
    transform = partial(normalize_intel, now=utcnow())
    return await ingest_csv(source, url, transform, IntelScoreRecord, store)


async def ingest_paged(
    source_name: str,
    reader: PagedJSONSource,
    transform: Callable[..., Optional[IngestionRecord]],
    record_type: Type[IngestionRecord],
    store: UpsertStore,
    cursors: CursorStore,
    settings: Settings
) -> Dict[str, Any]:
    loop = PaginatedIngestion(
        source_name=source_name,
        reader=reader,
        transform=partial(transform, now=utcnow()),
        record_type=record_type,
        store=store,
        cursors=cursors,
        page_size=settings.PAGE_SIZE,
        max_pages_per_run=settings.MAX_PAGES_PER_RUN
    )
    progress = await loop.run()
    return progress.as_counts()


def build_tasks(
    settings: Settings,
    client: httpx.AsyncClient,
    store: UpsertStore,
    cursors: CursorStore
) -> List[IngestTask]:
    csv_source = CSVSource(client)

    tasks = [
        IngestTask(
            "buildings",
            partial(ingest_csv, csv_source, settings.CSV_URL_BUILDINGS,
                    normalize_building, BuildingRecord, store)
        )
    ]

    if settings.CSV_URL_LISTINGS:
        tasks.append(IngestTask(
            "listings",
            partial(ingest_csv, csv_source, settings.CSV_URL_LISTINGS,
                    normalize_listing, ListingRecord, store)
        ))

    if settings.CSV_URL_INTEL:
        tasks.append(IngestTask(
            "intel",
            partial(ingest_intel, csv_source, settings.CSV_URL_INTEL, store)
        ))

    if settings.PLUTO_URL:
        pluto = PagedJSONSource(
            client,
            settings.PLUTO_URL,
            select=PLUTO_COLUMNS,
            where=settings.PLUTO_WHERE,
            order="bbl",
            auth_token=settings.SOCRATA_APP_TOKEN
        )
        tasks.append(IngestTask(
            "pluto",
            partial(ingest_paged, "pluto", pluto, normalize_pluto,
                    PlutoRecord, store, cursors, settings)
        ))

    if settings.DOB_PERMITS_URL:
        permits = PagedJSONSource(
            client,
            settings.DOB_PERMITS_URL,
            select=PERMIT_COLUMNS,
            where=settings.DOB_PERMITS_WHERE,
            auth_token=settings.SOCRATA_APP_TOKEN
        )
        tasks.append(IngestTask(
            "dob_permits",
            partial(ingest_paged, "dob_permits", permits, normalize_permit,
                    PermitRecord, store, cursors, settings)
        ))

    logger.info(f"Scheduled tasks: {', '.join(t.name for t in tasks)}")
    return tasks
