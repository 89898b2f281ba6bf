"""
Pydantic schemas for record validation and API responses.

Schemas:
    records: One typed record per destination table, each carrying its
        table name and conflict key
    api: Trigger endpoint responses

Usage:
    from schemas.records import BuildingRecord
    from schemas.api import TriggerResponse

Example:
    record = BuildingRecord(
        bbl="1000010010",
        neighborhood_id="fidi",
        address_display="1 Main St",
        address_norm="1 main st",
    )
    await store.upsert(record.table, [record.to_row()], record.conflict_key)
"""

__all__ = [
    "records",
    "api",
]
