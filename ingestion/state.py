"""
Resumption cursors for paginated sources.

One ``ingest_state`` row per source holds ``{"offset": n}`` while a scan
is in progress. Exhausting the source resets it to ``{}``, so the next
scheduled run rescans from the start and picks up rows the upstream
dataset gained or replaced in the meantime.
"""

from datetime import datetime, timezone
from typing import Any
import logging

from pydantic import BaseModel, ConfigDict, Field

from ingestion.coercion import to_integer, to_json
from ingestion.loaders.base import UpsertStore

logger = logging.getLogger(__name__)

STATE_TABLE = "ingest_state"


class Cursor(BaseModel):
    """Position of the next page to fetch"""

    model_config = ConfigDict(frozen=True)

    offset: int = Field(0, ge=0)

    @classmethod
    def from_state(cls, raw: Any) -> "Cursor":
        """Read a stored cursor; missing, empty or unreadable means start over"""
        data = to_json(raw, dict)
        offset = to_integer(data.get("offset"))
        if offset is None or offset < 0:
            return cls()
        return cls(offset=offset)

    def to_state(self) -> dict:
        return {"offset": self.offset}


class CursorStore:
    """Load and persist cursors through the upsert store"""

    def __init__(self, store: UpsertStore):
        self.store = store

    async def load(self, source_name: str) -> Cursor:
        row = await self.store.fetch_one(STATE_TABLE, "source", source_name)
        cursor = Cursor.from_state(row.get("cursor") if row else None)
        logger.debug(f"Loaded cursor for {source_name}: offset={cursor.offset}")
        return cursor

    async def save(self, source_name: str, cursor: Cursor, exhausted: bool = False) -> None:
        """
        Persist the cursor. ``exhausted`` stores the empty cursor whatever
        value was passed, forcing a full restart on the next run.
        """
        state = {} if exhausted else cursor.to_state()
        await self.store.upsert(
            STATE_TABLE,
            [{
                "source": source_name,
                "cursor": state,
                "updated_at": datetime.now(timezone.utc),
            }],
            "source"
        )
        logger.debug(f"Saved cursor for {source_name}: {state or 'reset'}")
