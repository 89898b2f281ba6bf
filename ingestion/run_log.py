"""
Append-only run log (``ingest_runs``)
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
import logging

from ingestion.loaders.base import UpsertStore
from models.base import RunStatus

logger = logging.getLogger(__name__)

RUNS_TABLE = "ingest_runs"
HEARTBEAT_SOURCE = "heartbeat"

# Failure detail stored per row is cut to this many characters
MAX_DETAIL_CHARS = 2000


class RunLog:
    """
    One row per task attempt plus one heartbeat per invocation.

    Rows are inserted, never upserted, updated or deleted. A failed
    write raises SinkError; the caller decides whether to escalate.
    """

    def __init__(self, store: UpsertStore):
        self.store = store

    async def append(
        self,
        source: str,
        status: RunStatus,
        detail: Optional[str] = None,
        counts: Optional[Dict[str, Any]] = None
    ) -> None:
        row = {
            "source": source,
            "status": RunStatus(status),
            "detail": detail[:MAX_DETAIL_CHARS] if detail else None,
            "counts": counts or {},
            "ran_at": datetime.now(timezone.utc),
        }
        await self.store.insert(RUNS_TABLE, [row])

    async def heartbeat(self) -> None:
        await self.append(HEARTBEAT_SOURCE, RunStatus.OK, counts={})
