"""
Upsert store interface shared by the storage backends
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Mapping, Optional, Sequence
import logging

logger = logging.getLogger(__name__)


def split_conflict_key(conflict_key: str) -> List[str]:
    """``"a"`` or ``"a,b"`` -> column list"""
    columns = [c.strip() for c in conflict_key.split(",") if c.strip()]
    if not columns:
        raise ValueError("conflict_key must name at least one column")
    return columns


def _has_value(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


class UpsertStore(ABC):
    """
    Destination store with merge-on-conflict writes.

    Ensures:
    - Rows missing any conflict-key value are dropped, never sent
    - Re-delivering a batch leaves the table unchanged (no duplicate keys)
    - A batch either lands whole or raises SinkError
    """

    async def upsert(
        self,
        table: str,
        records: Sequence[Mapping[str, Any]],
        conflict_key: str
    ) -> int:
        """
        Write records, replacing existing rows with the same key.

        Returns:
            Number of rows sent to the store
        """
        keys = split_conflict_key(conflict_key)

        # Last occurrence wins; the backends reject a key twice in one statement
        by_key: Dict[tuple, Dict[str, Any]] = {}
        dropped = 0
        for record in records:
            if not all(_has_value(record.get(k)) for k in keys):
                dropped += 1
                continue
            key = tuple(record[k] for k in keys)
            by_key.pop(key, None)
            by_key[key] = dict(record)

        if dropped:
            logger.warning(f"Dropped {dropped} {table} rows without {conflict_key}")

        rows = list(by_key.values())
        if not rows:
            return 0

        await self._upsert(table, rows, keys)
        logger.info(f"Upserted {len(rows)} rows into {table} on {conflict_key}")
        return len(rows)

    @abstractmethod
    async def _upsert(self, table: str, rows: List[Dict[str, Any]], keys: List[str]) -> None:
        """Backend write; rows are deduplicated and non-empty"""
        pass

    @abstractmethod
    async def insert(self, table: str, records: Sequence[Mapping[str, Any]]) -> int:
        """Plain append with no conflict handling"""
        pass

    @abstractmethod
    async def fetch_one(self, table: str, key_column: str, value: Any) -> Optional[Dict[str, Any]]:
        """Row whose ``key_column`` equals ``value``, or None"""
        pass

