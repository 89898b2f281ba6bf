"""
Upsert store writing straight to PostgreSQL (INSERT ... ON CONFLICT)
"""

from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence
import logging

from sqlalchemy import Table, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import SinkError
from ingestion.loaders.base import UpsertStore
from models import Base

logger = logging.getLogger(__name__)


# asyncpg refuses statements with more bind parameters than this
MAX_BIND_PARAMS = 32767


def chunk_rows(rows: List[Dict[str, Any]]) -> Iterator[List[Dict[str, Any]]]:
    """Slice rows so each multi-row VALUES clause fits in one statement"""
    width = max(len(row) for row in rows)
    size = max(1, MAX_BIND_PARAMS // max(width, 1))
    for start in range(0, len(rows), size):
        yield rows[start:start + size]


class PostgresStore(UpsertStore):
    """
    Load rows into the ORM tables with idempotent upsert statements.

    Ensures:
    - No duplicate rows on repeated runs
    - Existing rows take the incoming values for every non-key column
    - Each statement stays under the asyncpg bind parameter limit
    - One transaction and one commit per batch
    """

    def __init__(self, db_session: AsyncSession):
        self.db = db_session

    def _table(self, table: str) -> Table:
        try:
            return Base.metadata.tables[table]
        except KeyError:
            raise SinkError(table, None, f"Unknown table: {table}")

    async def _execute(self, table: str, statements: List[Any]) -> None:
        try:
            for stmt in statements:
                await self.db.execute(stmt)
            await self.db.commit()
        except SQLAlchemyError as e:
            await self.db.rollback()
            raise SinkError(table, None, str(e), original_exception=e)

    def _upsert_statement(self, target: Table, rows: List[Dict[str, Any]], keys: List[str]):
        stmt = insert(target).values(rows)

        updates = {
            column: stmt.excluded[column]
            for column in rows[0]
            if column not in keys
        }
        if updates:
            return stmt.on_conflict_do_update(index_elements=keys, set_=updates)
        return stmt.on_conflict_do_nothing(index_elements=keys)

    async def _upsert(self, table: str, rows: List[Dict[str, Any]], keys: List[str]) -> None:
        target = self._table(table)
        statements = [
            self._upsert_statement(target, chunk, keys)
            for chunk in chunk_rows(rows)
        ]
        if len(statements) > 1:
            logger.debug(f"Upserting {len(rows)} rows into {table} in {len(statements)} statements")
        await self._execute(table, statements)

    async def insert(self, table: str, records: Sequence[Mapping[str, Any]]) -> int:
        rows = [dict(r) for r in records]
        if not rows:
            return 0
        target = self._table(table)
        await self._execute(table, [insert(target).values(chunk) for chunk in chunk_rows(rows)])
        return len(rows)

    async def fetch_one(self, table: str, key_column: str, value: Any) -> Optional[Dict[str, Any]]:
        target = self._table(table)
        try:
            result = await self.db.execute(
                select(target).where(target.c[key_column] == value).limit(1)
            )
        except SQLAlchemyError as e:
            raise SinkError(table, None, str(e), original_exception=e)

        row = result.mappings().first()
        return dict(row) if row is not None else None

