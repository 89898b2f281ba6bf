"""
Upsert store backed by a PostgREST (Supabase) REST endpoint.

Merge semantics come from ``on_conflict`` plus
``Prefer: resolution=merge-duplicates``; PostgREST runs each request in
a single transaction, so a batch lands whole or not at all.
"""

from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Sequence
import json
import logging

import httpx

from core.exceptions import SinkError
from ingestion.loaders.base import UpsertStore

logger = logging.getLogger(__name__)


def _json_default(value: Any):
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, Enum):
        return value.value
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


class PostgrestStore(UpsertStore):
    """
    Write to ``{base_url}/rest/v1/{table}`` with the service role key.
    """

    def __init__(self, client: httpx.AsyncClient, base_url: str, service_key: str):
        self.client = client
        self.base_url = base_url.rstrip("/")
        self.service_key = service_key

    def _url(self, table: str) -> str:
        return f"{self.base_url}/rest/v1/{table}"

    def _headers(self, prefer: Optional[str] = None) -> Dict[str, str]:
        headers = {
            "apikey": self.service_key,
            "Authorization": f"Bearer {self.service_key}",
            "Content-Type": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    async def _send(
        self,
        method: str,
        table: str,
        params: Dict[str, str],
        prefer: Optional[str] = None,
        rows: Optional[List[Dict[str, Any]]] = None
    ) -> httpx.Response:
        content = json.dumps(rows, default=_json_default) if rows is not None else None
        try:
            response = await self.client.request(
                method,
                self._url(table),
                params=params,
                headers=self._headers(prefer),
                content=content
            )
        except httpx.RequestError as e:
            raise SinkError(table, None, str(e), original_exception=e)

        if not response.is_success:
            raise SinkError(table, response.status_code, response.text)
        return response

    async def _upsert(self, table: str, rows: List[Dict[str, Any]], keys: List[str]) -> None:
        await self._send(
            "POST",
            table,
            params={"on_conflict": ",".join(keys)},
            prefer="resolution=merge-duplicates,return=minimal",
            rows=rows
        )

    async def insert(self, table: str, records: Sequence[Mapping[str, Any]]) -> int:
        rows = [dict(r) for r in records]
        if not rows:
            return 0
        await self._send("POST", table, params={}, prefer="return=minimal", rows=rows)
        return len(rows)

    async def fetch_one(self, table: str, key_column: str, value: Any) -> Optional[Dict[str, Any]]:
        response = await self._send(
            "GET",
            table,
            params={key_column: f"eq.{value}", "select": "*", "limit": "1"}
        )
        try:
            data = response.json()
        except ValueError as e:
            raise SinkError(table, response.status_code, response.text, original_exception=e)

        if isinstance(data, list) and data:
            return data[0]
        return None
