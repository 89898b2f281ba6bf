"""
Pytest configuration and fixtures
"""

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence
import json

import httpx
import pytest

from core.config import Settings
from ingestion.loaders.base import UpsertStore

CSV_URL = "https://sheets.example.com/buildings.csv"
SUPABASE_URL = "https://project.supabase.co"
SERVICE_KEY = "service-role-key"


class MemoryStore(UpsertStore):
    """
    In-memory upsert store with the same merge semantics as the real
    backends: rows are keyed per table, incoming columns overwrite.
    """

    def __init__(self):
        self.tables: Dict[str, Dict[tuple, Dict[str, Any]]] = {}
        self.appended: Dict[str, List[Dict[str, Any]]] = {}
        self.upsert_calls: List[tuple] = []
        self.fail_on: Dict[str, Exception] = {}

    async def _upsert(self, table: str, rows: List[Dict[str, Any]], keys: List[str]) -> None:
        if table in self.fail_on:
            raise self.fail_on[table]
        self.upsert_calls.append((table, len(rows)))
        target = self.tables.setdefault(table, {})
        for row in rows:
            key = tuple(row[k] for k in keys)
            target[key] = {**target.get(key, {}), **row}

    async def insert(self, table: str, records: Sequence[Mapping[str, Any]]) -> int:
        if table in self.fail_on:
            raise self.fail_on[table]
        rows = [dict(r) for r in records]
        self.appended.setdefault(table, []).extend(rows)
        return len(rows)

    async def fetch_one(self, table: str, key_column: str, value: Any) -> Optional[Dict[str, Any]]:
        for row in self.tables.get(table, {}).values():
            if row.get(key_column) == value:
                return dict(row)
        return None

    def rows(self, table: str) -> List[Dict[str, Any]]:
        return list(self.tables.get(table, {}).values())


def json_response(data: Any, status_code: int = 200) -> httpx.Response:
    return httpx.Response(status_code, content=json.dumps(data).encode("utf-8"),
                          headers={"content-type": "application/json"})


def mock_client(handler: Callable[[httpx.Request], httpx.Response]) -> httpx.AsyncClient:
    """AsyncClient whose requests are answered by ``handler``"""
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def make_settings():
    """Build settings from keyword values only (no environment file)"""
    def _make(**overrides) -> Settings:
        values = {
            "CSV_URL_BUILDINGS": CSV_URL,
            "SUPABASE_URL": SUPABASE_URL,
            "SUPABASE_SERVICE_ROLE_KEY": SERVICE_KEY,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)
    return _make


@pytest.fixture
def settings(make_settings):
    return make_settings()


@pytest.fixture
def buildings_csv():
    """Buildings export with one row of each kind the job must handle"""
    return (
        "bbl,neighborhood_id,address_display,address_norm,lat,lng\n"
        "1000010010,fidi,\"1 Main St, Unit A\",,40.7,-74.01\n"
        "1000010020,fidi,2 Main St,2 main street,,\n"
        ",fidi,3 Main St,,,\n"
        "1000010040,,4 Main St,,,\n"
    )


@pytest.fixture
def pluto_rows():
    return [
        {"bbl": "1000010010.00000000", "borough": "MN", "zonedist1": "C5-3",
         "landuse": "05", "yearbuilt": "1920", "numfloors": "12.5",
         "unitsres": "40", "unitstotal": "42"},
        {"borough": "BK", "block": "123", "lot": "45", "yearbuilt": "1931"},
        {"borough": "XX", "block": "1", "lot": "1"},
    ]
