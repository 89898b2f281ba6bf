"""
End-to-end tests for one ingestion invocation
"""

import json
from unittest.mock import patch

import httpx
import pytest

from core.exceptions import FetchError, SinkError
from ingestion.job import main, run_ingest
from ingestion.run_log import HEARTBEAT_SOURCE, RUNS_TABLE
from ingestion.state import STATE_TABLE
from models.base import RunStatus
from tests.conftest import CSV_URL, SUPABASE_URL, json_response, mock_client

PLUTO_URL = "https://data.example.org/resource/64uk-42ks.json"
LISTINGS_URL = "https://sheets.example.com/listings.csv"


def pluto_dataset(count):
    return [{"bbl": f"1{n:05d}0001", "borough": "MN", "yearbuilt": "1920"} for n in range(1, count + 1)]


def bare_url(request):
    return f"{request.url.scheme}://{request.url.host}{request.url.path}"


def source_handler(routes):
    """Answer GETs by URL without query string; everything else is a 404"""
    def handler(request):
        url = bare_url(request)
        route = routes.get(url)
        if route is None:
            return httpx.Response(404, text="not found")
        return route(request)
    return handler


def paged(rows):
    def route(request):
        offset = int(request.url.params["$offset"])
        limit = int(request.url.params["$limit"])
        return json_response(rows[offset:offset + limit])
    return route


@pytest.mark.asyncio
async def test_buildings_only_run(settings, memory_store, buildings_csv):
    handler = source_handler({CSV_URL: lambda r: httpx.Response(200, text=buildings_csv)})

    async with mock_client(handler) as client:
        results = await run_ingest(settings, client, memory_store)

    assert list(results) == ["buildings"]
    assert results["buildings"]["rows"] == 4
    assert results["buildings"]["upserted"] == 2
    assert results["buildings"]["dropped"] == 2

    buildings = {r["bbl"]: r for r in memory_store.rows("buildings")}
    assert set(buildings) == {"1000010010", "1000010020"}
    assert buildings["1000010010"]["address_display"] == "1 Main St, Unit A"
    assert buildings["1000010010"]["address_norm"] == "1 main st, unit a"
    assert buildings["1000010020"]["address_norm"] == "2 main street"
    assert buildings["1000010020"]["lat"] is None

    runs = memory_store.appended[RUNS_TABLE]
    assert [(r["source"], r["status"]) for r in runs] == [
        (HEARTBEAT_SOURCE, RunStatus.OK),
        ("buildings", RunStatus.OK),
    ]


@pytest.mark.asyncio
async def test_empty_csv_is_not_an_error(settings, memory_store):
    handler = source_handler({CSV_URL: lambda r: httpx.Response(200, text="bbl,neighborhood_id\n")})

    async with mock_client(handler) as client:
        results = await run_ingest(settings, client, memory_store)

    assert {k: v for k, v in results["buildings"].items() if k != "started_at"} == {
        "rows": 0, "upserted": 0, "dropped": 0
    }
    assert memory_store.upsert_calls == []


@pytest.mark.asyncio
async def test_rerun_is_idempotent(settings, memory_store, buildings_csv):
    handler = source_handler({CSV_URL: lambda r: httpx.Response(200, text=buildings_csv)})

    async with mock_client(handler) as client:
        await run_ingest(settings, client, memory_store)
        first = memory_store.rows("buildings")
        await run_ingest(settings, client, memory_store)

    assert memory_store.rows("buildings") == first
    assert len(memory_store.appended[RUNS_TABLE]) == 4


@pytest.mark.asyncio
async def test_paged_source_resumes_across_runs(make_settings, memory_store, buildings_csv):
    settings = make_settings(PLUTO_URL=PLUTO_URL, PAGE_SIZE=3, MAX_PAGES_PER_RUN=2)
    handler = source_handler({
        CSV_URL: lambda r: httpx.Response(200, text=buildings_csv),
        PLUTO_URL: paged(pluto_dataset(8)),
    })

    async with mock_client(handler) as client:
        first = await run_ingest(settings, client, memory_store)
        second = await run_ingest(settings, client, memory_store)

    assert first["pluto"]["rows"] == 6
    assert first["pluto"]["done"] is False
    assert first["pluto"]["offset"] == 6

    assert second["pluto"]["rows"] == 2
    assert second["pluto"]["fetches"] == 2
    assert second["pluto"]["done"] is True
    assert second["pluto"]["offset"] == 0

    assert len(memory_store.rows("pluto_raw")) == 8
    assert memory_store.rows(STATE_TABLE)[0]["cursor"] == {}


@pytest.mark.asyncio
async def test_optional_tasks_run_in_order(make_settings, memory_store, buildings_csv):
    settings = make_settings(CSV_URL_LISTINGS=LISTINGS_URL, PLUTO_URL=PLUTO_URL)
    listings = "listing_url,price\nhttps://l.example.com/1,\"$900,000\"\n"
    handler = source_handler({
        CSV_URL: lambda r: httpx.Response(200, text=buildings_csv),
        LISTINGS_URL: lambda r: httpx.Response(200, text=listings),
        PLUTO_URL: paged([]),
    })

    async with mock_client(handler) as client:
        results = await run_ingest(settings, client, memory_store)

    assert list(results) == ["buildings", "listings", "pluto"]
    assert memory_store.rows("listings")[0]["price"] == 900000.0


@pytest.mark.asyncio
async def test_failed_fetch_stops_later_tasks(make_settings, memory_store):
    settings = make_settings(PLUTO_URL=PLUTO_URL)
    handler = source_handler({PLUTO_URL: paged(pluto_dataset(3))})

    async with mock_client(handler) as client:
        with pytest.raises(FetchError):
            await run_ingest(settings, client, memory_store)

    runs = memory_store.appended[RUNS_TABLE]
    assert [(r["source"], r["status"]) for r in runs] == [
        (HEARTBEAT_SOURCE, RunStatus.OK),
        ("buildings", RunStatus.ERROR),
    ]
    assert runs[-1]["detail"] == "Fetch failed: 404 Not Found"
    assert memory_store.rows("pluto_raw") == []


@pytest.mark.asyncio
async def test_postgrest_backend_end_to_end(settings, buildings_csv):
    writes = []

    def handler(request):
        url = bare_url(request)
        if url == CSV_URL:
            return httpx.Response(200, text=buildings_csv)
        if url.startswith(f"{SUPABASE_URL}/rest/v1/"):
            writes.append((request.method, request.url.path, request.url.params.get("on_conflict")))
            return httpx.Response(201)
        return httpx.Response(404)

    async with mock_client(handler) as client:
        results = await run_ingest(settings, client)

    assert results["buildings"]["upserted"] == 2
    assert writes == [
        ("POST", "/rest/v1/ingest_runs", None),
        ("POST", "/rest/v1/buildings", "bbl"),
        ("POST", "/rest/v1/ingest_runs", None),
    ]


@pytest.mark.asyncio
async def test_postgrest_rejection_surfaces_status_and_body(settings, buildings_csv):
    def handler(request):
        url = bare_url(request)
        if url == CSV_URL:
            return httpx.Response(200, text=buildings_csv)
        if request.url.path == "/rest/v1/buildings":
            return httpx.Response(400, text='{"message":"column \\"lat\\" does not exist"}')
        return httpx.Response(201)

    async with mock_client(handler) as client:
        with pytest.raises(SinkError) as exc_info:
            await run_ingest(settings, client)

    assert exc_info.value.message.startswith("Upsert failed (buildings): 400\n")
    assert json.loads(exc_info.value.body)["message"] == 'column "lat" does not exist'


class TestMain:
    """CLI exit codes"""

    def test_missing_configuration_exits_1(self, monkeypatch):
        for name in ("CSV_URL_BUILDINGS", "SUPABASE_URL", "SUPABASE_SERVICE_ROLE_KEY"):
            monkeypatch.delenv(name, raising=False)
        monkeypatch.chdir("/")

        with patch("ingestion.job.run_ingest") as mock_run:
            assert main() == 1
        mock_run.assert_not_called()

    def test_success_exits_0(self, settings):
        async def fake_run(s):
            return {"buildings": {"rows": 0, "upserted": 0, "dropped": 0}}

        with patch("ingestion.job.load_settings", return_value=settings), \
                patch("ingestion.job.run_ingest", side_effect=fake_run):
            assert main() == 0

    def test_task_failure_exits_1(self, settings):
        async def fake_run(s):
            raise SinkError("buildings", 500, "boom")

        with patch("ingestion.job.load_settings", return_value=settings), \
                patch("ingestion.job.run_ingest", side_effect=fake_run):
            assert main() == 1
