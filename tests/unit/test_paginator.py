"""
Unit tests for the resumable page loop
"""

from datetime import datetime, timezone
from functools import partial

import pytest

from core.exceptions import FetchError, SinkError
from ingestion.paginator import LoopState, PaginatedIngestion
from ingestion.state import STATE_TABLE, Cursor, CursorStore
from ingestion.transformers.normalizer import normalize_pluto
from schemas.records import PlutoRecord

NOW = datetime(2024, 1, 15, 10, 0, tzinfo=timezone.utc)


def pluto_row(n):
    """Manhattan parcel with block n, lot 1"""
    return {"borough": "MN", "block": str(n), "lot": "1"}


class FakeReader:
    """Serves ``rows`` in offset/limit slices and records every request"""

    def __init__(self, rows, fail_at_offset=None):
        self.rows = rows
        self.fail_at_offset = fail_at_offset
        self.requests = []

    async def read_page(self, offset, limit):
        self.requests.append((offset, limit))
        if offset == self.fail_at_offset:
            raise FetchError("Fetch failed: 500 Internal Server Error", url="fake", status_code=500)
        return self.rows[offset:offset + limit]


def make_loop(reader, store, page_size=2, max_pages=5):
    return PaginatedIngestion(
        source_name="pluto",
        reader=reader,
        transform=partial(normalize_pluto, now=NOW),
        record_type=PlutoRecord,
        store=store,
        cursors=CursorStore(store),
        page_size=page_size,
        max_pages_per_run=max_pages
    )


async def stored_offset(store):
    return (await CursorStore(store).load("pluto")).offset


class TestPaginatedIngestion:

    @pytest.mark.asyncio
    async def test_full_page_then_empty_page(self, memory_store):
        reader = FakeReader([pluto_row(n) for n in range(1, 5001)])
        loop = make_loop(reader, memory_store, page_size=5000, max_pages=5)

        progress = await loop.run()

        assert reader.requests == [(0, 5000), (5000, 5000)]
        assert progress.rows == 5000
        assert progress.pages == 1
        assert progress.fetches == 2
        assert progress.done is True
        assert progress.offset == 0
        assert loop.state == LoopState.EXHAUSTED
        assert memory_store.rows(STATE_TABLE)[0]["cursor"] == {}
        assert len(memory_store.rows("pluto_raw")) == 5000

    @pytest.mark.asyncio
    async def test_page_budget_bounds_fetches(self, memory_store):
        reader = FakeReader([pluto_row(n) for n in range(1, 21)])
        loop = make_loop(reader, memory_store, page_size=2, max_pages=3)

        progress = await loop.run()

        assert len(reader.requests) == 3
        assert progress.done is False
        assert progress.offset == 6
        assert loop.state == LoopState.SUSPENDED
        assert await stored_offset(memory_store) == 6

    @pytest.mark.asyncio
    async def test_resumes_from_stored_cursor(self, memory_store):
        await CursorStore(memory_store).save("pluto", Cursor(offset=4))
        reader = FakeReader([pluto_row(n) for n in range(1, 11)])

        await make_loop(reader, memory_store, page_size=2, max_pages=2).run()

        assert [offset for offset, _ in reader.requests] == [4, 6]
        assert await stored_offset(memory_store) == 8

    @pytest.mark.asyncio
    async def test_successive_runs_walk_the_dataset(self, memory_store):
        reader = FakeReader([pluto_row(n) for n in range(1, 8)])

        first = await make_loop(reader, memory_store, page_size=2, max_pages=2).run()
        second = await make_loop(reader, memory_store, page_size=2, max_pages=2).run()
        third = await make_loop(reader, memory_store, page_size=2, max_pages=2).run()

        assert [offset for offset, _ in reader.requests] == [0, 2, 4, 6, 8]
        assert (first.done, second.done, third.done) == (False, False, True)
        assert len(memory_store.rows("pluto_raw")) == 7
        assert await stored_offset(memory_store) == 0

    @pytest.mark.asyncio
    async def test_offsets_strictly_increase(self, memory_store):
        reader = FakeReader([pluto_row(n) for n in range(1, 10)])
        await make_loop(reader, memory_store, page_size=3, max_pages=5).run()

        offsets = [offset for offset, _ in reader.requests]
        assert offsets == sorted(set(offsets))
        assert all(b - a == 3 for a, b in zip(offsets, offsets[1:]))

    @pytest.mark.asyncio
    async def test_rows_without_key_are_dropped_and_counted(self, memory_store):
        rows = [pluto_row(1), {"borough": "XX"}, pluto_row(2), {"block": "3"}]
        reader = FakeReader(rows)

        progress = await make_loop(reader, memory_store, page_size=4, max_pages=5).run()

        assert progress.rows == 2
        assert progress.dropped == 2
        assert progress.done is True

    @pytest.mark.asyncio
    async def test_page_of_only_bad_rows_still_advances(self, memory_store):
        reader = FakeReader([{"borough": "XX"}, {"borough": "XX"}, pluto_row(1)])

        progress = await make_loop(reader, memory_store, page_size=2, max_pages=1).run()

        assert progress.rows == 0
        assert progress.offset == 2
        assert await stored_offset(memory_store) == 2

    @pytest.mark.asyncio
    async def test_fetch_failure_keeps_last_saved_cursor(self, memory_store):
        reader = FakeReader([pluto_row(n) for n in range(1, 11)], fail_at_offset=4)

        with pytest.raises(FetchError):
            await make_loop(reader, memory_store, page_size=2, max_pages=5).run()

        assert await stored_offset(memory_store) == 4
        assert len(memory_store.rows("pluto_raw")) == 4

    @pytest.mark.asyncio
    async def test_write_failure_does_not_advance_cursor(self, memory_store):
        await CursorStore(memory_store).save("pluto", Cursor(offset=2))
        memory_store.fail_on["pluto_raw"] = SinkError("pluto_raw", 500, "boom")
        reader = FakeReader([pluto_row(n) for n in range(1, 11)])

        with pytest.raises(SinkError):
            await make_loop(reader, memory_store, page_size=2, max_pages=5).run()

        assert await stored_offset(memory_store) == 2

    @pytest.mark.asyncio
    async def test_empty_source_resets_immediately(self, memory_store):
        await CursorStore(memory_store).save("pluto", Cursor(offset=40))
        reader = FakeReader([pluto_row(1)])

        progress = await make_loop(reader, memory_store).run()

        assert reader.requests == [(40, 2)]
        assert progress.done is True
        assert progress.pages == 0
        assert await stored_offset(memory_store) == 0

    def test_invalid_budget_rejected(self, memory_store):
        with pytest.raises(ValueError):
            make_loop(FakeReader([]), memory_store, page_size=0)
        with pytest.raises(ValueError):
            make_loop(FakeReader([]), memory_store, max_pages=0)
