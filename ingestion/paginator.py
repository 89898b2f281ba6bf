"""
Resumable paginated ingestion.

Each invocation fetches at most ``max_pages_per_run`` pages for a source,
starting from the offset persisted by the previous invocation. The cursor
is saved after every written page, so a run killed by the host loses at
most the page in flight; that page is fetched again next time and the
idempotent upsert absorbs the repeat.

States per invocation:

    LOADING_CURSOR -> FETCHING_PAGE -> TRANSFORMING -> WRITING -> ADVANCING
                           |                                        |
                           +-> EXHAUSTED        (loop) <------------+
                                                   |
                                       page budget spent -> SUSPENDED

An empty page means the source is exhausted: the cursor is reset so the
next run rescans from the beginning. Reaching the page budget first
leaves the cursor at the next offset and reports ``done=False``.
"""

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Callable, Dict, List, Mapping, Optional, Protocol, Type
import logging

from ingestion.loaders.base import UpsertStore
from ingestion.state import Cursor, CursorStore
from schemas.records import IngestionRecord

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 5000
DEFAULT_MAX_PAGES_PER_RUN = 5


class PageReader(Protocol):
    async def read_page(self, offset: int, limit: int) -> List[Dict[str, Any]]:
        ...


class LoopState(str, Enum):
    LOADING_CURSOR = "loading_cursor"
    FETCHING_PAGE = "fetching_page"
    TRANSFORMING = "transforming"
    WRITING = "writing"
    ADVANCING = "advancing"
    EXHAUSTED = "exhausted"
    SUSPENDED = "suspended"


@dataclass
class PageProgress:
    """
    Outcome of one invocation for one source.

    Attributes:
        rows: Records written across all pages
        pages: Non-empty pages fetched and written
        fetches: Page requests issued (pages plus the exhausting empty one)
        dropped: Rows that could not produce a conflict key
        offset: Offset the next invocation starts from (0 after exhaustion)
        done: True when an empty page was reached
    """
    rows: int = 0
    pages: int = 0
    fetches: int = 0
    dropped: int = 0
    offset: int = 0
    done: bool = False

    def as_counts(self) -> Dict[str, Any]:
        return asdict(self)


class PaginatedIngestion:
    """
    Pull pages from ``reader`` into the table of ``record_type``.

    Args:
        source_name: Cursor key and run log name
        reader: Anything with ``read_page(offset, limit)``
        transform: Row -> record, or None to drop the row
        record_type: Destination record class (table and conflict key)
        store: Upsert store for the destination table
        cursors: Cursor store
        page_size: Rows per page request
        max_pages_per_run: Page budget for one invocation
    """

    def __init__(
        self,
        source_name: str,
        reader: PageReader,
        transform: Callable[[Mapping[str, Any]], Optional[IngestionRecord]],
        record_type: Type[IngestionRecord],
        store: UpsertStore,
        cursors: CursorStore,
        page_size: int = DEFAULT_PAGE_SIZE,
        max_pages_per_run: int = DEFAULT_MAX_PAGES_PER_RUN
    ):
        if page_size < 1 or max_pages_per_run < 1:
            raise ValueError("page_size and max_pages_per_run must be >= 1")

        self.source_name = source_name
        self.reader = reader
        self.transform = transform
        self.record_type = record_type
        self.store = store
        self.cursors = cursors
        self.page_size = page_size
        self.max_pages_per_run = max_pages_per_run
        self.state: Optional[LoopState] = None

    def _enter(self, state: LoopState) -> None:
        self.state = state
        logger.debug(f"{self.source_name}: {state.value}")

    def _transform_page(self, page: List[Dict[str, Any]]) -> tuple:
        records = []
        dropped = 0
        for row in page:
            record = self.transform(row)
            if record is None:
                dropped += 1
            else:
                records.append(record.to_row())
        return records, dropped

    async def run(self) -> PageProgress:
        self._enter(LoopState.LOADING_CURSOR)
        cursor = await self.cursors.load(self.source_name)
        progress = PageProgress(offset=cursor.offset)

        logger.info(
            f"Starting {self.source_name} at offset {cursor.offset} "
            f"(page_size={self.page_size}, budget={self.max_pages_per_run})"
        )

        while progress.fetches < self.max_pages_per_run:
            self._enter(LoopState.FETCHING_PAGE)
            page = await self.reader.read_page(progress.offset, self.page_size)
            progress.fetches += 1

            if not page:
                self._enter(LoopState.EXHAUSTED)
                await self.cursors.save(self.source_name, Cursor(offset=progress.offset), exhausted=True)
                progress.offset = 0
                progress.done = True
                logger.info(
                    f"{self.source_name} exhausted after {progress.pages} pages; "
                    f"wrote {progress.rows} rows, cursor reset"
                )
                return progress

            self._enter(LoopState.TRANSFORMING)
            records, dropped = self._transform_page(page)
            progress.dropped += dropped

            self._enter(LoopState.WRITING)
            written = await self.store.upsert(
                self.record_type.table,
                records,
                self.record_type.conflict_key
            )

            self._enter(LoopState.ADVANCING)
            progress.offset += self.page_size
            await self.cursors.save(self.source_name, Cursor(offset=progress.offset))
            progress.rows += written
            progress.pages += 1

            logger.info(
                f"{self.source_name} page {progress.pages}: {len(page)} rows fetched, "
                f"{written} written, {dropped} dropped, next offset {progress.offset}"
            )

        self._enter(LoopState.SUSPENDED)
        logger.info(
            f"{self.source_name} suspended at offset {progress.offset} "
            f"after {progress.fetches} pages; {progress.rows} rows written"
        )
        return progress
