"""
One ingestion invocation: wire the components together and run the tasks.

Used by the CLI (``scripts/run_ingest.py``), the in-process scheduler
and the on-demand trigger endpoint. Settings are validated by the caller
before this is reached, so a configuration error never does any I/O.
"""

from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, Optional
import asyncio
import logging

import httpx

from core.config import Settings, load_settings
from core.database import create_engine, create_session_maker
from core.exceptions import ConfigError, error_message
from core.logging import setup_logging
from ingestion.http import create_client
from ingestion.loaders.base import UpsertStore
from ingestion.loaders.postgres_loader import PostgresStore
from ingestion.loaders.postgrest_loader import PostgrestStore
from ingestion.run_log import RunLog
from ingestion.runner import IngestRunner
from ingestion.state import CursorStore
from ingestion.tasks import build_tasks

logger = logging.getLogger(__name__)


@asynccontextmanager
async def open_store(settings: Settings, client: httpx.AsyncClient) -> AsyncIterator[UpsertStore]:
    """Store for the configured backend, released when the invocation ends"""
    if settings.STORE_BACKEND == "postgres":
        engine = create_engine(settings)
        try:
            async with create_session_maker(engine)() as session:
                yield PostgresStore(session)
        finally:
            await engine.dispose()
    else:
        yield PostgrestStore(client, settings.SUPABASE_URL, settings.SUPABASE_SERVICE_ROLE_KEY)


async def _run(settings: Settings, client: httpx.AsyncClient, store: UpsertStore) -> Dict[str, Dict[str, Any]]:
    runner = IngestRunner(RunLog(store))
    tasks = build_tasks(settings, client, store, CursorStore(store))
    return await runner.run(tasks)


async def run_ingest(
    settings: Settings,
    client: Optional[httpx.AsyncClient] = None,
    store: Optional[UpsertStore] = None
) -> Dict[str, Dict[str, Any]]:
    """
    Run every configured task once.

    ``client`` and ``store`` may be supplied by the caller, who then
    owns their lifecycle; otherwise they are created and closed here.

    Returns:
        Task name -> counts
    """
    if client is None:
        async with create_client(settings) as own_client:
            return await run_ingest(settings, own_client, store)

    if store is None:
        async with open_store(settings, client) as own_store:
            return await _run(settings, client, own_store)

    return await _run(settings, client, store)


def main() -> int:
    """
    CLI entry point for cron or any external scheduler.

    Exit codes: 0 on success, 1 on any failure (configuration included).
    """
    try:
        settings = load_settings()
    except ConfigError as e:
        logging.basicConfig(level=logging.ERROR)
        logger.error(str(e))
        return 1

    setup_logging(settings)

    try:
        results = asyncio.run(run_ingest(settings))
    except Exception as e:
        logger.error(f"Ingestion failed: {error_message(e)}")
        return 1

    for name, counts in results.items():
        logger.info(f"{name}: {counts}")
    return 0
