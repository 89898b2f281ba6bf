"""
Ingestion pipeline for building, listing and city open-data feeds.

Modules:
    coercion: Lenient value coercion (numbers, integers, timestamps, JSON)
    http: Shared httpx client and status-checked fetch
    state: Resumption cursors for paginated sources
    run_log: Append-only ``ingest_runs`` log with per-invocation heartbeat
    paginator: Resumable, budget-bounded page loop
    runner: Sequential task orchestrator
    tasks: Named task definitions built from settings
    job: One invocation end to end (CLI entry point)
    scheduler: APScheduler integration for in-process scheduling

Subpackages:
    extractors: CSV export reader and paged JSON (Socrata-style) reader
    transformers: Row normalization into typed records
    loaders: Upsert stores (Supabase PostgREST, direct PostgreSQL)

Architecture:
    Every invocation writes a heartbeat row, then runs the tasks in order:

    1. Extract - fetch a CSV export, or the next page of a paged source
    2. Transform - normalize rows; rows without a conflict key are dropped
    3. Load - idempotent upsert keyed on each table's natural key

    Paged sources persist a cursor after every page and stop after
    MAX_PAGES_PER_RUN pages, so large datasets are walked across
    several invocations. The first failing task stops the sequence.

Usage:
    from core.config import load_settings
    from ingestion.job import run_ingest

    results = await run_ingest(load_settings())
    print(results["buildings"]["upserted"])
"""

__all__ = [
    "coercion",
    "http",
    "state",
    "run_log",
    "paginator",
    "runner",
    "tasks",
    "job",
    "scheduler",
]
