# ============================================================================
# File: ingestion/runner.py
# Description: Sequential task orchestrator with run-log bookkeeping
# ============================================================================
"""
Ingest Runner - runs the named ingestion tasks of one invocation.

This module provides:
- One heartbeat run-log row per invocation, written before any task
- One ``ok``/``error`` run-log row per task attempt
- Strictly sequential execution; the first failure stops the sequence
- Re-raising after logging so the host scheduler sees the failure
"""

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Dict, Sequence
import logging

from core.exceptions import IngestError, error_message
from ingestion.run_log import RunLog
from models.base import RunStatus

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestTask:
    """A named unit of work returning its progress counts"""
    name: str
    run: Callable[[], Awaitable[Dict[str, Any]]]


class IngestRunner:
    """
    Invocation orchestrator

    Responsibilities:
    - Guarantee per-invocation liveness in the run log (heartbeat)
    - Run tasks one at a time, in order
    - Record every attempt with its counts or failure detail
    - Propagate the first task failure after it has been recorded
    """

    def __init__(self, run_log: RunLog):
        self.run_log = run_log

    async def run(self, tasks: Sequence[IngestTask]) -> Dict[str, Dict[str, Any]]:
        """
        Run tasks in order.

        Returns:
            Task name -> counts reported by the task, plus ``started_at``

        Raises:
            Whatever the first failing task raised, after its error row is written
            SinkError: If the heartbeat or a success row cannot be written
        """
        await self.run_log.heartbeat()
        logger.info(f"Heartbeat recorded; {len(tasks)} tasks scheduled")

        results: Dict[str, Dict[str, Any]] = {}

        for task in tasks:
            started_at = datetime.now(timezone.utc).isoformat()
            logger.info(f"Starting task {task.name}")

            try:
                counts = await task.run()

            except Exception as e:
                logger.error(f"Task {task.name} failed: {e}")

                try:
                    await self.run_log.append(
                        task.name,
                        RunStatus.ERROR,
                        detail=error_message(e),
                        counts={"started_at": started_at}
                    )
                except IngestError as log_error:
                    logger.error(f"Could not record failure of {task.name}: {log_error}")

                raise

            counts = {**(counts or {}), "started_at": started_at}
            await self.run_log.append(task.name, RunStatus.OK, counts=counts)
            results[task.name] = counts

            logger.info(f"Task {task.name} completed: {counts}")

        return results
