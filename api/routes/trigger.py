"""
On-demand ingestion trigger
"""

from typing import Optional
import logging
import secrets

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import get_settings
from core.config import Settings
from core.exceptions import error_message
from ingestion.job import run_ingest
from schemas.api import ErrorResponse, TriggerResponse

logger = logging.getLogger(__name__)
router = APIRouter(tags=["Ingest"])


def _token_matches(expected: Optional[str], supplied: Optional[str]) -> bool:
    if not expected or not supplied:
        return False
    return secrets.compare_digest(expected.encode("utf-8"), supplied.encode("utf-8"))


@router.get(
    "/ingest",
    response_model=TriggerResponse,
    responses={401: {"model": ErrorResponse}, 500: {"model": ErrorResponse}}
)
async def trigger_ingest(
    token: Optional[str] = None,
    settings: Settings = Depends(get_settings)
):
    """
    Run the whole task sequence now and report per-task counts.

    The request blocks until the sequence finishes. Requires
    ``?token=`` to equal ``INGEST_TRIGGER_TOKEN``.
    """
    if not _token_matches(settings.INGEST_TRIGGER_TOKEN, token):
        logger.warning("Rejected ingest trigger with missing or invalid token")
        return JSONResponse(
            status_code=401,
            content=ErrorResponse(error="Unauthorized").model_dump()
        )

    try:
        results = await run_ingest(settings)
    except Exception as e:
        logger.error(f"Triggered ingestion failed: {e}")
        return JSONResponse(
            status_code=500,
            content=ErrorResponse(error=error_message(e)).model_dump()
        )

    return TriggerResponse(results=results)
