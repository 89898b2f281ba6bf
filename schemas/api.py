"""
Pydantic schemas for the trigger endpoint responses
"""

from typing import Any, Dict

from pydantic import BaseModel, ConfigDict, Field


class TriggerResponse(BaseModel):
    """Successful on-demand ingestion"""
    ok: bool = True
    results: Dict[str, Dict[str, Any]] = Field(default_factory=dict)

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": True,
                "results": {
                    "buildings": {"rows": 1200, "upserted": 1198, "dropped": 2,
                                  "started_at": "2024-01-15T10:00:00+00:00"},
                    "pluto": {"rows": 25000, "pages": 5, "fetches": 5, "dropped": 0,
                              "offset": 25000, "done": False,
                              "started_at": "2024-01-15T10:00:03+00:00"}
                }
            }
        }
    )


class ErrorResponse(BaseModel):
    """Failed or rejected request"""
    ok: bool = False
    error: str

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "ok": False,
                "error": "Upsert failed (buildings): 409\nduplicate key value"
            }
        }
    )
