"""
Batch job run schemas
"""
from datetime import date, datetime
from typing import Optional, Dict, Any
from pydantic import BaseModel, ConfigDict, field_serializer

from geoattend.utils.datetime_utils import iso_business


class JobRunOut(BaseModel):
    """Outcome of a POST /jobs/* call. `skipped` is true when an earlier completed run was reused."""
    job_name: str
    run_date: date
    status: str
    execution_id: str
    skipped: bool = False
    error: Optional[str] = None
    summary: Optional[Dict[str, Any]] = None
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @field_serializer("started_at", "finished_at", when_used="always")
    def _ser_datetime(self, dt: Optional[datetime]) -> Optional[str]:
        return iso_business(dt)
