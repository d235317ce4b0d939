"""Response bodies for the internal job endpoints."""

from typing import Any, Optional

from pydantic import BaseModel, Field


class JobRunResponse(BaseModel):
    """Returned for every job run that got past candidate selection.

    ``success`` is true even when some items failed; inspect
    ``stats.failed`` to detect partial degradation.
    """

    success: bool = True
    message: str
    stats: dict[str, Any] = Field(default_factory=dict)


class JobFailureResponse(BaseModel):
    success: bool = False
    error: str
    processing_time_ms: int


class JobLogRecord(BaseModel):
    id: str
    job_name: str
    status: str
    records_processed: int
    records_succeeded: int
    records_failed: int
    execution_time_ms: int
    details: dict[str, Any] = Field(default_factory=dict)
    created_at: Optional[str] = None


class JobLogListResponse(BaseModel):
    logs: list[JobLogRecord]
    count: int


class JobHealth(BaseModel):
    last_run_at: Optional[str] = None
    minutes_since_last_run: Optional[int] = None
    stale: bool = False


class HealthResponse(BaseModel):
    status: str
    database: str
    jobs: dict[str, JobHealth] = Field(default_factory=dict)
    errors: list[str] = Field(default_factory=list)
