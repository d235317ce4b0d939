"""
Job API Routes

Internal endpoints the external scheduler calls, one per reconciliation
job, plus a read-only view of the job log.

A run that gets past candidate selection answers 200 with
``{"success": true, "message", "stats"}`` even when items failed.  A
top-level failure answers 500 with
``{"success": false, "error", "processing_time_ms"}``; the failed job log
entry is committed before the response is sent.
"""
import time
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from tanda_batch.orchestrator import JobOrchestrator
from tanda_kernel.exceptions import TandaError
from tanda_kernel.logging_config import LogContext, get_logger
from tanda_kernel.services.job_log import JobLogRecorder

from ..dependencies import get_db, get_orchestrator, verify_internal_key
from ..schemas import JobFailureResponse, JobLogListResponse, JobRunResponse

logger = get_logger("api.jobs")

router = APIRouter(prefix="/internal", tags=["jobs"])


# =============================================================================
# JOB ENDPOINTS (SYSTEM-ONLY)
# =============================================================================

@router.get("/jobs/logs", response_model=JobLogListResponse)
def list_job_logs(
    job_name: Optional[str] = None,
    limit: int = Query(20, ge=1, le=200),
    db: Session = Depends(get_db),
    _: bool = Depends(verify_internal_key),
):
    """Most recent job log rows, newest first."""
    entries = JobLogRecorder(db).recent(job_name=job_name, limit=limit)
    logs = [entry.to_dict() for entry in entries]
    return {"logs": logs, "count": len(logs)}


@router.post(
    "/jobs/{job_name}",
    response_model=JobRunResponse,
    responses={500: {"model": JobFailureResponse}},
)
def run_job(
    job_name: str,
    orchestrator: JobOrchestrator = Depends(get_orchestrator),
    _: bool = Depends(verify_internal_key),
):
    """
    Run one reconciliation job synchronously.

    No request body.  Callers must inspect ``stats.failed`` (and the
    job-specific counters) to detect partial degradation.
    """
    if job_name not in orchestrator.task_registry:
        raise HTTPException(status_code=404, detail=f"Unknown job: {job_name}")

    db = orchestrator.session
    start = time.monotonic()
    try:
        with LogContext.bind(correlation_id=f"http:{job_name}"):
            result = orchestrator.run(job_name)
    except TandaError as exc:
        _commit_failure_log(db)
        return _failure(job_name, exc, start)
    except Exception as exc:
        db.rollback()
        return _failure(job_name, exc, start)

    db.commit()

    stats = dict(result.stats)
    stats["status"] = result.status.value
    stats["processing_time_ms"] = result.duration_ms
    return {"success": True, "message": result.message, "stats": stats}


def _commit_failure_log(db: Session) -> None:
    """Persist the failed job log entry; the store may be what failed."""
    try:
        db.commit()
    except Exception:
        db.rollback()
        logger.warning("failure_log_commit_failed", exc_info=True)


def _failure(job_name: str, exc: Exception, start: float) -> JSONResponse:
    elapsed = int((time.monotonic() - start) * 1000)
    logger.error(
        "job_request_failed",
        extra={"job_name": job_name, "error": str(exc)},
        exc_info=True,
    )
    body = JobFailureResponse(error=str(exc), processing_time_ms=elapsed)
    return JSONResponse(status_code=500, content=body.model_dump())
