"""
Health API Routes

Database connectivity plus, for every registered job, the time since its
last logged run.  A job with a configured threshold
(``health.stale_after_minutes``) whose last run is older than that is
reported stale and degrades the status.  An unreachable database answers
503; stale jobs alone answer 200 with status ``degraded``.
"""
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.orm import Session

from tanda_batch.orchestrator import default_task_registry
from tanda_kernel.logging_config import get_logger
from tanda_kernel.services.job_log import JobLogRecorder

from ..dependencies import get_db
from ..schemas import HealthResponse, JobHealth

logger = get_logger("api.health")

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthResponse)
def health_check(request: Request, db: Session = Depends(get_db)):
    """Report store connectivity and per-job recency."""
    errors: list[str] = []
    jobs: dict[str, JobHealth] = {}

    try:
        db.execute(text("SELECT 1"))
        database = "ok"
    except Exception as exc:
        logger.error("health_database_unreachable", extra={"error": str(exc)})
        database = "unreachable"
        errors.append("Database connectivity check failed")

    stale_jobs: list[str] = []
    if database == "ok":
        now = request.app.state.clock.now()
        thresholds = request.app.state.settings.health.stale_after_minutes
        last_runs = JobLogRecorder(db).last_run_by_job()
        for job_name in default_task_registry().list_tasks():
            last = last_runs.get(job_name)
            if last is None:
                jobs[job_name] = JobHealth()
                continue
            minutes = int((now - last).total_seconds() // 60)
            threshold = thresholds.get(job_name)
            stale = threshold is not None and minutes > threshold
            if stale:
                stale_jobs.append(job_name)
                errors.append(f"{job_name} hasn't run in {minutes} minutes")
            jobs[job_name] = JobHealth(
                last_run_at=last.isoformat(),
                minutes_since_last_run=minutes,
                stale=stale,
            )

    if database != "ok":
        status, status_code = "unhealthy", 503
    elif stale_jobs:
        logger.warning("health_jobs_stale", extra={"jobs": stale_jobs})
        status, status_code = "degraded", 200
    else:
        status, status_code = "healthy", 200

    body = HealthResponse(
        status=status,
        database=database,
        jobs=jobs,
        errors=errors,
    )
    return JSONResponse(status_code=status_code, content=body.model_dump())
