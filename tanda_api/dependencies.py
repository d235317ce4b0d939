"""FastAPI dependencies shared by the routers."""

from collections.abc import Iterator
from typing import Optional

from fastapi import Depends, Header, HTTPException, Request
from sqlalchemy.orm import Session

from tanda_batch.orchestrator import JobOrchestrator
from tanda_kernel.db.engine import get_session


def get_db() -> Iterator[Session]:
    """Yield a database session; the endpoint owns the commit."""
    db = get_session()
    try:
        yield db
    finally:
        db.close()


async def verify_internal_key(
    request: Request,
    x_internal_key: Optional[str] = Header(None),
) -> bool:
    """Require ``X-Internal-Key`` when an internal key is configured."""
    expected = request.app.state.settings.api.internal_key
    if expected and x_internal_key != expected:
        raise HTTPException(status_code=403, detail="Invalid internal API key")
    return True


def get_orchestrator(
    request: Request,
    db: Session = Depends(get_db),
) -> JobOrchestrator:
    state = request.app.state
    return JobOrchestrator.from_session(
        db,
        clock=state.clock,
        settings=state.settings.jobs,
        dispatcher=state.dispatcher,
    )
