"""Liveness and readiness."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from settlement import __version__
from settlement.core.container import ApplicationContainer
from settlement.interfaces.http.deps import get_container
from settlement.schemas import HealthResponse, QueueStatsResponse

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse, summary="Service health")
async def health(container: ApplicationContainer = Depends(get_container)) -> HealthResponse:
    database_ok = True
    try:
        async with container.database.session() as session:
            await session.execute(text("SELECT 1"))
    except SQLAlchemyError as exc:
        logger.warning("Health check database query failed: %s", exc)
        database_ok = False
    return HealthResponse(
        status="ok" if database_ok else "degraded",
        version=__version__,
        database=database_ok,
        queue=QueueStatsResponse.from_domain(container.queue.stats()),
        scheduler_running=container.scheduler.running,
    )
