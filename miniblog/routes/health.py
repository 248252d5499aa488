"""
Mini-Blog Backend — Health Check Route
========================================

What:  Liveness/readiness probe for Docker and load balancers.
How:   Runs SELECT 1 through the application's Database. 200 when the
       database answers, 503 otherwise; the body reports version and uptime
       either way.
"""

import logging
import time

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from miniblog import __version__
from miniblog.database import Database, get_database
from miniblog.schemas.common import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(tags=["Health"])

_start_time = time.time()


@router.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"description": "Database unreachable", "model": HealthResponse}},
    summary="Service health check",
)
async def health_check(database: Database = Depends(get_database)):
    connected = await database.ping()
    if not connected:
        logger.warning("Health check: database unreachable")

    body = HealthResponse(
        success=connected,
        status="healthy" if connected else "unhealthy",
        version=__version__,
        database="connected" if connected else "disconnected",
        uptime_seconds=round(time.time() - _start_time, 2),
    )
    return JSONResponse(
        status_code=200 if connected else 503,
        content=body.model_dump(by_alias=True),
    )
