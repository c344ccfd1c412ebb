"""
# Health Routes

Liveness/readiness probe for load balancers and orchestrators.

Attributes:
    router (APIRouter): FastAPI router (no prefix)
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from fastapi.responses import JSONResponse

from content_forum import __version__
from content_forum.database import db_manager
from content_forum.managers.logging_manager import get_logger

logger = get_logger(prefix="[Health]")

router = APIRouter(tags=["health"])


@router.get("/health")
async def health():
    """
    Report service health.

    Returns 200 when MongoDB answers a ping and 503 otherwise.
    """
    database_ok = await db_manager.health_check()
    body = {
        "status": "healthy" if database_ok else "unhealthy",
        "database": "connected" if database_ok else "disconnected",
        "version": __version__,
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    if not database_ok:
        logger.warning("Health check reported the database as unavailable")
        return JSONResponse(status_code=503, content=body)
    return body
