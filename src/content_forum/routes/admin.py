"""
# Admin Routes

Maintenance endpoints restricted to administrators.

Attributes:
    router (APIRouter): FastAPI router with `/admin` prefix
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, HTTPException

from content_forum.managers.logging_manager import get_logger
from content_forum.routes.dependencies import get_services, require_admin
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[Admin Routes]")

router = APIRouter(prefix="/admin", tags=["admin"])


@router.post("/reconcile-counters")
async def reconcile_counters(
    current_user: Dict[str, Any] = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
):
    """
    Recompute denormalized counters from the source collections.

    Returns the number of documents corrected per counter, e.g.
    `{"categories.post_count": 2, "tags.post_count": 0, ...}`.
    """
    try:
        corrected = await services.reconciliation.reconcile()
        logger.info("Counter reconciliation triggered by %s: %s", current_user["user_id"], corrected)
        return {"message": "Counters reconciled", "corrected": corrected}
    except Exception as e:
        logger.error("Counter reconciliation failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to reconcile counters")
