"""
# Banner Routes

Promotional banners shown on the storefront and in the forum sidebar.

## API Endpoints

- `POST /banners` - Create (slug derived from the title, auto-suffixed on collision)
- `GET /banners` - List with filters
- `GET /banners/active` - Banners live right now, optionally by type/category/device
- `GET /banners/slug/{slug}`, `GET /banners/{id}` - Lookups
- `PATCH /banners/{id}` - Update (author only)
- `PATCH /banners/{id}/status` - Activate/deactivate (admin/moderator)
- `DELETE /banners/{id}` - Delete (author only)
- `POST /banners/{id}/view`, `POST /banners/{id}/click` - Impression tracking

Attributes:
    router (APIRouter): FastAPI router with `/banners` prefix
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from content_forum.errors import ForumError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.banner_models import (
    BannerQuery,
    BannerResponse,
    BannerStatus,
    BannerType,
    CreateBannerRequest,
    TargetDevice,
    UpdateBannerRequest,
    UpdateBannerStatusRequest,
)
from content_forum.models.common import MessageResponse
from content_forum.routes.dependencies import get_current_user, get_services, require_staff
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[Banner Routes]")

router = APIRouter(prefix="/banners", tags=["banners"])


@router.post("/", response_model=BannerResponse)
async def create_banner(
    request: CreateBannerRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.banners.create(request, current_user["user_id"])
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to create banner: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create banner")


@router.get("/")
async def list_banners(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    type: Optional[BannerType] = None,
    status: Optional[BannerStatus] = None,
    author_id: Optional[str] = None,
    sort_by: str = Query("created_at", pattern=r"^(created_at|priority|order|view_count|click_count|title)$"),
    sort_order: str = Query("desc", pattern=r"^(asc|desc)$"),
    services: ServiceContainer = Depends(get_services),
):
    try:
        query = BannerQuery(
            page=page,
            limit=limit,
            search=search,
            type=type,
            status=status,
            author_id=author_id,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return await services.banners.find_all(query)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to list banners: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list banners")


@router.get("/active")
async def active_banners(
    type: Optional[BannerType] = None,
    category: Optional[str] = None,
    device: Optional[TargetDevice] = None,
    limit: int = Query(10, ge=1, le=50),
    services: ServiceContainer = Depends(get_services),
):
    """
    Banners currently live.

    A banner is live when its status is `active` and now falls inside its optional
    `start_date`/`end_date` window. Banners targeting `all` devices always match the
    `device` filter.
    """
    try:
        return await services.banners.get_active(
            banner_type=type.value if type else None,
            category=category,
            device=device.value if device else None,
            limit=limit,
        )
    except Exception as e:
        logger.error("Failed to get active banners: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get active banners")


@router.get("/slug/{slug}", response_model=BannerResponse)
async def get_banner_by_slug(slug: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.banners.find_by_slug(slug)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get banner %s: %s", slug, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get banner")


@router.get("/{banner_id}", response_model=BannerResponse)
async def get_banner(banner_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.banners.find_one(banner_id)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get banner %s: %s", banner_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get banner")


@router.patch("/{banner_id}", response_model=BannerResponse)
async def update_banner(
    banner_id: str,
    request: UpdateBannerRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.banners.update(banner_id, request, current_user["user_id"])
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to update banner %s: %s", banner_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update banner")


@router.patch("/{banner_id}/status", response_model=BannerResponse)
async def update_banner_status(
    banner_id: str,
    request: UpdateBannerStatusRequest,
    current_user: Dict[str, Any] = Depends(require_staff),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.banners.update_status(banner_id, request.status)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to update status of banner %s: %s", banner_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update banner status")


@router.delete("/{banner_id}", response_model=MessageResponse)
async def delete_banner(
    banner_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        await services.banners.remove(banner_id, current_user["user_id"])
        return {"message": "Banner deleted successfully"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to delete banner %s: %s", banner_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete banner")


@router.post("/{banner_id}/view", response_model=MessageResponse)
async def track_view(banner_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        await services.banners.increment_view(banner_id)
        return {"message": "View tracked"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to track view of banner %s: %s", banner_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to track view")


@router.post("/{banner_id}/click", response_model=MessageResponse)
async def track_click(banner_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        await services.banners.increment_click(banner_id)
        return {"message": "Click tracked"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to track click of banner %s: %s", banner_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to track click")
