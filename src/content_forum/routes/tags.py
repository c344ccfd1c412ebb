"""
# Tag Routes

Attributes:
    router (APIRouter): FastAPI router with `/tags` prefix
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from content_forum.errors import ForumError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.common import MessageResponse
from content_forum.models.forum_models import CreateTagRequest, TagResponse, UpdateTagRequest
from content_forum.routes.dependencies import get_services, require_staff
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[Tag Routes]")

router = APIRouter(prefix="/tags", tags=["tags"])


@router.post("/", response_model=TagResponse)
async def create_tag(
    request: CreateTagRequest,
    current_user: Dict[str, Any] = Depends(require_staff),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.tags.create(request)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to create tag: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create tag")


@router.get("/")
async def list_tags(
    search: Optional[str] = None,
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.tags.find_all(search, is_active, page, limit)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to list tags: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list tags")


@router.get("/popular")
async def popular_tags(limit: int = Query(10, ge=1, le=50), services: ServiceContainer = Depends(get_services)):
    try:
        return await services.tags.get_popular(limit)
    except Exception as e:
        logger.error("Failed to get popular tags: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get popular tags")


@router.get("/slug/{slug}", response_model=TagResponse)
async def get_tag_by_slug(slug: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.tags.find_by_slug(slug)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get tag %s: %s", slug, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get tag")


@router.get("/{tag_id}", response_model=TagResponse)
async def get_tag(tag_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.tags.find_one(tag_id)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get tag %s: %s", tag_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get tag")


@router.get("/{id_or_slug}/posts")
async def get_tag_posts(
    id_or_slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.tags.get_tag_posts(id_or_slug, page, limit)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get posts of tag %s: %s", id_or_slug, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get tag posts")


@router.patch("/{tag_id}", response_model=TagResponse)
async def update_tag(
    tag_id: str,
    request: UpdateTagRequest,
    current_user: Dict[str, Any] = Depends(require_staff),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.tags.update(tag_id, request)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to update tag %s: %s", tag_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update tag")


@router.delete("/{tag_id}", response_model=MessageResponse)
async def delete_tag(
    tag_id: str,
    current_user: Dict[str, Any] = Depends(require_staff),
    services: ServiceContainer = Depends(get_services),
):
    try:
        await services.tags.remove(tag_id)
        logger.info("Tag %s deleted by %s", tag_id, current_user["user_id"])
        return {"message": "Tag deleted successfully"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to delete tag %s: %s", tag_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete tag")
