"""
# User Routes

Public profile reads, per-user listings and self-service profile edits.

Attributes:
    router (APIRouter): FastAPI router with `/users` prefix
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, UploadFile

from content_forum.errors import ForumError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.common import MessageResponse, Paginated
from content_forum.models.user_models import (
    ActivityResponse,
    UpdateProfileRequest,
    UserQuery,
    UserResponse,
    UserRole,
    UserStatsResponse,
    UserStatus,
)
from content_forum.routes.dependencies import get_current_user, get_services, require_admin
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[User Routes]")

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/")
async def list_users(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    role: Optional[UserRole] = None,
    status: Optional[UserStatus] = None,
    sort_by: str = Query("created_at", pattern=r"^(created_at|username|post_count|last_login_at)$"),
    sort_order: str = Query("desc", pattern=r"^(asc|desc)$"),
    services: ServiceContainer = Depends(get_services),
):
    try:
        query = UserQuery(
            page=page, limit=limit, search=search, role=role, status=status, sort_by=sort_by, sort_order=sort_order
        )
        return await services.users.find_all(query)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to list users: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list users")


@router.get("/top")
async def top_users(limit: int = Query(10, ge=1, le=50), services: ServiceContainer = Depends(get_services)):
    try:
        return await services.users.get_top_users(limit)
    except Exception as e:
        logger.error("Failed to get top users: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get top users")


@router.get("/me", response_model=UserResponse)
async def get_me(current_user: Dict[str, Any] = Depends(get_current_user)):
    return current_user


@router.patch("/me", response_model=UserResponse)
async def update_me(
    request: UpdateProfileRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.users.update_profile(current_user["user_id"], request)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to update profile %s: %s", current_user.get("user_id"), e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update profile")


@router.post("/me/avatar", response_model=UserResponse)
async def upload_avatar(
    file: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Replace the caller's avatar.

    The image is validated, cropped to 300x300 WebP by the CDN, and the previous avatar is
    deleted.
    """
    try:
        content = await file.read()
        services.uploads.validate_file(content, file.content_type, file.filename)
        return await services.users.update_avatar(
            current_user["user_id"], content, file.filename, file.content_type
        )
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to update avatar for %s: %s", current_user.get("user_id"), e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update avatar")


@router.get("/username/{username}", response_model=UserResponse)
async def get_by_username(username: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.users.find_by_username(username)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get user %s: %s", username, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get user")


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(user_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.users.find_one(user_id)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get user %s: %s", user_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get user")


@router.get("/{user_id}/posts")
async def get_user_posts(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.users.get_user_posts(user_id, page, limit)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get posts of user %s: %s", user_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get user posts")


@router.get("/{user_id}/activity", response_model=Paginated[ActivityResponse])
async def get_user_activity(
    user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Activity log of a user. Visible to the user themselves and to administrators."""
    try:
        if current_user["user_id"] != user_id and current_user.get("role") != UserRole.ADMIN.value:
            raise HTTPException(status_code=403, detail="You can only view your own activity")
        return await services.users.get_user_activity(user_id, page, limit)
    except (ForumError, HTTPException):
        raise
    except Exception as e:
        logger.error("Failed to get activity of user %s: %s", user_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get user activity")


@router.get("/{user_id}/stats", response_model=UserStatsResponse)
async def get_user_stats(user_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.users.get_user_stats(user_id)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get stats of user %s: %s", user_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get user stats")


@router.delete("/{user_id}", response_model=MessageResponse)
async def delete_user(
    user_id: str,
    current_user: Dict[str, Any] = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
):
    try:
        await services.users.remove(user_id)
        logger.info("User %s deleted by %s", user_id, current_user["user_id"])
        return {"message": "User deleted successfully"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to delete user %s: %s", user_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete user")
