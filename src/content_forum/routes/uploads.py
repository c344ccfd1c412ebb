"""
# Upload Routes

Image uploads are validated locally (size, MIME type, extension) and then pushed to the
CDN with a per-purpose transformation profile.

| Endpoint                     | Profile    | Transformation            |
|------------------------------|------------|---------------------------|
| `POST /upload/avatar`        | `avatar`   | 300x300 WebP, cropped     |
| `POST /upload/post-image`    | `post`     | 1200x630 WebP, cropped    |
| `POST /upload/category-icon` | `category` | 64x64 PNG, cropped        |
| `POST /upload/editor-image`  | `editor`   | max 1000 wide WebP, fit   |

Attributes:
    router (APIRouter): FastAPI router with `/upload` prefix
"""

from typing import Any, Dict

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from content_forum.errors import ForumError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.common import MessageResponse
from content_forum.models.integration_models import StoredFile, UploadProfile
from content_forum.routes.dependencies import get_current_user, get_services, require_admin
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[Upload Routes]")

router = APIRouter(prefix="/upload", tags=["uploads"])


async def _upload(services: ServiceContainer, file: UploadFile, profile: UploadProfile, user_id: str) -> StoredFile:
    content = await file.read()
    stored = await services.uploads.upload(content, file.filename, file.content_type, profile)
    logger.info("User %s uploaded %s (%s, %d bytes)", user_id, stored.public_id, profile.value, len(content))
    return stored


@router.post("/avatar", response_model=StoredFile)
async def upload_avatar(
    file: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await _upload(services, file, UploadProfile.AVATAR, current_user["user_id"])
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to upload avatar: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to upload avatar")


@router.post("/post-image", response_model=StoredFile)
async def upload_post_image(
    file: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await _upload(services, file, UploadProfile.POST, current_user["user_id"])
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to upload post image: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to upload post image")


@router.post("/category-icon", response_model=StoredFile)
async def upload_category_icon(
    file: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await _upload(services, file, UploadProfile.CATEGORY, current_user["user_id"])
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to upload category icon: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to upload category icon")


@router.post("/editor-image", response_model=StoredFile)
async def upload_editor_image(
    file: UploadFile = File(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await _upload(services, file, UploadProfile.EDITOR, current_user["user_id"])
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to upload editor image: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to upload editor image")


@router.get("/storage-stats")
async def storage_stats(
    current_user: Dict[str, Any] = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return services.uploads.get_storage_stats()
    except Exception as e:
        logger.error("Failed to read storage stats: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get storage stats")


@router.post("/cleanup-temp")
async def cleanup_temp(
    current_user: Dict[str, Any] = Depends(require_admin),
    services: ServiceContainer = Depends(get_services),
):
    """Delete every file in the temporary upload directory, regardless of age."""
    try:
        deleted = services.file_cleanup.manual_cleanup()
        logger.info("Manual temp cleanup by %s removed %d files", current_user["user_id"], deleted)
        return {"message": "Temporary files cleaned up", "deleted": deleted}
    except Exception as e:
        logger.error("Manual temp cleanup failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to clean up temporary files")


@router.delete("/{public_id:path}", response_model=MessageResponse)
async def delete_file(
    public_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """Delete a stored file by its CDN public id. Deletion is best effort."""
    try:
        deleted = await services.uploads.delete(public_id)
        if not deleted:
            raise HTTPException(status_code=502, detail="File could not be deleted")
        return {"message": "File deleted successfully"}
    except (ForumError, HTTPException):
        raise
    except Exception as e:
        logger.error("Failed to delete file %s: %s", public_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete file")
