"""
# Comment Routes

Comment writes are authenticated against the external identity service: the caller's
`Authorization: Bearer <token>` header is forwarded as-is and resolved to a customer
profile. Moderation uses local staff accounts instead.

Attributes:
    router (APIRouter): FastAPI router with `/comments` prefix
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request

from content_forum.errors import ForumError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.forum_models import (
    CommentQuery,
    CommentResponse,
    CommentStatus,
    CreateCommentRequest,
    ModerateCommentRequest,
    UpdateCommentRequest,
)
from content_forum.routes.dependencies import get_bearer_token, get_client_ip, get_services, require_staff
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[Comment Routes]")

router = APIRouter(prefix="/comments", tags=["comments"])


@router.post("/", response_model=CommentResponse)
async def create_comment(
    request: CreateCommentRequest,
    http_request: Request,
    token: Optional[str] = Depends(get_bearer_token),
    services: ServiceContainer = Depends(get_services),
):
    """
    Post a comment or a reply.

    The comment is stored as `pending` until a moderator approves it.

    Raises:
        HTTPException(401): If the identity token is missing or rejected.
        HTTPException(404): If the post or parent comment does not exist.
        HTTPException(400): If the parent comment belongs to another post.
    """
    try:
        return await services.comments.create(
            request,
            token,
            ip_address=get_client_ip(http_request),
            user_agent=http_request.headers.get("user-agent"),
        )
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to create comment: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create comment")


@router.get("/")
async def list_comments(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    post_id: Optional[str] = None,
    parent_id: Optional[str] = Query(None, description="Parent id, or 'null' for root comments"),
    external_user_id: Optional[str] = None,
    status: Optional[CommentStatus] = CommentStatus.APPROVED,
    include_replies: bool = False,
    sort_by: str = Query("created_at", pattern=r"^(created_at|like_count|reply_count)$"),
    sort_order: str = Query("desc", pattern=r"^(asc|desc)$"),
    services: ServiceContainer = Depends(get_services),
):
    try:
        query = CommentQuery(
            page=page,
            limit=limit,
            post_id=post_id,
            parent_id=parent_id,
            external_user_id=external_user_id,
            status=status,
            include_replies=include_replies,
            sort_by=sort_by,
            sort_order=sort_order,
        )
        return await services.comments.find_all(query)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to list comments: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list comments")


@router.get("/post/{post_id}")
async def comments_by_post(
    post_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.comments.get_comments_by_post(post_id, page, limit)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get comments of post %s: %s", post_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get comments")


@router.get("/user/{external_user_id}")
async def comments_by_user(
    external_user_id: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.comments.get_user_comments(external_user_id, page, limit)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get comments of %s: %s", external_user_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get comments")


@router.get("/{comment_id}", response_model=CommentResponse)
async def get_comment(comment_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.comments.find_one(comment_id)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get comment %s: %s", comment_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get comment")


@router.patch("/{comment_id}", response_model=CommentResponse)
async def update_comment(
    comment_id: str,
    request: UpdateCommentRequest,
    token: Optional[str] = Depends(get_bearer_token),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.comments.update(comment_id, request, token)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to update comment %s: %s", comment_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update comment")


@router.delete("/{comment_id}")
async def delete_comment(
    comment_id: str,
    token: Optional[str] = Depends(get_bearer_token),
    services: ServiceContainer = Depends(get_services),
):
    """Delete a comment and its direct replies. Returns the number of documents removed."""
    try:
        result = await services.comments.remove(comment_id, token)
        return {"message": "Comment deleted successfully", **result}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to delete comment %s: %s", comment_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete comment")


@router.patch("/{comment_id}/moderate", response_model=CommentResponse)
async def moderate_comment(
    comment_id: str,
    request: ModerateCommentRequest,
    current_user: Dict[str, Any] = Depends(require_staff),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.comments.moderate(comment_id, request, current_user["user_id"])
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to moderate comment %s: %s", comment_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to moderate comment")


@router.post("/{comment_id}/like", response_model=CommentResponse)
async def like_comment(comment_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.comments.like(comment_id)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to like comment %s: %s", comment_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to like comment")
