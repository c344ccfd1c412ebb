"""
# Post Routes

The public reading surface and the authoring API for posts.

## API Endpoints

### Reading
- `GET /posts` - List published posts (filters, search, sticky first)
- `GET /posts/featured`, `/posts/popular`, `/posts/latest` - Home page blocks
- `GET /posts/slug/{slug}` - Read a post (counts one view)
- `GET /posts/{id}` - Lookup by id (no view counted)
- `GET /posts/{id}/related` - Posts sharing the category or a tag
- `GET /posts/by-product/{url_key}` - Posts mentioning a catalog product
- `GET /posts/popular-products` - Products most often attached to posts

### Authoring
- `GET /posts/check-slug/{slug}` - Slug availability with suggestions
- `GET /posts/my-posts` - The caller's posts in any status
- `POST /posts` - Create
- `PATCH /posts/{id}` - Update (author only)
- `DELETE /posts/{id}` - Delete (author only)

## Usage Examples

```python
response = await client.post("/posts", json={
    "title": "Hands-on with the new phone",
    "slug": "hands-on-new-phone",
    "content": "<p>First impressions...</p>",
    "category_id": category_id,
    "tag_ids": [tag_id],
    "related_products": [{"url_key": "new-phone-256gb"}],
}, headers={"Authorization": f"Bearer {token}"})
```

Attributes:
    router (APIRouter): FastAPI router with `/posts` prefix
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from content_forum.errors import ForumError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.common import MessageResponse
from content_forum.models.forum_models import (
    CreatePostRequest,
    PostQuery,
    PostResponse,
    PostStatus,
    SlugAvailabilityResponse,
    UpdatePostRequest,
)
from content_forum.routes.dependencies import get_current_user, get_services
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[Post Routes]")

router = APIRouter(prefix="/posts", tags=["posts"])

SORT_PATTERN = r"^(published_at|created_at|updated_at|view_count|like_count|comment_count|title)$"


def _post_query(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    search: Optional[str] = None,
    category_id: Optional[str] = None,
    tag_ids: Optional[List[str]] = Query(None),
    author_id: Optional[str] = None,
    status: Optional[PostStatus] = PostStatus.PUBLISHED,
    is_featured: Optional[bool] = None,
    is_sticky: Optional[bool] = None,
    sort_by: str = Query("published_at", pattern=SORT_PATTERN),
    sort_order: str = Query("desc", pattern=r"^(asc|desc)$"),
) -> PostQuery:
    return PostQuery(
        page=page,
        limit=limit,
        search=search,
        category_id=category_id,
        tag_ids=tag_ids,
        author_id=author_id,
        status=status,
        is_featured=is_featured,
        is_sticky=is_sticky,
        sort_by=sort_by,
        sort_order=sort_order,
    )


@router.post("/", response_model=PostResponse)
async def create_post(
    request: CreatePostRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Create a post authored by the caller.

    **Process:**
    1.  Validates the slug, the category and every tag.
    2.  Rejects a slug already used by another post.
    3.  Confirms related products against the catalog (falls back to the submitted data).
    4.  Persists the post and bumps the category, tag and author counters.

    Raises:
        HTTPException(400): Invalid slug or identifier.
        HTTPException(404): Unknown category or tag.
        HTTPException(409): Slug already exists.
    """
    try:
        return await services.posts.create(request, current_user["user_id"])
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to create post: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create post")


@router.get("/")
async def list_posts(query: PostQuery = Depends(_post_query), services: ServiceContainer = Depends(get_services)):
    try:
        return await services.posts.find_all(query)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to list posts: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list posts")


@router.get("/featured")
async def featured_posts(limit: int = Query(5, ge=1, le=50), services: ServiceContainer = Depends(get_services)):
    try:
        return await services.posts.get_featured(limit)
    except Exception as e:
        logger.error("Failed to get featured posts: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get featured posts")


@router.get("/popular")
async def popular_posts(limit: int = Query(5, ge=1, le=50), services: ServiceContainer = Depends(get_services)):
    try:
        return await services.posts.get_popular(limit)
    except Exception as e:
        logger.error("Failed to get popular posts: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get popular posts")


@router.get("/latest")
async def latest_posts(limit: int = Query(5, ge=1, le=50), services: ServiceContainer = Depends(get_services)):
    try:
        return await services.posts.get_latest(limit)
    except Exception as e:
        logger.error("Failed to get latest posts: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get latest posts")


@router.get("/my-posts")
async def my_posts(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    status: Optional[PostStatus] = None,
    sort_by: str = Query("created_at", pattern=SORT_PATTERN),
    sort_order: str = Query("desc", pattern=r"^(asc|desc)$"),
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        query = PostQuery(page=page, limit=limit, status=status, sort_by=sort_by, sort_order=sort_order)
        return await services.posts.my_posts(current_user["user_id"], query)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get posts of %s: %s", current_user.get("user_id"), e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get your posts")


@router.get("/check-slug/{slug}", response_model=SlugAvailabilityResponse)
async def check_slug(slug: str, services: ServiceContainer = Depends(get_services)):
    """
    Check whether a slug is free.

    When it is taken, up to five confirmed-free alternatives are suggested
    (`slug-<year>`, `slug-1` ... `slug-5`, `slug-new`).
    """
    try:
        return await services.posts.check_slug_availability(slug)
    except Exception as e:
        logger.error("Failed to check slug %s: %s", slug, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to check slug")


@router.get("/popular-products")
async def popular_products(limit: int = Query(10, ge=1, le=50), services: ServiceContainer = Depends(get_services)):
    try:
        return await services.posts.get_popular_products(limit)
    except Exception as e:
        logger.error("Failed to get popular products: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get popular products")


@router.get("/by-product/{url_key}")
async def posts_by_product(
    url_key: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.posts.get_posts_by_product(url_key, page, limit)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get posts for product %s: %s", url_key, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get posts for product")


@router.get("/slug/{slug}", response_model=PostResponse)
async def get_post_by_slug(slug: str, services: ServiceContainer = Depends(get_services)):
    """Read a published post. Each successful read increments `view_count` by one."""
    try:
        return await services.posts.find_by_slug(slug)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get post %s: %s", slug, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get post")


@router.get("/{post_id}", response_model=PostResponse)
async def get_post(post_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.posts.find_one(post_id)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get post %s: %s", post_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get post")


@router.get("/{post_id}/related")
async def related_posts(
    post_id: str, limit: int = Query(5, ge=1, le=20), services: ServiceContainer = Depends(get_services)
):
    try:
        return await services.posts.get_related(post_id, limit)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get related posts for %s: %s", post_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get related posts")


@router.patch("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: str,
    request: UpdatePostRequest,
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    """
    Update a post. Only its author may do so.

    Raises:
        HTTPException(403): If the caller is not the author.
        HTTPException(409): If the new slug is taken.
    """
    try:
        return await services.posts.update(post_id, request, current_user["user_id"])
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to update post %s: %s", post_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update post")


@router.delete("/{post_id}", response_model=MessageResponse)
async def delete_post(
    post_id: str,
    current_user: Dict[str, Any] = Depends(get_current_user),
    services: ServiceContainer = Depends(get_services),
):
    try:
        await services.posts.remove(post_id, current_user["user_id"])
        return {"message": "Post deleted successfully"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to delete post %s: %s", post_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete post")
