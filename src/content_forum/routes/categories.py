"""
# Category Routes

Read endpoints are public; writes require the `admin` or `moderator` role.

## API Endpoints

- `POST /categories` - Create a category
- `GET /categories` - List (search, `parent_id=null` for roots, paginated)
- `GET /categories/tree` - Full active tree
- `GET /categories/slug/{slug}` - Lookup by slug
- `GET /categories/{id}` - Lookup by id, with direct children
- `GET /categories/{id}/posts` - Published posts of a category
- `PATCH /categories/{id}` - Update
- `DELETE /categories/{id}` - Delete (refused while subcategories exist)

Attributes:
    router (APIRouter): FastAPI router with `/categories` prefix
"""

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from content_forum.errors import ForumError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.common import MessageResponse
from content_forum.models.forum_models import CategoryResponse, CreateCategoryRequest, UpdateCategoryRequest
from content_forum.routes.dependencies import get_services, require_staff
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[Category Routes]")

router = APIRouter(prefix="/categories", tags=["categories"])


@router.post("/", response_model=CategoryResponse)
async def create_category(
    request: CreateCategoryRequest,
    current_user: Dict[str, Any] = Depends(require_staff),
    services: ServiceContainer = Depends(get_services),
):
    """
    Create a category. The slug is derived from the name.

    Raises:
        HTTPException(409): If a category with the same name already exists.
        HTTPException(404): If the parent category does not exist.
    """
    try:
        category = await services.categories.create(request)
        logger.info("Category %s created by %s", category["category_id"], current_user["user_id"])
        return category
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to create category: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to create category")


@router.get("/")
async def list_categories(
    search: Optional[str] = None,
    parent_id: Optional[str] = Query(None, description="Parent id, or 'null' for root categories"),
    is_active: Optional[bool] = None,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    include_children: bool = False,
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.categories.find_all(search, parent_id, is_active, page, limit, include_children)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to list categories: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to list categories")


@router.get("/tree")
async def category_tree(services: ServiceContainer = Depends(get_services)):
    try:
        return await services.categories.get_tree()
    except Exception as e:
        logger.error("Failed to build category tree: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get category tree")


@router.get("/slug/{slug}", response_model=CategoryResponse)
async def get_category_by_slug(slug: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.categories.find_by_slug(slug)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get category %s: %s", slug, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get category")


@router.get("/{category_id}", response_model=CategoryResponse)
async def get_category(category_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        return await services.categories.find_one(category_id)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get category %s: %s", category_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get category")


@router.get("/{id_or_slug}/posts")
async def get_category_posts(
    id_or_slug: str,
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1, le=100),
    include_subcategories: bool = False,
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.categories.get_category_posts(id_or_slug, page, limit, include_subcategories)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get posts of category %s: %s", id_or_slug, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get category posts")


@router.patch("/{category_id}", response_model=CategoryResponse)
async def update_category(
    category_id: str,
    request: UpdateCategoryRequest,
    current_user: Dict[str, Any] = Depends(require_staff),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await services.categories.update(category_id, request)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to update category %s: %s", category_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to update category")


@router.delete("/{category_id}", response_model=MessageResponse)
async def delete_category(
    category_id: str,
    current_user: Dict[str, Any] = Depends(require_staff),
    services: ServiceContainer = Depends(get_services),
):
    """
    Delete a category.

    Raises:
        HTTPException(409): If the category still has subcategories.
    """
    try:
        await services.categories.remove(category_id)
        logger.info("Category %s deleted by %s", category_id, current_user["user_id"])
        return {"message": "Category deleted successfully"}
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to delete category %s: %s", category_id, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to delete category")
