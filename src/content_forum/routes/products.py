"""
# Product Routes

Read-only proxy to the product catalog, used by the post editor to pick related products.

Attributes:
    router (APIRouter): FastAPI router with `/products` prefix
"""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from content_forum.errors import ForumError, UpstreamError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.integration_models import CatalogProduct, ProductSearchParams, ValidateProductsRequest
from content_forum.routes.dependencies import get_services
from content_forum.services.container import ServiceContainer

logger = get_logger(prefix="[Product Routes]")

router = APIRouter(prefix="/products", tags=["products"])


def _catalog(services: ServiceContainer):
    if services.product_client is None:
        raise UpstreamError("Product catalog is not configured")
    return services.product_client


@router.get("/search", response_model=List[CatalogProduct])
async def search_products(
    search: Optional[str] = None,
    category_uid: Optional[str] = None,
    page_size: int = Query(20, ge=1, le=200),
    current_page: int = Query(1, ge=1),
    sort_by: Optional[str] = None,
    sort_direction: str = Query("ASC", pattern=r"^(ASC|DESC)$"),
    services: ServiceContainer = Depends(get_services),
):
    try:
        params = ProductSearchParams(
            search=search,
            category_uid=category_uid,
            page_size=page_size,
            current_page=current_page,
            sort_by=sort_by,
            sort_direction=sort_direction,
        )
        return await _catalog(services).search_products(params)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Product search failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to search products")


@router.get("/category/{category_uid}", response_model=List[CatalogProduct])
async def products_by_category(
    category_uid: str,
    limit: int = Query(20, ge=1, le=200),
    services: ServiceContainer = Depends(get_services),
):
    try:
        return await _catalog(services).get_products_by_category(category_uid, limit)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Failed to get products of category %s: %s", category_uid, e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to get products")


@router.post("/validate", response_model=List[CatalogProduct])
async def validate_products(request: ValidateProductsRequest, services: ServiceContainer = Depends(get_services)):
    """Return the catalog records matching the given url keys exactly. Unknown keys are dropped."""
    try:
        return await _catalog(services).validate_product_selection(request.product_keys)
    except ForumError:
        raise
    except Exception as e:
        logger.error("Product validation failed: %s", e, exc_info=True)
        raise HTTPException(status_code=500, detail="Failed to validate products")
