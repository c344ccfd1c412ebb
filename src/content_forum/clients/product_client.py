"""
# Product Catalog Client

GraphQL client for the external product catalog. Used to search products for the editor
and to validate the related products attached to a post before their snapshot is embedded.

## Validation Semantics

`validate_product_selection()` looks up each `url_key` individually (page size 5) and keeps
only exact `url_key` matches. A lookup that fails is logged and skipped, so a partially
unavailable catalog yields a partial result rather than an error.
"""

from typing import Any, Dict, List, Optional

import httpx

from content_forum.config import settings
from content_forum.errors import UpstreamError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.integration_models import CatalogProduct, ProductSearchParams

logger = get_logger(prefix="[Product Client]")

PRODUCTS_QUERY = """
query getProducts(
  $search: String
  $filter: ProductAttributeFilterInput
  $sort: ProductAttributeSortInput
  $pageSize: Int
  $currentPage: Int
) {
  products(
    search: $search
    filter: $filter
    sort: $sort
    pageSize: $pageSize
    currentPage: $currentPage
  ) {
    items {
      name
      url_key
      image {
        url
      }
      price_range {
        minimum_price {
          final_price {
            currency
            value
          }
        }
      }
      daily_sale {
        end_date
        entity_id
        sale_price
        sale_qty
        saleable_qty
        sold_qty
        start_date
      }
    }
    total_count
  }
}
"""


class ProductCatalogClient:
    """Async GraphQL client for the product catalog."""

    def __init__(
        self,
        endpoint: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.endpoint = endpoint or settings.PRODUCTS_API_URL
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.EXTERNAL_API_TIMEOUT,
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    @staticmethod
    def _build_variables(params: ProductSearchParams) -> Dict[str, Any]:
        variables: Dict[str, Any] = {
            "pageSize": params.page_size,
            "currentPage": params.current_page,
        }
        if params.search:
            variables["search"] = params.search
        if params.category_uid:
            variables["filter"] = {"category_uid": {"eq": params.category_uid}}
        if params.sort_by:
            variables["sort"] = {params.sort_by: params.sort_direction}
        return variables

    async def search_products(self, params: ProductSearchParams) -> List[CatalogProduct]:
        """
        Run the catalog `products` query.

        Raises:
            UpstreamError: On transport failure, non-2xx status or GraphQL errors.
        """
        variables = self._build_variables(params)
        try:
            response = await self._client.post(
                self.endpoint,
                json={"query": PRODUCTS_QUERY, "variables": variables},
                headers={"Content-Type": "application/json"},
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning("Product search failed for %s: %s", variables, e)
            raise UpstreamError("Failed to fetch products", details={"reason": str(e)}) from e

        if payload.get("errors"):
            message = payload["errors"][0].get("message", "GraphQL error")
            logger.warning("Product catalog returned GraphQL errors: %s", message)
            raise UpstreamError("Failed to fetch products", details={"reason": message})

        items = ((payload.get("data") or {}).get("products") or {}).get("items") or []
        return [CatalogProduct(**item) for item in items if item and item.get("url_key")]

    async def validate_product_selection(self, url_keys: List[str]) -> List[CatalogProduct]:
        """Return the catalog records whose `url_key` exactly matches one of `url_keys`."""
        validated: List[CatalogProduct] = []
        for url_key in url_keys:
            try:
                products = await self.search_products(ProductSearchParams(search=url_key, page_size=5))
            except UpstreamError as e:
                logger.warning("Skipping product '%s' during validation: %s", url_key, e.message)
                continue

            match = next((p for p in products if p.url_key == url_key), None)
            if match:
                validated.append(match)
            else:
                logger.info("Product '%s' not found in catalog", url_key)
        return validated

    async def get_products_by_category(self, category_uid: str, limit: int = 20) -> List[CatalogProduct]:
        return await self.search_products(ProductSearchParams(category_uid=category_uid, page_size=limit))

    async def search_by_name(self, term: str, limit: int = 20) -> List[CatalogProduct]:
        return await self.search_products(ProductSearchParams(search=term, page_size=limit))
