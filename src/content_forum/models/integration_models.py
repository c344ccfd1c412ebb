"""
Models for data exchanged with external collaborators: the identity GraphQL service, the
product catalog and the image CDN.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class CustomerRanking(BaseModel):
    ranking: Optional[str] = None
    ranking_next: Optional[str] = None
    total_points: Optional[str] = None
    uneven_points: Optional[str] = None


class ExternalUser(BaseModel):
    """Customer profile returned by the identity service for a bearer token."""

    email: str
    firstname: Optional[str] = None
    lastname: Optional[str] = None
    middlename: Optional[str] = None
    mobile_number: Optional[str] = None
    picture: Optional[str] = None
    ranking: List[CustomerRanking] = Field(default_factory=list)

    @property
    def full_name(self) -> str:
        return f"{self.firstname or ''} {self.lastname or ''}".strip()

    @property
    def primary_ranking(self) -> Optional[Dict[str, Any]]:
        return self.ranking[0].model_dump() if self.ranking else None


class CatalogMoney(BaseModel):
    currency: Optional[str] = None
    value: Optional[float] = None


class CatalogProduct(BaseModel):
    """Subset of a catalog product record used for related-product snapshots."""

    name: str
    url_key: str
    image: Optional[Dict[str, Any]] = None
    price_range: Optional[Dict[str, Any]] = None
    daily_sale: Optional[Dict[str, Any]] = None

    @property
    def image_url(self) -> str:
        return (self.image or {}).get("url") or ""

    @property
    def final_price(self) -> CatalogMoney:
        final = ((self.price_range or {}).get("minimum_price") or {}).get("final_price") or {}
        return CatalogMoney(**final)

    @property
    def sale_price(self) -> Optional[float]:
        return (self.daily_sale or {}).get("sale_price")


class ProductSearchParams(BaseModel):
    search: Optional[str] = None
    category_uid: Optional[str] = None
    page_size: int = Field(default=20, ge=1, le=200)
    current_page: int = Field(default=1, ge=1)
    sort_by: Optional[str] = None
    sort_direction: str = Field(default="ASC", pattern=r"^(ASC|DESC)$")


class ValidateProductsRequest(BaseModel):
    product_keys: List[str] = Field(..., max_length=50)


class UploadProfile(str, Enum):
    AVATAR = "avatar"
    POST = "post"
    CATEGORY = "category"
    EDITOR = "editor"


class StoredFile(BaseModel):
    """Result of a successful CDN upload."""

    url: str
    public_id: str
    width: int = 0
    height: int = 0
    size: int = 0
    format: str = ""
    original_name: Optional[str] = None
