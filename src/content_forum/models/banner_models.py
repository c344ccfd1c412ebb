"""
# Banner Models

Promotional banners shown in fixed page slots (hero, sidebar, header...).

Unlike categories and tags, a banner whose title collides with an existing slug is not
rejected: the slug is suffixed (`summer-sale`, `summer-sale-1`, ...).
"""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field, field_validator, model_validator

from content_forum.models.forum_models import strip_html


class BannerType(str, Enum):
    HERO = "hero"
    SIDEBAR = "sidebar"
    HEADER = "header"
    FOOTER = "footer"
    POPUP = "popup"
    INLINE = "inline"


class BannerStatus(str, Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SCHEDULED = "scheduled"
    EXPIRED = "expired"


class TargetDevice(str, Enum):
    ALL = "all"
    DESKTOP = "desktop"
    MOBILE = "mobile"
    TABLET = "tablet"


class BannerImage(BaseModel):
    """An image slot of a banner. Dimensions and size must be positive."""

    url: str = Field(..., min_length=1)
    filename: str = Field(..., min_length=1)
    alt: Optional[str] = None
    title: Optional[str] = None
    width: int = Field(..., gt=0)
    height: int = Field(..., gt=0)
    size: int = Field(..., gt=0)
    order: int = 0

    @field_validator("url")
    @classmethod
    def validate_url(cls, v):
        if not v.startswith(("http://", "https://", "/")):
            raise ValueError("Image URL must be absolute or site-relative")
        return v


class CreateBannerRequest(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    type: BannerType = BannerType.HERO
    status: BannerStatus = BannerStatus.ACTIVE
    images: List[BannerImage] = Field(default_factory=list, max_length=10)
    content: Optional[str] = None
    link_url: Optional[str] = None
    open_in_new_tab: bool = False
    button_text: Optional[str] = Field(None, max_length=50)
    order: int = 0
    priority: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    categories: List[str] = Field(default_factory=list)
    tags: List[str] = Field(default_factory=list)
    target_device: TargetDevice = TargetDevice.ALL

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        v = strip_html(v)
        if not v:
            raise ValueError("Banner title cannot be empty")
        return v

    @model_validator(mode="after")
    def check_date_window(self):
        if self.start_date and self.end_date and self.end_date <= self.start_date:
            raise ValueError("end_date must be after start_date")
        return self


class UpdateBannerRequest(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=200)
    description: Optional[str] = Field(None, max_length=500)
    type: Optional[BannerType] = None
    status: Optional[BannerStatus] = None
    images: Optional[List[BannerImage]] = Field(None, max_length=10)
    content: Optional[str] = None
    link_url: Optional[str] = None
    open_in_new_tab: Optional[bool] = None
    button_text: Optional[str] = Field(None, max_length=50)
    order: Optional[int] = None
    priority: Optional[int] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    categories: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    target_device: Optional[TargetDevice] = None

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        return strip_html(v) if v is not None else v


class UpdateBannerStatusRequest(BaseModel):
    status: BannerStatus


class BannerQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: Optional[str] = None
    type: Optional[BannerType] = None
    status: Optional[BannerStatus] = None
    author_id: Optional[str] = None
    sort_by: str = Field(default="created_at", pattern=r"^(created_at|priority|order|view_count|click_count|title)$")
    sort_order: str = Field(default="desc", pattern=r"^(asc|desc)$")


class BannerResponse(BaseModel):
    banner_id: str
    title: str
    slug: str
    description: Optional[str] = None
    type: BannerType
    status: BannerStatus
    images: List[BannerImage] = []
    content: Optional[str] = None
    link_url: Optional[str] = None
    open_in_new_tab: bool = False
    button_text: Optional[str] = None
    order: int = 0
    priority: int = 0
    click_count: int = 0
    view_count: int = 0
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    categories: List[str] = []
    tags: List[str] = []
    target_device: TargetDevice = TargetDevice.ALL
    author_id: str
    created_at: datetime
    updated_at: datetime
