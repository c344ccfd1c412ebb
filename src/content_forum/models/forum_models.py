"""
# Forum Content Models

This module defines the **request, response and document models** for the forum's content
entities: categories, tags, posts and comments.

## Domain Model Overview

- **Category**: Hierarchical topic tree. Children reference their parent through `parent_id`;
  the tree is never stored as an embedded array.
- **Tag**: Flat labels attached to posts.
- **Post**: The aggregate root. References one category, zero or more tags and one author,
  and embeds point-in-time snapshots of related catalog products.
- **Comment**: One level of threading, moderated, authored by an externally-identified user.

## Denormalized Counters

`Category.post_count`, `Tag.post_count`, `User.post_count`, `Post.comment_count` and
`Comment.reply_count` are stored aggregates. The service layer adjusts them on every
write and the daily reconciliation job repairs any drift.

## Content Safety

- **Titles/excerpts**: all HTML stripped with `bleach`.
- **Post content**: a formatting allowlist (`<p>`, `<a>`, `<img>`, tables, headings...).
- **Comment content**: basic inline formatting only.

## Usage Examples

```python
post = CreatePostRequest(
    title="Hands-on with the new phone",
    slug="hands-on-new-phone",
    content="<p>First impressions...</p>",
    category_id="category_0123456789abcdef",
    tag_ids=["tag_0123456789abcdef"],
)
```

Attributes:
    POST_STATUSES (List[str]): Valid lifecycle states for a post.
    COMMENT_STATUSES (List[str]): Valid moderation states for a comment.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

import bleach
from pydantic import BaseModel, Field, field_validator

from content_forum.utils.slug import slug_error, normalize_slug

POST_STATUSES = ["draft", "published", "archived"]
COMMENT_STATUSES = ["pending", "approved", "rejected", "spam"]

POST_CONTENT_TAGS = [
    "p", "br", "strong", "em", "b", "i", "u", "code", "pre", "h1", "h2", "h3", "h4", "h5", "h6",
    "ul", "ol", "li", "blockquote", "a", "img", "hr", "table", "thead", "tbody", "tr", "th", "td",
    "figure", "figcaption", "span", "div",
]
POST_CONTENT_ATTRIBUTES = {
    "a": ["href", "title", "target", "rel"],
    "img": ["src", "alt", "title", "width", "height"],
    "*": ["class"],
}
COMMENT_TAGS = ["p", "br", "strong", "em", "code", "a"]


def strip_html(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    return bleach.clean(value, tags=[], strip=True).strip()


def clean_post_content(value: str) -> str:
    return bleach.clean(value, tags=POST_CONTENT_TAGS, attributes=POST_CONTENT_ATTRIBUTES, strip=True)


def clean_comment_content(value: str) -> str:
    return bleach.clean(value, tags=COMMENT_TAGS, strip=True).strip()


# Enums
class PostStatus(str, Enum):
    """Enumeration of post lifecycle states.

    Transitions are unconstrained; `published_at` is stamped on first entry into PUBLISHED.
    """
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


class CommentStatus(str, Enum):
    """Enumeration of comment moderation states.

    Attributes:
        PENDING: Awaiting moderator review (initial state).
        APPROVED: Publicly visible.
        REJECTED: Rejected by a moderator.
        SPAM: Flagged as spam.
    """
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"
    SPAM = "spam"


class SeoFields(BaseModel):
    seo_title: Optional[str] = Field(None, max_length=70, description="SEO title")
    seo_description: Optional[str] = Field(None, max_length=160, description="SEO description")
    seo_keywords: List[str] = Field(default_factory=list, description="SEO keywords")


# Category models
class CreateCategoryRequest(SeoFields):
    """
    Request model for creating a category.

    The slug is derived from `name`; a second category with the same derived slug is
    rejected rather than suffixed.
    """

    name: str = Field(..., min_length=1, max_length=100, description="Category name")
    description: Optional[str] = Field(None, max_length=500, description="Category description")
    icon: Optional[str] = Field(None, description="Icon URL")
    parent_id: Optional[str] = Field(None, description="Parent category ID")
    order: int = Field(default=0, description="Sort order among siblings")
    is_active: bool = Field(default=True, description="Whether the category is visible")

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = strip_html(v)
        if not v:
            raise ValueError("Category name cannot be empty")
        return v


class UpdateCategoryRequest(BaseModel):
    """
    Request model for updating a category.

    Renaming regenerates the slug. Sending `parent_id: null` explicitly moves the category
    to the root level; omitting it leaves the parent unchanged.
    """

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = Field(None, max_length=500)
    icon: Optional[str] = None
    parent_id: Optional[str] = None
    order: Optional[int] = None
    is_active: Optional[bool] = None
    seo_title: Optional[str] = Field(None, max_length=70)
    seo_description: Optional[str] = Field(None, max_length=160)
    seo_keywords: Optional[List[str]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return strip_html(v) if v is not None else v


class CategoryResponse(BaseModel):
    """Response model for a category, optionally with its derived children."""

    category_id: str
    name: str
    slug: str
    description: Optional[str] = None
    icon: Optional[str] = None
    parent_id: Optional[str] = None
    order: int = 0
    is_active: bool = True
    post_count: int = 0
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: List[str] = []
    created_at: datetime
    updated_at: datetime
    children: Optional[List["CategoryResponse"]] = None


# Tag models
class CreateTagRequest(SeoFields):
    name: str = Field(..., min_length=1, max_length=50, description="Tag name")
    description: Optional[str] = Field(None, max_length=300)
    color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$", description="Hex color")
    image: Optional[str] = Field(None, description="Image URL")
    is_active: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        v = strip_html(v)
        if not v:
            raise ValueError("Tag name cannot be empty")
        return v


class UpdateTagRequest(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    description: Optional[str] = Field(None, max_length=300)
    color: Optional[str] = Field(None, pattern=r"^#[0-9a-fA-F]{6}$")
    image: Optional[str] = None
    is_active: Optional[bool] = None
    seo_title: Optional[str] = Field(None, max_length=70)
    seo_description: Optional[str] = Field(None, max_length=160)
    seo_keywords: Optional[List[str]] = None

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        return strip_html(v) if v is not None else v


class TagResponse(BaseModel):
    tag_id: str
    name: str
    slug: str
    description: Optional[str] = None
    color: Optional[str] = None
    image: Optional[str] = None
    post_count: int = 0
    is_active: bool = True
    created_at: datetime
    updated_at: datetime


# Post models
class RelatedProductInput(BaseModel):
    """Caller-supplied product reference; used verbatim if catalog validation fails."""

    name: Optional[str] = Field(None, max_length=300)
    url_key: Optional[str] = Field(None, max_length=300)
    image_url: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    currency: Optional[str] = None
    sale_price: Optional[float] = Field(None, ge=0)
    product_url: Optional[str] = None


class RelatedProduct(BaseModel):
    """Point-in-time snapshot of a catalog product embedded in a post."""

    name: str
    url_key: str
    image_url: str = ""
    price: float = 0
    currency: str = "VND"
    sale_price: Optional[float] = None
    product_url: Optional[str] = None


class CreatePostRequest(SeoFields):
    """
    Request model for creating a post.

    **Slug rules** (enforced here and again on every persist):
    *   3 to 100 characters.
    *   Lowercase letters, digits and single hyphens; no leading/trailing hyphen.

    **Sanitization:**
    *   **title**, **excerpt**: all HTML tags stripped.
    *   **content**: allowlisted formatting tags only.
    """

    title: str = Field(..., min_length=1, max_length=300, description="Post title")
    slug: str = Field(..., description="URL slug")
    content: str = Field(..., min_length=1, description="Post body (HTML)")
    excerpt: Optional[str] = Field(None, max_length=1000, description="Short summary")
    featured_image: Optional[str] = Field(None, description="Featured image URL")
    category_id: str = Field(..., description="Category ID")
    tag_ids: List[str] = Field(default_factory=list, max_length=20, description="Tag IDs")
    related_products: List[RelatedProductInput] = Field(default_factory=list, max_length=20)
    status: PostStatus = Field(default=PostStatus.PUBLISHED)
    is_featured: bool = False
    is_sticky: bool = False
    published_at: Optional[datetime] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v):
        v = normalize_slug(v)
        error = slug_error(v)
        if error:
            raise ValueError(error)
        return v

    @field_validator("title")
    @classmethod
    def validate_title(cls, v):
        v = strip_html(v)
        if not v:
            raise ValueError("Title cannot be empty")
        return v

    @field_validator("excerpt")
    @classmethod
    def validate_excerpt(cls, v):
        return strip_html(v)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        return clean_post_content(v)


class UpdatePostRequest(BaseModel):
    """
    Request model for a partial post update.

    `related_products: null` or `[]` clears the snapshots; any other list replaces them.
    """

    title: Optional[str] = Field(None, min_length=1, max_length=300)
    slug: Optional[str] = None
    content: Optional[str] = Field(None, min_length=1)
    excerpt: Optional[str] = Field(None, max_length=1000)
    featured_image: Optional[str] = None
    category_id: Optional[str] = None
    tag_ids: Optional[List[str]] = Field(None, max_length=20)
    related_products: Optional[List[RelatedProductInput]] = Field(None, max_length=20)
    status: Optional[PostStatus] = None
    is_featured: Optional[bool] = None
    is_sticky: Optional[bool] = None
    published_at: Optional[datetime] = None
    seo_title: Optional[str] = Field(None, max_length=70)
    seo_description: Optional[str] = Field(None, max_length=160)
    seo_keywords: Optional[List[str]] = None

    @field_validator("slug")
    @classmethod
    def validate_slug(cls, v):
        if v is None:
            return v
        v = normalize_slug(v)
        error = slug_error(v)
        if error:
            raise ValueError(error)
        return v

    @field_validator("title", "excerpt")
    @classmethod
    def validate_plain_text(cls, v):
        return strip_html(v)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        return clean_post_content(v) if v is not None else v


class PostQuery(BaseModel):
    """Filters, sorting and paging for post listings."""

    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    search: Optional[str] = None
    category_id: Optional[str] = None
    tag_ids: Optional[List[str]] = None
    author_id: Optional[str] = None
    status: Optional[PostStatus] = PostStatus.PUBLISHED
    is_featured: Optional[bool] = None
    is_sticky: Optional[bool] = None
    sort_by: str = Field(default="published_at", pattern=r"^(published_at|created_at|updated_at|view_count|like_count|comment_count|title)$")
    sort_order: str = Field(default="desc", pattern=r"^(asc|desc)$")


class SlugAvailabilityResponse(BaseModel):
    slug: str
    available: bool
    message: str
    suggestions: List[str] = []


class PostResponse(BaseModel):
    """
    Response model for a post.

    `category`, `tags` and `author` are populated summaries; they are `None`/omitted when
    the referenced entity no longer exists (category and tag deletion do not cascade).
    """

    post_id: str
    title: str
    slug: str
    content: str
    excerpt: Optional[str] = None
    featured_image: Optional[str] = None
    category_id: str
    tag_ids: List[str] = []
    author_id: str
    related_products: List[RelatedProduct] = []
    status: PostStatus
    view_count: int = 0
    like_count: int = 0
    comment_count: int = 0
    is_featured: bool = False
    is_sticky: bool = False
    published_at: Optional[datetime] = None
    seo_title: Optional[str] = None
    seo_description: Optional[str] = None
    seo_keywords: List[str] = []
    created_at: datetime
    updated_at: datetime
    category: Optional[Dict[str, Any]] = None
    tags: Optional[List[Dict[str, Any]]] = None
    author: Optional[Dict[str, Any]] = None


# Comment models
class CreateCommentRequest(BaseModel):
    """
    Request model for posting a comment.

    The author identity is not part of the body: it is resolved from the caller's bearer
    token through the external identity service.
    """

    content: str = Field(..., min_length=1, max_length=2000, description="Comment content")
    post_id: str = Field(..., description="Post ID")
    parent_id: Optional[str] = Field(None, description="Parent comment ID for replies")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        v = clean_comment_content(v)
        if not v:
            raise ValueError("Comment content cannot be empty")
        return v


class UpdateCommentRequest(BaseModel):
    content: str = Field(..., min_length=1, max_length=2000, description="Comment content")

    @field_validator("content")
    @classmethod
    def validate_content(cls, v):
        v = clean_comment_content(v)
        if not v:
            raise ValueError("Comment content cannot be empty")
        return v


class ModerateCommentRequest(BaseModel):
    """Moderator decision on a comment."""

    status: CommentStatus = Field(..., description="New moderation status")
    reason: Optional[str] = Field(None, max_length=500, description="Moderation reason")


class CommentQuery(BaseModel):
    page: int = Field(default=1, ge=1)
    limit: int = Field(default=10, ge=1, le=100)
    post_id: Optional[str] = None
    parent_id: Optional[str] = None
    external_user_id: Optional[str] = None
    status: Optional[CommentStatus] = CommentStatus.APPROVED
    include_replies: bool = False
    sort_by: str = Field(default="created_at", pattern=r"^(created_at|like_count|reply_count)$")
    sort_order: str = Field(default="desc", pattern=r"^(asc|desc)$")


class CommentResponse(BaseModel):
    """Response model for a comment with optional approved replies."""

    comment_id: str
    content: str
    post_id: str
    parent_id: Optional[str] = None
    external_user_id: str
    author_name: str
    author_email: str
    author_avatar: str = ""
    author_mobile: Optional[str] = None
    author_ranking: Optional[Dict[str, Any]] = None
    status: CommentStatus
    like_count: int = 0
    reply_count: int = 0
    is_edited: bool = False
    edited_at: Optional[datetime] = None
    moderated_by: Optional[str] = None
    moderated_at: Optional[datetime] = None
    moderation_reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    replies: Optional[List["CommentResponse"]] = None


CategoryResponse.model_rebuild()
CommentResponse.model_rebuild()
