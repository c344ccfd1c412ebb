"""
# Post Service

The post store is the aggregate root of the forum: every post write touches the post itself
and the denormalized counters of its category, its tags and its author.

## Write Path

1. Validate the caller-supplied slug (length window and pattern).
2. Check the category exists, then each tag, one at a time.
3. Check the slug is free (excluding the post itself on update).
4. Resolve related products against the catalog, falling back to the caller's data.
5. Persist the post.
6. Issue independent `$inc` writes on the category, each tag and the author.

None of these steps run in a transaction. A failure between (5) and (6) leaves counters
off by one until the reconciliation job rewrites them.

## Read Path

`find_by_slug()` is the public read: it matches published posts only and bumps
`view_count` atomically, returning the incremented document. `find_one()` is the
side-effect-free lookup by id used by editors.

## Usage Example

```python
post = await post_service.create(CreatePostRequest(...), author_id="user_0123456789abcdef")
availability = await post_service.check_slug_availability("my-post")
```
"""

from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from content_forum.config import settings
from content_forum.database import db_manager
from content_forum.errors import ConflictError, ForbiddenError, NotFoundError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.forum_models import (
    CreatePostRequest,
    PostQuery,
    PostStatus,
    RelatedProduct,
    RelatedProductInput,
    UpdatePostRequest,
)
from content_forum.models.integration_models import CatalogProduct
from content_forum.models.user_models import ActivityType
from content_forum.services.activity_service import ActivityService
from content_forum.services.category_service import CategoryService
from content_forum.services.tag_service import TagService
from content_forum.services.user_service import UserService
from content_forum.utils.documents import clean_document, sort_direction
from content_forum.utils.identifiers import new_id, normalize_id
from content_forum.utils.pagination import page_window, paginated
from content_forum.utils.slug import (
    normalize_slug,
    sanitize_slug,
    slug_error,
    slug_suggestions,
    validate_post_slug,
)

logger = get_logger(prefix="[Post Service]")

SLUG_TAKEN_MESSAGE = "Slug already exists. Please choose a different slug."
MAX_SLUG_SUGGESTIONS = 5
UNKNOWN_PRODUCT_NAME = "Unknown Product"

# Simple fields copied from an update request when present and not None.
UPDATABLE_FIELDS = (
    "title",
    "content",
    "excerpt",
    "featured_image",
    "is_featured",
    "is_sticky",
    "seo_title",
    "seo_description",
    "seo_keywords",
)


def _unique(values: Iterable[str]) -> List[str]:
    seen = set()
    result = []
    for value in values:
        if value not in seen:
            seen.add(value)
            result.append(value)
    return result


def product_url_for(url_key: str) -> str:
    return f"{settings.PRODUCT_STORE_URL.rstrip('/')}/products/{url_key}"


def snapshot_from_catalog(product: CatalogProduct) -> RelatedProduct:
    """Map a catalog record to the snapshot embedded in a post."""
    price = product.final_price
    return RelatedProduct(
        name=product.name,
        url_key=product.url_key,
        image_url=product.image_url,
        price=price.value or 0,
        currency=price.currency or settings.PRODUCT_DEFAULT_CURRENCY,
        sale_price=product.sale_price,
        product_url=product_url_for(product.url_key),
    )


def snapshot_from_input(item: RelatedProductInput) -> RelatedProduct:
    """Build a snapshot from caller data when the catalog could not confirm the product."""
    return RelatedProduct(
        name=item.name or UNKNOWN_PRODUCT_NAME,
        url_key=item.url_key,
        image_url=item.image_url or "",
        price=item.price or 0,
        currency=item.currency or settings.PRODUCT_DEFAULT_CURRENCY,
        sale_price=item.sale_price,
        product_url=item.product_url or product_url_for(item.url_key),
    )


class PostService:
    """
    Service for posts and their cross-entity bookkeeping.

    Collaborators are injected: the category, tag and user services own their counters, the
    product catalog client confirms related products, and the activity service records author
    actions.
    """

    def __init__(
        self,
        db=None,
        category_service: Optional[CategoryService] = None,
        tag_service: Optional[TagService] = None,
        user_service: Optional[UserService] = None,
        product_client=None,
        activity_service: Optional[ActivityService] = None,
    ):
        self.db = db if db is not None else db_manager
        self.category_service = category_service or CategoryService(self.db)
        self.tag_service = tag_service or TagService(self.db)
        self.user_service = user_service or UserService(self.db)
        self.product_client = product_client
        self.activity_service = activity_service or ActivityService(self.db)
        self.collection_name = "posts"

    @property
    def collection(self):
        return self.db.get_collection(self.collection_name)

    # --- Helpers ---

    async def _get_raw(self, post_id: str) -> Dict[str, Any]:
        post_id = normalize_id(post_id, "post", "post_id")
        doc = await self.collection.find_one({"post_id": post_id})
        if not doc:
            raise NotFoundError("Post not found", details={"post_id": post_id})
        return doc

    async def _ensure_category(self, category_id: str) -> None:
        if not await self.category_service.exists(category_id):
            raise NotFoundError("Category not found", details={"category_id": category_id})

    async def _ensure_tags(self, tag_ids: List[str]) -> None:
        for tag_id in tag_ids:
            if not await self.tag_service.exists(tag_id):
                raise NotFoundError(f"Tag {tag_id} not found", details={"tag_id": tag_id})

    async def process_related_products(self, items: List[RelatedProductInput]) -> List[Dict[str, Any]]:
        """
        Turn caller-supplied product references into embedded snapshots.

        Items without a `url_key` are dropped. Each remaining item is replaced by the catalog
        record with the same `url_key` when the catalog confirms it, otherwise kept as sent.
        """
        keyed = [item for item in items if item.url_key]
        if not keyed:
            return []

        confirmed: Dict[str, CatalogProduct] = {}
        if self.product_client is not None:
            try:
                validated = await self.product_client.validate_product_selection([i.url_key for i in keyed])
                confirmed = {product.url_key: product for product in validated}
            except Exception as e:
                logger.warning("Related product validation failed, using caller data: %s", e, exc_info=True)

        snapshots = []
        for item in keyed:
            product = confirmed.get(item.url_key)
            snapshot = snapshot_from_catalog(product) if product else snapshot_from_input(item)
            snapshots.append(snapshot.model_dump())
        logger.debug("Resolved %d related products (%d confirmed)", len(snapshots), len(confirmed))
        return snapshots

    async def _populate(self, post: Dict[str, Any]) -> Dict[str, Any]:
        """Attach category, tag and author summaries. Dangling references populate as empty."""
        result = clean_document(post)

        category = await self.db.get_collection("categories").find_one({"category_id": post.get("category_id")})
        result["category"] = (
            {"category_id": category["category_id"], "name": category["name"], "slug": category["slug"]}
            if category
            else None
        )

        tag_ids = post.get("tag_ids") or []
        tags = []
        if tag_ids:
            tag_docs = await self.db.get_collection("tags").find({"tag_id": {"$in": tag_ids}}).to_list(length=None)
            by_id = {t["tag_id"]: t for t in tag_docs}
            tags = [
                {"tag_id": t["tag_id"], "name": t["name"], "slug": t["slug"], "color": t.get("color")}
                for t in (by_id.get(tag_id) for tag_id in tag_ids)
                if t
            ]
        result["tags"] = tags

        author = await self.db.get_collection("users").find_one({"user_id": post.get("author_id")})
        result["author"] = (
            {
                "user_id": author["user_id"],
                "username": author["username"],
                "display_name": author.get("display_name"),
                "avatar": author.get("avatar"),
            }
            if author
            else None
        )
        return result

    async def _list(self, query: Dict[str, Any], sort: List, page: int, limit: int) -> Dict[str, Any]:
        page, limit, skip = page_window(page, limit)
        total = await self.collection.count_documents(query)
        docs = await self.collection.find(query).sort(sort).skip(skip).limit(limit).to_list(length=limit)
        return paginated([await self._populate(doc) for doc in docs], page, limit, total)

    # --- Writes ---

    async def create(self, data: CreatePostRequest, author_id: str) -> Dict[str, Any]:
        """
        Create a post and bump the category, tag and author counters.

        Raises:
            ValidationError: Malformed slug or identifier.
            NotFoundError: Unknown category or tag.
            ConflictError: Slug already used by another post.
        """
        slug = validate_post_slug(data.slug)
        author_id = normalize_id(author_id, "user", "author_id")
        category_id = normalize_id(data.category_id, "category", "category_id")
        tag_ids = _unique(normalize_id(t, "tag", "tag_ids") for t in data.tag_ids or [])

        await self._ensure_category(category_id)
        await self._ensure_tags(tag_ids)

        if await self.collection.find_one({"slug": slug}):
            raise ConflictError(SLUG_TAKEN_MESSAGE, details={"slug": slug})

        related_products = await self.process_related_products(data.related_products or [])

        now = datetime.now(timezone.utc)
        status = PostStatus(data.status)
        published_at = data.published_at
        if published_at is None and status == PostStatus.PUBLISHED:
            published_at = now

        document = {
            "post_id": new_id("post"),
            "title": data.title,
            "slug": slug,
            "content": data.content,
            "excerpt": data.excerpt,
            "featured_image": data.featured_image,
            "category_id": category_id,
            "tag_ids": tag_ids,
            "author_id": author_id,
            "related_products": related_products,
            "status": status.value,
            "view_count": 0,
            "like_count": 0,
            "comment_count": 0,
            "is_featured": data.is_featured,
            "is_sticky": data.is_sticky,
            "published_at": published_at,
            "seo_title": data.seo_title,
            "seo_description": data.seo_description,
            "seo_keywords": data.seo_keywords or [],
            "created_at": now,
            "updated_at": now,
        }
        try:
            await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise ConflictError(SLUG_TAKEN_MESSAGE, details={"slug": slug}) from e

        await self.category_service.increment_post_count(category_id)
        for tag_id in tag_ids:
            await self.tag_service.increment_post_count(tag_id)
        await self.user_service.increment_post_count(author_id)

        await self.activity_service.log(
            author_id, ActivityType.POST_CREATED, f"Created post '{data.title}'", {"post_id": document["post_id"]}
        )
        logger.info("Created post %s (%s) by %s", document["post_id"], slug, author_id)
        return await self._populate(document)

    async def update(self, post_id: str, data: UpdatePostRequest, user_id: str) -> Dict[str, Any]:
        """
        Apply a partial update as the post's author.

        Category and tag changes move the counters: the old category is decremented and the
        new one incremented; for tags only the symmetric difference is touched.

        Raises:
            ForbiddenError: If `user_id` is not the author.
            ValidationError, NotFoundError, ConflictError: As for `create()`.
        """
        post = await self._get_raw(post_id)
        post_id = post["post_id"]
        if post["author_id"] != user_id:
            raise ForbiddenError("You can only edit your own posts", details={"post_id": post_id})

        changes = data.model_dump(exclude_unset=True)
        updates: Dict[str, Any] = {}
        now = datetime.now(timezone.utc)

        if changes.get("slug") is not None:
            slug = validate_post_slug(changes["slug"])
            if slug != post["slug"] and await self.collection.find_one({"slug": slug, "post_id": {"$ne": post_id}}):
                raise ConflictError(SLUG_TAKEN_MESSAGE, details={"slug": slug})
            updates["slug"] = slug

        old_category = post.get("category_id")
        new_category = old_category
        if changes.get("category_id") is not None:
            new_category = normalize_id(changes["category_id"], "category", "category_id")
            if new_category != old_category:
                await self._ensure_category(new_category)
                updates["category_id"] = new_category

        old_tags = list(post.get("tag_ids") or [])
        removed_tags: List[str] = []
        added_tags: List[str] = []
        if changes.get("tag_ids") is not None:
            new_tags = _unique(normalize_id(t, "tag", "tag_ids") for t in changes["tag_ids"])
            added_tags = [t for t in new_tags if t not in old_tags]
            removed_tags = [t for t in old_tags if t not in new_tags]
            await self._ensure_tags(added_tags)
            updates["tag_ids"] = new_tags

        if "related_products" in changes:
            updates["related_products"] = (
                await self.process_related_products(data.related_products) if data.related_products else []
            )

        if changes.get("status") is not None:
            status = PostStatus(changes["status"])
            updates["status"] = status.value
            if status == PostStatus.PUBLISHED and not post.get("published_at"):
                updates["published_at"] = now
        if changes.get("published_at") is not None:
            updates["published_at"] = changes["published_at"]

        for field in UPDATABLE_FIELDS:
            if changes.get(field) is not None:
                updates[field] = changes[field]

        updates["updated_at"] = now
        try:
            await self.collection.update_one({"post_id": post_id}, {"$set": updates})
        except DuplicateKeyError as e:
            raise ConflictError(SLUG_TAKEN_MESSAGE, details={"slug": updates.get("slug")}) from e

        if new_category != old_category:
            await self.category_service.decrement_post_count(old_category)
            await self.category_service.increment_post_count(new_category)
        for tag_id in removed_tags:
            await self.tag_service.decrement_post_count(tag_id)
        for tag_id in added_tags:
            await self.tag_service.increment_post_count(tag_id)

        await self.activity_service.log(
            user_id, ActivityType.POST_UPDATED, f"Updated post '{post['title']}'", {"post_id": post_id}
        )
        logger.info("Updated post %s (%s)", post_id, ", ".join(sorted(updates)))
        return await self._populate(await self.collection.find_one({"post_id": post_id}))

    async def remove(self, post_id: str, user_id: str) -> None:
        """
        Delete a post as its author, decrementing the category, tag and author counters.

        Raises:
            NotFoundError: If the post does not exist.
            ForbiddenError: If `user_id` is not the author.
        """
        post = await self._get_raw(post_id)
        if post["author_id"] != user_id:
            raise ForbiddenError("You can only delete your own posts", details={"post_id": post["post_id"]})

        await self.category_service.decrement_post_count(post["category_id"])
        for tag_id in post.get("tag_ids") or []:
            await self.tag_service.decrement_post_count(tag_id)
        await self.user_service.decrement_post_count(post["author_id"])

        await self.collection.delete_one({"post_id": post["post_id"]})
        await self.activity_service.log(
            user_id, ActivityType.POST_DELETED, f"Deleted post '{post['title']}'", {"post_id": post["post_id"]}
        )
        logger.info("Deleted post %s", post["post_id"])

    # --- Reads ---

    async def find_all(self, query: PostQuery) -> Dict[str, Any]:
        """List posts. Sticky posts always sort first, then the requested field."""
        filters: Dict[str, Any] = {}
        if query.status:
            filters["status"] = PostStatus(query.status).value
        if query.category_id:
            filters["category_id"] = normalize_id(query.category_id, "category", "category_id")
        if query.tag_ids:
            filters["tag_ids"] = {"$in": [normalize_id(t, "tag", "tag_ids") for t in query.tag_ids]}
        if query.author_id:
            filters["author_id"] = normalize_id(query.author_id, "user", "author_id")
        if query.is_featured is not None:
            filters["is_featured"] = query.is_featured
        if query.is_sticky is not None:
            filters["is_sticky"] = query.is_sticky
        if query.search:
            filters["$text"] = {"$search": query.search}

        sort = [("is_sticky", -1), (query.sort_by, sort_direction(query.sort_order))]
        return await self._list(filters, sort, query.page, query.limit)

    async def my_posts(self, author_id: str, query: PostQuery) -> Dict[str, Any]:
        """The author's own posts in any status unless a status is requested."""
        scoped = query.model_copy(update={"author_id": author_id})
        return await self.find_all(scoped)

    async def find_one(self, post_id: str) -> Dict[str, Any]:
        return await self._populate(await self._get_raw(post_id))

    async def find_by_slug(self, slug: str) -> Dict[str, Any]:
        """Return a published post by slug, counting the read as one view."""
        slug = sanitize_slug(slug)
        doc = await self.collection.find_one_and_update(
            {"slug": slug, "status": PostStatus.PUBLISHED.value},
            {"$inc": {"view_count": 1}},
            return_document=ReturnDocument.AFTER,
        )
        if not doc:
            raise NotFoundError("Post not found", details={"slug": slug})
        return await self._populate(doc)

    async def get_related(self, post_id: str, limit: int = 5) -> List[Dict[str, Any]]:
        post_id = normalize_id(post_id, "post", "post_id")
        post = await self.collection.find_one({"post_id": post_id})
        if not post:
            return []

        related_to = [{"category_id": post.get("category_id")}]
        if post.get("tag_ids"):
            related_to.append({"tag_ids": {"$in": post["tag_ids"]}})
        docs = await (
            self.collection.find(
                {"post_id": {"$ne": post_id}, "status": PostStatus.PUBLISHED.value, "$or": related_to}
            )
            .sort([("published_at", -1)])
            .limit(limit)
            .to_list(length=limit)
        )
        return [await self._populate(doc) for doc in docs]

    async def check_slug_availability(self, slug: str) -> Dict[str, Any]:
        """
        Report whether a slug can be used, suggesting free alternatives when it is taken.

        Suggestions are confirmed free against the collection before being returned.
        """
        normalized = normalize_slug(slug)
        error = slug_error(normalized)
        if error:
            return {"slug": normalized, "available": False, "message": error, "suggestions": []}

        if not await self.collection.find_one({"slug": normalized}):
            return {"slug": normalized, "available": True, "message": "Slug is available", "suggestions": []}

        suggestions: List[str] = []
        for candidate in slug_suggestions(normalized, datetime.now(timezone.utc).year):
            if not await self.collection.find_one({"slug": candidate}):
                suggestions.append(candidate)
            if len(suggestions) >= MAX_SLUG_SUGGESTIONS:
                break

        return {
            "slug": normalized,
            "available": False,
            "message": "Slug already exists",
            "suggestions": suggestions,
        }

    async def _published(self, sort: List, limit: int, extra: Optional[Dict[str, Any]] = None) -> List[Dict[str, Any]]:
        query = {"status": PostStatus.PUBLISHED.value, **(extra or {})}
        docs = await self.collection.find(query).sort(sort).limit(limit).to_list(length=limit)
        return [await self._populate(doc) for doc in docs]

    async def get_featured(self, limit: int = 5) -> List[Dict[str, Any]]:
        return await self._published([("published_at", -1)], limit, {"is_featured": True})

    async def get_popular(self, limit: int = 5) -> List[Dict[str, Any]]:
        return await self._published([("view_count", -1)], limit)

    async def get_latest(self, limit: int = 5) -> List[Dict[str, Any]]:
        return await self._published([("published_at", -1)], limit)

    async def get_posts_by_product(self, url_key: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        query = {"related_products.url_key": url_key, "status": PostStatus.PUBLISHED.value}
        return await self._list(query, [("published_at", -1)], page, limit)

    async def get_popular_products(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Products most often attached to published posts."""
        pipeline = [
            {"$match": {"status": PostStatus.PUBLISHED.value}},
            {"$unwind": "$related_products"},
            {
                "$group": {
                    "_id": "$related_products.url_key",
                    "count": {"$sum": 1},
                    "product": {"$first": "$related_products"},
                    "posts": {"$push": {"post_id": "$post_id", "title": "$title", "slug": "$slug"}},
                }
            },
            {"$sort": {"count": -1}},
            {"$limit": limit},
            {"$project": {"_id": 0, "url_key": "$_id", "count": 1, "product": 1, "posts": 1}},
        ]
        return await self.collection.aggregate(pipeline).to_list(length=limit)
