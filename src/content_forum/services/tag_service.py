"""
# Tag Service

Flat labels attached to posts. Tags follow the same slug and counter rules as categories
but have no hierarchy, and deletion is unconditional: posts keep the removed tag id in
their `tag_ids` until they are edited.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo.errors import DuplicateKeyError

from content_forum.database import db_manager
from content_forum.errors import ConflictError, NotFoundError, ValidationError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.forum_models import CreateTagRequest, PostStatus, UpdateTagRequest
from content_forum.utils.documents import clean_document, clean_documents
from content_forum.utils.identifiers import new_id, normalize_id
from content_forum.utils.pagination import page_window, paginated
from content_forum.utils.slug import sanitize_slug, slugify

logger = get_logger(prefix="[Tag Service]")

DUPLICATE_NAME_MESSAGE = "Tag with this name already exists"


class TagService:
    """CRUD over the `tags` collection."""

    def __init__(self, db=None):
        self.db = db if db is not None else db_manager
        self.collection_name = "tags"

    @property
    def collection(self):
        return self.db.get_collection(self.collection_name)

    async def create(self, data: CreateTagRequest) -> Dict[str, Any]:
        slug = slugify(data.name)
        if not slug:
            raise ValidationError("Tag name must contain letters or digits", details={"field": "name"})
        if await self.collection.find_one({"slug": slug}):
            raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"slug": slug})

        now = datetime.now(timezone.utc)
        document = {
            "tag_id": new_id("tag"),
            "name": data.name,
            "slug": slug,
            "description": data.description,
            "color": data.color,
            "image": data.image,
            "post_count": 0,
            "is_active": data.is_active,
            "seo_title": data.seo_title,
            "seo_description": data.seo_description,
            "seo_keywords": data.seo_keywords,
            "created_at": now,
            "updated_at": now,
        }
        try:
            await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"slug": slug}) from e

        logger.info("Created tag %s (%s)", document["tag_id"], slug)
        return clean_document(document)

    async def find_all(
        self,
        search: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
    ) -> Dict[str, Any]:
        """List tags, most used first."""
        page, limit, skip = page_window(page, limit)
        query: Dict[str, Any] = {}
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"name": pattern}, {"description": pattern}]
        if is_active is not None:
            query["is_active"] = is_active

        total = await self.collection.count_documents(query)
        docs = await (
            self.collection.find(query)
            .sort([("post_count", -1), ("created_at", -1)])
            .skip(skip)
            .limit(limit)
            .to_list(length=limit)
        )
        return paginated(clean_documents(docs), page, limit, total)

    async def find_one(self, tag_id: str) -> Dict[str, Any]:
        tag_id = normalize_id(tag_id, "tag", "tag_id")
        doc = await self.collection.find_one({"tag_id": tag_id})
        if not doc:
            raise NotFoundError("Tag not found", details={"tag_id": tag_id})
        return clean_document(doc)

    async def find_by_slug(self, slug: str) -> Dict[str, Any]:
        slug = sanitize_slug(slug)
        doc = await self.collection.find_one({"slug": slug, "is_active": True})
        if not doc:
            raise NotFoundError("Tag not found", details={"slug": slug})
        return clean_document(doc)

    async def exists(self, tag_id: str) -> bool:
        return await self.collection.find_one({"tag_id": tag_id}) is not None

    async def get_popular(self, limit: int = 10) -> List[Dict[str, Any]]:
        docs = await (
            self.collection.find({"is_active": True, "post_count": {"$gt": 0}})
            .sort([("post_count", -1)])
            .limit(limit)
            .to_list(length=limit)
        )
        return clean_documents(docs)

    async def get_tag_posts(self, id_or_slug: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """Published posts carrying the tag, sticky first then newest."""
        tag = await (self.find_one(id_or_slug) if id_or_slug.startswith("tag_") else self.find_by_slug(id_or_slug))

        page, limit, skip = page_window(page, limit)
        query = {"tag_ids": tag["tag_id"], "status": PostStatus.PUBLISHED.value}
        posts = self.db.get_collection("posts")
        total = await posts.count_documents(query)
        docs = await posts.find(query).sort([("is_sticky", -1), ("published_at", -1)]).skip(skip).limit(limit).to_list(length=limit)

        result = paginated(clean_documents(docs), page, limit, total)
        result["tag"] = tag
        return result

    async def update(self, tag_id: str, data: UpdateTagRequest) -> Dict[str, Any]:
        tag_id = normalize_id(tag_id, "tag", "tag_id")
        if not await self.collection.find_one({"tag_id": tag_id}):
            raise NotFoundError("Tag not found", details={"tag_id": tag_id})

        changes = data.model_dump(exclude_unset=True)
        updates: Dict[str, Any] = {k: v for k, v in changes.items() if v is not None and k != "name"}

        if changes.get("name"):
            slug = slugify(changes["name"])
            if not slug:
                raise ValidationError("Tag name must contain letters or digits", details={"field": "name"})
            if await self.collection.find_one({"slug": slug, "tag_id": {"$ne": tag_id}}):
                raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"slug": slug})
            updates["name"] = changes["name"]
            updates["slug"] = slug

        updates["updated_at"] = datetime.now(timezone.utc)
        try:
            await self.collection.update_one({"tag_id": tag_id}, {"$set": updates})
        except DuplicateKeyError as e:
            raise ConflictError(DUPLICATE_NAME_MESSAGE) from e

        return clean_document(await self.collection.find_one({"tag_id": tag_id}))

    async def remove(self, tag_id: str) -> None:
        tag_id = normalize_id(tag_id, "tag", "tag_id")
        result = await self.collection.delete_one({"tag_id": tag_id})
        if result.deleted_count == 0:
            raise NotFoundError("Tag not found", details={"tag_id": tag_id})
        logger.info("Deleted tag %s", tag_id)

    async def increment_post_count(self, tag_id: str) -> None:
        await self.collection.update_one({"tag_id": tag_id}, {"$inc": {"post_count": 1}})

    async def decrement_post_count(self, tag_id: str) -> None:
        await self.collection.update_one({"tag_id": tag_id}, {"$inc": {"post_count": -1}})
