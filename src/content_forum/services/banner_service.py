"""
# Banner Service

Promotional banners. Titles are slugged like categories, but a collision is resolved by
suffixing (`summer-sale-1`) instead of rejecting the banner.

`get_active()` is the public read: active banners inside their optional date window,
highest priority first.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo import ReturnDocument
from pymongo.errors import DuplicateKeyError

from content_forum.database import db_manager
from content_forum.errors import ConflictError, ForbiddenError, NotFoundError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.banner_models import (
    BannerQuery,
    BannerStatus,
    CreateBannerRequest,
    TargetDevice,
    UpdateBannerRequest,
)
from content_forum.utils.documents import clean_document, clean_documents, sort_direction
from content_forum.utils.identifiers import new_id, normalize_id
from content_forum.utils.pagination import page_window, paginated
from content_forum.utils.slug import generate_unique_slug, sanitize_slug, slugify

logger = get_logger(prefix="[Banner Service]")


class BannerService:
    def __init__(self, db=None):
        self.db = db if db is not None else db_manager
        self.collection_name = "banners"

    @property
    def collection(self):
        return self.db.get_collection(self.collection_name)

    async def _get_raw(self, banner_id: str) -> Dict[str, Any]:
        banner_id = normalize_id(banner_id, "banner", "banner_id")
        doc = await self.collection.find_one({"banner_id": banner_id})
        if not doc:
            raise NotFoundError("Banner not found", details={"banner_id": banner_id})
        return doc

    async def create(self, data: CreateBannerRequest, author_id: str) -> Dict[str, Any]:
        """
        Create a banner with a unique, possibly suffixed, slug.

        Raises:
            ValidationError: If the title yields an empty slug.
            ConflictError: If no free slug is found or a concurrent writer took it.
        """
        slug = await generate_unique_slug(self.collection, slugify(data.title))
        now = datetime.now(timezone.utc)
        document = {
            "banner_id": new_id("banner"),
            "slug": slug,
            "click_count": 0,
            "view_count": 0,
            "author_id": author_id,
            "created_at": now,
            "updated_at": now,
            **data.model_dump(mode="python"),
        }
        document["type"] = data.type.value
        document["status"] = data.status.value
        document["target_device"] = data.target_device.value
        try:
            await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise ConflictError("Banner slug already exists, please retry", details={"slug": slug}) from e

        logger.info("Created banner %s (%s)", document["banner_id"], slug)
        return clean_document(document)

    async def find_all(self, query: BannerQuery) -> Dict[str, Any]:
        page, limit, skip = page_window(query.page, query.limit)
        filters: Dict[str, Any] = {}
        if query.search:
            pattern = {"$regex": re.escape(query.search), "$options": "i"}
            filters["$or"] = [{"title": pattern}, {"description": pattern}]
        if query.type:
            filters["type"] = query.type.value
        if query.status:
            filters["status"] = query.status.value
        if query.author_id:
            filters["author_id"] = normalize_id(query.author_id, "user", "author_id")

        sort = [(query.sort_by, sort_direction(query.sort_order))]
        sort += [(field, direction) for field, direction in (("priority", -1), ("order", 1)) if field != query.sort_by]

        total = await self.collection.count_documents(filters)
        docs = await self.collection.find(filters).sort(sort).skip(skip).limit(limit).to_list(length=limit)
        return paginated(clean_documents(docs), page, limit, total)

    async def get_active(
        self,
        banner_type: Optional[str] = None,
        category: Optional[str] = None,
        device: Optional[str] = None,
        limit: int = 10,
    ) -> List[Dict[str, Any]]:
        """Active banners whose date window contains now."""
        now = datetime.now(timezone.utc)
        filters: Dict[str, Any] = {
            "status": BannerStatus.ACTIVE.value,
            "$and": [
                {"$or": [{"start_date": None}, {"start_date": {"$lte": now}}]},
                {"$or": [{"end_date": None}, {"end_date": {"$gte": now}}]},
            ],
        }
        if banner_type:
            filters["type"] = banner_type
        if category:
            filters["categories"] = category
        if device:
            filters["target_device"] = {"$in": [TargetDevice.ALL.value, device]}

        docs = await (
            self.collection.find(filters)
            .sort([("priority", -1), ("order", 1), ("created_at", -1)])
            .limit(limit)
            .to_list(length=limit)
        )
        return clean_documents(docs)

    async def find_one(self, banner_id: str) -> Dict[str, Any]:
        return clean_document(await self._get_raw(banner_id))

    async def find_by_slug(self, slug: str) -> Dict[str, Any]:
        slug = sanitize_slug(slug)
        doc = await self.collection.find_one({"slug": slug})
        if not doc:
            raise NotFoundError("Banner not found", details={"slug": slug})
        return clean_document(doc)

    async def update(self, banner_id: str, data: UpdateBannerRequest, user_id: str) -> Dict[str, Any]:
        banner = await self._get_raw(banner_id)
        if banner["author_id"] != user_id:
            raise ForbiddenError("You can only edit your own banners", details={"banner_id": banner["banner_id"]})

        updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        for field in ("type", "status", "target_device"):
            if field in updates:
                updates[field] = getattr(updates[field], "value", updates[field])

        if updates.get("title") and updates["title"] != banner["title"]:
            updates["slug"] = await generate_unique_slug(
                self.collection, slugify(updates["title"]), id_field="banner_id", exclude_id=banner["banner_id"]
            )

        updates["updated_at"] = datetime.now(timezone.utc)
        try:
            updated = await self.collection.find_one_and_update(
                {"banner_id": banner["banner_id"]}, {"$set": updates}, return_document=ReturnDocument.AFTER
            )
        except DuplicateKeyError as e:
            raise ConflictError("Banner slug already exists, please retry") from e
        return clean_document(updated)

    async def update_status(self, banner_id: str, status: BannerStatus) -> Dict[str, Any]:
        banner = await self._get_raw(banner_id)
        updated = await self.collection.find_one_and_update(
            {"banner_id": banner["banner_id"]},
            {"$set": {"status": BannerStatus(status).value, "updated_at": datetime.now(timezone.utc)}},
            return_document=ReturnDocument.AFTER,
        )
        logger.info("Banner %s status set to %s", banner["banner_id"], status)
        return clean_document(updated)

    async def remove(self, banner_id: str, user_id: str) -> None:
        banner = await self._get_raw(banner_id)
        if banner["author_id"] != user_id:
            raise ForbiddenError("You can only delete your own banners", details={"banner_id": banner["banner_id"]})
        await self.collection.delete_one({"banner_id": banner["banner_id"]})
        logger.info("Deleted banner %s", banner["banner_id"])

    async def _increment(self, banner_id: str, field: str) -> None:
        banner_id = normalize_id(banner_id, "banner", "banner_id")
        result = await self.collection.update_one({"banner_id": banner_id}, {"$inc": {field: 1}})
        if result.matched_count == 0:
            raise NotFoundError("Banner not found", details={"banner_id": banner_id})

    async def increment_view(self, banner_id: str) -> None:
        await self._increment(banner_id, "view_count")

    async def increment_click(self, banner_id: str) -> None:
        await self._increment(banner_id, "click_count")
