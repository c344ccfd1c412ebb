"""
# User Service

Profile reads and writes for local accounts. Every document leaving this service has its
`hashed_password` removed.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from content_forum.database import db_manager
from content_forum.errors import NotFoundError, ValidationError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.forum_models import PostStatus
from content_forum.models.integration_models import UploadProfile
from content_forum.models.user_models import UpdateProfileRequest, UserQuery, UserStatus
from content_forum.services.activity_service import ActivityService
from content_forum.utils.documents import clean_document, clean_documents, sort_direction
from content_forum.utils.identifiers import normalize_id
from content_forum.utils.pagination import page_window, paginated

logger = get_logger(prefix="[User Service]")

HIDDEN_FIELDS = ("hashed_password", "avatar_public_id", "reset_password_token", "reset_password_expires")


class UserService:
    """
    Service for user profiles, per-user content listings and statistics.

    Avatar uploads go through the injected `FileStorageClient`; the previous avatar is
    deleted from the CDN on a best-effort basis.
    """

    def __init__(self, db=None, file_storage=None, activity_service: Optional[ActivityService] = None):
        self.db = db if db is not None else db_manager
        self.file_storage = file_storage
        self.activity_service = activity_service or ActivityService(self.db)
        self.collection_name = "users"

    @property
    def collection(self):
        return self.db.get_collection(self.collection_name)

    async def _get_raw(self, user_id: str) -> Dict[str, Any]:
        user_id = normalize_id(user_id, "user", "user_id")
        doc = await self.collection.find_one({"user_id": user_id})
        if not doc:
            raise NotFoundError("User not found", details={"user_id": user_id})
        return doc

    async def find_all(self, query: UserQuery) -> Dict[str, Any]:
        page, limit, skip = page_window(query.page, query.limit)
        filters: Dict[str, Any] = {}
        if query.search:
            filters["$text"] = {"$search": query.search}
        if query.role:
            filters["role"] = query.role.value
        if query.status:
            filters["status"] = query.status.value

        total = await self.collection.count_documents(filters)
        docs = await (
            self.collection.find(filters)
            .sort([(query.sort_by, sort_direction(query.sort_order))])
            .skip(skip)
            .limit(limit)
            .to_list(length=limit)
        )
        return paginated(clean_documents(docs, *HIDDEN_FIELDS), page, limit, total)

    async def find_one(self, user_id: str) -> Dict[str, Any]:
        return clean_document(await self._get_raw(user_id), *HIDDEN_FIELDS)

    async def find_by_username(self, username: str) -> Dict[str, Any]:
        doc = await self.collection.find_one({"username": username})
        if not doc:
            raise NotFoundError("User not found", details={"username": username})
        return clean_document(doc, *HIDDEN_FIELDS)

    async def update_profile(self, user_id: str, data: UpdateProfileRequest) -> Dict[str, Any]:
        user = await self._get_raw(user_id)
        updates = {k: v for k, v in data.model_dump(exclude_unset=True).items() if v is not None}
        updates["updated_at"] = datetime.now(timezone.utc)
        await self.collection.update_one({"user_id": user["user_id"]}, {"$set": updates})
        return await self.find_one(user["user_id"])

    async def update_avatar(self, user_id: str, content: bytes, filename: str, content_type: str) -> Dict[str, Any]:
        """
        Upload a new avatar and store its URL on the profile.

        Raises:
            ValidationError: If no file storage backend is configured.
            UpstreamError: If the CDN rejects the upload.
        """
        if self.file_storage is None:
            raise ValidationError("File uploads are not configured")

        user = await self._get_raw(user_id)
        stored = await self.file_storage.upload(content, filename, content_type, UploadProfile.AVATAR)

        await self.collection.update_one(
            {"user_id": user["user_id"]},
            {"$set": {"avatar": stored.url, "avatar_public_id": stored.public_id, "updated_at": datetime.now(timezone.utc)}},
        )
        if user.get("avatar_public_id"):
            await self.file_storage.delete(user["avatar_public_id"])

        logger.info("Updated avatar for user %s", user["user_id"])
        return await self.find_one(user["user_id"])

    async def get_user_posts(self, user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        user = await self._get_raw(user_id)
        page, limit, skip = page_window(page, limit)
        posts = self.db.get_collection("posts")
        query = {"author_id": user["user_id"], "status": PostStatus.PUBLISHED.value}
        total = await posts.count_documents(query)
        docs = await posts.find(query).sort([("published_at", -1)]).skip(skip).limit(limit).to_list(length=limit)
        return paginated(clean_documents(docs), page, limit, total)

    async def get_user_activity(self, user_id: str, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        user = await self._get_raw(user_id)
        return await self.activity_service.list_for_user(user["user_id"], page, limit)

    async def get_user_stats(self, user_id: str) -> Dict[str, Any]:
        """Aggregate post statistics for a user."""
        user = await self._get_raw(user_id)
        posts = self.db.get_collection("posts")
        pipeline = [
            {"$match": {"author_id": user["user_id"]}},
            {
                "$group": {
                    "_id": None,
                    "post_count": {"$sum": 1},
                    "published_post_count": {
                        "$sum": {"$cond": [{"$eq": ["$status", PostStatus.PUBLISHED.value]}, 1, 0]}
                    },
                    "total_views": {"$sum": "$view_count"},
                    "total_likes": {"$sum": "$like_count"},
                    "total_comments": {"$sum": "$comment_count"},
                }
            },
        ]
        rows = await posts.aggregate(pipeline).to_list(length=1)
        stats = rows[0] if rows else {}

        recent = await (
            posts.find({"author_id": user["user_id"], "status": PostStatus.PUBLISHED.value})
            .sort([("published_at", -1)])
            .limit(5)
            .to_list(length=5)
        )
        return {
            "user_id": user["user_id"],
            "post_count": stats.get("post_count", 0),
            "published_post_count": stats.get("published_post_count", 0),
            "total_views": stats.get("total_views", 0),
            "total_likes": stats.get("total_likes", 0),
            "total_comments": stats.get("total_comments", 0),
            "recent_posts": [
                {"post_id": p["post_id"], "title": p["title"], "slug": p["slug"], "published_at": p.get("published_at")}
                for p in recent
            ],
        }

    async def get_top_users(self, limit: int = 10) -> List[Dict[str, Any]]:
        docs = await (
            self.collection.find({"status": UserStatus.ACTIVE.value})
            .sort([("post_count", -1), ("follower_count", -1)])
            .limit(limit)
            .to_list(length=limit)
        )
        return clean_documents(docs, *HIDDEN_FIELDS)

    async def increment_post_count(self, user_id: str) -> None:
        await self.collection.update_one({"user_id": user_id}, {"$inc": {"post_count": 1}})

    async def decrement_post_count(self, user_id: str) -> None:
        await self.collection.update_one({"user_id": user_id}, {"$inc": {"post_count": -1}})

    async def remove(self, user_id: str) -> None:
        user = await self._get_raw(user_id)
        await self.collection.delete_one({"user_id": user["user_id"]})
        await self.db.get_collection("refresh_tokens").delete_many({"user_id": user["user_id"]})
        logger.info("Deleted user %s", user["user_id"])
