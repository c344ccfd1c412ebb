"""
# Comment Service

Comments are written by customers of the external identity service, not by local accounts.
Every write resolves the caller's bearer token into a profile; the profile's email becomes
`external_user_id` and is the only ownership key.

## Threading

One level only: a reply's `parent_id` points at a comment on the same post. Deleting a
comment deletes its direct replies too.

## Counters

- `post.comment_count` counts every comment document, replies included.
- `comment.reply_count` counts the direct replies of a root comment.

Deleting a root with two replies therefore removes three documents and decrements
`comment_count` by three.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pymongo import ReturnDocument

from content_forum.database import db_manager
from content_forum.errors import ForbiddenError, NotFoundError, UnauthorizedError, UpstreamError, ValidationError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.forum_models import (
    CommentQuery,
    CommentStatus,
    CreateCommentRequest,
    ModerateCommentRequest,
    UpdateCommentRequest,
)
from content_forum.models.integration_models import ExternalUser
from content_forum.utils.documents import clean_document, clean_documents, sort_direction
from content_forum.utils.identifiers import new_id, normalize_id
from content_forum.utils.pagination import page_window, paginated

logger = get_logger(prefix="[Comment Service]")

MAX_ATTACHED_REPLIES = 5


class CommentService:
    """Comment CRUD, moderation and listing."""

    def __init__(self, db=None, identity_client=None):
        self.db = db if db is not None else db_manager
        self.identity_client = identity_client
        self.collection_name = "comments"

    @property
    def collection(self):
        return self.db.get_collection(self.collection_name)

    @property
    def posts(self):
        return self.db.get_collection("posts")

    async def _resolve_user(self, token: Optional[str]) -> ExternalUser:
        if not token:
            raise UnauthorizedError("Authentication token is required")
        if self.identity_client is None:
            raise UnauthorizedError("Identity service is not configured")
        try:
            return await self.identity_client.resolve_user(token)
        except UpstreamError as e:
            logger.info("Identity resolution failed: %s", e.message)
            raise UnauthorizedError("Invalid or expired token") from e

    async def _get_raw(self, comment_id: str) -> Dict[str, Any]:
        comment_id = normalize_id(comment_id, "comment", "comment_id")
        doc = await self.collection.find_one({"comment_id": comment_id})
        if not doc:
            raise NotFoundError("Comment not found", details={"comment_id": comment_id})
        return doc

    async def create(
        self,
        data: CreateCommentRequest,
        token: Optional[str],
        ip_address: Optional[str] = None,
        user_agent: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Post a comment as the customer identified by `token`.

        The comment starts in `pending` and is invisible in default listings until approved.

        Raises:
            UnauthorizedError: If the token cannot be resolved.
            NotFoundError: If the post or the parent comment does not exist.
            ValidationError: If the parent comment belongs to another post.
        """
        user = await self._resolve_user(token)

        post_id = normalize_id(data.post_id, "post", "post_id")
        if not await self.posts.find_one({"post_id": post_id}):
            raise NotFoundError("Post not found", details={"post_id": post_id})

        parent_id = None
        if data.parent_id:
            parent_id = normalize_id(data.parent_id, "comment", "parent_id")
            parent = await self.collection.find_one({"comment_id": parent_id})
            if not parent:
                raise NotFoundError("Parent comment not found", details={"parent_id": parent_id})
            if parent["post_id"] != post_id:
                raise ValidationError(
                    "Parent comment is not on the same post", details={"parent_id": parent_id, "post_id": post_id}
                )

        now = datetime.now(timezone.utc)
        document = {
            "comment_id": new_id("comment"),
            "content": data.content,
            "post_id": post_id,
            "parent_id": parent_id,
            "external_user_id": user.email,
            "author_name": user.full_name,
            "author_email": user.email,
            "author_avatar": user.picture or "",
            "author_mobile": user.mobile_number,
            "author_ranking": user.primary_ranking,
            "status": CommentStatus.PENDING.value,
            "like_count": 0,
            "reply_count": 0,
            "ip_address": ip_address,
            "user_agent": user_agent,
            "is_edited": False,
            "edited_at": None,
            "created_at": now,
            "updated_at": now,
        }
        await self.collection.insert_one(document)

        await self.posts.update_one({"post_id": post_id}, {"$inc": {"comment_count": 1}})
        if parent_id:
            await self.collection.update_one({"comment_id": parent_id}, {"$inc": {"reply_count": 1}})

        logger.info("Created comment %s on post %s by %s", document["comment_id"], post_id, user.email)
        return clean_document(document)

    async def update(self, comment_id: str, data: UpdateCommentRequest, token: Optional[str]) -> Dict[str, Any]:
        user = await self._resolve_user(token)
        comment = await self._get_raw(comment_id)
        if comment["external_user_id"] != user.email:
            raise ForbiddenError("You can only edit your own comments", details={"comment_id": comment["comment_id"]})

        now = datetime.now(timezone.utc)
        updated = await self.collection.find_one_and_update(
            {"comment_id": comment["comment_id"]},
            {"$set": {"content": data.content, "is_edited": True, "edited_at": now, "updated_at": now}},
            return_document=ReturnDocument.AFTER,
        )
        return clean_document(updated)

    async def remove(self, comment_id: str, token: Optional[str]) -> Dict[str, int]:
        """
        Delete a comment and its direct replies as the comment's author.

        Returns:
            Dict[str, int]: `{"deleted": <number of documents removed>}`.
        """
        user = await self._resolve_user(token)
        comment = await self._get_raw(comment_id)
        if comment["external_user_id"] != user.email:
            raise ForbiddenError("You can only delete your own comments", details={"comment_id": comment["comment_id"]})

        result = await self.collection.delete_many(
            {"$or": [{"comment_id": comment["comment_id"]}, {"parent_id": comment["comment_id"]}]}
        )
        deleted = result.deleted_count

        await self.posts.update_one({"post_id": comment["post_id"]}, {"$inc": {"comment_count": -deleted}})
        if comment.get("parent_id"):
            await self.collection.update_one({"comment_id": comment["parent_id"]}, {"$inc": {"reply_count": -1}})

        logger.info("Deleted comment %s with %d documents", comment["comment_id"], deleted)
        return {"deleted": deleted}

    async def moderate(self, comment_id: str, data: ModerateCommentRequest, moderator_id: str) -> Dict[str, Any]:
        """Set the moderation status of a comment. Role checks happen at the route."""
        comment = await self._get_raw(comment_id)
        now = datetime.now(timezone.utc)
        updated = await self.collection.find_one_and_update(
            {"comment_id": comment["comment_id"]},
            {
                "$set": {
                    "status": CommentStatus(data.status).value,
                    "moderated_by": moderator_id,
                    "moderated_at": now,
                    "moderation_reason": data.reason,
                    "updated_at": now,
                }
            },
            return_document=ReturnDocument.AFTER,
        )
        logger.info("Comment %s moderated to %s by %s", comment["comment_id"], data.status, moderator_id)
        return clean_document(updated)

    async def _attach_replies(self, comment: Dict[str, Any]) -> Dict[str, Any]:
        replies = await (
            self.collection.find({"parent_id": comment["comment_id"], "status": CommentStatus.APPROVED.value})
            .sort([("created_at", -1)])
            .limit(MAX_ATTACHED_REPLIES)
            .to_list(length=MAX_ATTACHED_REPLIES)
        )
        comment["replies"] = clean_documents(replies)
        return comment

    async def find_all(self, query: CommentQuery) -> Dict[str, Any]:
        page, limit, skip = page_window(query.page, query.limit)
        filters: Dict[str, Any] = {}
        if query.post_id:
            filters["post_id"] = normalize_id(query.post_id, "post", "post_id")
        if query.parent_id == "null":
            filters["parent_id"] = None
        elif query.parent_id:
            filters["parent_id"] = normalize_id(query.parent_id, "comment", "parent_id")
        if query.external_user_id:
            filters["external_user_id"] = query.external_user_id
        if query.status:
            filters["status"] = CommentStatus(query.status).value

        total = await self.collection.count_documents(filters)
        docs = await (
            self.collection.find(filters)
            .sort([(query.sort_by, sort_direction(query.sort_order))])
            .skip(skip)
            .limit(limit)
            .to_list(length=limit)
        )
        comments = clean_documents(docs)
        if query.include_replies:
            comments = [await self._attach_replies(c) for c in comments]
        return paginated(comments, page, limit, total)

    async def get_comments_by_post(self, post_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        """Approved root comments of a post, each with its latest approved replies."""
        return await self.find_all(
            CommentQuery(
                post_id=post_id,
                parent_id="null",
                status=CommentStatus.APPROVED,
                include_replies=True,
                page=page,
                limit=limit,
            )
        )

    async def get_user_comments(self, external_user_id: str, page: int = 1, limit: int = 10) -> Dict[str, Any]:
        return await self.find_all(
            CommentQuery(external_user_id=external_user_id, status=None, page=page, limit=limit)
        )

    async def find_one(self, comment_id: str) -> Dict[str, Any]:
        return clean_document(await self._get_raw(comment_id))

    async def like(self, comment_id: str) -> Dict[str, Any]:
        comment_id = normalize_id(comment_id, "comment", "comment_id")
        updated = await self.collection.find_one_and_update(
            {"comment_id": comment_id}, {"$inc": {"like_count": 1}}, return_document=ReturnDocument.AFTER
        )
        if not updated:
            raise NotFoundError("Comment not found", details={"comment_id": comment_id})
        return clean_document(updated)
