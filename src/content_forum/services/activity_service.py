"""Append-only user activity log stored in `user_activities` (expires after 180 days)."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

from content_forum.database import db_manager
from content_forum.managers.logging_manager import get_logger
from content_forum.models.user_models import ActivityType
from content_forum.utils.documents import clean_documents
from content_forum.utils.pagination import page_window, paginated

logger = get_logger(prefix="[Activity Service]")


class ActivityService:
    def __init__(self, db=None):
        self.db = db if db is not None else db_manager
        self.collection_name = "user_activities"

    @property
    def collection(self):
        return self.db.get_collection(self.collection_name)

    async def log(
        self,
        user_id: str,
        activity_type: ActivityType,
        description: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        """Record an activity. Failures are logged and never interrupt the caller."""
        document = {
            "user_id": user_id,
            "type": activity_type.value,
            "description": description,
            "metadata": metadata or {},
            "created_at": datetime.now(timezone.utc),
        }
        try:
            await self.collection.insert_one(document)
        except Exception as e:
            logger.warning("Failed to record %s activity for %s: %s", activity_type.value, user_id, e)

    async def list_for_user(self, user_id: str, page: int = 1, limit: int = 20) -> Dict[str, Any]:
        page, limit, skip = page_window(page, limit)
        query = {"user_id": user_id}
        total = await self.collection.count_documents(query)
        docs = await self.collection.find(query).sort([("created_at", -1)]).skip(skip).limit(limit).to_list(length=limit)
        return paginated(clean_documents(docs), page, limit, total)
