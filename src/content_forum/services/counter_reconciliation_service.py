"""
# Counter Reconciliation

Post, comment and tag writes adjust denormalized counters with independent `$inc`
operations and no transaction, so a crash between writes can leave a counter off. This
service recomputes the true values from the source collections and rewrites the counters
that drifted.

| Counter                  | Recomputed from                                  |
|--------------------------|--------------------------------------------------|
| `categories.post_count`  | posts grouped by `category_id`                   |
| `tags.post_count`        | posts unwound on `tag_ids`, grouped by tag       |
| `users.post_count`       | posts grouped by `author_id`                     |
| `posts.comment_count`    | comments grouped by `post_id`                    |
| `comments.reply_count`   | comments grouped by `parent_id`                  |

Each rewrite only applies if the counter still holds the value that was read, so a counter
bumped during the run is left alone until the next one.

Runs in the daily maintenance job and on demand from the admin API.
"""

import time
from typing import Any, Dict, List

from content_forum.database import db_manager
from content_forum.managers.logging_manager import get_logger

logger = get_logger(prefix="[Counter Reconciliation]")


class CounterReconciliationService:
    def __init__(self, db=None):
        self.db = db if db is not None else db_manager

    async def _counts(self, collection_name: str, pipeline: List[Dict[str, Any]]) -> Dict[Any, int]:
        rows = await self.db.get_collection(collection_name).aggregate(pipeline).to_list(length=None)
        return {row["_id"]: row["count"] for row in rows if row.get("_id") is not None}

    async def _rewrite(self, collection_name: str, id_field: str, counter: str, actual: Dict[Any, int]) -> int:
        collection = self.db.get_collection(collection_name)
        docs = await collection.find({}, {id_field: 1, counter: 1}).to_list(length=None)
        fixed = 0
        for doc in docs:
            expected = actual.get(doc[id_field], 0)
            if doc.get(counter, 0) == expected:
                continue
            # Only overwrite the value that was read; rows changed since the read wait for the next run.
            result = await collection.update_one(
                {id_field: doc[id_field], counter: doc.get(counter)}, {"$set": {counter: expected}}
            )
            if not result.matched_count:
                logger.warning("Skipped %s.%s for %s: changed while reconciling", collection_name, counter, doc[id_field])
                continue
            logger.info(
                "Fixed %s.%s for %s: %s -> %d", collection_name, counter, doc[id_field], doc.get(counter), expected
            )
            fixed += 1
        return fixed

    async def reconcile(self) -> Dict[str, int]:
        """
        Recompute every counter and rewrite the drifted ones.

        Returns:
            Dict[str, int]: Number of documents corrected per counter.
        """
        start_time = time.time()
        by_category = await self._counts("posts", [{"$group": {"_id": "$category_id", "count": {"$sum": 1}}}])
        by_tag = await self._counts(
            "posts", [{"$unwind": "$tag_ids"}, {"$group": {"_id": "$tag_ids", "count": {"$sum": 1}}}]
        )
        by_author = await self._counts("posts", [{"$group": {"_id": "$author_id", "count": {"$sum": 1}}}])
        by_post = await self._counts("comments", [{"$group": {"_id": "$post_id", "count": {"$sum": 1}}}])
        by_parent = await self._counts(
            "comments",
            [{"$match": {"parent_id": {"$ne": None}}}, {"$group": {"_id": "$parent_id", "count": {"$sum": 1}}}],
        )

        result = {
            "categories.post_count": await self._rewrite("categories", "category_id", "post_count", by_category),
            "tags.post_count": await self._rewrite("tags", "tag_id", "post_count", by_tag),
            "users.post_count": await self._rewrite("users", "user_id", "post_count", by_author),
            "posts.comment_count": await self._rewrite("posts", "post_id", "comment_count", by_post),
            "comments.reply_count": await self._rewrite("comments", "comment_id", "reply_count", by_parent),
        }
        logger.info("Counter reconciliation finished in %.3fs: %s", time.time() - start_time, result)
        return result
