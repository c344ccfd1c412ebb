"""
# Database Management Module

This module provides the **MongoDB infrastructure** for the Content Forum API.
The `DatabaseManager` class owns the Motor client, exposes collections to the service layer
and declares every index the query paths rely on.

## Collections

| Collection        | Purpose                                             |
|-------------------|-----------------------------------------------------|
| `categories`      | Category tree (self-referencing `parent_id`)         |
| `tags`            | Flat tag list                                       |
| `posts`           | Posts with embedded related-product snapshots       |
| `comments`        | One-level threaded comments                         |
| `users`           | Local accounts                                      |
| `banners`         | Promotional banners                                 |
| `refresh_tokens`  | Refresh tokens (TTL on `expires_at`)                |
| `user_activities` | Activity log (TTL 180 days on `created_at`)         |

## Uniqueness

Slug uniqueness is checked in the service layer before writes, and the unique indexes on
`categories.slug`, `tags.slug`, `posts.slug` and `banners.slug` reject the loser of any race
between two concurrent writers.

## Connection Lifecycle

1. **Instantiation**: `db_manager` is created at import time, no I/O.
2. **Connection**: `connect()` in the FastAPI lifespan, with exponential backoff.
3. **Indexes**: `create_indexes()` right after connecting.
4. **Shutdown**: `disconnect()` closes the pool.

Attributes:
    db_logger (Logger): Database operations logger (`[DATABASE]`).
    perf_logger (Logger): Timing logger (`[DB_PERFORMANCE]`).
    health_logger (Logger): Health check logger (`[DB_HEALTH]`).
    db_manager (DatabaseManager): Global instance used by the application.
"""

import asyncio
import time
from typing import Any, Dict, Optional

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, TEXT
from pymongo.errors import ConnectionFailure, ServerSelectionTimeoutError

from content_forum.config import settings
from content_forum.managers.logging_manager import get_logger

db_logger = get_logger(prefix="[DATABASE]")
perf_logger = get_logger(prefix="[DB_PERFORMANCE]")
health_logger = get_logger(prefix="[DB_HEALTH]")

ACTIVITY_TTL_SECONDS = 180 * 24 * 60 * 60


class DatabaseManager:
    """
    Manages the MongoDB connection, collections and indexes.

    **Lifecycle:**
    1. `connect()` establishes the Motor client and verifies it with a ping.
    2. `get_collection()` hands out collections to services.
    3. `health_check()` is used by the `/health` endpoint.
    4. `disconnect()` closes the pool on shutdown.

    Attributes:
        client: The Motor client, `None` until connected.
        database: The selected database, `None` until connected.
    """

    def __init__(self):
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self._connection_retries = 3

    async def connect(self):
        """
        Establish the MongoDB connection with exponential backoff.

        Up to three attempts are made, waiting 1s then 2s between them. Credentials from
        `MONGODB_USERNAME`/`MONGODB_PASSWORD` are injected into the connection string when set.

        Raises:
            ServerSelectionTimeoutError: If MongoDB is unreachable after all attempts.
            ConnectionFailure: If authentication fails on the last attempt.
        """
        start_time = time.time()
        db_logger.info("Starting MongoDB connection process")

        for attempt in range(self._connection_retries):
            attempt_start = time.time()
            try:
                db_logger.info("Connection attempt %d/%d to MongoDB", attempt + 1, self._connection_retries)

                if settings.MONGODB_USERNAME and settings.MONGODB_PASSWORD:
                    password = settings.MONGODB_PASSWORD.get_secret_value()
                    connection_string = (
                        f"mongodb://{settings.MONGODB_USERNAME}:{password}@"
                        f"{settings.MONGODB_URL.replace('mongodb://', '')}"
                    )
                    db_logger.debug("Using authenticated connection to MongoDB")
                else:
                    connection_string = settings.MONGODB_URL
                    db_logger.debug("Using unauthenticated connection to MongoDB")

                self.client = AsyncIOMotorClient(
                    connection_string,
                    serverSelectionTimeoutMS=settings.MONGODB_SERVER_SELECTION_TIMEOUT,
                    connectTimeoutMS=settings.MONGODB_CONNECTION_TIMEOUT,
                    maxPoolSize=50,
                    minPoolSize=5,
                )
                self.database = self.client[settings.MONGODB_DATABASE]

                ping_start = time.time()
                await self.client.admin.command("ping")
                ping_duration = time.time() - ping_start

                perf_logger.info(
                    "MongoDB connection established in %.3fs (ping: %.3fs)", time.time() - start_time, ping_duration
                )
                db_logger.info("Connected to MongoDB database: %s", settings.MONGODB_DATABASE)
                return

            except (ServerSelectionTimeoutError, ConnectionFailure) as e:
                perf_logger.warning("Connection attempt %d failed after %.3fs", attempt + 1, time.time() - attempt_start)
                db_logger.warning(
                    "Failed to connect to MongoDB (attempt %d/%d): %s", attempt + 1, self._connection_retries, e
                )
                if attempt == self._connection_retries - 1:
                    db_logger.error("All connection attempts failed after %.3fs", time.time() - start_time)
                    raise

                backoff_time = 2**attempt
                db_logger.info("Waiting %.1fs before retry (exponential backoff)", backoff_time)
                await asyncio.sleep(backoff_time)

    async def disconnect(self):
        """Close the Motor client. Safe to call when not connected."""
        start_time = time.time()
        if self.client is None:
            db_logger.warning("Disconnect called but no active MongoDB connection found")
            return

        self.client.close()
        self.client = None
        self.database = None
        perf_logger.info("MongoDB disconnection completed in %.3fs", time.time() - start_time)
        db_logger.info("Successfully disconnected from MongoDB")

    async def health_check(self) -> bool:
        """
        Ping the server.

        Returns:
            bool: `True` if MongoDB answered the ping, `False` otherwise.
        """
        start_time = time.time()
        if self.client is None:
            health_logger.warning("Health check failed: No database client available")
            return False

        try:
            await self.client.admin.command("ping")
            perf_logger.debug("Database health check completed in %.3fs", time.time() - start_time)
            return True
        except (ServerSelectionTimeoutError, ConnectionFailure) as e:
            health_logger.error("Database health check failed: %s", e)
            return False
        except Exception as e:
            health_logger.error("Unexpected error during health check: %s", e)
            return False

    def get_collection(self, collection_name: str) -> AsyncIOMotorCollection:
        """
        Return a Motor collection.

        Raises:
            ConnectionError: If `connect()` has not been called.
        """
        if self.database is None:
            db_logger.error("Attempted to get collection '%s' without database connection", collection_name)
            raise ConnectionError("Database not connected. Call connect() first.")
        return self.database[collection_name]

    async def create_indexes(self):
        """Create every index required by the service-layer query paths."""
        start_time = time.time()
        db_logger.info("Starting database index creation process")

        try:
            await self._create_category_indexes()
            await self._create_tag_indexes()
            await self._create_post_indexes()
            await self._create_comment_indexes()
            await self._create_user_indexes()
            await self._create_banner_indexes()
            await self._create_auth_indexes()

            perf_logger.info("Database index creation completed in %.3fs", time.time() - start_time)
            db_logger.info("Database indexes created successfully")
        except (ConnectionError, TimeoutError) as e:
            db_logger.error("Failed to create database indexes: %s", e)
            raise

    async def _create_category_indexes(self):
        categories = self.get_collection("categories")
        await self._create_index_if_not_exists(categories, "category_id", {"unique": True})
        await self._create_index_if_not_exists(categories, "slug", {"unique": True})
        await self._create_index_if_not_exists(
            categories, [("parent_id", ASCENDING), ("is_active", ASCENDING), ("order", ASCENDING)], {}
        )
        await self._create_index_if_not_exists(categories, [("is_active", ASCENDING), ("order", ASCENDING)], {})
        await self._create_index_if_not_exists(categories, [("post_count", DESCENDING)], {})

    async def _create_tag_indexes(self):
        tags = self.get_collection("tags")
        await self._create_index_if_not_exists(tags, "tag_id", {"unique": True})
        await self._create_index_if_not_exists(tags, "slug", {"unique": True})
        await self._create_index_if_not_exists(tags, [("is_active", ASCENDING), ("post_count", DESCENDING)], {})

    async def _create_post_indexes(self):
        posts = self.get_collection("posts")
        await self._create_index_if_not_exists(posts, "post_id", {"unique": True})
        await self._create_index_if_not_exists(posts, "slug", {"unique": True})
        await self._create_index_if_not_exists(posts, [("category_id", ASCENDING), ("status", ASCENDING)], {})
        await self._create_index_if_not_exists(posts, [("author_id", ASCENDING), ("status", ASCENDING)], {})
        await self._create_index_if_not_exists(posts, [("status", ASCENDING), ("published_at", DESCENDING)], {})
        await self._create_index_if_not_exists(posts, [("view_count", DESCENDING)], {})
        await self._create_index_if_not_exists(posts, [("is_featured", ASCENDING), ("published_at", DESCENDING)], {})
        await self._create_index_if_not_exists(posts, [("is_sticky", ASCENDING), ("published_at", DESCENDING)], {})
        await self._create_index_if_not_exists(posts, "tag_ids", {})
        await self._create_index_if_not_exists(posts, "related_products.url_key", {})
        await self._create_index_if_not_exists(
            posts,
            [("title", TEXT), ("excerpt", TEXT), ("content", TEXT)],
            {"weights": {"title": 10, "excerpt": 5, "content": 1}, "name": "post_text_search"},
        )

    async def _create_comment_indexes(self):
        comments = self.get_collection("comments")
        await self._create_index_if_not_exists(comments, "comment_id", {"unique": True})
        await self._create_index_if_not_exists(
            comments, [("post_id", ASCENDING), ("status", ASCENDING), ("created_at", DESCENDING)], {}
        )
        await self._create_index_if_not_exists(comments, "external_user_id", {})
        await self._create_index_if_not_exists(comments, "parent_id", {})

    async def _create_user_indexes(self):
        users = self.get_collection("users")
        await self._create_index_if_not_exists(users, "user_id", {"unique": True})
        await self._create_index_if_not_exists(users, "email", {"unique": True})
        await self._create_index_if_not_exists(users, "username", {"unique": True})
        await self._create_index_if_not_exists(users, [("post_count", DESCENDING)], {})
        await self._create_index_if_not_exists(
            users,
            [("username", TEXT), ("display_name", TEXT), ("first_name", TEXT), ("last_name", TEXT), ("bio", TEXT)],
            {
                "weights": {"username": 10, "display_name": 8, "first_name": 5, "last_name": 5, "bio": 1},
                "name": "user_text_search",
            },
        )

    async def _create_banner_indexes(self):
        banners = self.get_collection("banners")
        await self._create_index_if_not_exists(banners, "banner_id", {"unique": True})
        await self._create_index_if_not_exists(banners, "slug", {"unique": True})
        await self._create_index_if_not_exists(
            banners, [("status", ASCENDING), ("type", ASCENDING), ("priority", DESCENDING)], {}
        )
        await self._create_index_if_not_exists(banners, [("start_date", ASCENDING), ("end_date", ASCENDING)], {})

    async def _create_auth_indexes(self):
        refresh_tokens = self.get_collection("refresh_tokens")
        await self._create_index_if_not_exists(refresh_tokens, "token", {"unique": True})
        await self._create_index_if_not_exists(refresh_tokens, "user_id", {})
        await self._create_index_if_not_exists(refresh_tokens, "expires_at", {"expireAfterSeconds": 0})

        activities = self.get_collection("user_activities")
        await self._create_index_if_not_exists(activities, [("user_id", ASCENDING), ("created_at", DESCENDING)], {})
        await self._create_index_if_not_exists(activities, "created_at", {"expireAfterSeconds": ACTIVITY_TTL_SECONDS})

    async def _create_index_if_not_exists(
        self, collection: AsyncIOMotorCollection, field_spec: Any, options: Dict[str, Any]
    ):
        """Create an index if it doesn't already exist"""
        start_time = time.time()

        try:
            await collection.create_index(field_spec, **options)
            perf_logger.debug("Created/ensured index '%s' in %.3fs", field_spec, time.time() - start_time)
        except Exception as e:
            perf_logger.warning("Failed to create/ensure index '%s' after %.3fs", field_spec, time.time() - start_time)
            db_logger.warning("Could not create/ensure index '%s': %s", field_spec, e)


# Global database manager instance
db_manager = DatabaseManager()
