"""
# Database Package

The persistence layer of the Content Forum API, built on **Motor** (async MongoDB driver).

## Usage

```python
from content_forum.database import db_manager

await db_manager.connect()
posts = db_manager.get_collection("posts")
post = await posts.find_one({"slug": "hello-world"})
await db_manager.disconnect()
```

Attributes:
    db_manager (DatabaseManager): The global instance for database access.
    DatabaseManager (class): The manager class (exported for type hinting).
"""

from content_forum.database.manager import DatabaseManager, db_manager

__all__ = ["DatabaseManager", "db_manager"]
