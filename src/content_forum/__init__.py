"""
# Content Forum

A FastAPI backend for a content forum: posts, categories, tags, threaded comments, banners,
users and authentication, persisted in MongoDB through the Motor async driver.

## Architecture Overview

```
Routes (FastAPI routers)
   │
   ├──► Services (business rules, slug + counter consistency)
   │       ├──► Clients (identity GraphQL, product catalog, image CDN)
   │       └──► Database layer (DatabaseManager / Motor collections)
   │
   └──► Background jobs (APScheduler daily cleanup + counter reconciliation)
```

## Subpackages

- **`config`**: Pydantic Settings configuration.
- **`database`**: MongoDB connection lifecycle and index management.
- **`managers`**: Cross-cutting managers (logging).
- **`models`**: Pydantic request/response/document models.
- **`clients`**: HTTP clients for external collaborators.
- **`services`**: Domain services (categories, tags, posts, comments, banners, users, auth).
- **`routes`**: FastAPI routers.
- **`utils`**: Slugs, identifiers, pagination, logging helpers.
"""

__version__ = "1.0.0"
