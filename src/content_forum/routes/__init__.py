"""
# Routes Package

One `APIRouter` per resource. `main.py` mounts them all through its `routers_config` list.

| Module          | Prefix        |
|-----------------|---------------|
| `auth`          | `/auth`       |
| `users`         | `/users`      |
| `categories`    | `/categories` |
| `tags`          | `/tags`       |
| `posts`         | `/posts`      |
| `comments`      | `/comments`   |
| `banners`       | `/banners`    |
| `uploads`       | `/upload`     |
| `products`      | `/products`   |
| `admin`         | `/admin`      |
| `health`        | `/health`     |
"""

from content_forum.routes.admin import router as admin_router
from content_forum.routes.auth import router as auth_router
from content_forum.routes.banners import router as banners_router
from content_forum.routes.categories import router as categories_router
from content_forum.routes.comments import router as comments_router
from content_forum.routes.health import router as health_router
from content_forum.routes.posts import router as posts_router
from content_forum.routes.products import router as products_router
from content_forum.routes.tags import router as tags_router
from content_forum.routes.uploads import router as uploads_router
from content_forum.routes.users import router as users_router

__all__ = [
    "admin_router",
    "auth_router",
    "banners_router",
    "categories_router",
    "comments_router",
    "health_router",
    "posts_router",
    "products_router",
    "tags_router",
    "uploads_router",
    "users_router",
]
