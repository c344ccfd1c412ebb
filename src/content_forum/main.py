"""
# Content Forum - Main Application Module

Entry point of the Content Forum API: a blog/forum backend for an electronics store, with
categories, tags, posts linked to catalog products, moderated comments from store customers,
promotional banners and local author accounts.

## Lifespan

**Startup:**
1.  **Database**: connects to MongoDB and creates/verifies indexes.
2.  **Clients**: builds the identity, product catalog and file storage HTTP clients.
3.  **Services**: wires every service and stores the container on `app.state.services`.
4.  **Uploads**: creates the upload folders under `UPLOADS_DIR`.
5.  **Scheduler**: starts the daily maintenance job (temp file cleanup, counter reconciliation).

**Shutdown:** stops the scheduler, closes the HTTP clients and disconnects from MongoDB.

## Running

```bash
uvicorn content_forum.main:app --reload --host 0.0.0.0 --port 5000
```

- **Swagger UI**: `http://localhost:5000/docs`
- **Prometheus Metrics**: `http://localhost:5000/metrics`

Attributes:
    logger (Logger): Main application logger.
    app (FastAPI): The ASGI application served by uvicorn.
"""

from contextlib import asynccontextmanager
import time

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from prometheus_fastapi_instrumentator import Instrumentator
import uvicorn

from content_forum import __version__
from content_forum.clients import FileStorageClient, IdentityClient, ProductCatalogClient
from content_forum.config import settings
from content_forum.database import db_manager
from content_forum.errors import register_exception_handlers
from content_forum.managers.logging_manager import get_logger
from content_forum.models.common import ErrorResponse
from content_forum.routes import (
    admin_router,
    auth_router,
    banners_router,
    categories_router,
    comments_router,
    health_router,
    posts_router,
    products_router,
    tags_router,
    uploads_router,
    users_router,
)
from content_forum.services.container import build_services
from content_forum.utils.logging_utils import (
    RequestLoggingMiddleware,
    log_application_lifecycle,
    log_error_with_context,
)

logger = get_logger(prefix="[Main]")


@asynccontextmanager
async def lifespan(_app: FastAPI):
    """
    Application lifespan manager.

    Raises:
        Exception: If MongoDB cannot be reached; the application does not start without it.
    """
    startup_start_time = time.time()
    log_application_lifecycle(
        "startup_initiated",
        {
            "app_name": "Content Forum API",
            "version": __version__,
            "environment": "production" if settings.is_production else "development",
            "debug_mode": settings.DEBUG,
        },
    )

    db_connect_start = time.time()
    logger.info("Initiating database connection...")
    await db_manager.connect()
    log_application_lifecycle(
        "database_connected",
        {
            "connection_duration": f"{time.time() - db_connect_start:.3f}s",
            "database_name": settings.MONGODB_DATABASE,
            "connection_url": (
                settings.MONGODB_URL.split("@")[-1] if "@" in settings.MONGODB_URL else settings.MONGODB_URL
            ),
        },
    )

    indexes_start = time.time()
    logger.info("Creating/verifying database indexes...")
    await db_manager.create_indexes()
    log_application_lifecycle("database_indexes_ready", {"indexes_duration": f"{time.time() - indexes_start:.3f}s"})

    services = build_services(
        db_manager,
        identity_client=IdentityClient(),
        product_client=ProductCatalogClient(),
        file_storage=FileStorageClient(),
    )
    _app.state.services = services

    services.uploads.ensure_directories()
    try:
        services.file_cleanup.start()
        log_application_lifecycle("scheduler_started", {"cron": settings.FILE_CLEANUP_CRON})
    except Exception as e:
        log_error_with_context(e, {"operation": "scheduler_start"})
        logger.warning("Daily maintenance job failed to start, continuing without it")

    log_application_lifecycle(
        "startup_completed", {"total_startup_duration": f"{time.time() - startup_start_time:.3f}s"}
    )

    yield

    shutdown_start_time = time.time()
    log_application_lifecycle("shutdown_initiated", {})

    services.file_cleanup.stop()
    try:
        await services.aclose()
    except Exception as e:
        log_error_with_context(e, {"operation": "http_clients_close"})

    try:
        logger.info("Disconnecting from database...")
        await db_manager.disconnect()
        log_application_lifecycle("database_disconnected", {})
    except Exception as e:
        log_error_with_context(e, {"operation": "database_disconnection"})

    log_application_lifecycle(
        "shutdown_completed", {"total_shutdown_duration": f"{time.time() - shutdown_start_time:.3f}s"}
    )


app = FastAPI(
    title="Content Forum API",
    description="""
    ## Content Forum API

    Blog and discussion backend for an electronics store.

    ### Features
    - **Posts**: slug-addressed articles with categories, tags and related catalog products
    - **Comments**: one-level threads from store customers, moderated before publication
    - **Banners**: scheduled promotional banners with view/click tracking
    - **Accounts**: local author, moderator and admin accounts with JWT authentication
    """,
    version=__version__,
    lifespan=lifespan,
)

register_exception_handlers(app)

cors_origins = settings.cors_origins_list or ["http://localhost:3000"]
logger.info("Configuring CORS with origins: %s", cors_origins)

app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
    allow_headers=["*"],
    max_age=3600,
)
app.add_middleware(RequestLoggingMiddleware)
log_application_lifecycle(
    "middleware_configured",
    {"middleware": ["CORSMiddleware", "RequestLoggingMiddleware"], "cors_origins": cors_origins},
)

routers_config = [
    ("auth", auth_router, "Local account authentication endpoints"),
    ("users", users_router, "User profile and listing endpoints"),
    ("categories", categories_router, "Category tree management endpoints"),
    ("tags", tags_router, "Tag management endpoints"),
    ("posts", posts_router, "Post authoring and reading endpoints"),
    ("comments", comments_router, "Comment and moderation endpoints"),
    ("banners", banners_router, "Promotional banner endpoints"),
    ("uploads", uploads_router, "Image upload endpoints"),
    ("products", products_router, "Product catalog proxy endpoints"),
    ("admin", admin_router, "Maintenance endpoints"),
    ("health", health_router, "Health probe"),
]

# Every domain failure renders as an ErrorResponse envelope.
error_responses = {status: {"model": ErrorResponse} for status in (400, 401, 403, 404, 409, 502)}

included_routers = []
for router_name, router, description in routers_config:
    try:
        app.include_router(router, responses=error_responses)
        included_routers.append({"name": router_name, "description": description})
        logger.info("Successfully included %s router: %s", router_name, description)
    except Exception as e:
        log_error_with_context(
            e, {"operation": "router_inclusion", "router_name": router_name, "description": description}
        )
        logger.error("Failed to include %s router: %s", router_name, e)

log_application_lifecycle(
    "routers_configured",
    {"total_routers": len(routers_config), "included_routers": len(included_routers)},
)

try:
    instrumentator = Instrumentator(
        should_group_status_codes=True,
        should_ignore_untemplated=True,
        should_respect_env_var=False,
        should_instrument_requests_inprogress=True,
    )
    instrumentator.instrument(app).expose(app, include_in_schema=False, endpoint="/metrics")
    log_application_lifecycle("prometheus_configured", {"metrics_endpoint": "/metrics"})
except Exception as e:
    log_error_with_context(e, {"operation": "prometheus_setup"})
    logger.error("Failed to configure Prometheus metrics: %s", e)


def run():
    """Console entry point: serve the app with uvicorn using the configured host and port."""
    uvicorn.run("content_forum.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG, log_level="info")


if __name__ == "__main__":
    run()
