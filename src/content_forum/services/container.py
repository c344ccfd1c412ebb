"""
Service wiring.

`build_services()` constructs every service once, injecting the shared database handle and
the external clients. The FastAPI lifespan stores the result on `app.state.services` and the
route dependencies read it from there.
"""

from dataclasses import dataclass
from typing import Optional

from content_forum.clients import FileStorageClient, IdentityClient, ProductCatalogClient
from content_forum.services.activity_service import ActivityService
from content_forum.services.auth_service import AuthService
from content_forum.services.banner_service import BannerService
from content_forum.services.category_service import CategoryService
from content_forum.services.comment_service import CommentService
from content_forum.services.counter_reconciliation_service import CounterReconciliationService
from content_forum.services.file_cleanup_service import FileCleanupService
from content_forum.services.post_service import PostService
from content_forum.services.tag_service import TagService
from content_forum.services.upload_service import UploadService
from content_forum.services.user_service import UserService


@dataclass
class ServiceContainer:
    categories: CategoryService
    tags: TagService
    posts: PostService
    comments: CommentService
    banners: BannerService
    users: UserService
    auth: AuthService
    activities: ActivityService
    uploads: UploadService
    reconciliation: CounterReconciliationService
    file_cleanup: FileCleanupService
    identity_client: Optional[IdentityClient] = None
    product_client: Optional[ProductCatalogClient] = None
    file_storage: Optional[FileStorageClient] = None

    async def aclose(self):
        for client in (self.identity_client, self.product_client, self.file_storage):
            if client is not None:
                await client.aclose()


def build_services(
    db=None,
    identity_client: Optional[IdentityClient] = None,
    product_client: Optional[ProductCatalogClient] = None,
    file_storage: Optional[FileStorageClient] = None,
    uploads_dir: Optional[str] = None,
) -> ServiceContainer:
    activities = ActivityService(db)
    categories = CategoryService(db)
    tags = TagService(db)
    users = UserService(db, file_storage=file_storage, activity_service=activities)
    posts = PostService(
        db,
        category_service=categories,
        tag_service=tags,
        user_service=users,
        product_client=product_client,
        activity_service=activities,
    )
    reconciliation = CounterReconciliationService(db)
    return ServiceContainer(
        categories=categories,
        tags=tags,
        posts=posts,
        comments=CommentService(db, identity_client=identity_client),
        banners=BannerService(db),
        users=users,
        auth=AuthService(db, activity_service=activities),
        activities=activities,
        uploads=UploadService(file_storage, uploads_dir=uploads_dir),
        reconciliation=reconciliation,
        file_cleanup=FileCleanupService(uploads_dir, reconciliation_service=reconciliation),
        identity_client=identity_client,
        product_client=product_client,
        file_storage=file_storage,
    )
