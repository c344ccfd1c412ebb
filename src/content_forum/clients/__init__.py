"""HTTP clients for the external identity service, product catalog and image CDN."""

from content_forum.clients.file_storage_client import FileStorageClient
from content_forum.clients.identity_client import IdentityClient
from content_forum.clients.product_client import ProductCatalogClient

__all__ = ["FileStorageClient", "IdentityClient", "ProductCatalogClient"]
