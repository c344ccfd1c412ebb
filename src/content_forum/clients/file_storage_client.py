"""
# File Storage Client

Pass-through uploads to the image CDN. The CDN performs the resizing and format
conversion described by the upload profile; the forum keeps only the returned URL.

| Profile    | Size       | Format | Quality | Crop |
|------------|------------|--------|---------|------|
| `avatar`   | 300x300    | webp   | 85      | crop |
| `post`     | 1200x630   | webp   | 85      | crop |
| `category` | 64x64      | png    | 90      | crop |
| `editor`   | width 1000 | webp   | 80      | fit  |
"""

from typing import Any, Dict, Optional

import httpx

from content_forum.config import settings
from content_forum.errors import UpstreamError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.integration_models import StoredFile, UploadProfile

logger = get_logger(prefix="[File Storage]")

UPLOAD_PROFILES: Dict[UploadProfile, Dict[str, Any]] = {
    UploadProfile.AVATAR: {"folder": "avatars", "width": 300, "height": 300, "format": "webp", "quality": 85, "crop": "crop"},
    UploadProfile.POST: {"folder": "posts", "width": 1200, "height": 630, "format": "webp", "quality": 85, "crop": "crop"},
    UploadProfile.CATEGORY: {"folder": "categories", "width": 64, "height": 64, "format": "png", "quality": 90, "crop": "crop"},
    UploadProfile.EDITOR: {"folder": "editor", "width": 1000, "format": "webp", "quality": 80, "crop": "fit"},
}


class FileStorageClient:
    """Uploads image bytes to the CDN and deletes them by public id."""

    def __init__(
        self,
        upload_url: Optional[str] = None,
        delete_url: Optional[str] = None,
        api_key: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.upload_url = upload_url or settings.CDN_UPLOAD_URL
        self.delete_url = delete_url or settings.CDN_DELETE_URL
        if api_key is None and settings.CDN_API_KEY is not None:
            api_key = settings.CDN_API_KEY.get_secret_value()
        self._api_key = api_key
        self._client = httpx.AsyncClient(
            timeout=timeout or settings.EXTERNAL_API_TIMEOUT,
            transport=transport,
        )

    async def aclose(self):
        await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        return {"X-API-Key": self._api_key} if self._api_key else {}

    async def upload(
        self, content: bytes, filename: str, content_type: str, profile: UploadProfile
    ) -> StoredFile:
        """
        Upload an image with the transformation options of `profile`.

        Raises:
            UpstreamError: If the CDN is unreachable or rejects the upload.
        """
        options = UPLOAD_PROFILES[profile]
        data = {key: str(value) for key, value in options.items()}
        try:
            response = await self._client.post(
                self.upload_url,
                files={"file": (filename, content, content_type)},
                data=data,
                headers=self._headers(),
            )
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.error("Upload of '%s' (%s) failed: %s", filename, profile.value, e)
            raise UpstreamError("Failed to upload file", details={"profile": profile.value}) from e

        logger.info("Uploaded '%s' as %s (%s)", filename, payload.get("public_id"), profile.value)
        return StoredFile(
            url=payload["url"],
            public_id=payload["public_id"],
            width=payload.get("width", 0),
            height=payload.get("height", 0),
            size=payload.get("bytes", payload.get("size", len(content))),
            format=payload.get("format", options["format"]),
            original_name=filename,
        )

    async def delete(self, public_id: str) -> bool:
        """Best-effort delete; failures are logged and reported as `False`."""
        try:
            response = await self._client.post(
                self.delete_url, json={"public_id": public_id}, headers=self._headers()
            )
            response.raise_for_status()
            return True
        except httpx.HTTPError as e:
            logger.warning("Failed to delete file %s: %s", public_id, e)
            return False
