"""
# Upload Service

Validates incoming images and hands them to the CDN through `FileStorageClient`.

Validation happens before any bytes leave the process:

- **Size**: at most `MAX_FILE_SIZE` bytes (10 MB by default), and not empty.
- **MIME type**: one of `ALLOWED_MIME_TYPES`.
- **Extension**: `.jpg`, `.jpeg`, `.png`, `.gif` or `.webp` when a filename is given.

The service also owns the local `UPLOADS_DIR` tree used for staging files in `temp/`, and
reports its disk usage.
"""

import os
import re
from pathlib import Path
from typing import Any, Dict, Optional

from content_forum.config import settings
from content_forum.errors import ValidationError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.integration_models import StoredFile, UploadProfile

logger = get_logger(prefix="[Upload Service]")

ALLOWED_EXTENSION_PATTERN = re.compile(r"\.(jpg|jpeg|png|gif|webp)$", re.IGNORECASE)
STORAGE_FOLDERS = ("avatars", "posts", "categories", "editor", "temp")


class UploadService:
    def __init__(self, file_storage=None, uploads_dir: Optional[str] = None):
        self.file_storage = file_storage
        self.uploads_dir = Path(uploads_dir or settings.UPLOADS_DIR)

    @property
    def temp_dir(self) -> Path:
        return self.uploads_dir / "temp"

    def ensure_directories(self) -> None:
        for folder in STORAGE_FOLDERS:
            (self.uploads_dir / folder).mkdir(parents=True, exist_ok=True)

    def validate_file(self, content: bytes, content_type: Optional[str], filename: Optional[str] = None) -> None:
        """
        Raises:
            ValidationError: If the file is empty, too large, of a disallowed type or extension.
        """
        if not content:
            raise ValidationError("No file uploaded")
        if len(content) > settings.MAX_FILE_SIZE:
            raise ValidationError(
                f"File too large. Maximum size is {settings.MAX_FILE_SIZE // (1024 * 1024)}MB",
                details={"size": len(content), "max_size": settings.MAX_FILE_SIZE},
            )
        if content_type not in settings.allowed_mime_types_list:
            raise ValidationError(
                "Invalid file type. Only JPEG, PNG, GIF and WebP images are allowed",
                details={"content_type": content_type},
            )
        if filename and not ALLOWED_EXTENSION_PATTERN.search(filename):
            raise ValidationError("Invalid file extension", details={"filename": filename})

    async def upload(
        self, content: bytes, filename: str, content_type: str, profile: UploadProfile
    ) -> StoredFile:
        self.validate_file(content, content_type, filename)
        if self.file_storage is None:
            raise ValidationError("File uploads are not configured")
        return await self.file_storage.upload(content, filename, content_type, profile)

    async def delete(self, public_id: str) -> bool:
        if self.file_storage is None:
            return False
        return await self.file_storage.delete(public_id)

    def get_storage_stats(self) -> Dict[str, Any]:
        """File count and byte size per upload folder, plus totals."""
        folders: Dict[str, Dict[str, int]] = {}
        total_files = 0
        total_size = 0
        for folder in STORAGE_FOLDERS:
            path = self.uploads_dir / folder
            files = 0
            size = 0
            if path.is_dir():
                for entry in os.scandir(path):
                    if entry.is_file() and entry.name != ".gitkeep":
                        files += 1
                        size += entry.stat().st_size
            folders[folder] = {"files": files, "size": size}
            total_files += files
            total_size += size
        return {"folders": folders, "total_files": total_files, "total_size": total_size}
