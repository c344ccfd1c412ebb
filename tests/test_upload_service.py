import pytest

from content_forum.errors import ValidationError
from content_forum.models.integration_models import StoredFile, UploadProfile
from content_forum.services.upload_service import UploadService

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.mark.parametrize(
    "content, content_type, filename, message",
    [
        (b"", "image/png", "a.png", "No file uploaded"),
        (PNG, "application/pdf", "a.pdf", "Invalid file type. Only JPEG, PNG, GIF and WebP images are allowed"),
        (PNG, "image/png", "a.exe", "Invalid file extension"),
    ],
)
def test_validate_file_rejections(tmp_path, content, content_type, filename, message):
    with pytest.raises(ValidationError) as exc_info:
        UploadService(uploads_dir=str(tmp_path)).validate_file(content, content_type, filename)
    assert exc_info.value.message == message


def test_validate_file_size_limit(tmp_path, monkeypatch):
    from content_forum.config import settings

    monkeypatch.setattr(settings, "MAX_FILE_SIZE", 16)
    with pytest.raises(ValidationError) as exc_info:
        UploadService(uploads_dir=str(tmp_path)).validate_file(PNG, "image/png", "a.png")
    assert exc_info.value.message.startswith("File too large")
    assert exc_info.value.details["size"] == len(PNG)


def test_validate_file_accepts_uppercase_extension(tmp_path):
    UploadService(uploads_dir=str(tmp_path)).validate_file(PNG, "image/jpeg", "Photo.JPG")


@pytest.mark.asyncio
async def test_upload_hands_valid_file_to_storage(services, file_storage):
    stored = StoredFile(url="https://cdn.example.com/posts/a.webp", public_id="posts/a")
    file_storage.upload.return_value = stored

    result = await services.uploads.upload(PNG, "a.png", "image/png", UploadProfile.POST)

    assert result is stored
    file_storage.upload.assert_awaited_once_with(PNG, "a.png", "image/png", UploadProfile.POST)


@pytest.mark.asyncio
async def test_invalid_file_never_reaches_storage(services, file_storage):
    with pytest.raises(ValidationError):
        await services.uploads.upload(PNG, "a.svg", "image/svg+xml", UploadProfile.EDITOR)
    file_storage.upload.assert_not_awaited()


@pytest.mark.asyncio
async def test_upload_without_storage(tmp_path):
    service = UploadService(file_storage=None, uploads_dir=str(tmp_path))

    with pytest.raises(ValidationError) as exc_info:
        await service.upload(PNG, "a.png", "image/png", UploadProfile.AVATAR)
    assert exc_info.value.message == "File uploads are not configured"
    assert await service.delete("avatars/a") is False


def test_storage_stats(tmp_path):
    service = UploadService(uploads_dir=str(tmp_path))
    service.ensure_directories()
    (tmp_path / "posts" / "a.webp").write_bytes(b"x" * 10)
    (tmp_path / "posts" / "b.webp").write_bytes(b"x" * 5)
    (tmp_path / "temp" / ".gitkeep").write_bytes(b"")
    (tmp_path / "temp" / "upload.tmp").write_bytes(b"x" * 3)

    stats = service.get_storage_stats()

    assert stats["folders"]["posts"] == {"files": 2, "size": 15}
    assert stats["folders"]["temp"] == {"files": 1, "size": 3}
    assert stats["folders"]["avatars"] == {"files": 0, "size": 0}
    assert (stats["total_files"], stats["total_size"]) == (3, 18)
