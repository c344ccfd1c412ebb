import pytest

from content_forum.errors import ConflictError, NotFoundError
from content_forum.models.forum_models import CreateTagRequest, UpdateTagRequest
from content_forum.services.tag_service import TagService


@pytest.fixture
def tag_service(db):
    return TagService(db)


@pytest.mark.asyncio
async def test_create_and_duplicate(db, tag_service):
    tag = await tag_service.create(CreateTagRequest(name="Android", color="#00ff00"))
    assert tag["slug"] == "android"

    with pytest.raises(ConflictError):
        await tag_service.create(CreateTagRequest(name="ANDROID"))
    assert len(db["tags"].docs) == 1


@pytest.mark.asyncio
async def test_popular_ignores_unused_and_inactive(tag_service):
    used = await tag_service.create(CreateTagRequest(name="iOS"))
    busy = await tag_service.create(CreateTagRequest(name="Android"))
    await tag_service.create(CreateTagRequest(name="Unused"))
    inactive = await tag_service.create(CreateTagRequest(name="Retired", is_active=False))

    await tag_service.increment_post_count(used["tag_id"])
    for _ in range(3):
        await tag_service.increment_post_count(busy["tag_id"])
    await tag_service.increment_post_count(inactive["tag_id"])

    popular = await tag_service.get_popular(10)
    assert [t["slug"] for t in popular] == ["android", "ios"]


@pytest.mark.asyncio
async def test_update_rename_keeps_own_slug(tag_service):
    tag = await tag_service.create(CreateTagRequest(name="Android"))
    updated = await tag_service.update(tag["tag_id"], UpdateTagRequest(name="android", color="#123456"))
    assert updated["slug"] == "android"
    assert updated["color"] == "#123456"


@pytest.mark.asyncio
async def test_remove_unknown_tag(tag_service):
    with pytest.raises(NotFoundError):
        await tag_service.remove("tag_0123456789abcdef")


@pytest.mark.asyncio
async def test_find_by_slug_hides_inactive(tag_service):
    await tag_service.create(CreateTagRequest(name="Retired", is_active=False))
    with pytest.raises(NotFoundError):
        await tag_service.find_by_slug("retired")
