from datetime import datetime, timedelta, timezone

import pydantic
import pytest

from content_forum.errors import ForbiddenError, NotFoundError
from content_forum.models.banner_models import (
    BannerQuery,
    BannerStatus,
    CreateBannerRequest,
    TargetDevice,
    UpdateBannerRequest,
)

AUTHOR = "user_0123456789abcdef"
OTHER = "user_fedcba9876543210"


@pytest.mark.asyncio
async def test_duplicate_titles_get_suffixed_slugs(services, db):
    first = await services.banners.create(CreateBannerRequest(title="Tech News"), AUTHOR)
    second = await services.banners.create(CreateBannerRequest(title="Tech News"), AUTHOR)
    third = await services.banners.create(CreateBannerRequest(title="Tech  News!"), AUTHOR)

    assert [first["slug"], second["slug"], third["slug"]] == ["tech-news", "tech-news-1", "tech-news-2"]
    assert len(db["banners"].docs) == 3


def test_end_date_must_follow_start_date():
    now = datetime.now(timezone.utc)
    with pytest.raises(pydantic.ValidationError):
        CreateBannerRequest(title="Sale", start_date=now, end_date=now - timedelta(days=1))


def test_image_dimensions_must_be_positive():
    with pytest.raises(pydantic.ValidationError):
        CreateBannerRequest(
            title="Sale",
            images=[{"url": "https://cdn.example.com/a.webp", "filename": "a.webp", "width": 0, "height": 10, "size": 1}],
        )


@pytest.mark.asyncio
async def test_update_is_author_only_and_reslugs_excluding_self(services):
    banner = await services.banners.create(CreateBannerRequest(title="Summer Sale"), AUTHOR)

    with pytest.raises(ForbiddenError):
        await services.banners.update(banner["banner_id"], UpdateBannerRequest(title="Hijack"), OTHER)

    same = await services.banners.update(banner["banner_id"], UpdateBannerRequest(title="Summer  Sale"), AUTHOR)
    assert same["slug"] == "summer-sale"

    renamed = await services.banners.update(banner["banner_id"], UpdateBannerRequest(title="Winter Sale"), AUTHOR)
    assert renamed["slug"] == "winter-sale"


@pytest.mark.asyncio
async def test_remove_is_author_only(services, db):
    banner = await services.banners.create(CreateBannerRequest(title="Promo"), AUTHOR)

    with pytest.raises(ForbiddenError):
        await services.banners.remove(banner["banner_id"], OTHER)
    await services.banners.remove(banner["banner_id"], AUTHOR)

    assert db["banners"].docs == []


@pytest.mark.asyncio
async def test_active_banners_respect_window_status_and_device(services):
    now = datetime.now(timezone.utc)
    await services.banners.create(CreateBannerRequest(title="Always", priority=1), AUTHOR)
    await services.banners.create(
        CreateBannerRequest(title="Running", start_date=now - timedelta(days=1), end_date=now + timedelta(days=1), priority=5),
        AUTHOR,
    )
    await services.banners.create(
        CreateBannerRequest(title="Expired", start_date=now - timedelta(days=3), end_date=now - timedelta(days=1)), AUTHOR
    )
    await services.banners.create(CreateBannerRequest(title="Future", start_date=now + timedelta(days=1)), AUTHOR)
    await services.banners.create(CreateBannerRequest(title="Off", status=BannerStatus.INACTIVE), AUTHOR)
    await services.banners.create(CreateBannerRequest(title="Mobile", target_device=TargetDevice.MOBILE), AUTHOR)

    active = await services.banners.get_active()
    assert [b["slug"] for b in active][:2] == ["running", "always"]
    assert {b["slug"] for b in active} == {"running", "always", "mobile"}

    desktop = await services.banners.get_active(device=TargetDevice.DESKTOP.value)
    assert "mobile" not in {b["slug"] for b in desktop}


@pytest.mark.asyncio
async def test_view_and_click_tracking(services):
    banner = await services.banners.create(CreateBannerRequest(title="Promo"), AUTHOR)

    await services.banners.increment_view(banner["banner_id"])
    await services.banners.increment_view(banner["banner_id"])
    await services.banners.increment_click(banner["banner_id"])

    stored = await services.banners.find_one(banner["banner_id"])
    assert (stored["view_count"], stored["click_count"]) == (2, 1)

    with pytest.raises(NotFoundError):
        await services.banners.increment_click("banner_0123456789abcdef")


@pytest.mark.asyncio
async def test_status_update_and_listing(services):
    banner = await services.banners.create(CreateBannerRequest(title="Promo"), AUTHOR)
    await services.banners.create(CreateBannerRequest(title="Other"), AUTHOR)

    updated = await services.banners.update_status(banner["banner_id"], BannerStatus.INACTIVE)
    assert updated["status"] == BannerStatus.INACTIVE.value

    result = await services.banners.find_all(BannerQuery(status=BannerStatus.ACTIVE))
    assert [b["slug"] for b in result["data"]] == ["other"]
