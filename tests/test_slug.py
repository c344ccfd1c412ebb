import pytest

from content_forum.errors import ConflictError, ValidationError
from content_forum.utils.slug import (
    MSG_BAD_CHARS,
    MSG_TOO_LONG,
    MSG_TOO_SHORT,
    SLUG_MAX_LENGTH,
    generate_unique_slug,
    sanitize_slug,
    slug_error,
    slug_suggestions,
    slugify,
    validate_post_slug,
)
from conftest import FakeCollection


@pytest.mark.parametrize(
    "text,expected",
    [
        ("Tech News", "tech-news"),
        ("  Điện thoại   mới!! ", "dien-thoai-moi"),
        ("iPhone 15 Pro -- Review", "iphone-15-pro-review"),
        ("---", ""),
        ("", ""),
    ],
)
def test_slugify(text, expected):
    assert slugify(text) == expected


def test_validate_post_slug_normalizes_case_and_whitespace():
    assert validate_post_slug("  My-Post ") == "my-post"


@pytest.mark.parametrize(
    "slug,message",
    [
        ("ab", MSG_TOO_SHORT),
        ("a" * 101, MSG_TOO_LONG),
        ("-leading", MSG_BAD_CHARS),
        ("trailing-", MSG_BAD_CHARS),
        ("double--hyphen", MSG_BAD_CHARS),
        ("under_score", MSG_BAD_CHARS),
        ("with space", MSG_BAD_CHARS),
    ],
)
def test_validate_post_slug_rejects(slug, message):
    with pytest.raises(ValidationError) as exc_info:
        validate_post_slug(slug)
    assert exc_info.value.message == message


def test_validate_post_slug_accepts_boundaries():
    assert validate_post_slug("abc") == "abc"
    assert validate_post_slug("a" * 100) == "a" * 100


def test_sanitize_slug_drops_foreign_characters():
    assert sanitize_slug("Hello_World!-2024") == "helloworld-2024"


def test_slug_suggestions_order():
    assert slug_suggestions("tech-news", 2024) == [
        "tech-news-2024",
        "tech-news-1",
        "tech-news-2",
        "tech-news-3",
        "tech-news-4",
        "tech-news-5",
        "tech-news-new",
    ]


@pytest.mark.parametrize("slug", ["a" * 99, "a" * 100, "a" * 95 + "-b" * 2 + "c"])
def test_slug_suggestions_for_long_slugs_fit_max_length(slug):
    suggestions = slug_suggestions(slug, 2024)

    assert len(suggestions) == 7
    for suggestion in suggestions:
        assert len(suggestion) <= SLUG_MAX_LENGTH
        assert slug_error(suggestion) is None
    assert suggestions[0] == "a" * 95 + "-2024"


def test_slug_suggestions_drop_trailing_hyphen_of_cut_base():
    slug = "a" * 97 + "-bc"

    assert slug_suggestions(slug, 2024)[0] == "a" * 95 + "-2024"
    assert slug_suggestions(slug, 2024)[1] == "a" * 97 + "-1"


@pytest.mark.asyncio
async def test_generate_unique_slug_suffixes_on_collision():
    collection = FakeCollection("banners")
    assert await generate_unique_slug(collection, "tech-news") == "tech-news"

    await collection.insert_one({"banner_id": "banner_0000000000000001", "slug": "tech-news"})
    assert await generate_unique_slug(collection, "tech-news") == "tech-news-1"

    await collection.insert_one({"banner_id": "banner_0000000000000002", "slug": "tech-news-1"})
    assert await generate_unique_slug(collection, "tech-news") == "tech-news-2"


@pytest.mark.asyncio
async def test_generate_unique_slug_excludes_own_document():
    collection = FakeCollection("banners")
    await collection.insert_one({"banner_id": "banner_0000000000000001", "slug": "tech-news"})

    slug = await generate_unique_slug(
        collection, "tech-news", id_field="banner_id", exclude_id="banner_0000000000000001"
    )
    assert slug == "tech-news"


@pytest.mark.asyncio
async def test_generate_unique_slug_gives_up_after_max_attempts():
    collection = FakeCollection("banners")
    await collection.insert_one({"slug": "promo"})
    await collection.insert_one({"slug": "promo-1"})

    with pytest.raises(ConflictError):
        await generate_unique_slug(collection, "promo", max_attempts=2)


@pytest.mark.asyncio
async def test_generate_unique_slug_rejects_empty_base():
    with pytest.raises(ValidationError):
        await generate_unique_slug(FakeCollection("banners"), "")
