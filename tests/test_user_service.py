import pytest

from content_forum.errors import NotFoundError, ValidationError
from content_forum.models.integration_models import StoredFile, UploadProfile
from content_forum.models.user_models import UpdateProfileRequest
from content_forum.services.user_service import UserService
from content_forum.utils.identifiers import new_id
from conftest import insert_post, insert_user


@pytest.mark.asyncio
async def test_reads_hide_password_hash(services, db):
    user = insert_user(db, username="reader")

    by_id = await services.users.find_one(user["user_id"])
    by_name = await services.users.find_by_username("reader")

    assert "hashed_password" not in by_id
    assert "hashed_password" not in by_name

    with pytest.raises(NotFoundError):
        await services.users.find_by_username("ghost")


@pytest.mark.asyncio
async def test_update_profile_ignores_unset_fields(services, db):
    user = insert_user(db, username="writer", bio="old bio")

    updated = await services.users.update_profile(user["user_id"], UpdateProfileRequest(display_name="The Writer"))

    assert updated["display_name"] == "The Writer"
    assert updated["bio"] == "old bio"


@pytest.mark.asyncio
async def test_update_avatar_replaces_previous_file(services, db, file_storage):
    user = insert_user(db, avatar_public_id="avatars/old")
    file_storage.upload.return_value = StoredFile(url="https://cdn.example.com/avatars/new.webp", public_id="avatars/new")

    updated = await services.users.update_avatar(user["user_id"], b"img", "me.png", "image/png")

    file_storage.upload.assert_awaited_once_with(b"img", "me.png", "image/png", UploadProfile.AVATAR)
    file_storage.delete.assert_awaited_once_with("avatars/old")
    assert updated["avatar"] == "https://cdn.example.com/avatars/new.webp"
    assert "avatar_public_id" not in updated
    assert db["users"].docs[0]["avatar_public_id"] == "avatars/new"


@pytest.mark.asyncio
async def test_update_avatar_without_storage(db):
    user = insert_user(db)
    with pytest.raises(ValidationError):
        await UserService(db, file_storage=None).update_avatar(user["user_id"], b"img", "me.png", "image/png")


@pytest.mark.asyncio
async def test_user_posts_are_published_only(services, db):
    user = insert_user(db)
    category_id = new_id("category")
    insert_post(db, category_id, user["user_id"], "live-post")
    insert_post(db, category_id, user["user_id"], "draft-post", status="draft")

    result = await services.users.get_user_posts(user["user_id"])

    assert [p["slug"] for p in result["data"]] == ["live-post"]


@pytest.mark.asyncio
async def test_user_stats(services, db):
    user = insert_user(db)
    other = insert_user(db, username="other")
    category_id = new_id("category")
    insert_post(db, category_id, user["user_id"], "live-post", view_count=30, like_count=3, comment_count=5)
    insert_post(db, category_id, user["user_id"], "draft-post", status="draft", view_count=10)
    insert_post(db, category_id, other["user_id"], "not-mine", view_count=500)

    stats = await services.users.get_user_stats(user["user_id"])

    assert stats["post_count"] == 2
    assert stats["published_post_count"] == 1
    assert stats["total_views"] == 40
    assert stats["total_likes"] == 3
    assert stats["total_comments"] == 5
    assert [p["slug"] for p in stats["recent_posts"]] == ["live-post"]


@pytest.mark.asyncio
async def test_user_stats_without_posts(services, db):
    user = insert_user(db)

    stats = await services.users.get_user_stats(user["user_id"])

    assert stats["post_count"] == 0
    assert stats["total_views"] == 0
    assert stats["recent_posts"] == []


@pytest.mark.asyncio
async def test_top_users_skip_inactive_accounts(services, db):
    insert_user(db, username="busy", post_count=9)
    insert_user(db, username="quiet", post_count=1)
    insert_user(db, username="banned", status="banned", post_count=50)

    top = await services.users.get_top_users()

    assert [u["username"] for u in top] == ["busy", "quiet"]


@pytest.mark.asyncio
async def test_remove_revokes_sessions(services, db):
    user = insert_user(db)
    db["refresh_tokens"].docs.append({"token": "abc", "user_id": user["user_id"], "is_revoked": False})

    await services.users.remove(user["user_id"])

    assert db["users"].docs == []
    assert db["refresh_tokens"].docs == []
