import httpx
import pytest

from content_forum.clients.identity_client import IdentityClient
from content_forum.errors import ForbiddenError, NotFoundError, UnauthorizedError, UpstreamError, ValidationError
from content_forum.models.forum_models import (
    CommentStatus,
    CreateCommentRequest,
    ModerateCommentRequest,
    UpdateCommentRequest,
)
from content_forum.models.integration_models import ExternalUser
from content_forum.services.container import build_services
from content_forum.utils.identifiers import new_id
from conftest import insert_post, insert_user

TOKEN = "customer-token"


@pytest.fixture
def buyer(identity_client):
    user = ExternalUser(
        email="buyer@example.com",
        firstname="Anh",
        lastname="Tran",
        ranking=[{"ranking": "Gold", "total_points": "1200"}],
    )
    identity_client.resolve_user.return_value = user
    return user


@pytest.fixture
def posts(db):
    author = insert_user(db)
    category_id = new_id("category")
    return (
        insert_post(db, category_id, author["user_id"], "first-post"),
        insert_post(db, category_id, author["user_id"], "second-post"),
    )


def comment_count(db, post_id):
    return next(p for p in db["posts"].docs if p["post_id"] == post_id)["comment_count"]


@pytest.mark.asyncio
async def test_create_comment_starts_pending(services, db, buyer, posts, identity_client):
    post = posts[0]

    comment = await services.comments.create(
        CreateCommentRequest(content="<p>Great <script>x</script>review</p>", post_id=post["post_id"]),
        TOKEN,
        ip_address="10.0.0.1",
        user_agent="pytest",
    )

    identity_client.resolve_user.assert_awaited_once_with(TOKEN)
    assert comment["status"] == CommentStatus.PENDING.value
    assert comment["external_user_id"] == "buyer@example.com"
    assert comment["author_name"] == "Anh Tran"
    assert comment["author_ranking"]["ranking"] == "Gold"
    assert "<script>" not in comment["content"]
    assert comment["ip_address"] == "10.0.0.1"
    assert comment_count(db, post["post_id"]) == 1


@pytest.mark.asyncio
async def test_missing_token_is_unauthorized(services, db, posts):
    with pytest.raises(UnauthorizedError) as exc_info:
        await services.comments.create(CreateCommentRequest(content="hi", post_id=posts[0]["post_id"]), None)
    assert exc_info.value.message == "Authentication token is required"
    assert db["comments"].docs == []


@pytest.mark.asyncio
async def test_rejected_token_is_unauthorized(services, db, posts, identity_client):
    identity_client.resolve_user.side_effect = UpstreamError("Identity service rejected the token")

    with pytest.raises(UnauthorizedError) as exc_info:
        await services.comments.create(CreateCommentRequest(content="hi", post_id=posts[0]["post_id"]), TOKEN)
    assert exc_info.value.message == "Invalid or expired token"


@pytest.mark.asyncio
async def test_unparseable_profile_is_unauthorized(db, product_client, file_storage, posts, tmp_path):
    customer = {"email": "buyer@example.com", "ranking": "gold"}
    identity_client = IdentityClient(
        endpoint="https://identity.example.com/graphql",
        transport=httpx.MockTransport(lambda request: httpx.Response(200, json={"data": {"customer": customer}})),
    )
    services = build_services(
        db,
        identity_client=identity_client,
        product_client=product_client,
        file_storage=file_storage,
        uploads_dir=str(tmp_path / "uploads"),
    )

    with pytest.raises(UnauthorizedError) as exc_info:
        await services.comments.create(CreateCommentRequest(content="hi", post_id=posts[0]["post_id"]), TOKEN)
    assert exc_info.value.message == "Invalid or expired token"
    assert db["comments"].docs == []


@pytest.mark.asyncio
async def test_comment_on_unknown_post(services, buyer):
    with pytest.raises(NotFoundError):
        await services.comments.create(CreateCommentRequest(content="hi", post_id="post_0123456789abcdef"), TOKEN)


@pytest.mark.asyncio
async def test_reply_to_comment_on_other_post_is_rejected(services, db, buyer, posts):
    first, second = posts
    parent = await services.comments.create(CreateCommentRequest(content="root", post_id=first["post_id"]), TOKEN)

    with pytest.raises(ValidationError) as exc_info:
        await services.comments.create(
            CreateCommentRequest(content="reply", post_id=second["post_id"], parent_id=parent["comment_id"]), TOKEN
        )

    assert exc_info.value.message == "Parent comment is not on the same post"
    assert len(db["comments"].docs) == 1
    assert comment_count(db, second["post_id"]) == 0
    assert db["comments"].docs[0]["reply_count"] == 0


@pytest.mark.asyncio
async def test_reply_increments_parent_reply_count(services, db, buyer, posts):
    post = posts[0]
    parent = await services.comments.create(CreateCommentRequest(content="root", post_id=post["post_id"]), TOKEN)
    await services.comments.create(
        CreateCommentRequest(content="reply", post_id=post["post_id"], parent_id=parent["comment_id"]), TOKEN
    )

    stored_parent = await db["comments"].find_one({"comment_id": parent["comment_id"]})
    assert stored_parent["reply_count"] == 1
    assert comment_count(db, post["post_id"]) == 2


@pytest.mark.asyncio
async def test_deleting_root_removes_replies_and_adjusts_count(services, db, buyer, posts):
    post = posts[0]
    root = await services.comments.create(CreateCommentRequest(content="root", post_id=post["post_id"]), TOKEN)
    for text in ("one", "two"):
        await services.comments.create(
            CreateCommentRequest(content=text, post_id=post["post_id"], parent_id=root["comment_id"]), TOKEN
        )
    assert comment_count(db, post["post_id"]) == 3

    result = await services.comments.remove(root["comment_id"], TOKEN)

    assert result == {"deleted": 3}
    assert db["comments"].docs == []
    assert comment_count(db, post["post_id"]) == 0


@pytest.mark.asyncio
async def test_deleting_reply_decrements_parent(services, db, buyer, posts):
    post = posts[0]
    root = await services.comments.create(CreateCommentRequest(content="root", post_id=post["post_id"]), TOKEN)
    reply = await services.comments.create(
        CreateCommentRequest(content="reply", post_id=post["post_id"], parent_id=root["comment_id"]), TOKEN
    )

    assert await services.comments.remove(reply["comment_id"], TOKEN) == {"deleted": 1}

    stored_root = await db["comments"].find_one({"comment_id": root["comment_id"]})
    assert stored_root["reply_count"] == 0
    assert comment_count(db, post["post_id"]) == 1


@pytest.mark.asyncio
async def test_only_author_can_edit_or_delete(services, db, buyer, posts, identity_client):
    comment = await services.comments.create(CreateCommentRequest(content="mine", post_id=posts[0]["post_id"]), TOKEN)
    identity_client.resolve_user.return_value = ExternalUser(email="someone@example.com")

    with pytest.raises(ForbiddenError):
        await services.comments.update(comment["comment_id"], UpdateCommentRequest(content="changed"), TOKEN)
    with pytest.raises(ForbiddenError):
        await services.comments.remove(comment["comment_id"], TOKEN)

    assert db["comments"].docs[0]["content"] == "mine"


@pytest.mark.asyncio
async def test_edit_marks_comment_edited(services, buyer, posts):
    comment = await services.comments.create(CreateCommentRequest(content="first", post_id=posts[0]["post_id"]), TOKEN)

    edited = await services.comments.update(comment["comment_id"], UpdateCommentRequest(content="second"), TOKEN)

    assert edited["content"] == "second"
    assert edited["is_edited"] is True
    assert edited["edited_at"] is not None


@pytest.mark.asyncio
async def test_post_listing_shows_approved_roots_with_replies(services, buyer, posts):
    post_id = posts[0]["post_id"]
    root = await services.comments.create(CreateCommentRequest(content="root", post_id=post_id), TOKEN)
    pending_root = await services.comments.create(CreateCommentRequest(content="waiting", post_id=post_id), TOKEN)
    reply = await services.comments.create(
        CreateCommentRequest(content="reply", post_id=post_id, parent_id=root["comment_id"]), TOKEN
    )
    approve = ModerateCommentRequest(status=CommentStatus.APPROVED)
    await services.comments.moderate(root["comment_id"], approve, "user_0123456789abcdef")
    moderated = await services.comments.moderate(reply["comment_id"], approve, "user_0123456789abcdef")
    assert moderated["moderated_by"] == "user_0123456789abcdef"

    result = await services.comments.get_comments_by_post(post_id)

    assert [c["comment_id"] for c in result["data"]] == [root["comment_id"]]
    assert [r["comment_id"] for r in result["data"][0]["replies"]] == [reply["comment_id"]]
    assert pending_root["comment_id"] not in [c["comment_id"] for c in result["data"]]


@pytest.mark.asyncio
async def test_user_comments_include_every_status(services, buyer, posts):
    await services.comments.create(CreateCommentRequest(content="pending", post_id=posts[0]["post_id"]), TOKEN)

    result = await services.comments.get_user_comments("buyer@example.com")
    assert result["pagination"]["total"] == 1


@pytest.mark.asyncio
async def test_like_increments(services, buyer, posts):
    comment = await services.comments.create(CreateCommentRequest(content="like me", post_id=posts[0]["post_id"]), TOKEN)

    liked = await services.comments.like(comment["comment_id"])
    assert liked["like_count"] == 1

    with pytest.raises(NotFoundError):
        await services.comments.like("comment_0123456789abcdef")
