import pytest

from content_forum.errors import ConflictError, NotFoundError, ValidationError
from content_forum.models.forum_models import CreateCategoryRequest, UpdateCategoryRequest
from content_forum.services.category_service import CategoryService, build_children_index
from conftest import insert_post, insert_user


@pytest.fixture
def category_service(db):
    return CategoryService(db)


@pytest.mark.asyncio
async def test_create_derives_slug_and_rejects_duplicate_name(db, category_service):
    category = await category_service.create(CreateCategoryRequest(name="Tech News"))

    assert category["slug"] == "tech-news"
    assert category["post_count"] == 0
    assert "_id" not in category

    with pytest.raises(ConflictError) as exc_info:
        await category_service.create(CreateCategoryRequest(name="tech  news"))
    assert exc_info.value.message == "Category with this name already exists"
    assert len(db["categories"].docs) == 1


@pytest.mark.asyncio
async def test_create_with_unknown_parent(category_service):
    with pytest.raises(NotFoundError):
        await category_service.create(
            CreateCategoryRequest(name="Phones", parent_id="category_0123456789abcdef")
        )


@pytest.mark.asyncio
async def test_create_with_malformed_parent_id(db, category_service):
    with pytest.raises(ValidationError):
        await category_service.create(CreateCategoryRequest(name="Phones", parent_id="not-an-id"))
    assert db["categories"].docs == []


@pytest.mark.asyncio
async def test_delete_refused_while_children_exist(db, category_service):
    parent = await category_service.create(CreateCategoryRequest(name="Devices"))
    await category_service.create(CreateCategoryRequest(name="Phones", parent_id=parent["category_id"]))

    with pytest.raises(ConflictError) as exc_info:
        await category_service.remove(parent["category_id"])

    assert exc_info.value.message == "Cannot delete category with subcategories"
    assert len(db["categories"].docs) == 2


@pytest.mark.asyncio
async def test_delete_leaf(db, category_service):
    category = await category_service.create(CreateCategoryRequest(name="Reviews"))
    await category_service.remove(category["category_id"])
    assert db["categories"].docs == []

    with pytest.raises(NotFoundError):
        await category_service.remove(category["category_id"])


@pytest.mark.asyncio
async def test_find_one_includes_direct_children(category_service):
    parent = await category_service.create(CreateCategoryRequest(name="Devices"))
    await category_service.create(CreateCategoryRequest(name="Tablets", parent_id=parent["category_id"], order=2))
    await category_service.create(CreateCategoryRequest(name="Phones", parent_id=parent["category_id"], order=1))

    found = await category_service.find_one(parent["category_id"])
    assert [c["slug"] for c in found["children"]] == ["phones", "tablets"]


@pytest.mark.asyncio
async def test_find_all_roots_only(category_service):
    parent = await category_service.create(CreateCategoryRequest(name="Devices"))
    await category_service.create(CreateCategoryRequest(name="Phones", parent_id=parent["category_id"]))
    await category_service.create(CreateCategoryRequest(name="Guides"))

    result = await category_service.find_all(parent_id="null")

    assert result["pagination"]["total"] == 2
    assert {c["slug"] for c in result["data"]} == {"devices", "guides"}


@pytest.mark.asyncio
async def test_find_all_search_is_case_insensitive(category_service):
    await category_service.create(CreateCategoryRequest(name="Tech News"))
    await category_service.create(CreateCategoryRequest(name="Guides"))

    result = await category_service.find_all(search="TECH")
    assert [c["slug"] for c in result["data"]] == ["tech-news"]


@pytest.mark.asyncio
async def test_tree_nests_active_categories(category_service):
    devices = await category_service.create(CreateCategoryRequest(name="Devices"))
    phones = await category_service.create(CreateCategoryRequest(name="Phones", parent_id=devices["category_id"]))
    await category_service.create(CreateCategoryRequest(name="Android", parent_id=phones["category_id"]))
    await category_service.create(CreateCategoryRequest(name="Hidden", is_active=False))

    tree = await category_service.get_tree()

    assert [root["slug"] for root in tree] == ["devices"]
    assert tree[0]["children"][0]["slug"] == "phones"
    assert tree[0]["children"][0]["children"][0]["slug"] == "android"


def test_children_index_groups_by_parent():
    categories = [
        {"category_id": "a", "parent_id": None},
        {"category_id": "b", "parent_id": "a"},
        {"category_id": "c", "parent_id": "a"},
    ]
    index = build_children_index(categories)
    assert [c["category_id"] for c in index["a"]] == ["b", "c"]
    assert [c["category_id"] for c in index[None]] == ["a"]


@pytest.mark.asyncio
async def test_update_rejects_self_parent(category_service):
    category = await category_service.create(CreateCategoryRequest(name="Devices"))
    with pytest.raises(ValidationError):
        await category_service.update(category["category_id"], UpdateCategoryRequest(parent_id=category["category_id"]))


@pytest.mark.asyncio
async def test_update_rename_reslugs_and_clears_parent(category_service):
    devices = await category_service.create(CreateCategoryRequest(name="Devices"))
    phones = await category_service.create(CreateCategoryRequest(name="Phones", parent_id=devices["category_id"]))

    updated = await category_service.update(
        phones["category_id"], UpdateCategoryRequest(name="Smart Phones", parent_id=None)
    )

    assert updated["slug"] == "smart-phones"
    assert updated["parent_id"] is None


@pytest.mark.asyncio
async def test_update_rename_conflict(category_service):
    await category_service.create(CreateCategoryRequest(name="Devices"))
    guides = await category_service.create(CreateCategoryRequest(name="Guides"))

    with pytest.raises(ConflictError):
        await category_service.update(guides["category_id"], UpdateCategoryRequest(name="Devices"))


@pytest.mark.asyncio
async def test_category_posts_by_slug(db, category_service):
    category = await category_service.create(CreateCategoryRequest(name="Reviews"))
    author = insert_user(db)
    insert_post(db, category["category_id"], author["user_id"], "published-review")
    insert_post(db, category["category_id"], author["user_id"], "draft-review", status="draft")

    result = await category_service.get_category_posts("reviews")

    assert result["category"]["category_id"] == category["category_id"]
    assert [p["slug"] for p in result["data"]] == ["published-review"]
