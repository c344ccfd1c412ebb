"""
# Category Service

Manages the category tree: a flat `categories` collection where each category may point to a
parent through `parent_id`.

## Tree Model

Children are never stored on the parent. They are found by reverse lookup
(`parent_id == category_id`) or, for whole-tree reads, through a parent-to-children index
computed from the flat list by `build_children_index()`.

## Invariants

- **Slug**: derived from the name; a second category with the same derived slug is rejected.
- **Parent**: must reference an existing category. A category cannot be its own parent.
  Longer cycles (A -> B -> A) are not detected.
- **Deletion**: refused while child categories exist. Posts referencing the category do not
  block deletion; they keep a dangling `category_id`.
- **post_count**: adjusted by the post service with unconditional `$inc`.
"""

import re
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pymongo.errors import DuplicateKeyError

from content_forum.database import db_manager
from content_forum.errors import ConflictError, NotFoundError, ValidationError
from content_forum.managers.logging_manager import get_logger
from content_forum.models.forum_models import CreateCategoryRequest, PostStatus, UpdateCategoryRequest
from content_forum.utils.documents import clean_document, clean_documents
from content_forum.utils.identifiers import new_id, normalize_id
from content_forum.utils.pagination import page_window, paginated
from content_forum.utils.slug import sanitize_slug, slugify

logger = get_logger(prefix="[Category Service]")

DUPLICATE_NAME_MESSAGE = "Category with this name already exists"
CATEGORY_ORDER = [("order", 1), ("created_at", -1)]


def build_children_index(categories: List[Dict[str, Any]]) -> Dict[Optional[str], List[Dict[str, Any]]]:
    """Group a flat category list by `parent_id`, preserving input order."""
    index: Dict[Optional[str], List[Dict[str, Any]]] = {}
    for category in categories:
        index.setdefault(category.get("parent_id"), []).append(category)
    return index


def _attach_children(category: Dict[str, Any], index: Dict[Optional[str], List[Dict[str, Any]]], seen: set) -> Dict[str, Any]:
    node = dict(category)
    seen = seen | {node["category_id"]}
    node["children"] = [
        _attach_children(child, index, seen)
        for child in index.get(node["category_id"], [])
        if child["category_id"] not in seen
    ]
    return node


class CategoryService:
    """CRUD and tree queries over the `categories` collection."""

    def __init__(self, db=None):
        self.db = db if db is not None else db_manager
        self.collection_name = "categories"

    @property
    def collection(self):
        return self.db.get_collection(self.collection_name)

    async def create(self, data: CreateCategoryRequest) -> Dict[str, Any]:
        """
        Create a category.

        Raises:
            ValidationError: If the name yields an empty slug or the parent id is malformed.
            ConflictError: If a category with the same slug exists.
            NotFoundError: If `parent_id` does not reference a category.
        """
        slug = slugify(data.name)
        if not slug:
            raise ValidationError("Category name must contain letters or digits", details={"field": "name"})

        if await self.collection.find_one({"slug": slug}):
            raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"slug": slug})

        parent_id = None
        if data.parent_id:
            parent_id = normalize_id(data.parent_id, "category", "parent_id")
            if not await self.collection.find_one({"category_id": parent_id}):
                raise NotFoundError("Parent category not found", details={"parent_id": parent_id})

        now = datetime.now(timezone.utc)
        document = {
            "category_id": new_id("category"),
            "name": data.name,
            "slug": slug,
            "description": data.description,
            "icon": data.icon,
            "parent_id": parent_id,
            "order": data.order,
            "is_active": data.is_active,
            "post_count": 0,
            "seo_title": data.seo_title,
            "seo_description": data.seo_description,
            "seo_keywords": data.seo_keywords,
            "created_at": now,
            "updated_at": now,
        }
        try:
            await self.collection.insert_one(document)
        except DuplicateKeyError as e:
            raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"slug": slug}) from e

        logger.info("Created category %s (%s)", document["category_id"], slug)
        return clean_document(document)

    async def find_all(
        self,
        search: Optional[str] = None,
        parent_id: Optional[str] = None,
        is_active: Optional[bool] = None,
        page: int = 1,
        limit: int = 10,
        include_children: bool = False,
    ) -> Dict[str, Any]:
        """
        List categories, paginated and sorted by `order` then newest.

        `parent_id="null"` restricts the listing to root categories.
        """
        page, limit, skip = page_window(page, limit)
        query: Dict[str, Any] = {}
        if search:
            pattern = {"$regex": re.escape(search), "$options": "i"}
            query["$or"] = [{"name": pattern}, {"description": pattern}]
        if parent_id == "null":
            query["parent_id"] = None
        elif parent_id:
            query["parent_id"] = normalize_id(parent_id, "category", "parent_id")
        if is_active is not None:
            query["is_active"] = is_active

        total = await self.collection.count_documents(query)
        docs = await self.collection.find(query).sort(CATEGORY_ORDER).skip(skip).limit(limit).to_list(length=limit)
        categories = clean_documents(docs)

        if include_children and categories:
            ids = [c["category_id"] for c in categories]
            child_docs = await self.collection.find({"parent_id": {"$in": ids}}).sort(CATEGORY_ORDER).to_list(length=None)
            index = build_children_index(clean_documents(child_docs))
            for category in categories:
                category["children"] = index.get(category["category_id"], [])

        return paginated(categories, page, limit, total)

    async def find_one(self, category_id: str) -> Dict[str, Any]:
        category_id = normalize_id(category_id, "category", "category_id")
        doc = await self.collection.find_one({"category_id": category_id})
        if not doc:
            raise NotFoundError("Category not found", details={"category_id": category_id})

        children = await self.collection.find({"parent_id": category_id}).sort(CATEGORY_ORDER).to_list(length=None)
        category = clean_document(doc)
        category["children"] = clean_documents(children)
        return category

    async def find_by_slug(self, slug: str) -> Dict[str, Any]:
        slug = sanitize_slug(slug)
        doc = await self.collection.find_one({"slug": slug, "is_active": True})
        if not doc:
            raise NotFoundError("Category not found", details={"slug": slug})

        children = await self.collection.find(
            {"parent_id": doc["category_id"], "is_active": True}
        ).sort(CATEGORY_ORDER).to_list(length=None)
        category = clean_document(doc)
        category["children"] = clean_documents(children)
        return category

    async def exists(self, category_id: str) -> bool:
        return await self.collection.find_one({"category_id": category_id}) is not None

    async def get_tree(self) -> List[Dict[str, Any]]:
        """Return active categories as nested trees rooted at categories without a parent."""
        docs = await self.collection.find({"is_active": True}).sort(CATEGORY_ORDER).to_list(length=None)
        categories = clean_documents(docs)
        index = build_children_index(categories)
        return [_attach_children(root, index, set()) for root in index.get(None, [])]

    async def get_category_posts(
        self, id_or_slug: str, page: int = 1, limit: int = 10, include_subcategories: bool = False
    ) -> Dict[str, Any]:
        """Published posts of a category, sticky first then newest."""
        if id_or_slug.startswith("category_"):
            category = await self.find_one(id_or_slug)
        else:
            category = await self.find_by_slug(id_or_slug)

        category_ids = [category["category_id"]]
        if include_subcategories:
            category_ids.extend(child["category_id"] for child in category.get("children") or [])

        page, limit, skip = page_window(page, limit)
        query = {"category_id": {"$in": category_ids}, "status": PostStatus.PUBLISHED.value}
        posts = self.db.get_collection("posts")
        total = await posts.count_documents(query)
        docs = await posts.find(query).sort([("is_sticky", -1), ("published_at", -1)]).skip(skip).limit(limit).to_list(length=limit)

        result = paginated(clean_documents(docs), page, limit, total)
        result["category"] = category
        return result

    async def update(self, category_id: str, data: UpdateCategoryRequest) -> Dict[str, Any]:
        """
        Apply a partial update.

        Renaming regenerates the slug (checked against every other category). An explicit
        `parent_id: null` moves the category to the root.

        Raises:
            NotFoundError: If the category or the new parent does not exist.
            ValidationError: If the category would become its own parent.
            ConflictError: If the new name collides with another category.
        """
        category_id = normalize_id(category_id, "category", "category_id")
        existing = await self.collection.find_one({"category_id": category_id})
        if not existing:
            raise NotFoundError("Category not found", details={"category_id": category_id})

        changes = data.model_dump(exclude_unset=True)
        updates: Dict[str, Any] = {}

        if changes.get("name"):
            slug = slugify(changes["name"])
            if not slug:
                raise ValidationError("Category name must contain letters or digits", details={"field": "name"})
            if await self.collection.find_one({"slug": slug, "category_id": {"$ne": category_id}}):
                raise ConflictError(DUPLICATE_NAME_MESSAGE, details={"slug": slug})
            updates["name"] = changes["name"]
            updates["slug"] = slug

        if "parent_id" in changes:
            parent_id = changes["parent_id"]
            if parent_id is None:
                updates["parent_id"] = None
            else:
                parent_id = normalize_id(parent_id, "category", "parent_id")
                if parent_id == category_id:
                    raise ValidationError("Category cannot be its own parent")
                if not await self.collection.find_one({"category_id": parent_id}):
                    raise NotFoundError("Parent category not found", details={"parent_id": parent_id})
                updates["parent_id"] = parent_id

        for field in ("description", "icon", "order", "is_active", "seo_title", "seo_description", "seo_keywords"):
            if field in changes and changes[field] is not None:
                updates[field] = changes[field]

        updates["updated_at"] = datetime.now(timezone.utc)
        try:
            await self.collection.update_one({"category_id": category_id}, {"$set": updates})
        except DuplicateKeyError as e:
            raise ConflictError(DUPLICATE_NAME_MESSAGE) from e

        logger.info("Updated category %s (%s)", category_id, ", ".join(sorted(updates)))
        return clean_document(await self.collection.find_one({"category_id": category_id}))

    async def remove(self, category_id: str) -> None:
        """
        Delete a category that has no children.

        Raises:
            NotFoundError: If the category does not exist.
            ConflictError: If any category names it as parent.
        """
        category_id = normalize_id(category_id, "category", "category_id")
        if not await self.collection.find_one({"category_id": category_id}):
            raise NotFoundError("Category not found", details={"category_id": category_id})

        if await self.collection.count_documents({"parent_id": category_id}) > 0:
            raise ConflictError("Cannot delete category with subcategories", details={"category_id": category_id})

        await self.collection.delete_one({"category_id": category_id})
        logger.info("Deleted category %s", category_id)

    async def increment_post_count(self, category_id: str) -> None:
        await self.collection.update_one({"category_id": category_id}, {"$inc": {"post_count": 1}})

    async def decrement_post_count(self, category_id: str) -> None:
        await self.collection.update_one({"category_id": category_id}, {"$inc": {"post_count": -1}})
