import copy
import os
import re
from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest

os.environ.setdefault("SECRET_KEY", "forum-test-signing-key-0123456789")
os.environ.setdefault("MONGODB_URL", "mongodb://localhost:27017")
os.environ.setdefault("MONGODB_DATABASE", "content_forum_test")
os.environ.setdefault("BCRYPT_ROUNDS", "4")
os.environ.setdefault("DEFAULT_LOG_LEVEL", "WARNING")

from pymongo.errors import DuplicateKeyError  # noqa: E402

from content_forum.services.container import build_services  # noqa: E402
from content_forum.utils.identifiers import new_id  # noqa: E402

_MISSING = object()

UNIQUE_FIELDS = {
    "categories": ("slug",),
    "tags": ("slug",),
    "posts": ("slug",),
    "banners": ("slug",),
    "users": ("email", "username"),
}


def _get(doc, path):
    value = doc
    for part in path.split("."):
        if isinstance(value, list):
            value = [item[part] for item in value if isinstance(item, dict) and part in item]
        elif isinstance(value, dict):
            value = value.get(part, _MISSING)
        else:
            return _MISSING
        if value is _MISSING:
            return _MISSING
    return value


def _equals(value, expected):
    if expected is None:
        return value is _MISSING or value is None
    if isinstance(value, list) and not isinstance(expected, list):
        return expected in value
    return value == expected


def _compare(value, op, expected):
    if value is _MISSING or value is None:
        return False
    if op == "$gt":
        return value > expected
    if op == "$gte":
        return value >= expected
    if op == "$lt":
        return value < expected
    return value <= expected


def _match_value(value, condition):
    if not (isinstance(condition, dict) and condition and all(k.startswith("$") for k in condition)):
        return _equals(value, condition)

    for op, expected in condition.items():
        if op == "$in":
            if not any(_equals(value, candidate) for candidate in expected):
                return False
        elif op == "$nin":
            if any(_equals(value, candidate) for candidate in expected):
                return False
        elif op == "$ne":
            if _equals(value, expected):
                return False
        elif op in ("$gt", "$gte", "$lt", "$lte"):
            if not _compare(value, op, expected):
                return False
        elif op == "$exists":
            if (value is not _MISSING) != bool(expected):
                return False
        elif op == "$regex":
            flags = re.IGNORECASE if "i" in condition.get("$options", "") else 0
            if not isinstance(value, str) or not re.search(expected, value, flags):
                return False
        elif op == "$options":
            continue
        else:
            raise NotImplementedError(f"FakeCollection does not support {op}")
    return True


def matches(doc, query):
    for key, condition in (query or {}).items():
        if key == "$or":
            if not any(matches(doc, sub) for sub in condition):
                return False
        elif key == "$and":
            if not all(matches(doc, sub) for sub in condition):
                return False
        elif key == "$text":
            if not _text_matches(doc, condition["$search"]):
                return False
        elif key.startswith("$"):
            raise NotImplementedError(f"FakeCollection does not support {key}")
        elif not _match_value(_get(doc, key), condition):
            return False
    return True


def _text_matches(doc, search):
    terms = search.lower().split()
    text = " ".join(v for v in doc.values() if isinstance(v, str)).lower()
    return any(term in text for term in terms)


def _evaluate(doc, expression):
    if isinstance(expression, str) and expression.startswith("$"):
        value = _get(doc, expression[1:])
        return None if value is _MISSING else value
    if isinstance(expression, dict) and "$cond" in expression:
        condition, then, otherwise = expression["$cond"]
        return _evaluate(doc, then) if _evaluate(doc, condition) else _evaluate(doc, otherwise)
    if isinstance(expression, dict) and "$eq" in expression:
        left, right = expression["$eq"]
        return _evaluate(doc, left) == _evaluate(doc, right)
    if isinstance(expression, dict):
        return {key: _evaluate(doc, value) for key, value in expression.items()}
    return expression


def _group(docs, spec):
    groups = {}
    for doc in docs:
        key = _evaluate(doc, spec["_id"])
        row = groups.setdefault(key, {"_id": key})
        for field, accumulator in spec.items():
            if field == "_id":
                continue
            (op, expression), = accumulator.items()
            value = _evaluate(doc, expression)
            if op == "$sum":
                row[field] = row.get(field, 0) + (value if isinstance(value, (int, float)) else 0)
            elif op == "$first":
                row.setdefault(field, value)
            elif op == "$push":
                row.setdefault(field, []).append(value)
            else:
                raise NotImplementedError(f"FakeCollection does not support {op}")
    return list(groups.values())


def _project(doc, spec):
    projected = {"_id": doc.get("_id")} if spec.get("_id", 1) else {}
    for field, expression in spec.items():
        if field == "_id":
            continue
        if expression in (1, True):
            if field in doc:
                projected[field] = doc[field]
        elif expression not in (0, False):
            projected[field] = _evaluate(doc, expression)
    return projected


def _sort_key(value):
    if value is _MISSING or value is None:
        return (0, 0)
    return (1, value)


def apply_update(doc, update):
    for op, fields in update.items():
        for field, value in fields.items():
            if op == "$set":
                doc[field] = copy.deepcopy(value)
            elif op == "$inc":
                doc[field] = doc.get(field, 0) + value
            elif op == "$unset":
                doc.pop(field, None)
            else:
                raise NotImplementedError(f"FakeCollection does not support {op}")


class FakeCursor:
    def __init__(self, docs):
        self._docs = list(docs)
        self._skip = 0
        self._limit = 0

    def sort(self, key_or_list, direction=None):
        keys = key_or_list if isinstance(key_or_list, list) else [(key_or_list, direction or 1)]
        for field, order in reversed(keys):
            self._docs.sort(key=lambda d: _sort_key(_get(d, field)), reverse=order == -1)
        return self

    def skip(self, count):
        self._skip = count
        return self

    def limit(self, count):
        self._limit = count
        return self

    async def to_list(self, length=None):
        docs = self._docs[self._skip:]
        if self._limit:
            docs = docs[: self._limit]
        if length:
            docs = docs[:length]
        return [copy.deepcopy(d) for d in docs]


class FakeCollection:
    """In-memory stand-in for the Motor collection calls the services make."""

    def __init__(self, name, unique=()):
        self.name = name
        self.unique = unique
        self.docs = []

    def _check_unique(self, candidate, ignore=None):
        for field in self.unique:
            if field not in candidate:
                continue
            for existing in self.docs:
                if existing is not ignore and existing.get(field) == candidate[field]:
                    raise DuplicateKeyError(f"E11000 duplicate key error collection: {self.name} {field}", 11000)

    async def insert_one(self, document):
        self._check_unique(document)
        stored = copy.deepcopy(document)
        self.docs.append(stored)
        return SimpleNamespace(inserted_id=stored.get("_id"))

    async def find_one(self, query=None, projection=None):
        for doc in self.docs:
            if matches(doc, query):
                return copy.deepcopy(doc)
        return None

    def find(self, query=None, projection=None):
        return FakeCursor(d for d in self.docs if matches(d, query))

    async def count_documents(self, query):
        return sum(1 for d in self.docs if matches(d, query))

    def _apply(self, doc, update):
        updated = copy.deepcopy(doc)
        apply_update(updated, update)
        self._check_unique(updated, ignore=doc)
        doc.clear()
        doc.update(updated)

    async def update_one(self, query, update, upsert=False):
        for doc in self.docs:
            if matches(doc, query):
                self._apply(doc, update)
                return SimpleNamespace(matched_count=1, modified_count=1)
        return SimpleNamespace(matched_count=0, modified_count=0)

    async def update_many(self, query, update):
        hits = [d for d in self.docs if matches(d, query)]
        for doc in hits:
            self._apply(doc, update)
        return SimpleNamespace(matched_count=len(hits), modified_count=len(hits))

    async def find_one_and_update(self, query, update, return_document=False, **kwargs):
        for doc in self.docs:
            if matches(doc, query):
                before = copy.deepcopy(doc)
                self._apply(doc, update)
                return copy.deepcopy(doc) if return_document else before
        return None

    async def delete_one(self, query):
        for index, doc in enumerate(self.docs):
            if matches(doc, query):
                del self.docs[index]
                return SimpleNamespace(deleted_count=1)
        return SimpleNamespace(deleted_count=0)

    async def delete_many(self, query):
        kept = [d for d in self.docs if not matches(d, query)]
        deleted = len(self.docs) - len(kept)
        self.docs = kept
        return SimpleNamespace(deleted_count=deleted)

    def aggregate(self, pipeline):
        docs = [copy.deepcopy(d) for d in self.docs]
        for stage in pipeline:
            (op, spec), = stage.items()
            if op == "$match":
                docs = [d for d in docs if matches(d, spec)]
            elif op == "$unwind":
                path = spec[1:]
                docs = [{**d, path: item} for d in docs for item in (d.get(path) or [])]
            elif op == "$group":
                docs = _group(docs, spec)
            elif op == "$sort":
                docs = FakeCursor(docs).sort(list(spec.items()))._docs
            elif op == "$limit":
                docs = docs[:spec]
            elif op == "$project":
                docs = [_project(d, spec) for d in docs]
            else:
                raise NotImplementedError(f"FakeCollection does not support {op}")
        return FakeCursor(docs)

    async def create_index(self, *args, **kwargs):
        return None


class FakeDatabase:
    def __init__(self):
        self.collections = {}

    def get_collection(self, name):
        if name not in self.collections:
            self.collections[name] = FakeCollection(name, UNIQUE_FIELDS.get(name, ()))
        return self.collections[name]

    def __getitem__(self, name):
        return self.get_collection(name)


def cursor_of(rows):
    """A stand-in for a Motor cursor yielding `rows`."""
    cursor = SimpleNamespace()
    cursor.to_list = AsyncMock(return_value=rows)
    return cursor


@pytest.fixture
def db():
    return FakeDatabase()


@pytest.fixture
def product_client():
    client = AsyncMock()
    client.validate_product_selection.return_value = []
    return client


@pytest.fixture
def identity_client():
    return AsyncMock()


@pytest.fixture
def file_storage():
    return AsyncMock()


@pytest.fixture
def services(db, product_client, identity_client, file_storage, tmp_path):
    return build_services(
        db,
        identity_client=identity_client,
        product_client=product_client,
        file_storage=file_storage,
        uploads_dir=str(tmp_path / "uploads"),
    )


def insert_user(db, username="author", role="user", status="active", **extra):
    """Insert a user document directly, bypassing registration."""
    now = datetime.now(timezone.utc)
    user = {
        "user_id": new_id("user"),
        "username": username,
        "email": f"{username}@example.com",
        "hashed_password": "x",
        "display_name": username.title(),
        "avatar": None,
        "role": role,
        "status": status,
        "post_count": 0,
        "follower_count": 0,
        "created_at": now,
        "updated_at": now,
        **extra,
    }
    db["users"].docs.append(user)
    return copy.deepcopy(user)


def insert_post(db, category_id, author_id, slug, tag_ids=(), status="published", **extra):
    """Insert a post document directly, without touching any counter."""
    now = datetime.now(timezone.utc)
    post = {
        "post_id": new_id("post"),
        "title": slug.replace("-", " ").title(),
        "slug": slug,
        "content": "<p>Body</p>",
        "category_id": category_id,
        "tag_ids": list(tag_ids),
        "author_id": author_id,
        "related_products": [],
        "status": status,
        "view_count": 0,
        "like_count": 0,
        "comment_count": 0,
        "is_featured": False,
        "is_sticky": False,
        "published_at": now if status == "published" else None,
        "seo_keywords": [],
        "created_at": now,
        "updated_at": now,
        **extra,
    }
    db["posts"].docs.append(post)
    return copy.deepcopy(post)
