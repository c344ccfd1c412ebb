"""Helpers for shaping raw MongoDB documents before they leave the service layer."""

from typing import Any, Dict, Iterable, List, Optional


def clean_document(doc: Optional[Dict[str, Any]], *hidden: str) -> Optional[Dict[str, Any]]:
    """Return a copy of `doc` without Mongo's `_id` and any `hidden` fields."""
    if doc is None:
        return None
    return {k: v for k, v in doc.items() if k != "_id" and k not in hidden}


def clean_documents(docs: Iterable[Dict[str, Any]], *hidden: str) -> List[Dict[str, Any]]:
    return [clean_document(doc, *hidden) for doc in docs]


def sort_direction(sort_order: str) -> int:
    """Map a `sort_order` string to a pymongo direction."""
    return -1 if (sort_order or "desc").lower() == "desc" else 1
