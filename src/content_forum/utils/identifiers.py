"""
Entity identifier generation and normalization.

Identifiers are opaque prefixed strings such as `post_3f9c0a1b2c4d5e6f`. Every id that
enters the service layer passes through `normalize_id`, the single place where untrusted
identifier input is accepted or rejected.
"""

import re
from typing import Any
from uuid import uuid4

from content_forum.errors import ValidationError

ID_KINDS = ("category", "tag", "post", "comment", "user", "banner")

_ID_PATTERN = re.compile(r"^(?P<kind>[a-z]+)_(?P<hex>[0-9a-f]{16})$")


def new_id(kind: str) -> str:
    """Generate a fresh identifier for the given entity kind."""
    if kind not in ID_KINDS:
        raise ValueError(f"Unknown identifier kind: {kind}")
    return f"{kind}_{uuid4().hex[:16]}"


def is_valid_id(value: Any, kind: str) -> bool:
    if not isinstance(value, str):
        return False
    match = _ID_PATTERN.match(value.strip())
    return bool(match) and match.group("kind") == kind


def normalize_id(value: Any, kind: str, field: str = "id") -> str:
    """
    Normalize an incoming identifier to its canonical form.

    Only strings of the form `<kind>_<16 lowercase hex>` are accepted; surrounding
    whitespace is stripped. Anything else (objects, numbers, ids of another kind) is
    rejected.

    Args:
        value: Raw identifier from a request path, query or body.
        kind: Expected entity kind, e.g. `"post"`.
        field: Field name used in the error message.

    Returns:
        str: The canonical identifier.

    Raises:
        ValidationError: If the value is not a well-formed identifier of `kind`.
    """
    if not is_valid_id(value, kind):
        raise ValidationError(f"Invalid {kind} ID", details={"field": field, "value": str(value)[:64]})
    return value.strip()
