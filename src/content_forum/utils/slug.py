"""
# Slug Generation and Validation

Slugs are the URL-safe, lowercase, hyphenated identifiers used in public URLs.

## Two Kinds of Slugs

- **Derived slugs** (categories, tags, banners): produced from a name with `slugify()`.
  Uniqueness is resolved either by rejecting duplicates (categories, tags) or by appending a
  numeric suffix `-1`, `-2`, ... (banners) via `generate_unique_slug()`.
- **Supplied slugs** (posts): chosen by the author and checked by `validate_post_slug()`
  against the length window and pattern below.

## Post Slug Rules

- Length between 3 and 100 characters.
- Pattern `^[a-z0-9]+(?:-[a-z0-9]+)*$`: lowercase letters, digits and single hyphens, never
  leading or trailing.

```python
slugify("Tech News")                 # "tech-news"
validate_post_slug("  My-Post ")     # "my-post"
validate_post_slug("ab")             # ValidationError: too short
```
"""

import re
import unicodedata
from typing import Any, List, Optional

from content_forum.config import settings
from content_forum.errors import ConflictError, ValidationError
from content_forum.managers.logging_manager import get_logger

logger = get_logger(prefix="[Slug]")

SLUG_MIN_LENGTH = 3
SLUG_MAX_LENGTH = 100
SLUG_PATTERN = re.compile(r"^[a-z0-9]+(?:-[a-z0-9]+)*$")

MSG_TOO_SHORT = "Slug must be at least 3 characters long"
MSG_TOO_LONG = "Slug is too long (maximum 100 characters allowed)"
MSG_BAD_CHARS = "Slug can only contain lowercase letters, numbers, and hyphens"

# Letters that NFKD does not decompose into an ASCII base.
_TRANSLITERATIONS = str.maketrans({"đ": "d", "Đ": "D", "ø": "o", "Ø": "O", "ß": "ss", "æ": "ae", "Æ": "AE"})


def slugify(text: str) -> str:
    """
    Turn free text into a URL-safe slug.

    Accents are stripped, everything is lowercased and each run of characters outside
    `[a-z0-9]` collapses into a single hyphen.
    """
    if not text:
        return ""
    value = text.translate(_TRANSLITERATIONS)
    value = unicodedata.normalize("NFKD", value).encode("ascii", "ignore").decode("ascii")
    value = re.sub(r"[^a-z0-9]+", "-", value.lower())
    return value.strip("-")


def normalize_slug(slug: str) -> str:
    return (slug or "").strip().lower()


def slug_error(slug: str) -> Optional[str]:
    """Return the first rule a (normalized) slug violates, or `None` if it is valid."""
    if len(slug) < SLUG_MIN_LENGTH:
        return MSG_TOO_SHORT
    if len(slug) > SLUG_MAX_LENGTH:
        return MSG_TOO_LONG
    if not SLUG_PATTERN.match(slug):
        return MSG_BAD_CHARS
    return None


def validate_post_slug(slug: str) -> str:
    """
    Normalize and validate a caller-supplied post slug.

    Args:
        slug: Raw slug from the request.

    Returns:
        str: The normalized slug.

    Raises:
        ValidationError: Naming the violated rule (too short, too long, bad characters).
    """
    normalized = normalize_slug(slug)
    error = slug_error(normalized)
    if error:
        raise ValidationError(error, details={"field": "slug", "value": normalized})
    return normalized


def sanitize_slug(slug: str) -> str:
    """Lowercase and drop every character outside `[a-z0-9-]`."""
    return re.sub(r"[^a-z0-9-]", "", (slug or "").lower())


def slug_suggestions(slug: str, year: int) -> List[str]:
    """Candidate alternatives for a taken slug, in preference order.

    Long slugs are cut back so that each candidate, suffix included, still fits
    `SLUG_MAX_LENGTH`.
    """
    candidates = []
    for suffix in [f"-{year}"] + [f"-{i}" for i in range(1, 6)] + ["-new"]:
        base = slug[: SLUG_MAX_LENGTH - len(suffix)].rstrip("-")
        candidates.append(f"{base}{suffix}")
    return [c for c in candidates if slug_error(c) is None]


async def generate_unique_slug(
    collection: Any,
    base_slug: str,
    id_field: Optional[str] = None,
    exclude_id: Optional[str] = None,
    max_attempts: Optional[int] = None,
) -> str:
    """
    Find a free slug in `collection`, appending `-1`, `-2`, ... on collision.

    Args:
        collection: Motor collection holding documents with a `slug` field.
        base_slug: Preferred slug.
        id_field: Identifier field of the collection, used with `exclude_id`.
        exclude_id: Document allowed to keep the slug (the one being updated).
        max_attempts: Upper bound on candidates tried. Defaults to `SLUG_MAX_ATTEMPTS`.

    Returns:
        str: The first candidate not used by another document.

    Raises:
        ValidationError: If `base_slug` is empty.
        ConflictError: If every candidate within `max_attempts` is taken.
    """
    if not base_slug:
        raise ValidationError("Cannot derive a slug from an empty name", details={"field": "slug"})

    limit = max_attempts or settings.SLUG_MAX_ATTEMPTS
    candidate = base_slug
    for attempt in range(limit):
        query = {"slug": candidate}
        if id_field and exclude_id:
            query[id_field] = {"$ne": exclude_id}
        if not await collection.find_one(query):
            if attempt:
                logger.debug("Resolved slug collision for '%s' as '%s'", base_slug, candidate)
            return candidate
        candidate = f"{base_slug}-{attempt + 1}"

    logger.warning("Slug space exhausted for '%s' after %d attempts", base_slug, limit)
    raise ConflictError(
        "Could not find a free slug, please choose a different name",
        details={"slug": base_slug, "attempts": limit},
    )
