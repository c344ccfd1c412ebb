"""Pagination helpers producing the `{data, pagination}` list envelope."""

import math
from typing import Any, Dict, List, Tuple

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10
MAX_LIMIT = 100


def page_window(page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> Tuple[int, int, int]:
    """Clamp `page`/`limit` and return `(page, limit, skip)`."""
    page = max(1, int(page or DEFAULT_PAGE))
    limit = min(MAX_LIMIT, max(1, int(limit or DEFAULT_LIMIT)))
    return page, limit, (page - 1) * limit


def paginated(data: List[Any], page: int, limit: int, total: int) -> Dict[str, Any]:
    return {
        "data": data,
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "pages": math.ceil(total / limit) if limit else 0,
        },
    }
