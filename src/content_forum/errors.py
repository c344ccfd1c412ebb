"""
# Domain Errors

Typed failures raised by the service layer and translated to HTTP responses at the edge.

## Taxonomy

| Error               | HTTP | Raised when                                              |
|---------------------|------|----------------------------------------------------------|
| `ValidationError`   | 400  | Malformed slug, bad identifier, invalid field            |
| `UnauthorizedError` | 401  | Missing/invalid credentials, identity resolution failure |
| `ForbiddenError`    | 403  | Ownership or role mismatch                               |
| `NotFoundError`     | 404  | Referenced entity does not exist                         |
| `ConflictError`     | 409  | Duplicate slug or unique field                           |
| `UpstreamError`     | 502  | External collaborator unavailable or rejecting           |

Every error renders as:

```json
{"error": {"code": "NOT_FOUND", "message": "Post not found", "details": {}}}
```
"""

from typing import Any, Dict, Optional

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from content_forum.managers.logging_manager import get_logger

logger = get_logger(prefix="[Errors]")


class ForumError(Exception):
    """Base class for all domain errors."""

    status_code = 500
    code = "INTERNAL_ERROR"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"error": {"code": self.code, "message": self.message, "details": self.details}}


class ValidationError(ForumError):
    status_code = 400
    code = "VALIDATION_ERROR"


class UnauthorizedError(ForumError):
    status_code = 401
    code = "UNAUTHORIZED"


class ForbiddenError(ForumError):
    status_code = 403
    code = "FORBIDDEN"


class NotFoundError(ForumError):
    status_code = 404
    code = "NOT_FOUND"


class ConflictError(ForumError):
    status_code = 409
    code = "CONFLICT"


class UpstreamError(ForumError):
    status_code = 502
    code = "UPSTREAM_ERROR"


async def forum_error_handler(request: Request, exc: ForumError) -> JSONResponse:
    """Render a `ForumError` as its JSON error envelope."""
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)
    else:
        logger.info("%s on %s %s: %s", exc.code, request.method, request.url.path, exc.message)

    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, UnauthorizedError) else None
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict(), headers=headers)


def register_exception_handlers(app: FastAPI) -> None:
    """Attach the domain error handler to the application."""
    app.add_exception_handler(ForumError, forum_error_handler)
