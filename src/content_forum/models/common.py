"""Shared response envelopes."""

from typing import Any, Dict, Generic, List, TypeVar

from pydantic import BaseModel, ConfigDict

T = TypeVar("T")


class PaginationMeta(BaseModel):
    """
    Standard pagination metadata.

    Included in all paginated list responses; `pages` is `ceil(total / limit)`.
    """

    page: int
    limit: int
    total: int
    pages: int


class Paginated(BaseModel, Generic[T]):
    data: List[T]
    pagination: PaginationMeta


class MessageResponse(BaseModel):
    message: str


class ErrorResponse(BaseModel):
    """
    Standard error response returned for every domain failure.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "error": {
                    "code": "NOT_FOUND",
                    "message": "Post not found",
                    "details": {},
                }
            }
        }
    )

    error: Dict[str, Any]
