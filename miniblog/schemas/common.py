"""
Mini-Blog Backend — Shared Response Schemas
=============================================

What:  The response envelope every endpoint returns, and the pagination block.
How:   All API models inherit CamelModel: fields are snake_case in Python and
       camelCase on the wire (createdAt, rePosts, totalPages, ...). Request
       bodies accept either spelling.

Envelope:
    {
        "success": true,
        "message": "Posts retrieved successfully",
        "data": [...],
        "pagination": {"page": 1, "limit": 10, "total": 25,
                       "totalPages": 3, "hasNext": true, "hasPrev": false}
    }

Errors use the same outer shape with success=false and an optional
errors=[{field, message}] list.
"""

from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from miniblog.services.pagination import PageWindow

T = TypeVar("T")


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class PaginationMeta(CamelModel):
    page: int = Field(description="Current page (1-based)")
    limit: int = Field(description="Items per page after clamping")
    total: int = Field(description="Total matching items")
    total_pages: int = Field(description="ceil(total / limit)")
    has_next: bool
    has_prev: bool

    @classmethod
    def from_window(cls, window: PageWindow) -> "PaginationMeta":
        return cls(
            page=window.page,
            limit=window.limit,
            total=window.total,
            total_pages=window.total_pages,
            has_next=window.has_next,
            has_prev=window.has_prev,
        )


class ApiResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str
    data: Optional[T] = None


class PaginatedResponse(CamelModel, Generic[T]):
    success: bool = True
    message: str
    data: List[T]
    pagination: PaginationMeta


class FieldError(CamelModel):
    field: str
    message: str


class ErrorResponse(CamelModel):
    """
    Error envelope. `stack` is only populated outside production;
    `request_id` correlates the response with server logs.
    """
    success: bool = False
    message: str
    errors: Optional[List[FieldError]] = None
    request_id: Optional[str] = None
    stack: Optional[str] = None


class HealthResponse(CamelModel):
    success: bool = True
    status: str = Field(description="healthy or unhealthy")
    version: str
    database: str = Field(description="connected or disconnected")
    uptime_seconds: float
