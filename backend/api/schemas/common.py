"""Common schemas used across the API."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class PaginationParams(BaseModel):
    """Pagination parameters for list endpoints."""

    page: int = Field(default=1, ge=1, description="Page number (1-indexed)")
    per_page: int = Field(
        default=20, ge=1, le=100, description="Items per page (max 100)"
    )

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.per_page


class ApiResponse(BaseModel, Generic[T]):
    """Success envelope returned by every endpoint."""

    success: bool = True
    data: Optional[T] = None


class ErrorResponse(BaseModel):
    """Error envelope rendered by the exception handlers."""

    success: bool = False
    error: str = Field(description="Human-readable error message")
    request_id: Optional[str] = None


class Page(BaseModel, Generic[T]):
    """A page of items with the unpaginated total."""

    items: list[T]
    total: int
    page: int
    per_page: int
