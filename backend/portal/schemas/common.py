"""Common schemas used across the application."""

from typing import Generic, TypeVar
from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Response envelope shared by every API endpoint.

    Usage:
        response_model=Envelope[UserProfile]

    Returns:
        {
            "success": true,
            "data": {...},
            "message": "Profile updated"
        }
    """
    success: bool = True
    data: T | None = None
    message: str | None = None


class PaginatedResponse(BaseModel, Generic[T]):
    """Generic paginated response wrapper.

    Returns:
        {
            "items": [...],
            "total": 150,
            "limit": 10,
            "offset": 0
        }
    """
    items: list[T]
    total: int
    limit: int
    offset: int

    @property
    def has_more(self) -> bool:
        return self.offset + len(self.items) < self.total
