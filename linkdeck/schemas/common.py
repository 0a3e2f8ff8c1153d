"""Response envelope and pagination schemas shared by every endpoint."""

import math
from typing import Generic, TypeVar

from pydantic import BaseModel

T = TypeVar("T")


class Envelope(BaseModel, Generic[T]):
    """Standard response wrapper. ``code`` 0 means success."""

    code: int = 0
    message: str = "success"
    data: T | None = None


class Page(BaseModel, Generic[T]):
    """Schema for a paginated list."""

    items: list[T]
    total: int
    page: int
    page_size: int
    total_page: int

    @classmethod
    def build(cls, items: list[T], total: int, page: int, page_size: int) -> "Page[T]":
        return cls(
            items=items,
            total=total,
            page=page,
            page_size=page_size,
            total_page=math.ceil(total / page_size) if total > 0 else 0,
        )


def ok(data: T | None = None, message: str = "success") -> Envelope[T]:
    """Wrap a payload in a success envelope."""
    return Envelope(data=data, message=message)
