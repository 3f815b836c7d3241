"""Shared response envelopes."""

from typing import Generic, TypeVar

from pydantic import BaseModel, Field

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    """Uniform envelope returned by every debt, user and report endpoint."""

    success: bool = True
    message: str = ""
    data: T | None = None
    errors: list[str] = Field(default_factory=list)

    @classmethod
    def ok(cls, data: T | None = None, message: str = "") -> "ApiResponse[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(cls, message: str, errors: list[str] | None = None) -> "ApiResponse[T]":
        return cls(success=False, message=message, errors=errors or [])


class PaginatedResult(BaseModel, Generic[T]):
    """One page of a filtered listing plus its paging metadata."""

    items: list[T]
    total_items: int
    page: int
    page_size: int
    total_pages: int
    has_next_page: bool
    has_previous_page: bool

    @classmethod
    def build(
        cls, items: list[T], total_items: int, page: int, page_size: int
    ) -> "PaginatedResult[T]":
        total_pages = -(-total_items // page_size) if page_size else 0
        return cls(
            items=items,
            total_items=total_items,
            page=page,
            page_size=page_size,
            total_pages=total_pages,
            has_next_page=page < total_pages,
            has_previous_page=page > 1,
        )
