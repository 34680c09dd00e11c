"""Pagination request/response models."""

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class PaginationParams(BaseModel):
    """Requested page window."""

    model_config = ConfigDict(extra="forbid")

    page: int | None = Field(None, ge=1)
    limit: int | None = Field(None, ge=1)
    sort: str | None = None
    order: Literal["asc", "desc"] | None = None


class PaginationState(BaseModel):
    """Cursor state derived from a single page response."""

    page: int
    limit: int
    total: int = 0
    has_more: bool = False


class PaginatedResult(BaseModel):
    data: list[Any] = Field(default_factory=list)
    pagination: PaginationState
