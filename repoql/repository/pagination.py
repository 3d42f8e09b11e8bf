"""Pagination result models."""

from math import ceil
from typing import Any

from pydantic import BaseModel, Field, computed_field


class QueryStrings(BaseModel):
    """The raw query strings a page was built from, for follow-up links."""

    search: str | None = None
    filter: str | None = None
    sort: str | None = None


class Page(BaseModel):
    """A page of rows with a total count."""

    items: list[dict[str, Any]] = Field(default_factory=list)
    total: int = Field(..., ge=0)
    per_page: int = Field(..., ge=1)
    current_page: int = Field(..., ge=1)
    query: QueryStrings = Field(default_factory=QueryStrings)

    @computed_field
    @property
    def last_page(self) -> int:
        return max(1, ceil(self.total / self.per_page))


class SimplePage(BaseModel):
    """A page of rows without a total count."""

    items: list[dict[str, Any]] = Field(default_factory=list)
    per_page: int = Field(..., ge=1)
    current_page: int = Field(..., ge=1)
    has_more: bool = False
    query: QueryStrings = Field(default_factory=QueryStrings)
