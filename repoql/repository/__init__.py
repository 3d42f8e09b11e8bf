"""Repository base class and pagination models."""

from .base import RecordNotFoundError, Repository
from .pagination import Page, QueryStrings, SimplePage

__all__ = ["Page", "QueryStrings", "RecordNotFoundError", "Repository", "SimplePage"]
