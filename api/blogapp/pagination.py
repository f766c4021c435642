"""Page/limit pagination helpers shared by the list endpoints."""

from __future__ import annotations

import math
from typing import Any

from fastapi import Query

from . import settings
from .models import MAX_ID


class PageParams:
    """
    Dependency that reads ``?page=`` and ``?limit=`` from the query string.

    Subclasses set the default limit per resource; the upper bound always
    comes from MAX_PAGE_SIZE.
    """

    default_limit: int = settings.BLOG_PAGE_SIZE

    def __init__(
        self,
        page: int = Query(1, ge=1, le=MAX_ID),
        limit: int | None = Query(None, ge=1, le=settings.MAX_PAGE_SIZE),
    ) -> None:
        self.page = page
        self.limit = limit if limit is not None else self.default_limit

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit


class BlogPageParams(PageParams):
    default_limit = settings.BLOG_PAGE_SIZE


class CommentPageParams(PageParams):
    default_limit = settings.COMMENT_PAGE_SIZE


class UserPageParams(PageParams):
    default_limit = settings.USER_PAGE_SIZE


def paginate(query, params: PageParams) -> tuple[list[Any], int]:
    """
    Apply offset/limit to a SQLAlchemy query.

    Returns (items, total) where total counts the unpaginated query.
    The query must already carry its ORDER BY.
    """
    total = query.order_by(None).count()
    items = query.offset(params.offset).limit(params.limit).all()
    return items, total


def pagination_fields(params: PageParams, total: int) -> dict[str, Any]:
    """
    Build the shared pagination fields.

    Example:
        pagination_fields(PageParams(page=2, limit=10), 35)
        # {"current_page": 2, "total_pages": 4, "has_next": True, "has_prev": True}
    """
    return {
        "current_page": params.page,
        "total_pages": math.ceil(total / params.limit) if total else 0,
        "has_next": params.page * params.limit < total,
        "has_prev": params.page > 1,
    }
