"""Visibility and access control utilities for blogs."""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import and_

from .. import models

if TYPE_CHECKING:
    from sqlalchemy.sql.elements import ColumnElement


def published_filter() -> "ColumnElement[bool]":
    """SQL condition for blogs anyone may see."""
    return and_(models.Blog.status == "published", models.Blog.is_public == True)


def can_view_blog(blog: models.Blog, user: models.User | None) -> bool:
    """
    Check if a user can see a blog.

    Access is allowed if:
    - Blog is published and public, OR
    - User is the blog's author, OR
    - User is an admin

    Args:
        blog: The blog to check access for
        user: The current user (None for anonymous users)

    Returns:
        True if access is allowed, False otherwise
    """
    if blog.is_published:
        return True

    if user is None:
        return False

    return user.id == blog.author_id or user.is_admin
