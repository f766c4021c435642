"""
Blog and comment statistics for efficiently adding counts to list results.

Provides batch queries to add like_count, comment_count and is_liked to many
blogs (or comments) at once, instead of one query per item.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models
from .likes import like_counts, liked_ids

if TYPE_CHECKING:
    from ..models import Blog, Comment, User


def annotate_blogs_with_counts(
    db: Session,
    blogs: list["Blog"],
    viewer: "User | None" = None,
) -> list["Blog"]:
    """
    Add like_count, comment_count and is_liked to blogs.

    Only non-deleted comments are counted. is_liked is always False for
    anonymous viewers.

    Args:
        db: Database session
        blogs: List of Blog ORM objects to annotate
        viewer: The current user, if any

    Returns:
        Same list of blogs with the attributes added
    """
    if not blogs:
        return blogs

    blog_ids = [blog.id for blog in blogs]

    like_count_map = like_counts(db, models.BlogLike, blog_ids)
    liked = liked_ids(db, models.BlogLike, blog_ids, viewer)

    comment_counts = (
        db.query(models.Comment.blog_id, func.count(models.Comment.id))
        .filter(
            models.Comment.blog_id.in_(blog_ids),
            models.Comment.is_deleted == False,
        )
        .group_by(models.Comment.blog_id)
        .all()
    )
    comment_count_map = {blog_id: count for blog_id, count in comment_counts}

    for blog in blogs:
        blog.like_count = like_count_map.get(blog.id, 0)
        blog.comment_count = comment_count_map.get(blog.id, 0)
        blog.is_liked = blog.id in liked

    return blogs


def annotate_comments_with_likes(
    db: Session,
    comments: list["Comment"],
    viewer: "User | None" = None,
) -> list["Comment"]:
    """Add like_count and is_liked to comments."""
    if not comments:
        return comments

    comment_ids = [comment.id for comment in comments]
    like_count_map = like_counts(db, models.CommentLike, comment_ids)
    liked = liked_ids(db, models.CommentLike, comment_ids, viewer)

    for comment in comments:
        comment.like_count = like_count_map.get(comment.id, 0)
        comment.is_liked = comment.id in liked

    return comments
