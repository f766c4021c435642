"""User profile statistics: follow counts and per-author blog totals."""

from __future__ import annotations

from sqlalchemy import func
from sqlalchemy.orm import Session

from .. import models, schemas
from ..utils.visibility import published_filter
from .follows import following_ids


def annotate_users_with_follow_counts(
    db: Session,
    users: list[models.User],
    viewer: models.User | None = None,
) -> list[models.User]:
    """
    Add follower_count, following_count and is_following to users.

    is_following is relative to ``viewer`` and always False for anonymous viewers.
    """
    if not users:
        return users

    user_ids = [user.id for user in users]

    follower_rows = (
        db.query(models.Follow.following_id, func.count(models.Follow.id))
        .filter(models.Follow.following_id.in_(user_ids))
        .group_by(models.Follow.following_id)
        .all()
    )
    following_rows = (
        db.query(models.Follow.follower_id, func.count(models.Follow.id))
        .filter(models.Follow.follower_id.in_(user_ids))
        .group_by(models.Follow.follower_id)
        .all()
    )
    follower_map = {user_id: count for user_id, count in follower_rows}
    following_map = {user_id: count for user_id, count in following_rows}
    followed = following_ids(db, viewer, user_ids)

    for user in users:
        user.follower_count = follower_map.get(user.id, 0)
        user.following_count = following_map.get(user.id, 0)
        user.is_following = user.id in followed

    return users


def published_blog_count(db: Session, user_id: int) -> int:
    return (
        db.query(func.count(models.Blog.id))
        .filter(models.Blog.author_id == user_id, published_filter())
        .scalar()
        or 0
    )


def get_user_stats(db: Session, user_id: int) -> schemas.UserStats:
    """Totals across every blog the user has written, drafts included."""
    total_blogs, total_views = (
        db.query(func.count(models.Blog.id), func.coalesce(func.sum(models.Blog.views), 0))
        .filter(models.Blog.author_id == user_id)
        .one()
    )
    total_likes = (
        db.query(func.count(models.BlogLike.id))
        .join(models.Blog, models.Blog.id == models.BlogLike.blog_id)
        .filter(models.Blog.author_id == user_id)
        .scalar()
        or 0
    )

    return schemas.UserStats(
        total_blogs=total_blogs,
        published_blogs=published_blog_count(db, user_id),
        total_views=int(total_views),
        total_likes=total_likes,
    )
