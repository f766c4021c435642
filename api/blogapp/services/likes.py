"""
Like toggling for blogs and comments.

Each like is one row guarded by a (target, user) unique constraint, so a user
appears at most once per target even when two requests race: the loser of the
race hits IntegrityError and is treated as already liked.
"""

from __future__ import annotations

import logging

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from .. import models

logger = logging.getLogger(__name__)


def _target_column(like_model):
    if like_model is models.BlogLike:
        return models.BlogLike.blog_id
    return models.CommentLike.comment_id


def count_likes(db: Session, like_model, target_id: int) -> int:
    column = _target_column(like_model)
    return db.query(func.count(like_model.id)).filter(column == target_id).scalar() or 0


def _remove_like(db: Session, like_model, target_id: int, user_id: int) -> bool:
    column = _target_column(like_model)
    removed = (
        db.query(like_model)
        .filter(column == target_id, like_model.user_id == user_id)
        .delete(synchronize_session=False)
    )
    db.commit()
    return removed > 0


def _add_like(db: Session, like_model, target_id: int, user_id: int) -> None:
    column = _target_column(like_model)
    db.add(like_model(**{column.key: target_id, "user_id": user_id}))
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        logger.info(
            "Duplicate %s for target %s by user %s ignored", like_model.__tablename__, target_id, user_id
        )


def toggle_like(db: Session, like_model, target_id: int, user_id: int) -> tuple[bool, int]:
    """
    Like the target if the user has not liked it yet, otherwise unlike it.

    Returns:
        Tuple of (is_liked after the toggle, like count after the toggle)
    """
    if _remove_like(db, like_model, target_id, user_id):
        is_liked = False
    else:
        _add_like(db, like_model, target_id, user_id)
        is_liked = True
    return is_liked, count_likes(db, like_model, target_id)


def remove_like(db: Session, like_model, target_id: int, user_id: int) -> tuple[bool, int]:
    """
    Unlike the target.

    Returns:
        Tuple of (whether a like was removed, like count afterwards)
    """
    removed = _remove_like(db, like_model, target_id, user_id)
    return removed, count_likes(db, like_model, target_id)


def liked_ids(db: Session, like_model, target_ids: list[int], user: models.User | None) -> set[int]:
    """Subset of ``target_ids`` the user has liked (empty for anonymous users)."""
    if user is None or not target_ids:
        return set()
    column = _target_column(like_model)
    rows = db.query(column).filter(column.in_(target_ids), like_model.user_id == user.id).all()
    return {row[0] for row in rows}


def like_counts(db: Session, like_model, target_ids: list[int]) -> dict[int, int]:
    """Like count per target id in one GROUP BY query."""
    if not target_ids:
        return {}
    column = _target_column(like_model)
    rows = (
        db.query(column, func.count(like_model.id))
        .filter(column.in_(target_ids))
        .group_by(column)
        .all()
    )
    return {target_id: count for target_id, count in rows}
