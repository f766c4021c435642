"""
Follow relationships between users.

A single Follow row backs both sides of the relationship: A in B's followers
and B in A's following. Toggling inserts or deletes that one row inside one
transaction, so the two views can never disagree.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Query, Session

from .. import models

logger = logging.getLogger(__name__)


def toggle_follow(db: Session, follower_id: int, following_id: int) -> bool:
    """
    Follow ``following_id`` if not already following, otherwise unfollow.

    Returns:
        True if the follower now follows the target, False otherwise
    """
    removed = (
        db.query(models.Follow)
        .filter(
            models.Follow.follower_id == follower_id,
            models.Follow.following_id == following_id,
        )
        .delete(synchronize_session=False)
    )
    if removed:
        db.commit()
        logger.info("User %s unfollowed user %s", follower_id, following_id)
        return False

    db.add(models.Follow(follower_id=follower_id, following_id=following_id))
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request created the same row
        db.rollback()
    logger.info("User %s followed user %s", follower_id, following_id)
    return True


def followers_query(db: Session, user_id: int) -> Query:
    """Users following ``user_id``, most recent follow first."""
    return (
        db.query(models.User)
        .join(models.Follow, models.Follow.follower_id == models.User.id)
        .filter(models.Follow.following_id == user_id)
        .order_by(models.Follow.created_at.desc(), models.Follow.id.desc())
    )


def following_query(db: Session, user_id: int) -> Query:
    """Users ``user_id`` follows, most recent follow first."""
    return (
        db.query(models.User)
        .join(models.Follow, models.Follow.following_id == models.User.id)
        .filter(models.Follow.follower_id == user_id)
        .order_by(models.Follow.created_at.desc(), models.Follow.id.desc())
    )


def following_ids(db: Session, follower: models.User | None, candidate_ids: list[int]) -> set[int]:
    """Subset of ``candidate_ids`` that ``follower`` follows (empty for anonymous users)."""
    if follower is None or not candidate_ids:
        return set()
    rows = (
        db.query(models.Follow.following_id)
        .filter(
            models.Follow.follower_id == follower.id,
            models.Follow.following_id.in_(candidate_ids),
        )
        .all()
    )
    return {row[0] for row in rows}
