"""User profile, search and follow endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, schemas
from ..auth import check_ownership, get_current_user, get_current_user_optional
from ..deps import ResourceId, get_db
from ..pagination import PageParams, UserPageParams, paginate, pagination_fields
from ..services.follows import followers_query, following_ids, following_query, toggle_follow
from ..services.user_stats import annotate_users_with_follow_counts, get_user_stats, published_blog_count

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/users", tags=["Users"])

# Follower/following cards embedded in a profile
PROFILE_FOLLOW_PREVIEW = 20


def _get_user_or_404(db: Session, user_id: int) -> models.User:
    user = db.query(models.User).filter(models.User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return user


def _apply_profile_update(user: models.User, payload: schemas.ProfileUpdate) -> None:
    data = payload.model_dump(exclude_unset=True)
    for field in ("first_name", "last_name", "bio", "avatar"):
        if field in data:
            setattr(user, field, data[field])
    if "social_links" in data:
        user.social_links = (
            payload.social_links.model_dump(mode="json", exclude_none=True) if payload.social_links else {}
        )


def _private_user(db: Session, user: models.User) -> schemas.UserPrivate:
    annotate_users_with_follow_counts(db, [user])
    return schemas.UserPrivate.model_validate(user)


def _follow_page(db: Session, query, params: PageParams, viewer: models.User | None):
    users, total = paginate(query, params)
    followed = following_ids(db, viewer, [u.id for u in users])
    items = []
    for user in users:
        item = schemas.FollowUser.model_validate(user)
        item.is_following = user.id in followed
        items.append(item)
    return items, total


@router.get("", response_model=schemas.UserListResponse)
def list_users(
    search: str | None = None,
    sort: str = Query("newest", pattern="^(newest|oldest|username)$"),
    params: PageParams = Depends(UserPageParams),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.UserListResponse:
    """
    Search active users by username or name.

    Sort options:
    - newest: Most recently joined first
    - oldest: Earliest members first
    - username: Alphabetical
    """
    query = db.query(models.User).filter(models.User.is_active == True)

    if search:
        query = query.filter(
            or_(
                models.User.username.icontains(search, autoescape=True),
                models.User.first_name.icontains(search, autoescape=True),
                models.User.last_name.icontains(search, autoescape=True),
            )
        )

    if sort == "username":
        query = query.order_by(models.User.username.asc())
    elif sort == "oldest":
        query = query.order_by(models.User.created_at.asc(), models.User.id.asc())
    else:  # newest
        query = query.order_by(models.User.created_at.desc(), models.User.id.desc())

    users, total = paginate(query, params)
    annotate_users_with_follow_counts(db, users, current_user)

    return schemas.UserListResponse(
        users=[schemas.UserListItem.model_validate(u) for u in users],
        pagination=schemas.UserPagination(total_users=total, **pagination_fields(params, total)),
    )


@router.put("/profile", response_model=schemas.UserMutation)
def update_own_profile(
    payload: schemas.ProfileUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.UserMutation:
    """Update the current user's profile."""
    _apply_profile_update(current_user, payload)
    db.commit()
    db.refresh(current_user)

    return schemas.UserMutation(
        message="Profile updated successfully",
        user=_private_user(db, current_user),
    )


@router.get("/{user_id}", response_model=schemas.UserEnvelope)
def get_user(
    user_id: ResourceId,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.UserEnvelope:
    """
    Get a user's public profile.

    Includes published blog count, follow counts and the most recent
    followers and followed users.
    """
    user = _get_user_or_404(db, user_id)
    annotate_users_with_follow_counts(db, [user], current_user)
    user.blog_count = published_blog_count(db, user.id)

    followers = followers_query(db, user.id).limit(PROFILE_FOLLOW_PREVIEW).all()
    following = following_query(db, user.id).limit(PROFILE_FOLLOW_PREVIEW).all()

    profile = schemas.UserProfile.model_validate(user)
    profile.followers = [schemas.UserSummary.model_validate(u) for u in followers]
    profile.following = [schemas.UserSummary.model_validate(u) for u in following]

    return schemas.UserEnvelope(user=profile)


@router.put("/{user_id}", response_model=schemas.UserMutation)
def update_user(
    user_id: ResourceId,
    payload: schemas.AdminUserUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.UserMutation:
    """
    Update a user (self or admin).

    Role and active status can only be changed by admins.
    """
    user = _get_user_or_404(db, user_id)
    if not check_ownership(user.id, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to update this user",
        )

    data = payload.model_dump(exclude_unset=True)
    account_fields = {f for f in ("role", "is_active") if data.get(f) is not None}
    if account_fields and not current_user.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins can change role or active status",
        )

    _apply_profile_update(user, payload)
    for field in account_fields:
        setattr(user, field, data[field])
    db.commit()
    db.refresh(user)

    if account_fields:
        logger.info("Admin %s changed %s on user %s", current_user.id, sorted(account_fields), user.id)

    return schemas.UserMutation(
        message="User updated successfully",
        user=_private_user(db, user),
    )


@router.post("/{user_id}/follow", response_model=schemas.FollowResponse)
def follow_user(
    user_id: ResourceId,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.FollowResponse:
    """Follow the user, or unfollow if already following."""
    if user_id == current_user.id:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="You cannot follow yourself")

    target = _get_user_or_404(db, user_id)
    now_following = toggle_follow(db, current_user.id, target.id)

    return schemas.FollowResponse(
        message="User followed" if now_following else "User unfollowed",
        is_following=now_following,
    )


@router.get("/{user_id}/followers", response_model=schemas.FollowersResponse)
def list_followers(
    user_id: ResourceId,
    params: PageParams = Depends(UserPageParams),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.FollowersResponse:
    """Users following this user, most recent first."""
    user = _get_user_or_404(db, user_id)
    items, total = _follow_page(db, followers_query(db, user.id), params, current_user)

    return schemas.FollowersResponse(
        followers=items,
        pagination=schemas.FollowerPagination(total_followers=total, **pagination_fields(params, total)),
    )


@router.get("/{user_id}/following", response_model=schemas.FollowingResponse)
def list_following(
    user_id: ResourceId,
    params: PageParams = Depends(UserPageParams),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.FollowingResponse:
    """Users this user follows, most recent first."""
    user = _get_user_or_404(db, user_id)
    items, total = _follow_page(db, following_query(db, user.id), params, current_user)

    return schemas.FollowingResponse(
        following=items,
        pagination=schemas.FollowingPagination(total_following=total, **pagination_fields(params, total)),
    )


@router.get("/{user_id}/stats", response_model=schemas.UserStatsResponse)
def get_stats(user_id: ResourceId, db: Session = Depends(get_db)) -> schemas.UserStatsResponse:
    """Blog, view and like totals for a user."""
    user = _get_user_or_404(db, user_id)
    return schemas.UserStatsResponse(stats=get_user_stats(db, user.id))
