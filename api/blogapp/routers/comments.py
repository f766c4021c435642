"""Comment endpoints: threads, authoring, soft delete and likes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..auth import check_ownership, get_current_user, get_current_user_optional
from ..deps import ResourceId, get_db
from ..models import utcnow
from ..pagination import CommentPageParams, PageParams, paginate, pagination_fields
from ..services.blog_stats import annotate_comments_with_likes
from ..services.likes import toggle_like
from ..utils.visibility import can_view_blog, published_filter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/comments", tags=["Comments"])


def _get_visible_blog_or_404(db: Session, blog_id: int, user: models.User | None) -> models.Blog:
    blog = db.query(models.Blog).filter(models.Blog.id == blog_id).first()
    if not blog or not can_view_blog(blog, user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return blog


def _get_comment_or_404(db: Session, comment_id: int) -> models.Comment:
    comment = (
        db.query(models.Comment)
        .options(joinedload(models.Comment.author))
        .filter(models.Comment.id == comment_id, models.Comment.is_deleted == False)
        .first()
    )
    if not comment:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Comment not found")
    return comment


def _comment_out(db: Session, comment: models.Comment, viewer: models.User | None) -> schemas.Comment:
    annotate_comments_with_likes(db, [comment], viewer)
    return schemas.Comment.model_validate(comment)


@router.get("/blog/{blog_id}", response_model=schemas.CommentListResponse)
def list_blog_comments(
    blog_id: ResourceId,
    params: PageParams = Depends(CommentPageParams),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.CommentListResponse:
    """
    List top-level comments on a blog, newest first.

    Each comment carries its direct replies, oldest first. Deleted comments
    and deleted replies are left out.
    """
    blog = _get_visible_blog_or_404(db, blog_id, current_user)

    query = (
        db.query(models.Comment)
        .options(joinedload(models.Comment.author))
        .filter(
            models.Comment.blog_id == blog.id,
            models.Comment.parent_id.is_(None),
            models.Comment.is_deleted == False,
        )
        .order_by(models.Comment.created_at.desc(), models.Comment.id.desc())
    )
    comments, total = paginate(query, params)

    replies: list[models.Comment] = []
    if comments:
        replies = (
            db.query(models.Comment)
            .options(joinedload(models.Comment.author))
            .filter(
                models.Comment.parent_id.in_([c.id for c in comments]),
                models.Comment.is_deleted == False,
            )
            .order_by(models.Comment.created_at.asc(), models.Comment.id.asc())
            .all()
        )
    annotate_comments_with_likes(db, comments + replies, current_user)

    replies_by_parent: dict[int, list[schemas.Comment]] = {}
    for reply in replies:
        replies_by_parent.setdefault(reply.parent_id, []).append(schemas.Comment.model_validate(reply))

    threads = [
        schemas.ThreadComment(
            **schemas.Comment.model_validate(c).model_dump(),
            replies=replies_by_parent.get(c.id, []),
        )
        for c in comments
    ]

    return schemas.CommentListResponse(
        comments=threads,
        pagination=schemas.CommentPagination(total_comments=total, **pagination_fields(params, total)),
    )


@router.get("/user/{user_id}", response_model=schemas.UserCommentListResponse)
def list_user_comments(
    user_id: ResourceId,
    params: PageParams = Depends(CommentPageParams),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.UserCommentListResponse:
    """
    List a user's comments, newest first, with the blog each belongs to.

    Comments on blogs the viewer cannot see are left out.
    """
    if not db.query(models.User.id).filter(models.User.id == user_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    query = (
        db.query(models.Comment)
        .join(models.Blog, models.Blog.id == models.Comment.blog_id)
        .options(joinedload(models.Comment.author), joinedload(models.Comment.blog))
        .filter(models.Comment.author_id == user_id, models.Comment.is_deleted == False)
    )
    if current_user is None or not (current_user.id == user_id or current_user.is_admin):
        query = query.filter(published_filter())
    query = query.order_by(models.Comment.created_at.desc(), models.Comment.id.desc())

    comments, total = paginate(query, params)
    annotate_comments_with_likes(db, comments, current_user)

    return schemas.UserCommentListResponse(
        comments=[schemas.UserComment.model_validate(c) for c in comments],
        pagination=schemas.CommentPagination(total_comments=total, **pagination_fields(params, total)),
    )


@router.post("", response_model=schemas.CommentMutation, status_code=status.HTTP_201_CREATED)
def create_comment(
    payload: schemas.CommentCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.CommentMutation:
    """
    Comment on a blog, or reply to a top-level comment.

    Replies only go one level deep: replying to a reply is rejected.
    """
    blog = _get_visible_blog_or_404(db, payload.blog_id, current_user)

    if payload.parent_comment_id is not None:
        parent = (
            db.query(models.Comment)
            .filter(
                models.Comment.id == payload.parent_comment_id,
                models.Comment.is_deleted == False,
            )
            .first()
        )
        if not parent:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Parent comment not found")
        if parent.blog_id != blog.id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Parent comment belongs to a different blog",
            )
        if parent.parent_id is not None:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot reply to a reply",
            )

    comment = models.Comment(
        blog_id=blog.id,
        author_id=current_user.id,
        parent_id=payload.parent_comment_id,
        content=payload.content,
    )
    db.add(comment)
    db.commit()

    comment = _get_comment_or_404(db, comment.id)
    logger.info("User %s commented on blog %s", current_user.id, blog.id)

    return schemas.CommentMutation(
        message="Comment added successfully",
        comment=_comment_out(db, comment, current_user),
    )


@router.put("/{comment_id}", response_model=schemas.CommentMutation)
def update_comment(
    comment_id: ResourceId,
    payload: schemas.CommentUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.CommentMutation:
    """Edit a comment. Only its author may do this, admins included."""
    comment = _get_comment_or_404(db, comment_id)
    if comment.author_id != current_user.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to update this comment",
        )

    comment.content = payload.content
    comment.is_edited = True
    comment.edited_at = utcnow()
    db.commit()

    comment = _get_comment_or_404(db, comment_id)
    return schemas.CommentMutation(
        message="Comment updated successfully",
        comment=_comment_out(db, comment, current_user),
    )


@router.delete("/{comment_id}", response_model=schemas.MessageResponse)
def delete_comment(
    comment_id: ResourceId,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.MessageResponse:
    """Soft delete a comment (author or admin)."""
    comment = _get_comment_or_404(db, comment_id)
    if not check_ownership(comment.author_id, current_user):
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to delete this comment",
        )

    comment.is_deleted = True
    comment.deleted_at = utcnow()
    db.commit()
    logger.info("User %s deleted comment %s", current_user.id, comment_id)

    return schemas.MessageResponse(message="Comment deleted successfully")


@router.post("/{comment_id}/like", response_model=schemas.LikeResponse)
def like_comment(
    comment_id: ResourceId,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.LikeResponse:
    """Like the comment, or unlike it if already liked."""
    comment = _get_comment_or_404(db, comment_id)
    _get_visible_blog_or_404(db, comment.blog_id, current_user)

    is_liked, like_count = toggle_like(db, models.CommentLike, comment.id, current_user.id)

    return schemas.LikeResponse(
        message="Comment liked" if is_liked else "Comment unliked",
        like_count=like_count,
        is_liked=is_liked,
    )
