"""Blog management endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload, selectinload

from .. import models, schemas
from ..auth import get_current_user, get_current_user_optional, require_ownership
from ..deps import ResourceId, get_db
from ..pagination import BlogPageParams, PageParams, paginate, pagination_fields
from ..services.blog_content import set_blog_content
from ..services.blog_stats import annotate_blogs_with_counts, annotate_comments_with_likes
from ..services.likes import remove_like, toggle_like
from ..utils.visibility import can_view_blog, published_filter

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/blogs", tags=["Blogs"])


def _blog_query(db: Session):
    return db.query(models.Blog).options(
        joinedload(models.Blog.author),
        selectinload(models.Blog.tag_rows),
    )


def _get_blog_or_404(db: Session, blog_id: int) -> models.Blog:
    blog = _blog_query(db).filter(models.Blog.id == blog_id).first()
    if not blog:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return blog


def _get_visible_blog_or_404(db: Session, blog_id: int, user: models.User | None) -> models.Blog:
    # Hidden blogs are reported as missing rather than forbidden
    blog = _get_blog_or_404(db, blog_id)
    if not can_view_blog(blog, user):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Blog not found")
    return blog


def _seo_document(seo: schemas.SeoFields | None) -> dict | None:
    if seo is None:
        return None
    return seo.model_dump(by_alias=True)


def _blog_list_response(
    db: Session,
    query,
    params: PageParams,
    viewer: models.User | None,
) -> schemas.BlogListResponse:
    blogs, total = paginate(query, params)
    annotate_blogs_with_counts(db, blogs, viewer)
    return schemas.BlogListResponse(
        blogs=[schemas.Blog.model_validate(b) for b in blogs],
        pagination=schemas.BlogPagination(total_blogs=total, **pagination_fields(params, total)),
    )


@router.get("", response_model=schemas.BlogListResponse)
def list_blogs(
    category: str | None = None,
    tag: str | None = None,
    search: str | None = None,
    author: int | None = Query(None, ge=1, le=models.MAX_ID),
    sort: str = Query("newest", pattern="^(newest|oldest|popular|likes)$"),
    params: PageParams = Depends(BlogPageParams),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.BlogListResponse:
    """
    List published, public blogs with filters and sorting.

    Sort options:
    - newest: Most recently created first
    - oldest: Oldest first
    - popular: Most viewed first
    - likes: Most liked first
    """
    query = _blog_query(db).filter(published_filter())

    if category:
        query = query.filter(models.Blog.category == category)
    if tag:
        query = query.filter(models.Blog.tag_rows.any(models.BlogTag.tag == tag))
    if author:
        query = query.filter(models.Blog.author_id == author)
    if search:
        query = query.filter(
            or_(
                models.Blog.title.icontains(search, autoescape=True),
                models.Blog.content.icontains(search, autoescape=True),
                models.Blog.tag_rows.any(models.BlogTag.tag.icontains(search, autoescape=True)),
            )
        )

    if sort == "likes":
        like_counts = (
            db.query(
                models.BlogLike.blog_id,
                func.count(models.BlogLike.id).label("like_count"),
            )
            .group_by(models.BlogLike.blog_id)
            .subquery()
        )
        query = query.outerjoin(like_counts, models.Blog.id == like_counts.c.blog_id)
        query = query.order_by(
            func.coalesce(like_counts.c.like_count, 0).desc(),
            models.Blog.created_at.desc(),
            models.Blog.id.desc(),
        )
    elif sort == "popular":
        query = query.order_by(models.Blog.views.desc(), models.Blog.created_at.desc(), models.Blog.id.desc())
    elif sort == "oldest":
        query = query.order_by(models.Blog.created_at.asc(), models.Blog.id.asc())
    else:  # newest
        query = query.order_by(models.Blog.created_at.desc(), models.Blog.id.desc())

    return _blog_list_response(db, query, params, current_user)


@router.get("/categories", response_model=schemas.CategoriesResponse)
def list_categories(db: Session = Depends(get_db)) -> schemas.CategoriesResponse:
    """Categories that at least one blog uses."""
    rows = db.query(models.Blog.category).distinct().order_by(models.Blog.category).all()
    return schemas.CategoriesResponse(categories=[row[0] for row in rows])


@router.get("/tags", response_model=schemas.TagsResponse)
def list_tags(db: Session = Depends(get_db)) -> schemas.TagsResponse:
    """Tags that at least one blog uses."""
    rows = db.query(models.BlogTag.tag).distinct().order_by(models.BlogTag.tag).all()
    return schemas.TagsResponse(tags=[row[0] for row in rows])


@router.get("/user/{user_id}", response_model=schemas.BlogListResponse)
def list_user_blogs(
    user_id: ResourceId,
    params: PageParams = Depends(BlogPageParams),
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.BlogListResponse:
    """
    List blogs by one author, newest first.

    Authors viewing their own list also see drafts, archived and private blogs.
    """
    if not db.query(models.User.id).filter(models.User.id == user_id).first():
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")

    query = _blog_query(db).filter(models.Blog.author_id == user_id)
    if current_user is None or current_user.id != user_id:
        query = query.filter(published_filter())
    query = query.order_by(models.Blog.created_at.desc(), models.Blog.id.desc())

    return _blog_list_response(db, query, params, current_user)


@router.get("/{blog_id}", response_model=schemas.BlogEnvelope)
def get_blog(
    blog_id: ResourceId,
    db: Session = Depends(get_db),
    current_user: models.User | None = Depends(get_current_user_optional),
) -> schemas.BlogEnvelope:
    """
    Get a single blog with its comments.

    Each successful fetch counts as one view.
    """
    blog = _get_visible_blog_or_404(db, blog_id, current_user)

    db.query(models.Blog).filter(models.Blog.id == blog.id).update(
        {models.Blog.views: models.Blog.views + 1}, synchronize_session=False
    )
    db.commit()
    db.refresh(blog)

    comments = (
        db.query(models.Comment)
        .options(joinedload(models.Comment.author))
        .filter(models.Comment.blog_id == blog.id, models.Comment.is_deleted == False)
        .order_by(models.Comment.created_at.asc(), models.Comment.id.asc())
        .all()
    )
    annotate_comments_with_likes(db, comments, current_user)
    annotate_blogs_with_counts(db, [blog], current_user)

    detail = schemas.BlogDetail(
        **schemas.Blog.model_validate(blog).model_dump(),
        comments=[schemas.Comment.model_validate(c) for c in comments],
    )
    return schemas.BlogEnvelope(blog=detail)


@router.post("", response_model=schemas.BlogMutation, status_code=status.HTTP_201_CREATED)
def create_blog(
    payload: schemas.BlogCreate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.BlogMutation:
    """
    Create a new blog owned by the current user.

    The excerpt and read time are derived from the content.
    """
    blog = models.Blog(
        author_id=current_user.id,
        title=payload.title,
        category=payload.category,
        featured_image=payload.featured_image,
        status=payload.status,
        is_public=payload.is_public,
        seo=_seo_document(payload.seo),
    )
    blog.tags = payload.tags
    set_blog_content(blog, payload.content)
    db.add(blog)
    db.commit()

    blog = _get_blog_or_404(db, blog.id)
    annotate_blogs_with_counts(db, [blog], current_user)
    logger.info("User %s created blog %s", current_user.id, blog.id)

    return schemas.BlogMutation(
        message="Blog created successfully",
        blog=schemas.Blog.model_validate(blog),
    )


@router.put("/{blog_id}", response_model=schemas.BlogMutation)
def update_blog(
    blog_id: ResourceId,
    payload: schemas.BlogUpdate,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.BlogMutation:
    """
    Update a blog (author or admin).

    Only fields present in the body are changed; the author never changes.
    """
    blog = _get_blog_or_404(db, blog_id)
    require_ownership(blog.author_id, current_user, detail="Not authorized to update this blog")

    data = payload.model_dump(exclude_unset=True)

    for field in ("title", "category", "featured_image", "status", "is_public"):
        if data.get(field) is not None:
            setattr(blog, field, data[field])
    if "excerpt" in data:
        blog.excerpt = data["excerpt"] or ""
    if "tags" in data:
        blog.tags = data["tags"] or []
    if "seo" in data:
        blog.seo = _seo_document(payload.seo)
    # Content last: a content change re-derives the excerpt
    if data.get("content") is not None:
        set_blog_content(blog, data["content"])

    db.commit()

    blog = _get_blog_or_404(db, blog_id)
    annotate_blogs_with_counts(db, [blog], current_user)

    return schemas.BlogMutation(
        message="Blog updated successfully",
        blog=schemas.Blog.model_validate(blog),
    )


@router.delete("/{blog_id}", response_model=schemas.MessageResponse)
def delete_blog(
    blog_id: ResourceId,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.MessageResponse:
    """Delete a blog with its comments and likes (author or admin)."""
    blog = _get_blog_or_404(db, blog_id)
    require_ownership(blog.author_id, current_user, detail="Not authorized to delete this blog")

    db.delete(blog)
    db.commit()
    logger.info("User %s deleted blog %s", current_user.id, blog_id)

    return schemas.MessageResponse(message="Blog deleted successfully")


@router.post("/{blog_id}/like", response_model=schemas.LikeResponse)
def like_blog(
    blog_id: ResourceId,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.LikeResponse:
    """Like the blog, or unlike it if already liked."""
    blog = _get_visible_blog_or_404(db, blog_id, current_user)

    is_liked, like_count = toggle_like(db, models.BlogLike, blog.id, current_user.id)

    return schemas.LikeResponse(
        message="Blog liked" if is_liked else "Blog unliked",
        like_count=like_count,
        is_liked=is_liked,
    )


@router.delete("/{blog_id}/like", response_model=schemas.LikeResponse)
def unlike_blog(
    blog_id: ResourceId,
    db: Session = Depends(get_db),
    current_user: models.User = Depends(get_current_user),
) -> schemas.LikeResponse:
    """Remove the current user's like."""
    blog = _get_visible_blog_or_404(db, blog_id, current_user)

    removed, like_count = remove_like(db, models.BlogLike, blog.id, current_user.id)
    if not removed:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Blog is not liked")

    return schemas.LikeResponse(message="Blog unliked", like_count=like_count, is_liked=False)
