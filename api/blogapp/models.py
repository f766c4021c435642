from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import relationship

from .db import Base


def utcnow() -> datetime:
    """Naive UTC timestamp used for all stored datetimes."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


CATEGORIES = (
    "Technology",
    "Lifestyle",
    "Travel",
    "Food",
    "Health",
    "Business",
    "Education",
    "Entertainment",
    "Other",
)
BLOG_STATUSES = ("draft", "published", "archived")
USER_ROLES = ("user", "admin")

# Largest value an Integer primary key column holds on PostgreSQL
MAX_ID = 2**31 - 1


# ============================================================================
# USERS
# ============================================================================


class User(Base):
    """User account with authentication and profile information."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    username = Column(String(30), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=False)

    # Profile
    first_name = Column(String(50), nullable=True)
    last_name = Column(String(50), nullable=True)
    avatar = Column(String(500), nullable=True)
    bio = Column(Text, nullable=True)
    social_links = Column(JSON, nullable=False, default=dict)  # {website, twitter, linkedin, github}

    role = Column(String(20), nullable=False, default="user", index=True)
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    # Relationships
    blogs = relationship("Blog", back_populates="author")
    comments = relationship("Comment", back_populates="author")

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"


class Follow(Base):
    """User following relationship. One row backs both followers and following."""

    __tablename__ = "follows"

    id = Column(Integer, primary_key=True, autoincrement=True)
    follower_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    following_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    follower = relationship("User", foreign_keys=[follower_id])
    following = relationship("User", foreign_keys=[following_id])

    __table_args__ = (
        UniqueConstraint("follower_id", "following_id", name="uq_follow_follower_following"),
        Index("ix_follows_following_created", following_id, created_at.desc()),
    )


# ============================================================================
# BLOGS
# ============================================================================


class Blog(Base):
    """Blog post owned by a single author."""

    __tablename__ = "blogs"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)

    # Content
    title = Column(String(200), nullable=False)
    content = Column(Text, nullable=False)
    excerpt = Column(String(300), nullable=False, default="")
    category = Column(String(30), nullable=False, index=True)
    featured_image = Column(String(500), nullable=False, default="")
    seo = Column(JSON, nullable=True)  # {metaTitle, metaDescription, keywords}

    # Visibility
    status = Column(String(20), nullable=False, default="draft", index=True)
    is_public = Column(Boolean, nullable=False, default=True)

    # Derived / counters
    views = Column(Integer, nullable=False, default=0)
    read_time = Column(Integer, nullable=False, default=0)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    # Relationships
    author = relationship("User", back_populates="blogs")
    tag_rows = relationship(
        "BlogTag",
        order_by="BlogTag.position",
        cascade="all, delete-orphan",
    )
    likes = relationship("BlogLike", cascade="all, delete-orphan")
    comments = relationship("Comment", back_populates="blog", cascade="all, delete-orphan")

    __table_args__ = (
        Index("ix_blogs_author_created", author_id, created_at.desc()),
        Index("ix_blogs_status_public", status, is_public),
    )

    @property
    def tags(self) -> list[str]:
        return [row.tag for row in self.tag_rows]

    @tags.setter
    def tags(self, values: list[str]) -> None:
        self.tag_rows = [BlogTag(tag=tag, position=i) for i, tag in enumerate(values)]

    @property
    def is_published(self) -> bool:
        return self.status == "published" and bool(self.is_public)


class BlogTag(Base):
    """Tag attached to a blog, kept in author order."""

    __tablename__ = "blog_tags"

    id = Column(Integer, primary_key=True, autoincrement=True)
    blog_id = Column(Integer, ForeignKey("blogs.id"), nullable=False, index=True)
    tag = Column(String(20), nullable=False, index=True)
    position = Column(Integer, nullable=False, default=0)


class BlogLike(Base):
    """A user's like on a blog."""

    __tablename__ = "blog_likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    blog_id = Column(Integer, ForeignKey("blogs.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (UniqueConstraint("blog_id", "user_id", name="uq_blog_like_blog_user"),)


# ============================================================================
# COMMENTS
# ============================================================================


class Comment(Base):
    """Comment on a blog, with one level of replies."""

    __tablename__ = "comments"

    id = Column(Integer, primary_key=True, autoincrement=True, index=True)
    blog_id = Column(Integer, ForeignKey("blogs.id"), nullable=False, index=True)
    author_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    parent_id = Column(Integer, ForeignKey("comments.id"), nullable=True, index=True)

    content = Column(Text, nullable=False)

    # Soft delete & edit tracking
    is_deleted = Column(Boolean, nullable=False, default=False, index=True)
    deleted_at = Column(DateTime, nullable=True)
    is_edited = Column(Boolean, nullable=False, default=False)
    edited_at = Column(DateTime, nullable=True)

    # Timestamps
    created_at = Column(DateTime, nullable=False, default=utcnow, index=True)
    updated_at = Column(DateTime, nullable=True, onupdate=utcnow)

    # Relationships
    blog = relationship("Blog", back_populates="comments")
    author = relationship("User", back_populates="comments")
    parent = relationship("Comment", remote_side=[id], back_populates="replies")
    replies = relationship("Comment", back_populates="parent", order_by="Comment.created_at")
    likes = relationship("CommentLike", cascade="all, delete-orphan")

    __table_args__ = (Index("ix_comments_blog_created", blog_id, created_at.desc()),)


class CommentLike(Base):
    """A user's like on a comment."""

    __tablename__ = "comment_likes"

    id = Column(Integer, primary_key=True, autoincrement=True)
    comment_id = Column(Integer, ForeignKey("comments.id"), nullable=False, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        UniqueConstraint("comment_id", "user_id", name="uq_comment_like_comment_user"),
    )
