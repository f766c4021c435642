from __future__ import annotations

from datetime import datetime
from typing import Annotated, Literal

from pydantic import (
    AfterValidator,
    BaseModel,
    ConfigDict,
    Field,
    HttpUrl,
    TypeAdapter,
    ValidationError,
    field_validator,
)
from pydantic.alias_generators import to_camel

from .models import MAX_ID

Category = Literal[
    "Technology",
    "Lifestyle",
    "Travel",
    "Food",
    "Health",
    "Business",
    "Education",
    "Entertainment",
    "Other",
]
BlogStatus = Literal["draft", "published", "archived"]
Role = Literal["user", "admin"]

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"
USERNAME_PATTERN = r"^[A-Za-z0-9_]+$"
MAX_TAG_LENGTH = 20


# ============================================================================
# BASE SCHEMAS
# ============================================================================


class CamelModel(BaseModel):
    """Base for every wire schema: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class Problem(BaseModel):
    """RFC 7807 Problem Details for HTTP APIs."""

    type: str = Field(default="about:blank")
    title: str
    status: int
    detail: str | None = None
    errors: dict[str, list[str]] | None = None


class Pagination(CamelModel):
    """Page/limit pagination metadata shared by all list responses."""

    current_page: int
    total_pages: int
    has_next: bool
    has_prev: bool


class BlogPagination(Pagination):
    total_blogs: int


class CommentPagination(Pagination):
    total_comments: int


class UserPagination(Pagination):
    total_users: int


class FollowerPagination(Pagination):
    total_followers: int


class FollowingPagination(Pagination):
    total_following: int


class MessageResponse(CamelModel):
    message: str


class HealthResponse(CamelModel):
    """Health check response."""

    status: Literal["ok"] = "ok"
    uptime_s: float | None = None


# ============================================================================
# USER SCHEMAS
# ============================================================================


_http_url = TypeAdapter(HttpUrl)


def _check_http_url(value: str) -> str:
    # Validated as a URL but stored as submitted, without normalisation
    try:
        _http_url.validate_python(value)
    except ValidationError:
        raise ValueError("Input should be a valid http or https URL") from None
    return value


SubmittedUrl = Annotated[str, AfterValidator(_check_http_url)]


class SocialLinks(CamelModel):
    website: SubmittedUrl | None = None
    twitter: SubmittedUrl | None = None
    linkedin: SubmittedUrl | None = None
    github: SubmittedUrl | None = None


class UserSummary(CamelModel):
    """Author/follower card: the fields other users may see."""

    id: int
    username: str
    first_name: str | None = None
    last_name: str | None = None
    avatar: str | None = None
    bio: str | None = None


class UserListItem(UserSummary):
    follower_count: int = 0
    following_count: int = 0
    is_following: bool = False
    created_at: datetime


class FollowUser(UserSummary):
    is_following: bool = False


class UserProfile(UserSummary):
    """Public profile of a single user."""

    social_links: dict[str, str] = Field(default_factory=dict)
    role: Role
    created_at: datetime
    blog_count: int = 0
    follower_count: int = 0
    following_count: int = 0
    is_following: bool = False
    followers: list[UserSummary] = Field(default_factory=list)
    following: list[UserSummary] = Field(default_factory=list)


class UserPrivate(UserSummary):
    """The authenticated user's own account."""

    email: str
    social_links: dict[str, str] = Field(default_factory=dict)
    role: Role
    is_active: bool
    last_login: datetime | None = None
    created_at: datetime
    follower_count: int = 0
    following_count: int = 0


class ProfileUpdate(CamelModel):
    """Fields a user may change on their own profile."""

    first_name: str | None = Field(None, max_length=50)
    last_name: str | None = Field(None, max_length=50)
    bio: str | None = Field(None, max_length=500)
    avatar: str | None = Field(None, max_length=500)
    social_links: SocialLinks | None = None


class AdminUserUpdate(ProfileUpdate):
    """Profile update plus the account fields only admins may change."""

    role: Role | None = None
    is_active: bool | None = None


class UserEnvelope(CamelModel):
    user: UserProfile


class UserMutation(CamelModel):
    message: str
    user: UserPrivate


class UserListResponse(CamelModel):
    users: list[UserListItem]
    pagination: UserPagination


class FollowersResponse(CamelModel):
    followers: list[FollowUser]
    pagination: FollowerPagination


class FollowingResponse(CamelModel):
    following: list[FollowUser]
    pagination: FollowingPagination


class FollowResponse(CamelModel):
    message: str
    is_following: bool


class UserStats(CamelModel):
    total_blogs: int
    published_blogs: int
    total_views: int
    total_likes: int


class UserStatsResponse(CamelModel):
    stats: UserStats


# ============================================================================
# AUTH SCHEMAS
# ============================================================================


class RegisterRequest(CamelModel):
    username: str = Field(..., min_length=3, max_length=30, pattern=USERNAME_PATTERN)
    email: str = Field(..., max_length=255, pattern=EMAIL_PATTERN)
    password: str = Field(..., min_length=6, max_length=128)
    first_name: str | None = Field(None, max_length=50)
    last_name: str | None = Field(None, max_length=50)


class LoginRequest(CamelModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class ChangePasswordRequest(CamelModel):
    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=6, max_length=128)


class AuthResponse(CamelModel):
    message: str
    token: str
    user: UserPrivate


class MeResponse(CamelModel):
    user: UserPrivate


# ============================================================================
# BLOG SCHEMAS
# ============================================================================


class SeoFields(CamelModel):
    meta_title: str | None = Field(None, max_length=200)
    meta_description: str | None = Field(None, max_length=300)
    keywords: list[str] = Field(default_factory=list)


def _normalize_tags(tags: list[str] | None) -> list[str] | None:
    """Trim, drop blanks and duplicates, keep author order."""
    if tags is None:
        return None
    seen: list[str] = []
    for raw in tags:
        tag = raw.strip()
        if not tag:
            continue
        if len(tag) > MAX_TAG_LENGTH:
            raise ValueError(f"Tags must be at most {MAX_TAG_LENGTH} characters")
        if tag not in seen:
            seen.append(tag)
    return seen


class BlogCreate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    title: str = Field(..., min_length=1, max_length=200)
    content: str = Field(..., min_length=1)
    excerpt: str | None = Field(None, max_length=300)
    tags: list[str] = Field(default_factory=list)
    category: Category
    featured_image: str = Field("", max_length=500)
    status: BlogStatus = "draft"
    is_public: bool = True
    seo: SeoFields | None = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_tags(value)


class BlogUpdate(CamelModel):
    """Partial update; only fields present in the request body are applied."""

    model_config = ConfigDict(str_strip_whitespace=True)

    title: str | None = Field(None, min_length=1, max_length=200)
    content: str | None = Field(None, min_length=1)
    excerpt: str | None = Field(None, max_length=300)
    tags: list[str] | None = None
    category: Category | None = None
    featured_image: str | None = Field(None, max_length=500)
    status: BlogStatus | None = None
    is_public: bool | None = None
    seo: SeoFields | None = None

    @field_validator("tags")
    @classmethod
    def normalize_tags(cls, value: list[str] | None) -> list[str] | None:
        return _normalize_tags(value)


class Blog(CamelModel):
    id: int
    title: str
    content: str
    excerpt: str
    author: UserSummary
    tags: list[str]
    category: Category
    featured_image: str
    status: BlogStatus
    is_public: bool
    views: int
    read_time: int
    seo: SeoFields | None = None
    like_count: int = 0
    comment_count: int = 0
    is_liked: bool = False
    created_at: datetime
    updated_at: datetime | None = None


class BlogListResponse(CamelModel):
    blogs: list[Blog]
    pagination: BlogPagination


class BlogMutation(CamelModel):
    message: str
    blog: Blog


class LikeResponse(CamelModel):
    message: str
    like_count: int
    is_liked: bool


class CategoriesResponse(CamelModel):
    categories: list[str]


class TagsResponse(CamelModel):
    tags: list[str]


# ============================================================================
# COMMENT SCHEMAS
# ============================================================================


class Comment(CamelModel):
    id: int
    content: str
    author: UserSummary
    blog_id: int
    parent_id: int | None = None
    is_edited: bool
    edited_at: datetime | None = None
    like_count: int = 0
    is_liked: bool = False
    created_at: datetime
    updated_at: datetime | None = None


class ThreadComment(Comment):
    """Top-level comment with its direct, non-deleted replies."""

    replies: list[Comment] = Field(default_factory=list)


class BlogRef(CamelModel):
    id: int
    title: str


class UserComment(Comment):
    blog: BlogRef


class CommentCreate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1, max_length=1000)
    blog_id: int = Field(..., ge=1, le=MAX_ID)
    parent_comment_id: int | None = Field(None, ge=1, le=MAX_ID)


class CommentUpdate(CamelModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    content: str = Field(..., min_length=1, max_length=1000)


class CommentListResponse(CamelModel):
    comments: list[ThreadComment]
    pagination: CommentPagination


class UserCommentListResponse(CamelModel):
    comments: list[UserComment]
    pagination: CommentPagination


class CommentMutation(CamelModel):
    message: str
    comment: Comment


class BlogDetail(Blog):
    comments: list[Comment] = Field(default_factory=list)


class BlogEnvelope(CamelModel):
    blog: BlogDetail
