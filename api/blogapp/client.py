"""
HTTP client and client-side state cache for the blog API.

BlogClient wraps every endpoint and keeps the bearer token. ClientStore
keeps auth, blogs, comments and users state the way a single-page front end
would: list fetches replace the list, creates prepend, updates replace in
place, deletes remove, and like/follow results patch counters in place.

Example:
    client = BlogClient("http://localhost:8000")
    store = ClientStore(client)
    store.login("ada@example.com", "secret123")
    store.fetch_blogs(sort="likes")
    store.like_blog(store.blogs.blogs[0]["id"])
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable

import httpx

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 10.0


class BlogAPIError(Exception):
    """Non-2xx response from the API."""

    def __init__(self, status_code: int, detail: str, errors: dict[str, list[str]] | None = None) -> None:
        super().__init__(f"{status_code}: {detail}")
        self.status_code = status_code
        self.detail = detail
        self.errors = errors or {}


class BlogClient:
    """
    Thin synchronous wrapper over the REST API.

    ``http`` may be any ``httpx.Client``, including FastAPI's TestClient.
    """

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        token: str | None = None,
        http: httpx.Client | None = None,
    ) -> None:
        self._owns_http = http is None
        self.http = http or httpx.Client(base_url=base_url, timeout=DEFAULT_TIMEOUT)
        self.token = token

    def close(self) -> None:
        if self._owns_http:
            self.http.close()

    def __enter__(self) -> "BlogClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _request(self, method: str, path: str, **kwargs) -> dict[str, Any]:
        headers = kwargs.pop("headers", {})
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        if "params" in kwargs:
            kwargs["params"] = {k: v for k, v in kwargs["params"].items() if v is not None}

        response = self.http.request(method, path, headers=headers, **kwargs)
        try:
            body = response.json()
        except ValueError:
            body = {}

        if response.is_error:
            detail = body.get("detail") if isinstance(body, dict) else None
            errors = body.get("errors") if isinstance(body, dict) else None
            raise BlogAPIError(response.status_code, detail or response.reason_phrase, errors)
        return body

    # Auth

    def register(self, username: str, email: str, password: str, **profile) -> dict[str, Any]:
        data = self._request(
            "POST",
            "/api/auth/register",
            json={"username": username, "email": email, "password": password, **profile},
        )
        self.token = data["token"]
        return data

    def login(self, email: str, password: str) -> dict[str, Any]:
        data = self._request("POST", "/api/auth/login", json={"email": email, "password": password})
        self.token = data["token"]
        return data

    def logout(self) -> None:
        self.token = None

    def me(self) -> dict[str, Any]:
        return self._request("GET", "/api/auth/me")

    def change_password(self, current_password: str, new_password: str) -> dict[str, Any]:
        return self._request(
            "POST",
            "/api/auth/change-password",
            json={"currentPassword": current_password, "newPassword": new_password},
        )

    # Blogs

    def list_blogs(self, **params) -> dict[str, Any]:
        return self._request("GET", "/api/blogs", params=params)

    def get_blog(self, blog_id: int) -> dict[str, Any]:
        return self._request("GET", f"/api/blogs/{blog_id}")

    def create_blog(self, blog: dict[str, Any]) -> dict[str, Any]:
        return self._request("POST", "/api/blogs", json=blog)

    def update_blog(self, blog_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"/api/blogs/{blog_id}", json=changes)

    def delete_blog(self, blog_id: int) -> dict[str, Any]:
        return self._request("DELETE", f"/api/blogs/{blog_id}")

    def like_blog(self, blog_id: int) -> dict[str, Any]:
        return self._request("POST", f"/api/blogs/{blog_id}/like")

    def unlike_blog(self, blog_id: int) -> dict[str, Any]:
        return self._request("DELETE", f"/api/blogs/{blog_id}/like")

    def user_blogs(self, user_id: int, **params) -> dict[str, Any]:
        return self._request("GET", f"/api/blogs/user/{user_id}", params=params)

    def categories(self) -> dict[str, Any]:
        return self._request("GET", "/api/blogs/categories")

    def tags(self) -> dict[str, Any]:
        return self._request("GET", "/api/blogs/tags")

    # Comments

    def blog_comments(self, blog_id: int, **params) -> dict[str, Any]:
        return self._request("GET", f"/api/comments/blog/{blog_id}", params=params)

    def user_comments(self, user_id: int, **params) -> dict[str, Any]:
        return self._request("GET", f"/api/comments/user/{user_id}", params=params)

    def add_comment(self, blog_id: int, content: str, parent_comment_id: int | None = None) -> dict[str, Any]:
        payload: dict[str, Any] = {"content": content, "blogId": blog_id}
        if parent_comment_id is not None:
            payload["parentCommentId"] = parent_comment_id
        return self._request("POST", "/api/comments", json=payload)

    def update_comment(self, comment_id: int, content: str) -> dict[str, Any]:
        return self._request("PUT", f"/api/comments/{comment_id}", json={"content": content})

    def delete_comment(self, comment_id: int) -> dict[str, Any]:
        return self._request("DELETE", f"/api/comments/{comment_id}")

    def like_comment(self, comment_id: int) -> dict[str, Any]:
        return self._request("POST", f"/api/comments/{comment_id}/like")

    # Users

    def list_users(self, **params) -> dict[str, Any]:
        return self._request("GET", "/api/users", params=params)

    def get_user(self, user_id: int) -> dict[str, Any]:
        return self._request("GET", f"/api/users/{user_id}")

    def update_profile(self, changes: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", "/api/users/profile", json=changes)

    def update_user(self, user_id: int, changes: dict[str, Any]) -> dict[str, Any]:
        return self._request("PUT", f"/api/users/{user_id}", json=changes)

    def follow_user(self, user_id: int) -> dict[str, Any]:
        return self._request("POST", f"/api/users/{user_id}/follow")

    def followers(self, user_id: int, **params) -> dict[str, Any]:
        return self._request("GET", f"/api/users/{user_id}/followers", params=params)

    def following(self, user_id: int, **params) -> dict[str, Any]:
        return self._request("GET", f"/api/users/{user_id}/following", params=params)

    def user_stats(self, user_id: int) -> dict[str, Any]:
        return self._request("GET", f"/api/users/{user_id}/stats")


# ============================================================================
# STATE SLICES
# ============================================================================


@dataclass
class SliceState:
    loading: bool = False
    error: str | None = None
    message: str | None = None


@dataclass
class AuthState(SliceState):
    user: dict[str, Any] | None = None
    token: str | None = None
    is_authenticated: bool = False


@dataclass
class BlogsState(SliceState):
    blogs: list[dict[str, Any]] = field(default_factory=list)
    current_blog: dict[str, Any] | None = None
    user_blogs: list[dict[str, Any]] = field(default_factory=list)
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    pagination: dict[str, Any] = field(default_factory=dict)


@dataclass
class CommentsState(SliceState):
    comments: list[dict[str, Any]] = field(default_factory=list)
    pagination: dict[str, Any] = field(default_factory=dict)


@dataclass
class UsersState(SliceState):
    users: list[dict[str, Any]] = field(default_factory=list)
    current_user: dict[str, Any] | None = None
    followers: list[dict[str, Any]] = field(default_factory=list)
    following: list[dict[str, Any]] = field(default_factory=list)
    user_stats: dict[int, dict[str, Any]] = field(default_factory=dict)
    pagination: dict[str, Any] = field(default_factory=dict)


def _replace_by_id(items: list[dict[str, Any]], item: dict[str, Any]) -> None:
    for i, existing in enumerate(items):
        if existing.get("id") == item.get("id"):
            items[i] = item
            return


def _patch_by_id(items: list[dict[str, Any]], item_id: int, **changes) -> None:
    for existing in items:
        if existing.get("id") == item_id:
            existing.update(changes)


class ClientStore:
    """Client-side cache of API state, updated from BlogClient results."""

    def __init__(self, client: BlogClient) -> None:
        self.client = client
        self.auth = AuthState(token=client.token, is_authenticated=client.token is not None)
        self.blogs = BlogsState()
        self.comments = CommentsState()
        self.users = UsersState()

    def _run(self, state: SliceState, call: Callable[[], dict[str, Any]], track_loading: bool = True):
        """
        Run an API call against one slice.

        Returns the response body, or None after recording the error detail on
        the slice.
        """
        if track_loading:
            state.loading = True
        state.error = None
        try:
            return call()
        except BlogAPIError as exc:
            logger.debug("API call failed: %s", exc)
            state.error = exc.detail
            return None
        finally:
            state.loading = False

    # Auth

    def _signed_in(self, data: dict[str, Any], message: str) -> None:
        self.auth.user = data["user"]
        self.auth.token = data["token"]
        self.auth.is_authenticated = True
        self.auth.message = message

    def register(self, username: str, email: str, password: str, **profile) -> bool:
        data = self._run(self.auth, lambda: self.client.register(username, email, password, **profile))
        if data is None:
            return False
        self._signed_in(data, "Registration successful")
        return True

    def login(self, email: str, password: str) -> bool:
        data = self._run(self.auth, lambda: self.client.login(email, password))
        if data is None:
            return False
        self._signed_in(data, "Login successful")
        return True

    def logout(self) -> None:
        self.client.logout()
        self.auth = AuthState()

    def load_current_user(self) -> bool:
        data = self._run(self.auth, self.client.me)
        if data is None:
            # A rejected token signs the user out
            self.client.logout()
            self.auth.user = None
            self.auth.token = None
            self.auth.is_authenticated = False
            return False
        self.auth.user = data["user"]
        self.auth.is_authenticated = True
        return True

    def update_profile(self, changes: dict[str, Any]) -> bool:
        data = self._run(self.auth, lambda: self.client.update_profile(changes))
        if data is None:
            return False
        self.auth.user = data["user"]
        self.auth.message = "Profile updated successfully"
        return True

    def change_password(self, current_password: str, new_password: str) -> bool:
        data = self._run(self.auth, lambda: self.client.change_password(current_password, new_password))
        if data is None:
            return False
        self.auth.message = data["message"]
        return True

    # Blogs

    def fetch_blogs(self, **params) -> bool:
        data = self._run(self.blogs, lambda: self.client.list_blogs(**params))
        if data is None:
            return False
        self.blogs.blogs = data["blogs"]
        self.blogs.pagination = data["pagination"]
        return True

    def fetch_blog(self, blog_id: int) -> bool:
        data = self._run(self.blogs, lambda: self.client.get_blog(blog_id))
        if data is None:
            return False
        self.blogs.current_blog = data["blog"]
        return True

    def fetch_user_blogs(self, user_id: int, **params) -> bool:
        data = self._run(self.blogs, lambda: self.client.user_blogs(user_id, **params))
        if data is None:
            return False
        self.blogs.user_blogs = data["blogs"]
        self.blogs.pagination = data["pagination"]
        return True

    def create_blog(self, blog: dict[str, Any]) -> dict[str, Any] | None:
        data = self._run(self.blogs, lambda: self.client.create_blog(blog))
        if data is None:
            return None
        self.blogs.blogs.insert(0, data["blog"])
        self.blogs.message = "Blog created successfully"
        return data["blog"]

    def update_blog(self, blog_id: int, changes: dict[str, Any]) -> bool:
        data = self._run(self.blogs, lambda: self.client.update_blog(blog_id, changes))
        if data is None:
            return False
        blog = data["blog"]
        _replace_by_id(self.blogs.blogs, blog)
        if self.blogs.current_blog and self.blogs.current_blog.get("id") == blog["id"]:
            # Keep the comments that came with the detail view
            self.blogs.current_blog = {**self.blogs.current_blog, **blog}
        self.blogs.message = "Blog updated successfully"
        return True

    def delete_blog(self, blog_id: int) -> bool:
        data = self._run(self.blogs, lambda: self.client.delete_blog(blog_id))
        if data is None:
            return False
        self.blogs.blogs = [b for b in self.blogs.blogs if b.get("id") != blog_id]
        self.blogs.user_blogs = [b for b in self.blogs.user_blogs if b.get("id") != blog_id]
        if self.blogs.current_blog and self.blogs.current_blog.get("id") == blog_id:
            self.blogs.current_blog = None
        self.blogs.message = "Blog deleted successfully"
        return True

    def _apply_blog_like(self, blog_id: int, data: dict[str, Any]) -> None:
        changes = {"likeCount": data["likeCount"], "isLiked": data["isLiked"]}
        _patch_by_id(self.blogs.blogs, blog_id, **changes)
        _patch_by_id(self.blogs.user_blogs, blog_id, **changes)
        if self.blogs.current_blog and self.blogs.current_blog.get("id") == blog_id:
            self.blogs.current_blog.update(changes)

    def like_blog(self, blog_id: int) -> bool:
        data = self._run(self.blogs, lambda: self.client.like_blog(blog_id), track_loading=False)
        if data is None:
            return False
        self._apply_blog_like(blog_id, data)
        return True

    def unlike_blog(self, blog_id: int) -> bool:
        data = self._run(self.blogs, lambda: self.client.unlike_blog(blog_id), track_loading=False)
        if data is None:
            return False
        self._apply_blog_like(blog_id, data)
        return True

    def fetch_categories(self) -> bool:
        data = self._run(self.blogs, self.client.categories, track_loading=False)
        if data is None:
            return False
        self.blogs.categories = data["categories"]
        return True

    def fetch_tags(self) -> bool:
        data = self._run(self.blogs, self.client.tags, track_loading=False)
        if data is None:
            return False
        self.blogs.tags = data["tags"]
        return True

    # Comments

    def fetch_comments(self, blog_id: int, **params) -> bool:
        data = self._run(self.comments, lambda: self.client.blog_comments(blog_id, **params))
        if data is None:
            return False
        self.comments.comments = data["comments"]
        self.comments.pagination = data["pagination"]
        return True

    def add_comment(self, blog_id: int, content: str, parent_comment_id: int | None = None) -> bool:
        data = self._run(self.comments, lambda: self.client.add_comment(blog_id, content, parent_comment_id))
        if data is None:
            return False
        comment = data["comment"]
        if parent_comment_id is None:
            self.comments.comments.insert(0, {**comment, "replies": []})
        else:
            for thread in self.comments.comments:
                if thread.get("id") == parent_comment_id:
                    thread.setdefault("replies", []).append(comment)
        self.comments.message = "Comment added successfully"
        return True

    def update_comment(self, comment_id: int, content: str) -> bool:
        data = self._run(self.comments, lambda: self.client.update_comment(comment_id, content))
        if data is None:
            return False
        comment = data["comment"]
        for thread in self.comments.comments:
            if thread.get("id") == comment_id:
                thread.update(comment)
            else:
                _replace_by_id(thread.get("replies", []), comment)
        self.comments.message = "Comment updated successfully"
        return True

    def delete_comment(self, comment_id: int) -> bool:
        data = self._run(self.comments, lambda: self.client.delete_comment(comment_id))
        if data is None:
            return False
        self.comments.comments = [c for c in self.comments.comments if c.get("id") != comment_id]
        for thread in self.comments.comments:
            thread["replies"] = [r for r in thread.get("replies", []) if r.get("id") != comment_id]
        self.comments.message = "Comment deleted successfully"
        return True

    def like_comment(self, comment_id: int) -> bool:
        data = self._run(self.comments, lambda: self.client.like_comment(comment_id), track_loading=False)
        if data is None:
            return False
        changes = {"likeCount": data["likeCount"], "isLiked": data["isLiked"]}
        _patch_by_id(self.comments.comments, comment_id, **changes)
        for thread in self.comments.comments:
            _patch_by_id(thread.get("replies", []), comment_id, **changes)
        return True

    # Users

    def fetch_users(self, **params) -> bool:
        data = self._run(self.users, lambda: self.client.list_users(**params))
        if data is None:
            return False
        self.users.users = data["users"]
        self.users.pagination = data["pagination"]
        return True

    def fetch_user(self, user_id: int) -> bool:
        data = self._run(self.users, lambda: self.client.get_user(user_id))
        if data is None:
            return False
        self.users.current_user = data["user"]
        return True

    def follow_user(self, user_id: int) -> bool:
        data = self._run(self.users, lambda: self.client.follow_user(user_id), track_loading=False)
        if data is None:
            return False
        is_following = data["isFollowing"]
        _patch_by_id(self.users.users, user_id, isFollowing=is_following)
        if self.users.current_user and self.users.current_user.get("id") == user_id:
            self.users.current_user["isFollowing"] = is_following
        self.users.message = "User followed" if is_following else "User unfollowed"
        return True

    def fetch_followers(self, user_id: int, **params) -> bool:
        data = self._run(self.users, lambda: self.client.followers(user_id, **params))
        if data is None:
            return False
        self.users.followers = data["followers"]
        self.users.pagination = data["pagination"]
        return True

    def fetch_following(self, user_id: int, **params) -> bool:
        data = self._run(self.users, lambda: self.client.following(user_id, **params))
        if data is None:
            return False
        self.users.following = data["following"]
        self.users.pagination = data["pagination"]
        return True

    def fetch_user_stats(self, user_id: int) -> bool:
        data = self._run(self.users, lambda: self.client.user_stats(user_id), track_loading=False)
        if data is None:
            return False
        self.users.user_stats[user_id] = data["stats"]
        return True
