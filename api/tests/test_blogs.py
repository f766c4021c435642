"""Test blog CRUD, visibility, listing and likes."""

from __future__ import annotations

import uuid

import pytest

from blogapp.models import BlogLike, Comment


def unique_tag() -> str:
    return f"t{uuid.uuid4().hex[:8]}"


def test_create_blog_requires_auth(client):
    response = client.post(
        "/api/blogs",
        json={"title": "Hello", "content": "World", "category": "Technology"},
    )
    assert response.status_code == 401


def test_create_blog_derives_fields(client, make_user):
    author = make_user()
    content = "<p>" + " ".join(["word"] * 450) + "</p>"

    response = client.post(
        "/api/blogs",
        json={
            "title": "  Long read  ",
            "content": content,
            "excerpt": "ignored when content is set",
            "category": "Travel",
            "tags": [" Python ", "Python", "", "web"],
        },
        headers=author["headers"],
    )
    assert response.status_code == 201
    data = response.json()
    assert data["message"] == "Blog created successfully"
    blog = data["blog"]
    assert blog["title"] == "Long read"
    assert blog["readTime"] == 3
    assert len(blog["excerpt"]) == 300
    assert blog["excerpt"].endswith("...")
    assert "<p>" not in blog["excerpt"]
    assert blog["tags"] == ["Python", "web"]
    assert blog["status"] == "draft"
    assert blog["isPublic"] is True
    assert blog["views"] == 0
    assert blog["likeCount"] == 0
    assert blog["author"]["id"] == author["id"]


def test_create_blog_short_content_excerpt(client, make_user, make_blog):
    author = make_user()
    blog = make_blog(author, content="<b>Short</b> and sweet")
    assert blog["excerpt"] == "Short and sweet"
    assert blog["readTime"] == 1


@pytest.mark.parametrize(
    "overrides, field",
    [
        ({"category": "Gardening"}, "category"),
        ({"title": ""}, "title"),
        ({"title": "x" * 201}, "title"),
        ({"status": "deleted"}, "status"),
        ({"tags": ["x" * 21]}, "tags"),
    ],
)
def test_create_blog_validation(client, make_user, overrides, field):
    author = make_user()
    payload = {"title": "Valid", "content": "Valid content", "category": "Technology"}
    payload.update(overrides)

    response = client.post("/api/blogs", json=payload, headers=author["headers"])
    assert response.status_code == 400
    assert field in response.json()["errors"]


def test_draft_hidden_from_public(client, make_user, make_blog, admin):
    author = make_user()
    stranger = make_user()
    tag = unique_tag()
    draft = make_blog(author, status="draft", tags=[tag])
    private = make_blog(author, isPublic=False, tags=[tag])
    published = make_blog(author, tags=[tag])

    listed = client.get("/api/blogs", params={"tag": tag}).json()["blogs"]
    assert [b["id"] for b in listed] == [published["id"]]

    assert client.get(f"/api/blogs/{draft['id']}").status_code == 404
    assert client.get(f"/api/blogs/{private['id']}", headers=stranger["headers"]).status_code == 404
    assert client.get(f"/api/blogs/{draft['id']}", headers=author["headers"]).status_code == 200
    assert client.get(f"/api/blogs/{draft['id']}", headers=admin["headers"]).status_code == 200


def test_get_blog_missing(client):
    assert client.get("/api/blogs/999999").status_code == 404


def test_get_blog_increments_views(client, make_user, make_blog):
    author = make_user()
    blog = make_blog(author)

    first = client.get(f"/api/blogs/{blog['id']}").json()["blog"]
    second = client.get(f"/api/blogs/{blog['id']}").json()["blog"]
    assert first["views"] == 1
    assert second["views"] == 2


def test_get_blog_includes_live_comments(client, make_user, make_blog):
    author = make_user()
    blog = make_blog(author)
    kept = client.post(
        "/api/comments", json={"content": "Keep me", "blogId": blog["id"]}, headers=author["headers"]
    ).json()["comment"]
    removed = client.post(
        "/api/comments", json={"content": "Remove me", "blogId": blog["id"]}, headers=author["headers"]
    ).json()["comment"]
    client.delete(f"/api/comments/{removed['id']}", headers=author["headers"])

    detail = client.get(f"/api/blogs/{blog['id']}").json()["blog"]
    assert [c["id"] for c in detail["comments"]] == [kept["id"]]
    assert detail["commentCount"] == 1


def test_update_blog_permissions(client, make_user, make_blog, admin):
    author = make_user()
    stranger = make_user()
    blog = make_blog(author)

    response = client.put(f"/api/blogs/{blog['id']}", json={"title": "Hijacked"}, headers=stranger["headers"])
    assert response.status_code == 403

    response = client.put(f"/api/blogs/{blog['id']}", json={"title": "By author"}, headers=author["headers"])
    assert response.status_code == 200
    assert response.json()["blog"]["title"] == "By author"

    response = client.put(f"/api/blogs/{blog['id']}", json={"title": "By admin"}, headers=admin["headers"])
    assert response.status_code == 200
    updated = response.json()["blog"]
    assert updated["title"] == "By admin"
    assert updated["author"]["id"] == author["id"]

    assert client.put("/api/blogs/999999", json={"title": "x"}, headers=author["headers"]).status_code == 404


def test_update_blog_partial(client, make_user, make_blog):
    author = make_user()
    blog = make_blog(author, tags=["one", "two"], category="Food")

    response = client.put(
        f"/api/blogs/{blog['id']}",
        json={"tags": ["three"], "seo": {"metaTitle": "Meta", "keywords": ["k"]}},
        headers=author["headers"],
    )
    assert response.status_code == 200
    updated = response.json()["blog"]
    assert updated["tags"] == ["three"]
    assert updated["category"] == "Food"
    assert updated["title"] == blog["title"]
    assert updated["seo"]["metaTitle"] == "Meta"
    assert updated["seo"]["keywords"] == ["k"]


def test_update_content_rederives_excerpt(client, make_user, make_blog):
    author = make_user()
    blog = make_blog(author)

    response = client.put(
        f"/api/blogs/{blog['id']}", json={"excerpt": "Hand written"}, headers=author["headers"]
    )
    assert response.json()["blog"]["excerpt"] == "Hand written"

    response = client.put(
        f"/api/blogs/{blog['id']}",
        json={"content": "<i>Brand new</i> text", "excerpt": "Overridden"},
        headers=author["headers"],
    )
    assert response.json()["blog"]["excerpt"] == "Brand new text"


def test_delete_blog_cascades(client, make_user, make_blog, db):
    author = make_user()
    stranger = make_user()
    blog = make_blog(author)
    client.post("/api/comments", json={"content": "Hi", "blogId": blog["id"]}, headers=stranger["headers"])
    client.post(f"/api/blogs/{blog['id']}/like", headers=stranger["headers"])

    assert client.delete(f"/api/blogs/{blog['id']}", headers=stranger["headers"]).status_code == 403

    response = client.delete(f"/api/blogs/{blog['id']}", headers=author["headers"])
    assert response.status_code == 200
    assert response.json()["message"] == "Blog deleted successfully"

    assert client.get(f"/api/blogs/{blog['id']}").status_code == 404
    assert db.query(Comment).filter(Comment.blog_id == blog["id"]).count() == 0
    assert db.query(BlogLike).filter(BlogLike.blog_id == blog["id"]).count() == 0


def test_like_toggle(client, make_user, make_blog):
    author = make_user()
    reader = make_user()
    blog = make_blog(author)

    liked = client.post(f"/api/blogs/{blog['id']}/like", headers=reader["headers"]).json()
    assert liked == {"message": "Blog liked", "likeCount": 1, "isLiked": True}

    unliked = client.post(f"/api/blogs/{blog['id']}/like", headers=reader["headers"]).json()
    assert unliked == {"message": "Blog unliked", "likeCount": 0, "isLiked": False}


def test_unlike(client, make_user, make_blog):
    author = make_user()
    reader = make_user()
    blog = make_blog(author)

    response = client.delete(f"/api/blogs/{blog['id']}/like", headers=reader["headers"])
    assert response.status_code == 400

    client.post(f"/api/blogs/{blog['id']}/like", headers=reader["headers"])
    response = client.delete(f"/api/blogs/{blog['id']}/like", headers=reader["headers"])
    assert response.status_code == 200
    assert response.json()["likeCount"] == 0


def test_like_requires_visible_blog(client, make_user, make_blog):
    author = make_user()
    reader = make_user()
    draft = make_blog(author, status="draft")

    assert client.post(f"/api/blogs/{draft['id']}/like", headers=reader["headers"]).status_code == 404
    assert client.post(f"/api/blogs/{draft['id']}/like").status_code == 401


def test_list_marks_liked_blogs(client, make_user, make_blog):
    author = make_user()
    reader = make_user()
    tag = unique_tag()
    liked = make_blog(author, tags=[tag])
    make_blog(author, tags=[tag])
    client.post(f"/api/blogs/{liked['id']}/like", headers=reader["headers"])

    blogs = client.get("/api/blogs", params={"tag": tag}, headers=reader["headers"]).json()["blogs"]
    flags = {b["id"]: b["isLiked"] for b in blogs}
    assert flags[liked["id"]] is True
    assert sum(flags.values()) == 1

    anonymous = client.get("/api/blogs", params={"tag": tag}).json()["blogs"]
    assert not any(b["isLiked"] for b in anonymous)


def test_list_filters(client, make_user, make_blog):
    author = make_user()
    other = make_user()
    tag = unique_tag()
    keyword = uuid.uuid4().hex[:10]
    in_title = make_blog(author, title=f"About {keyword}", tags=[tag], category="Food")
    in_content = make_blog(other, content=f"Deep dive into {keyword.upper()}", tags=[tag], category="Health")
    make_blog(author, tags=[tag], category="Food")

    def ids(**params):
        return {b["id"] for b in client.get("/api/blogs", params=params).json()["blogs"]}

    assert ids(search=keyword.upper()) == {in_title["id"], in_content["id"]}
    assert ids(tag=tag, category="Health") == {in_content["id"]}
    assert ids(tag=tag, author=other["id"]) == {in_content["id"]}
    assert len(ids(search=tag)) == 3


def test_list_sorting(client, make_user, make_blog):
    author = make_user()
    fans = [make_user(), make_user()]
    tag = unique_tag()
    first = make_blog(author, tags=[tag])
    second = make_blog(author, tags=[tag])
    third = make_blog(author, tags=[tag])

    for fan in fans:
        client.post(f"/api/blogs/{second['id']}/like", headers=fan["headers"])
    client.post(f"/api/blogs/{first['id']}/like", headers=fans[0]["headers"])
    client.get(f"/api/blogs/{third['id']}")

    def order(sort):
        blogs = client.get("/api/blogs", params={"tag": tag, "sort": sort}).json()["blogs"]
        return [b["id"] for b in blogs]

    assert order("newest") == [third["id"], second["id"], first["id"]]
    assert order("oldest") == [first["id"], second["id"], third["id"]]
    assert order("likes") == [second["id"], first["id"], third["id"]]
    assert order("popular")[0] == third["id"]


def test_list_pagination(client, make_user, make_blog):
    author = make_user()
    tag = unique_tag()
    for _ in range(3):
        make_blog(author, tags=[tag])

    page1 = client.get("/api/blogs", params={"tag": tag, "limit": 2}).json()
    assert len(page1["blogs"]) == 2
    assert page1["pagination"] == {
        "currentPage": 1,
        "totalPages": 2,
        "totalBlogs": 3,
        "hasNext": True,
        "hasPrev": False,
    }

    page2 = client.get("/api/blogs", params={"tag": tag, "limit": 2, "page": 2}).json()
    assert len(page2["blogs"]) == 1
    assert page2["pagination"]["hasNext"] is False
    assert page2["pagination"]["hasPrev"] is True


@pytest.mark.parametrize("params", [{"limit": 0}, {"limit": 101}, {"page": 0}, {"sort": "random"}])
def test_list_rejects_bad_query(client, params):
    response = client.get("/api/blogs", params=params)
    assert response.status_code == 400


def test_categories_and_tags(client, make_user, make_blog):
    author = make_user()
    tag = unique_tag()
    make_blog(author, tags=[tag], category="Education")

    assert "Education" in client.get("/api/blogs/categories").json()["categories"]
    assert tag in client.get("/api/blogs/tags").json()["tags"]


def test_user_blogs_include_drafts_for_owner(client, make_user, make_blog):
    author = make_user()
    stranger = make_user()
    draft = make_blog(author, status="draft")
    published = make_blog(author)

    own = client.get(f"/api/blogs/user/{author['id']}", headers=author["headers"]).json()
    assert [b["id"] for b in own["blogs"]] == [published["id"], draft["id"]]
    assert own["pagination"]["totalBlogs"] == 2

    public = client.get(f"/api/blogs/user/{author['id']}", headers=stranger["headers"]).json()
    assert [b["id"] for b in public["blogs"]] == [published["id"]]

    assert client.get("/api/blogs/user/999999").status_code == 404


def test_list_search_treats_wildcards_literally(client, make_user, make_blog):
    author = make_user()
    marker = uuid.uuid4().hex[:8]
    underscored = make_blog(author, title=f"{marker}_a plan")
    make_blog(author, title=f"{marker}xa plan")
    percent = make_blog(author, title=f"{marker} 100% sure")
    make_blog(author, title=f"{marker} 1000 sure")

    def ids(search):
        return {b["id"] for b in client.get("/api/blogs", params={"search": search}).json()["blogs"]}

    assert ids(f"{marker}_a") == {underscored["id"]}
    assert ids(f"{marker} 100%") == {percent["id"]}


@pytest.mark.parametrize(
    "path",
    [
        "/api/blogs/99999999999999999999",
        "/api/blogs/2147483648",
        "/api/blogs/0",
        "/api/blogs/user/99999999999999999999",
        "/api/comments/blog/99999999999999999999",
        "/api/users/99999999999999999999",
        "/api/users/2147483648/stats",
    ],
)
def test_out_of_range_ids_rejected(client, path):
    response = client.get(path)
    assert response.status_code == 400
    assert response.headers["content-type"].startswith("application/problem+json")


def test_out_of_range_list_params_rejected(client):
    assert client.get("/api/blogs", params={"author": 2**40}).status_code == 400
    assert client.get("/api/blogs", params={"page": 10**20}).status_code == 400
