"""Test user listing, profiles, updates and stats."""

from __future__ import annotations

import uuid


def test_list_users_search(client, make_user):
    marker = uuid.uuid4().hex[:6]
    ada = make_user(username=f"ada_{marker}", firstName="Ada")
    grace = make_user(firstName="Grace", lastName=f"Hopper{marker}")
    make_user()

    data = client.get("/api/users", params={"search": marker.upper()}).json()
    assert {u["id"] for u in data["users"]} == {ada["id"], grace["id"]}
    assert data["pagination"]["totalUsers"] == 2
    assert "email" not in data["users"][0]


def test_list_users_sorting(client, make_user):
    marker = uuid.uuid4().hex[:6]
    zed = make_user(username=f"zed_{marker}")
    amy = make_user(username=f"amy_{marker}")

    def order(sort):
        users = client.get("/api/users", params={"search": marker, "sort": sort}).json()["users"]
        return [u["id"] for u in users]

    assert order("newest") == [amy["id"], zed["id"]]
    assert order("oldest") == [zed["id"], amy["id"]]
    assert order("username") == [amy["id"], zed["id"]]
    assert client.get("/api/users", params={"sort": "karma"}).status_code == 400


def test_list_users_hides_inactive(client, make_user, admin):
    marker = uuid.uuid4().hex[:6]
    user = make_user(username=f"gone_{marker}")
    client.put(f"/api/users/{user['id']}", json={"isActive": False}, headers=admin["headers"])

    assert client.get("/api/users", params={"search": marker}).json()["users"] == []


def test_get_user_profile(client, make_user, make_blog):
    author = make_user(firstName="Ada")
    fan = make_user()
    make_blog(author)
    make_blog(author, status="draft")
    client.post(f"/api/users/{author['id']}/follow", headers=fan["headers"])

    profile = client.get(f"/api/users/{author['id']}", headers=fan["headers"]).json()["user"]
    assert profile["username"] == author["username"]
    assert profile["firstName"] == "Ada"
    assert profile["blogCount"] == 1
    assert profile["followerCount"] == 1
    assert profile["followingCount"] == 0
    assert profile["isFollowing"] is True
    assert [f["id"] for f in profile["followers"]] == [fan["id"]]
    assert profile["following"] == []
    assert "email" not in profile

    anonymous = client.get(f"/api/users/{author['id']}").json()["user"]
    assert anonymous["isFollowing"] is False

    assert client.get("/api/users/999999").status_code == 404


def test_update_own_profile(client, make_user):
    user = make_user()

    response = client.put(
        "/api/users/profile",
        json={
            "firstName": "Grace",
            "bio": "Compilers and COBOL",
            "socialLinks": {"github": "https://github.com/grace"},
        },
        headers=user["headers"],
    )
    assert response.status_code == 200
    data = response.json()
    assert data["message"] == "Profile updated successfully"
    assert data["user"]["firstName"] == "Grace"
    assert data["user"]["bio"] == "Compilers and COBOL"
    assert data["user"]["socialLinks"] == {"github": "https://github.com/grace"}

    me = client.get("/api/auth/me", headers=user["headers"]).json()["user"]
    assert me["firstName"] == "Grace"


def test_update_profile_rejects_bad_urls(client, make_user):
    user = make_user()
    response = client.put(
        "/api/users/profile",
        json={"socialLinks": {"website": "not a url"}},
        headers=user["headers"],
    )
    assert response.status_code == 400
    assert "socialLinks.website" in response.json()["errors"]


def test_update_profile_requires_auth(client):
    assert client.put("/api/users/profile", json={"firstName": "X"}).status_code == 401


def test_update_user_permissions(client, make_user, admin):
    user = make_user()
    stranger = make_user()

    response = client.put(f"/api/users/{user['id']}", json={"bio": "hacked"}, headers=stranger["headers"])
    assert response.status_code == 403

    response = client.put(f"/api/users/{user['id']}", json={"bio": "mine"}, headers=user["headers"])
    assert response.status_code == 200
    assert response.json()["user"]["bio"] == "mine"

    response = client.put(f"/api/users/{user['id']}", json={"role": "admin"}, headers=user["headers"])
    assert response.status_code == 403

    response = client.put(
        f"/api/users/{user['id']}", json={"role": "admin", "bio": "promoted"}, headers=admin["headers"]
    )
    assert response.status_code == 200
    assert response.json()["user"]["role"] == "admin"
    assert response.json()["user"]["bio"] == "promoted"

    assert client.put("/api/users/999999", json={"bio": "x"}, headers=admin["headers"]).status_code == 404


def test_user_stats(client, make_user, make_blog):
    author = make_user()
    fan = make_user()
    published = make_blog(author)
    make_blog(author, status="draft")
    client.get(f"/api/blogs/{published['id']}")
    client.get(f"/api/blogs/{published['id']}")
    client.post(f"/api/blogs/{published['id']}/like", headers=fan["headers"])

    stats = client.get(f"/api/users/{author['id']}/stats").json()["stats"]
    assert stats == {"totalBlogs": 2, "publishedBlogs": 1, "totalViews": 2, "totalLikes": 1}

    assert client.get("/api/users/999999/stats").status_code == 404


def test_list_users_search_treats_wildcards_literally(client, make_user):
    marker = uuid.uuid4().hex[:6]
    literal = make_user(username=f"u{marker}_x")
    make_user(username=f"u{marker}yx")
    percent = make_user(firstName=f"Pct{marker}%")

    def ids(search):
        return {u["id"] for u in client.get("/api/users", params={"search": search}).json()["users"]}

    assert ids(f"{marker}_x") == {literal["id"]}
    assert ids(f"{marker}%") == {percent["id"]}


def test_social_links_stored_as_submitted(client, make_user):
    user = make_user()
    links = {"website": "https://example.com", "twitter": "https://twitter.com/grace?ref=bio"}
    response = client.put("/api/users/profile", json={"socialLinks": links}, headers=user["headers"])

    assert response.status_code == 200
    assert response.json()["user"]["socialLinks"] == links
    assert client.get("/api/auth/me", headers=user["headers"]).json()["user"]["socialLinks"] == links
