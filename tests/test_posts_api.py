def _user(client, email: str, name: str = "Test User") -> tuple[int, dict]:
    r = client.post("/api/auth/signup", json={"email": email, "password": "Testpass123!", "name": name})
    assert r.status_code == 201, r.text
    data = r.json()
    return data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}


def _post(client, headers: dict, **body) -> dict:
    body.setdefault("content", "Hello network")
    r = client.post("/api/posts/", headers=headers, json=body)
    assert r.status_code == 201, r.text
    return r.json()["post"]


def _notification_types(client, headers: dict) -> list[str]:
    return [n["type"] for n in client.get("/api/notifications/", headers=headers).json()["notifications"]]


def test_create_post_defaults_and_validation(client):
    author_id, headers = _user(client, "author@example.com", "Author")
    assert client.post("/api/posts/", headers=headers, json={"content": "   "}).status_code == 400
    assert client.post("/api/posts/", headers=headers, json={"content": "x" * 3001}).status_code == 400

    post = _post(client, headers, tags=["intro"])
    assert post["author"]["id"] == author_id
    assert post["postType"] == "update"
    assert post["visibility"] == "public"
    assert post["likesCount"] == 0
    assert post["tags"] == ["intro"]


def test_feed_shows_public_posts_paginated(client):
    _, headers = _user(client, "feeder@example.com")
    for i in range(3):
        _post(client, headers, content=f"post {i}")
    _post(client, headers, content="secret", visibility="private")

    r = client.get("/api/posts/feed", headers=headers, params={"limit": 2})
    assert r.status_code == 200, r.text
    data = r.json()
    assert data["pagination"]["total"] == 3
    assert data["pagination"]["pages"] == 2
    assert [p["content"] for p in data["posts"]] == ["post 2", "post 1"]

    r = client.get("/api/posts/feed", headers=headers, params={"limit": 2, "page": 3})
    assert r.json()["posts"] == []


def test_like_toggle_notifies_only_on_like(client):
    _, author = _user(client, "liked@example.com")
    _, fan = _user(client, "fan@example.com")
    post = _post(client, author)

    r = client.post(f"/api/posts/{post['id']}/like", headers=fan)
    assert r.status_code == 200, r.text
    assert r.json() == {"message": "Post liked", "likesCount": 1}

    r = client.post(f"/api/posts/{post['id']}/like", headers=fan)
    assert r.json() == {"message": "Post unliked", "likesCount": 0}

    assert _notification_types(client, author) == ["post-liked"]


def test_liking_own_post_creates_no_notification(client):
    _, author = _user(client, "selflike@example.com")
    post = _post(client, author)
    assert client.post(f"/api/posts/{post['id']}/like", headers=author).json()["likesCount"] == 1
    assert _notification_types(client, author) == []


def test_comment_adds_and_notifies(client):
    _, author = _user(client, "commented@example.com")
    commenter_id, commenter = _user(client, "commenter@example.com", "Commenter")
    post = _post(client, author)

    assert client.post(f"/api/posts/{post['id']}/comment", headers=commenter, json={"content": ""}).status_code == 400
    assert (
        client.post(f"/api/posts/{post['id']}/comment", headers=commenter, json={"content": "y" * 1001}).status_code
        == 400
    )

    r = client.post(f"/api/posts/{post['id']}/comment", headers=commenter, json={"content": "Nice!"})
    assert r.status_code == 200, r.text
    comments = r.json()["comments"]
    assert [(c["user"]["id"], c["content"]) for c in comments] == [(commenter_id, "Nice!")]
    assert _notification_types(client, author) == ["post-commented"]

    assert client.post("/api/posts/999999/comment", headers=commenter, json={"content": "?"}).status_code == 404


def test_user_posts_and_single_post(client):
    author_id, author = _user(client, "mine@example.com")
    post = _post(client, author)
    r = client.get(f"/api/posts/user/{author_id}", headers=author)
    assert [p["id"] for p in r.json()["posts"]] == [post["id"]]
    assert client.get(f"/api/posts/{post['id']}", headers=author).json()["post"]["content"] == "Hello network"
    assert client.get("/api/posts/999999", headers=author).status_code == 404


def test_update_and_delete_are_owner_only(client):
    _, author = _user(client, "postowner@example.com")
    _, other = _user(client, "postother@example.com")
    post = _post(client, author)

    r = client.put(f"/api/posts/{post['id']}", headers=other, json={"content": "mine now"})
    assert r.status_code == 404
    assert r.json()["error"] == "Post not found or unauthorized"
    assert client.delete(f"/api/posts/{post['id']}", headers=other).status_code == 404

    r = client.put(f"/api/posts/{post['id']}", headers=author, json={"content": "edited", "visibility": "connections"})
    assert r.status_code == 200, r.text
    assert r.json()["post"]["content"] == "edited"
    assert r.json()["post"]["visibility"] == "connections"

    assert client.delete(f"/api/posts/{post['id']}", headers=author).status_code == 200
    assert client.get(f"/api/posts/{post['id']}", headers=author).status_code == 404
