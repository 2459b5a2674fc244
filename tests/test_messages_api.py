def _user(client, email: str, name: str = "Test User") -> tuple[int, dict]:
    r = client.post("/api/auth/signup", json={"email": email, "password": "Testpass123!", "name": name})
    assert r.status_code == 201, r.text
    data = r.json()
    return data["user"]["id"], {"Authorization": f"Bearer {data['token']}"}


def _send(client, headers: dict, receiver_id: int, content: str):
    return client.post("/api/messages/send", headers=headers, json={"receiverId": receiver_id, "content": content})


def test_send_validates_receiver_and_content(client):
    me_id, me = _user(client, "sender@example.com")
    other_id, _ = _user(client, "receiver@example.com")

    assert _send(client, me, other_id, "   ").status_code == 400
    assert _send(client, me, 999999, "hi").status_code == 404

    r = _send(client, me, me_id, "note to self")
    assert r.status_code == 400
    assert r.json()["error"] == "Cannot send message to yourself"

    r = _send(client, me, other_id, "  hello  ")
    assert r.status_code == 201, r.text
    data = r.json()["data"]
    assert data["content"] == "hello"
    assert data["read"] is False
    assert data["conversationId"] == "_".join(sorted([str(me_id), str(other_id)]))


def test_both_directions_share_one_conversation(client):
    a_id, a = _user(client, "ca@example.com", "Ann")
    b_id, b = _user(client, "cb@example.com", "Ben")
    c_id, c = _user(client, "cc@example.com", "Cat")

    _send(client, a, b_id, "hi Ben")
    _send(client, b, a_id, "hi Ann")
    _send(client, c, a_id, "hi from Cat")

    r = client.get("/api/messages/conversations", headers=a)
    assert r.status_code == 200, r.text
    conversations = r.json()["conversations"]
    assert [conv["otherUser"]["id"] for conv in conversations] == [c_id, b_id]
    assert conversations[0]["lastMessage"]["content"] == "hi from Cat"
    assert [conv["unreadCount"] for conv in conversations] == [1, 1]


def test_opening_conversation_marks_incoming_read(client):
    a_id, a = _user(client, "ra@example.com")
    b_id, b = _user(client, "rb@example.com")
    for text in ("one", "two"):
        _send(client, a, b_id, text)
    _send(client, b, a_id, "reply")

    assert client.get("/api/messages/unread/count", headers=b).json() == {"unreadCount": 2}

    r = client.get(f"/api/messages/conversation/{a_id}", headers=b)
    assert r.status_code == 200, r.text
    messages = r.json()["messages"]
    assert [m["content"] for m in messages] == ["one", "two", "reply"]
    assert all(m["read"] for m in messages if m["receiver"]["id"] == b_id)
    # The caller's own outgoing message stays unread for the partner.
    assert [m["read"] for m in messages if m["sender"]["id"] == b_id] == [False]

    assert client.get("/api/messages/unread/count", headers=b).json() == {"unreadCount": 0}
    assert client.get("/api/messages/unread/count", headers=a).json() == {"unreadCount": 1}

    assert client.get("/api/messages/conversation/999999", headers=b).status_code == 404


def test_mark_read_and_delete_permissions(client):
    _, a = _user(client, "pa@example.com")
    b_id, b = _user(client, "pb@example.com")
    message_id = _send(client, a, b_id, "private").json()["data"]["id"]

    assert client.put(f"/api/messages/{message_id}/read", headers=a).status_code == 403
    assert client.put(f"/api/messages/{message_id}/read", headers=b).status_code == 200
    assert client.get("/api/messages/unread/count", headers=b).json()["unreadCount"] == 0

    assert client.delete(f"/api/messages/{message_id}", headers=b).status_code == 403
    assert client.delete(f"/api/messages/{message_id}", headers=a).status_code == 200
    assert client.put(f"/api/messages/{message_id}/read", headers=b).status_code == 404


def test_send_creates_new_message_notification(client):
    _, a = _user(client, "na@example.com")
    b_id, b = _user(client, "nb@example.com")
    _send(client, a, b_id, "ping")
    notes = client.get("/api/notifications/", headers=b).json()["notifications"]
    assert [(n["type"], n["message"]) for n in notes] == [("new-message", "ping")]
