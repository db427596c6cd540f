"""Chat history CRUD endpoints."""
WALLET = "0xAbC123"


def _create(client, title=None):
    r = client.post("/chats", json={"ownerIdentity": WALLET, "title": title})
    assert r.status_code == 200
    return r.json()["chat"]


def test_create_and_list(client):
    first = _create(client, "First")
    second = _create(client)

    assert second["title"] == "New Chat"
    assert first["ownerIdentity"] == WALLET
    chats = client.get(f"/chats/{WALLET}").json()["chats"]
    assert {c["id"] for c in chats} == {first["id"], second["id"]}
    assert client.get("/chats/0xSomeoneElse").json() == {"success": True, "chats": []}


def test_create_requires_owner(client):
    r = client.post("/chats", json={"title": "x"})
    assert r.status_code == 400
    assert r.json()["success"] is False


def test_append_and_load(client):
    chat = _create(client)
    r = client.post(
        f"/chats/{WALLET}/{chat['id']}/messages",
        json={"role": "user", "content": "hello", "metadata": {"note": 1}},
    )
    assert r.status_code == 200
    assert r.json()["message"]["metadata"] == {"note": 1}

    loaded = client.get(f"/chats/{WALLET}/{chat['id']}").json()["chat"]
    assert [m["content"] for m in loaded["messages"]] == ["hello"]


def test_append_rejects_unknown_role(client):
    chat = _create(client)
    r = client.post(f"/chats/{WALLET}/{chat['id']}/messages", json={"role": "system", "content": "x"})
    assert r.status_code == 400


def test_rename(client):
    chat = _create(client)

    r = client.put(f"/chats/{WALLET}/{chat['id']}", json={"title": "Renamed"})
    assert r.status_code == 200
    assert r.json()["chat"]["title"] == "Renamed"

    r = client.put(f"/chats/{WALLET}/{chat['id']}", json={})
    assert r.status_code == 400


def test_delete_then_not_found(client):
    chat = _create(client)
    client.post(f"/chats/{WALLET}/{chat['id']}/messages", json={"role": "user", "content": "hi"})

    assert client.delete(f"/chats/0xOther/{chat['id']}").status_code == 404
    r = client.delete(f"/chats/{WALLET}/{chat['id']}")
    assert r.json() == {"success": True}
    assert client.get(f"/chats/{WALLET}/{chat['id']}").status_code == 404
    assert client.delete(f"/chats/{WALLET}/{chat['id']}").status_code == 404
