import asyncio

from app.core.realtime import EventStream
from app.modules.messages.service import MessageService
from app.modules.messages.stream import MessageStream
from tests.fake_supabase import FakeRealtimeSource


def send(client, auth, receiver_id, content="hello", **extra):
    return client.post("/api/v1/messages", json={"receiver_id": receiver_id, "content": content, **extra}, headers=auth)


def test_send_message_creates_conversation_and_unread_row(client, db, make_user):
    alice, alice_auth = make_user("alice")
    bob, _ = make_user("bob", is_freelancer=True)

    response = send(client, alice_auth, bob["id"], "  hi there  ")

    assert response.status_code == 201
    body = response.json()
    assert body["content"] == "hi there"
    assert body["is_read"] is False
    assert body["message_type"] == "text"
    [conversation] = db.rows("conversations")
    assert body["conversation_id"] == conversation["id"]


def test_blank_message_without_attachment_is_rejected(client, make_user):
    _, alice_auth = make_user("alice")
    bob, _ = make_user("bob")
    assert send(client, alice_auth, bob["id"], "   ").status_code == 400


def test_attachment_only_message_gets_placeholder_text(client, make_user):
    alice, alice_auth = make_user("alice")
    bob, _ = make_user("bob")
    response = send(client, alice_auth, bob["id"], "", attachment_url=f"{alice['id']}/1.png", attachment_type="image")
    assert response.json()["content"] == "Sent an image"


def test_mark_all_read_only_touches_callers_messages(client, db, make_user):
    alice, alice_auth = make_user("alice")
    bob, bob_auth = make_user("bob")
    send(client, alice_auth, bob["id"], "to bob 1")
    send(client, alice_auth, bob["id"], "to bob 2")
    send(client, bob_auth, alice["id"], "to alice")

    response = client.post("/api/v1/messages/read", headers=bob_auth)

    assert response.json() == {"updated": 2}
    by_receiver = {(m["receiver_id"], m["content"]): m["is_read"] for m in db.rows("messages")}
    assert by_receiver[(bob["id"], "to bob 1")] is True
    assert by_receiver[(bob["id"], "to bob 2")] is True
    assert by_receiver[(alice["id"], "to alice")] is False


def test_unread_count(client, make_user):
    alice, alice_auth = make_user("alice")
    bob, bob_auth = make_user("bob")
    send(client, alice_auth, bob["id"])
    send(client, alice_auth, bob["id"])

    assert client.get("/api/v1/messages/unread-count", headers=bob_auth).json() == {"unread": 2}
    assert client.get("/api/v1/messages/unread-count", headers=alice_auth).json() == {"unread": 0}


def test_history_is_oldest_first_and_marks_received_read(client, db, make_user):
    alice, alice_auth = make_user("alice")
    bob, bob_auth = make_user("bob")
    conversation_id = send(client, alice_auth, bob["id"], "first").json()["conversation_id"]
    send(client, bob_auth, alice["id"], "second")

    response = client.get(f"/api/v1/conversations/{conversation_id}/messages", headers=bob_auth)

    assert response.status_code == 200
    assert [m["content"] for m in response.json()] == ["first", "second"]
    assert response.json()[0]["sender"]["full_name"] == "alice"
    received = [m for m in db.rows("messages") if m["receiver_id"] == bob["id"]]
    assert all(m["is_read"] for m in received)
    sent = [m for m in db.rows("messages") if m["receiver_id"] == alice["id"]]
    assert not any(m["is_read"] for m in sent)


def test_history_is_forbidden_to_outsiders(client, make_user):
    _, alice_auth = make_user("alice")
    bob, _ = make_user("bob")
    _, carol_auth = make_user("carol")
    conversation_id = send(client, alice_auth, bob["id"]).json()["conversation_id"]

    response = client.get(f"/api/v1/conversations/{conversation_id}/messages", headers=carol_auth)
    assert response.status_code == 403


def test_attachment_upload_and_resolution(client, db, make_user):
    alice, alice_auth = make_user("alice")
    bob, bob_auth = make_user("bob")

    upload = client.post(
        "/api/v1/messages/attachments",
        files={"file": ("brief.pdf", b"%PDF-1.4", "application/pdf")},
        headers=alice_auth
    )
    assert upload.status_code == 201
    path = upload.json()["path"]
    assert path.startswith(f"{alice['id']}/") and path.endswith(".pdf")
    assert upload.json()["type"] == "file"

    message = send(client, alice_auth, bob["id"], "", attachment_url=path, attachment_type="file").json()
    view = client.get(f"/api/v1/messages/{message['id']}/attachment", headers=bob_auth).json()

    assert view["status"] == "ready"
    assert view["icon"] == "document"
    assert view["label"] == "PDF"
    assert view["url"].startswith("https://storage.test/message-attachments/")


def test_unresolvable_attachment_reports_failure(client, db, make_user):
    alice, alice_auth = make_user("alice")
    bob, bob_auth = make_user("bob")
    message = send(client, alice_auth, bob["id"], "", attachment_url=f"{alice['id']}/gone.png", attachment_type="image").json()

    view = client.get(f"/api/v1/messages/{message['id']}/attachment", headers=bob_auth).json()

    assert view["status"] == "failed"
    assert view["kind"] == "image"
    assert view["url"] is None
    assert view["error"]


def test_attachment_must_belong_to_sender(client, db, make_user):
    alice, alice_auth = make_user("alice")
    bob, _ = make_user("bob")
    eve, eve_auth = make_user("eve")
    path = client.post(
        "/api/v1/messages/attachments",
        files={"file": ("secret.pdf", b"%PDF-1.4", "application/pdf")},
        headers=alice_auth
    ).json()["path"]

    stolen = send(client, eve_auth, bob["id"], "", attachment_url=path, attachment_type="file")
    climbing = send(
        client, eve_auth, bob["id"], "", attachment_url=f"{eve['id']}/../{path}", attachment_type="file"
    )

    assert stolen.status_code == 400
    assert climbing.status_code == 400
    assert db.rows("messages") == []


def test_oversized_attachment_is_rejected(client, make_user, monkeypatch):
    from app.config import settings
    monkeypatch.setattr(settings, "max_attachment_size", 4)
    _, alice_auth = make_user("alice")
    response = client.post(
        "/api/v1/messages/attachments",
        files={"file": ("big.bin", b"12345", "application/octet-stream")},
        headers=alice_auth
    )
    assert response.status_code == 413


def test_websocket_pushes_messages_addressed_to_caller(client, db, make_user):
    alice, alice_auth = make_user("alice")
    bob, _ = make_user("bob")

    with client.websocket_connect("/api/v1/messages/ws?token=tok_bob") as ws:
        assert len(db.listeners) == 1
        send(client, alice_auth, bob["id"], "live")
        event = ws.receive_json()

    assert event["type"] == "message.created"
    assert event["message"]["content"] == "live"
    assert event["message"]["receiver_id"] == bob["id"]


def test_websocket_rejects_unknown_token(client):
    from starlette.websockets import WebSocketDisconnect

    try:
        with client.websocket_connect("/api/v1/messages/ws?token=bogus"):
            pass
    except WebSocketDisconnect as e:
        assert e.code == 1008
    else:
        raise AssertionError("connection was accepted")


def test_message_stream_filters_and_releases_subscription(db):
    alice = db.seed("users", clerk_id="user_alice", email="alice@example.com")
    bob = db.seed("users", clerk_id="user_bob", email="bob@example.com")
    service = MessageService(db)
    source = FakeRealtimeSource(db)

    async def scenario():
        async with MessageStream(source, service, bob["id"]) as stream:
            assert len(db.listeners) == 1
            service.send_message(bob["id"], alice["id"], "not for bob")
            service.send_message(alice["id"], bob["id"], "for bob")
            event = await asyncio.wait_for(stream.__aiter__().__anext__(), timeout=1)
        return event

    event = asyncio.run(scenario())

    assert event.message.content == "for bob"
    assert db.listeners == []


def test_event_stream_ends_when_closed(db):
    source = FakeRealtimeSource(db)

    async def scenario():
        stream = EventStream(source, "messages")
        async with stream:
            await stream.close()
            return [event async for event in stream]

    assert asyncio.run(scenario()) == []
    assert db.listeners == []
