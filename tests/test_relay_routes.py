from __future__ import annotations

from pathlib import Path


def _connect(client, identity: str, role: str | None = None):
    url = f"/api/relay/chat?userEmail={identity}"
    if role:
        url += f"&role={role}"
    return client.websocket_connect(url)


def test_connect_announces_connection(client):
    with _connect(client, "a@x.com") as ws:
        hello = ws.receive_json()

    assert hello["event"] == "connected"
    assert hello["data"]["identity"] == "a@x.com"
    assert hello["data"]["connection_id"]


def test_chat_message_is_echoed_to_everyone(client):
    with _connect(client, "alice@x.com") as alice, _connect(client, "bob@x.com") as bob:
        alice.receive_json()
        bob.receive_json()

        alice.send_json({"event": "send_message", "data": {"text": "hello"}})

        for ws in (alice, bob):
            message = ws.receive_json()
            assert message["event"] == "receive_message"
            assert message["data"]["type"] == "text"
            assert message["data"]["sender"] == "alice@x.com"
            assert message["data"]["text"] == "hello"


def test_messages_arrive_in_order(client):
    with _connect(client, "alice@x.com") as alice:
        alice.receive_json()
        for n in range(5):
            alice.send_json({"event": "send_message", "data": {"text": f"m{n}"}})

        received = [alice.receive_json()["data"]["text"] for _ in range(5)]

    assert received == ["m0", "m1", "m2", "m3", "m4"]


def test_invalid_frames_get_error_event(client):
    with _connect(client, "alice@x.com") as alice:
        alice.receive_json()

        alice.send_text("not json")
        assert alice.receive_json()["event"] == "error"

        alice.send_json({"event": "dance", "data": {}})
        assert "Unsupported event" in alice.receive_json()["data"]["detail"]

        alice.send_json({"event": "send_message", "data": {"text": "   "}})
        assert alice.receive_json()["event"] == "error"


def test_upload_broadcasts_file_event(client, app):
    from config.settings import get_settings

    with _connect(client, "b@x.com") as ws:
        ws.receive_json()

        resp = client.post(
            "/api/relay/upload",
            data={"userEmail": "a@x.com", "userId": "42", "message": "see attached"},
            files={"file": ("doc.pdf", b"%PDF-1.4 test", "application/pdf")},
        )
        event = ws.receive_json()

    assert resp.status_code == 200
    body = resp.json()
    assert body["message"] == "Upload successful"
    assert body["filename"] == "doc.pdf"
    assert body["file_path"].startswith("/uploads/")
    assert body["file_path"].endswith("-doc.pdf")

    assert event["event"] == "receive_message"
    data = event["data"]
    assert data["type"] == "file"
    assert data["url"] == body["file_path"]
    assert data["filename"] == "doc.pdf"
    assert data["sender"] == "a@x.com"
    assert data["user_id"] == "42"
    assert data["text"] == "see attached"

    stored = Path(get_settings().uploads_dir) / body["file_path"].rsplit("/", 1)[-1]
    assert stored.read_bytes() == b"%PDF-1.4 test"
    assert client.get(body["file_path"]).content == b"%PDF-1.4 test"


def test_oversized_upload_is_413_and_not_broadcast(app, client, tmp_path):
    import asyncio

    import api.dependencies as deps
    from conftest import FakeTransport
    from integrations.file_store import StaticFileStore
    from relay.broadcaster import RelayBroadcaster
    from relay.registry import SessionRegistry

    listener = FakeTransport()
    registry = SessionRegistry()
    asyncio.run(registry.register("c1", "b@x.com", listener))
    app.dependency_overrides[deps.get_file_store] = lambda: StaticFileStore(tmp_path, max_bytes=4)
    app.dependency_overrides[deps.get_broadcaster] = lambda: RelayBroadcaster(registry)

    resp = client.post(
        "/api/relay/upload",
        data={"userEmail": "a@x.com"},
        files={"file": ("big.bin", b"0123456789", "application/octet-stream")},
    )

    assert resp.status_code == 413
    body = resp.json()
    assert body["success"] is False
    assert body["details"] == {"max_bytes": 4}
    assert listener.sent == []
    assert list(tmp_path.iterdir()) == []


def test_upload_without_file_is_rejected(client):
    resp = client.post("/api/relay/upload", data={"userEmail": "a@x.com"})
    assert resp.status_code == 422


def test_incoming_call_notifies_connected_participants(client):
    with _connect(client, "op@x.com", role="operator") as operator, _connect(client, "chat@x.com") as chat:
        operator.receive_json()
        chat.receive_json()

        client.post("/api/twilio/incoming-call", data={"CallSid": "CA777"})

        for ws in (operator, chat):
            event = ws.receive_json()
            assert event == {
                "event": "incoming_call",
                "data": {"message": "Incoming call! Please pick up.", "call_sid": "CA777"},
            }
