from __future__ import annotations


def _poll(client, call_sid="CA111"):
    return client.post("/api/twilio/wait-for-acceptance", data={"CallSid": call_sid})


def test_incoming_call_returns_wait_twiml(client):
    resp = client.post("/api/twilio/incoming-call", data={"CallSid": "CA111"})

    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/xml")
    assert "Please wait while we connect your call." in resp.text
    assert "/api/twilio/wait-for-acceptance</Redirect>" in resp.text


def test_hold_loop_until_accepted(client):
    client.post("/api/twilio/incoming-call", data={"CallSid": "CA111"})

    for _ in range(3):
        resp = _poll(client)
        assert resp.status_code == 200
        assert "Please hold." in resp.text
        assert '<Pause length="10"' in resp.text
        assert "<Redirect" in resp.text

    accept = client.post("/api/calls/accept", json={"status": "accepted"})
    assert accept.status_code == 200
    assert accept.json() == {"success": True, "call_sid": "CA111"}

    resp = _poll(client)
    assert "Hello! You have reached the test Twilio app." in resp.text
    assert "<Redirect" not in resp.text
    assert "<Hangup" not in resp.text

    session = client.get("/api/calls/CA111").json()
    assert session == {"call_sid": "CA111", "phase": "connected", "accepted": True, "poll_count": 4}


def test_accept_with_wrong_status_is_rejected(client):
    client.post("/api/twilio/incoming-call", data={"CallSid": "CA111"})

    resp = client.post("/api/calls/accept", json={"status": "declined"})

    assert resp.status_code == 400
    assert resp.json()["success"] is False
    assert "Call not accepted" in resp.json()["error"]
    assert "<Redirect" in _poll(client).text


def test_accept_without_incoming_call_conflicts(client):
    resp = client.post("/api/calls/accept", json={"status": "accepted"})
    assert resp.status_code == 409


def test_accept_named_call(client):
    client.post("/api/twilio/incoming-call", data={"CallSid": "CA111"})

    resp = client.post("/api/calls/accept", json={"status": "accepted", "call_sid": "CA111"})
    assert resp.status_code == 200

    missing = client.post("/api/calls/accept", json={"status": "accepted", "call_sid": "CA999"})
    assert missing.status_code == 404


def test_poll_for_unknown_call_apologizes_and_hangs_up(client):
    resp = _poll(client, "CA404")

    assert resp.status_code == 200
    assert "Sorry, something went wrong." in resp.text
    assert "<Hangup" in resp.text


def test_unexpected_failure_still_returns_twiml(app, client):
    import api.dependencies as deps
    from calls.coordinator import AdmissionCoordinator
    from calls.state import CallStateStore

    class BrokenStore(CallStateStore):
        async def poll(self, call_sid: str, *, give_up):
            raise RuntimeError("boom")

    class NullNotifier:
        async def notify_incoming_call(self, call_sid: str) -> None:
            return None

    app.dependency_overrides[deps.get_coordinator] = lambda: AdmissionCoordinator(BrokenStore(), NullNotifier())

    resp = _poll(client)
    assert resp.status_code == 200
    assert "<Hangup" in resp.text


def test_unknown_call_session_returns_404(client):
    assert client.get("/api/calls/CA404").status_code == 404


def test_outbound_twiml_dials_target(client):
    resp = client.post("/api/twilio/outbound", data={"To": "+15551234567"})

    assert resp.status_code == 200
    assert "Hello, you are now connected!" in resp.text
    assert "<Dial>+15551234567</Dial>" in resp.text


def test_outbound_twiml_without_target_hangs_up(client):
    resp = client.post("/api/twilio/outbound", data={})
    assert "<Hangup" in resp.text


def test_health(client):
    assert client.get("/api/health").json() == {"status": "ok"}
