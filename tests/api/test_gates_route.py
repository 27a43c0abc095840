from fastapi.testclient import TestClient

from schoolhub.main import create_app
from schoolhub.presentation.dependencies import get_delivery_channel
from schoolhub.settings import Settings
from tests.fakes import ISSUED_CODE, FakeDeliveryChannel


def test_create_gate_starts_idle(client):
    r = client.post("/v1/gates")

    assert r.status_code == 201
    body = r.json()
    assert body["state"] == "idle"
    assert body["gate_id"]
    assert body["gate_pass"] is None


def test_request_sends_code_and_awaits_submission(client, app_and_deps, open_gate):
    _, _, channel, _ = app_and_deps

    gate_id = open_gate("Admin@Example.com")
    r = client.get(f"/v1/gates/{gate_id}")

    body = r.json()
    assert body["state"] == "awaiting_code"
    assert body["recipient"] == "admin@example.com"
    assert body["attempts_remaining"] == 5
    assert body["expires_at"]
    assert channel.sent == [("admin@example.com", ISSUED_CODE)]


def test_request_rejects_invalid_email(client):
    gate_id = client.post("/v1/gates").json()["gate_id"]
    r = client.post(f"/v1/gates/{gate_id}/request", json={"recipient": "not-an-email"})
    assert r.status_code == 422


def test_wrong_code_surfaces_mismatch(client, open_gate):
    gate_id = open_gate()

    r = client.post(f"/v1/gates/{gate_id}/submit", json={"code": "000000"})

    assert r.status_code == 200
    body = r.json()
    assert body["state"] == "awaiting_code"
    assert body["attempts_remaining"] == 4
    assert body["rejection"]["reason"] == "mismatch"
    assert body["rejection"]["recoverable"] is True


def test_correct_code_unlocks_and_returns_pass_once(client, open_gate):
    gate_id = open_gate()

    r = client.post(f"/v1/gates/{gate_id}/submit", json={"code": ISSUED_CODE})
    body = r.json()
    assert body["state"] == "unlocked"
    assert body["gate_pass"]

    again = client.get(f"/v1/gates/{gate_id}").json()
    assert again["state"] == "unlocked"
    assert again["gate_pass"] is None


def test_submit_after_unlock_conflicts(client, open_gate):
    gate_id = open_gate()
    client.post(f"/v1/gates/{gate_id}/submit", json={"code": ISSUED_CODE})

    r = client.post(f"/v1/gates/{gate_id}/submit", json={"code": ISSUED_CODE})
    assert r.status_code == 409


def test_submit_before_request_conflicts(client):
    gate_id = client.post("/v1/gates").json()["gate_id"]
    r = client.post(f"/v1/gates/{gate_id}/submit", json={"code": ISSUED_CODE})
    assert r.status_code == 409


def test_exhausted_attempts_send_gate_back_to_idle(client, open_gate):
    gate_id = open_gate()
    for _ in range(4):
        client.post(f"/v1/gates/{gate_id}/submit", json={"code": "000000"})

    r = client.post(f"/v1/gates/{gate_id}/submit", json={"code": "000000"})
    body = r.json()
    assert body["state"] == "idle"
    assert body["rejection"]["reason"] == "attempts_exhausted"
    assert body["rejection"]["recoverable"] is False


def test_resend_delivers_a_new_code(client, app_and_deps, open_gate):
    _, _, channel, _ = app_and_deps
    gate_id = open_gate()

    r = client.post(f"/v1/gates/{gate_id}/resend")

    assert r.status_code == 200
    assert r.json()["state"] == "awaiting_code"
    assert len(channel.sent) == 2


def test_unknown_gate_is_404(client):
    assert client.get("/v1/gates/does-not-exist").status_code == 404
    r = client.post("/v1/gates/does-not-exist/resend")
    assert r.status_code == 404


def test_healthz(client):
    r = client.get("/healthz")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_gate_follows_the_app_otp_settings():
    app = create_app(Settings(otp_max_attempts=2, otp_code_length=8))
    app.dependency_overrides[get_delivery_channel] = lambda: FakeDeliveryChannel()
    client = TestClient(app, raise_server_exceptions=False)

    gate_id = client.post("/v1/gates").json()["gate_id"]
    r = client.post(
        f"/v1/gates/{gate_id}/request", json={"recipient": "admin@example.com"}
    )
    assert r.json()["attempts_remaining"] == 2

    r = client.post(f"/v1/gates/{gate_id}/submit", json={"code": "00000000"})
    assert r.json()["rejection"]["reason"] == "mismatch"
    r = client.post(f"/v1/gates/{gate_id}/submit", json={"code": "00000000"})
    assert r.json()["rejection"]["reason"] == "attempts_exhausted"
    assert r.json()["state"] == "idle"
