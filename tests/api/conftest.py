import pytest
from fastapi.testclient import TestClient

from schoolhub.main import create_app
from schoolhub.presentation.dependencies import (
    get_delivery_channel,
    get_image_storage,
    get_uow,
)
from tests.fakes import (
    ISSUED_CODE,
    FakeDeliveryChannel,
    FakeImageStorage,
    FakeUoW,
    make_school,
)


@pytest.fixture()
def app_and_deps():
    app = create_app()
    uow = FakeUoW(
        [
            make_school(1, "Greenwood High", "Bengaluru", "Karnataka"),
            make_school(2, "Delhi Public School", "New Delhi", "Delhi"),
        ]
    )
    channel = FakeDeliveryChannel()
    storage = FakeImageStorage()

    app.dependency_overrides[get_uow] = lambda: uow
    app.dependency_overrides[get_delivery_channel] = lambda: channel
    app.dependency_overrides[get_image_storage] = lambda: storage

    try:
        yield app, uow, channel, storage
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app_and_deps):
    app, _, _, _ = app_and_deps
    return TestClient(app, raise_server_exceptions=False)


@pytest.fixture()
def open_gate(client):
    """Create a gate and request a code for it; returns the gate id."""

    def _open(recipient: str = "admin@example.com") -> str:
        r = client.post("/v1/gates")
        assert r.status_code == 201, r.text
        gate_id = r.json()["gate_id"]
        r = client.post(f"/v1/gates/{gate_id}/request", json={"recipient": recipient})
        assert r.status_code == 200, r.text
        return gate_id

    return _open


@pytest.fixture()
def gate_pass(client, open_gate) -> str:
    gate_id = open_gate()
    r = client.post(f"/v1/gates/{gate_id}/submit", json={"code": ISSUED_CODE})
    assert r.json()["state"] == "unlocked", r.text
    return r.json()["gate_pass"]
