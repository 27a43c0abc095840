import pytest

from schoolhub.application.issue_code import OtpPolicy
from schoolhub.infrastructure.memory.gate_passes import InMemoryGatePasses
from schoolhub.infrastructure.memory.verification_store import (
    InMemoryVerificationStore,
)
from tests.fakes import ISSUED_CODE, FakeClock, FakeDeliveryChannel, FakeUoW


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def policy():
    return OtpPolicy(code_length=6, ttl_seconds=300, max_attempts=5)


@pytest.fixture()
def store(clock):
    return InMemoryVerificationStore(retention_seconds=600, clock=clock)


@pytest.fixture()
def channel():
    return FakeDeliveryChannel()


@pytest.fixture()
def gate_passes(clock):
    return InMemoryGatePasses(ttl_seconds=900, clock=clock)


@pytest.fixture()
def uow():
    return FakeUoW()


@pytest.fixture(autouse=True)
def patch_code(monkeypatch):
    """
    Make issued codes deterministic in all tests.
    You can override in a specific test by re-monkeypatching.
    """
    from schoolhub.domain import services as domain_services

    monkeypatch.setattr(
        domain_services, "generate_numeric_code", lambda length=6: ISSUED_CODE
    )
    yield
