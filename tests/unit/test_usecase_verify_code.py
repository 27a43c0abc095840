import asyncio
import logging

import pytest

from schoolhub.application.issue_code import OtpPolicy, issue_code
from schoolhub.application.verify_code import verify_code
from schoolhub.domain.errors import (
    AlreadyConsumed,
    AttemptsExhausted,
    CodeExpired,
    CodeMismatch,
    RejectionReason,
    VerificationNotFound,
    VerificationTimeout,
)
from tests.fakes import ISSUED_CODE


@pytest.mark.asyncio
async def test_correct_code_unlocks(store, policy, clock):
    issued = await issue_code(store, "a@x.com", policy, clock)

    unlocked = await verify_code(store, "a@x.com", issued.code, clock=clock)

    assert unlocked.recipient == "a@x.com"
    assert unlocked.verified_at == clock.now
    assert (await store.get("a@x.com")).consumed is True


@pytest.mark.asyncio
async def test_recipient_lookup_is_normalized(store, policy, clock):
    await issue_code(store, "a@x.com", policy, clock)
    unlocked = await verify_code(store, "  A@X.COM", ISSUED_CODE, clock=clock)
    assert unlocked.recipient == "a@x.com"


@pytest.mark.asyncio
async def test_unknown_recipient_is_not_found(store, clock):
    with pytest.raises(VerificationNotFound) as ei:
        await verify_code(store, "nobody@x.com", ISSUED_CODE, clock=clock)
    assert ei.value.reason is RejectionReason.NOT_FOUND


@pytest.mark.asyncio
async def test_wrong_code_decrements_by_exactly_one(store, policy, clock):
    await issue_code(store, "a@x.com", policy, clock)

    with pytest.raises(CodeMismatch) as ei:
        await verify_code(store, "a@x.com", "000000", clock=clock)

    assert ei.value.attempts_remaining == policy.max_attempts - 1
    assert ei.value.recoverable is True
    assert (await store.get("a@x.com")).attempts_remaining == policy.max_attempts - 1


@pytest.mark.asyncio
async def test_max_attempts_mismatches_exhaust_the_request(store, policy, clock):
    await issue_code(store, "a@x.com", policy, clock)

    for expected_left in range(policy.max_attempts - 1, 0, -1):
        with pytest.raises(CodeMismatch) as ei:
            await verify_code(store, "a@x.com", "000000", clock=clock)
        assert ei.value.attempts_remaining == expected_left
    # the (MAX-1)-th mismatch left exactly one attempt
    assert ei.value.attempts_remaining == 1

    with pytest.raises(AttemptsExhausted) as ei2:
        await verify_code(store, "a@x.com", "000000", clock=clock)
    assert ei2.value.recoverable is False


@pytest.mark.asyncio
async def test_exhaustion_is_terminal_even_for_the_right_code(store, clock):
    await issue_code(store, "a@x.com", OtpPolicy(max_attempts=3), clock)
    for _ in range(3):
        with pytest.raises((CodeMismatch, AttemptsExhausted)):
            await verify_code(store, "a@x.com", "000000", clock=clock)

    with pytest.raises(AttemptsExhausted):
        await verify_code(store, "a@x.com", ISSUED_CODE, clock=clock)
    assert (await store.get("a@x.com")).attempts_remaining == 0


@pytest.mark.asyncio
async def test_second_verify_with_correct_code_is_already_consumed(
    store, policy, clock
):
    await issue_code(store, "a@x.com", policy, clock)
    await verify_code(store, "a@x.com", ISSUED_CODE, clock=clock)

    with pytest.raises(AlreadyConsumed):
        await verify_code(store, "a@x.com", ISSUED_CODE, clock=clock)


@pytest.mark.asyncio
@pytest.mark.parametrize("code", [ISSUED_CODE, "000000"])
async def test_after_expiry_is_expired_regardless_of_code(store, policy, clock, code):
    await issue_code(store, "a@x.com", policy, clock)
    clock.advance(policy.ttl_seconds + 1)

    with pytest.raises(CodeExpired) as ei:
        await verify_code(store, "a@x.com", code, clock=clock)
    assert ei.value.recoverable is False
    # expired record is dropped as a side effect
    assert await store.get("a@x.com") is None


@pytest.mark.asyncio
async def test_code_is_valid_up_to_expires_at(store, policy, clock):
    await issue_code(store, "a@x.com", policy, clock)
    clock.advance(policy.ttl_seconds)
    assert await verify_code(store, "a@x.com", ISSUED_CODE, clock=clock)


@pytest.mark.asyncio
async def test_old_code_never_unlocks_after_reissue(store, policy, clock, monkeypatch):
    from schoolhub.domain import services as domain_services

    monkeypatch.setattr(domain_services, "generate_numeric_code", lambda n=6: "111111")
    await issue_code(store, "a@x.com", policy, clock)
    monkeypatch.setattr(domain_services, "generate_numeric_code", lambda n=6: "222222")
    await issue_code(store, "a@x.com", policy, clock)

    with pytest.raises(CodeMismatch):
        await verify_code(store, "a@x.com", "111111", clock=clock)
    assert await verify_code(store, "a@x.com", "222222", clock=clock)


@pytest.mark.asyncio
async def test_concurrent_correct_submissions_unlock_once(store, policy, clock):
    await issue_code(store, "a@x.com", policy, clock)

    results = await asyncio.gather(
        verify_code(store, "a@x.com", ISSUED_CODE, clock=clock),
        verify_code(store, "a@x.com", ISSUED_CODE, clock=clock),
        return_exceptions=True,
    )

    unlocked = [r for r in results if not isinstance(r, Exception)]
    rejected = [r for r in results if isinstance(r, AlreadyConsumed)]
    assert len(unlocked) == 1 and len(rejected) == 1


@pytest.mark.asyncio
async def test_verify_timeout_is_distinct_from_expired(store, policy, clock):
    await issue_code(store, "a@x.com", policy, clock)

    async with store.lock("a@x.com"):
        # the lock is held, so verification cannot finish in time
        with pytest.raises(VerificationTimeout) as ei:
            await verify_code(store, "a@x.com", ISSUED_CODE, timeout=0.05, clock=clock)
    assert ei.value.reason is RejectionReason.TIMEOUT

    # the shielded verification finishes once the lock is free
    await asyncio.sleep(0.01)
    assert (await store.get("a@x.com")).consumed is True


@pytest.mark.asyncio
async def test_late_mismatch_after_timeout_is_collected_and_logged(
    store, policy, clock, caplog
):
    await issue_code(store, "a@x.com", policy, clock)

    with caplog.at_level(logging.INFO, logger="schoolhub.application.verify_code"):
        async with store.lock("a@x.com"):
            with pytest.raises(VerificationTimeout):
                await verify_code(store, "a@x.com", "000000", timeout=0.05, clock=clock)
        await asyncio.sleep(0.01)

    late = [r for r in caplog.records if r.getMessage() == "late verification finished"]
    assert [r.outcome for r in late] == ["mismatch"]
    assert (await store.get("a@x.com")).attempts_remaining == policy.max_attempts - 1
