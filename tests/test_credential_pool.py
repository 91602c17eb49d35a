"""Tests for the rotating credential pool."""

import asyncio

import pytest

from addrenrich.schemas.credential import Credential
from addrenrich.services.enrichment.credential_pool import CredentialPool

from conftest import FakePrompt, make_credentials


@pytest.mark.asyncio
async def test_acquire_rotates_when_quota_reached():
    """Test the cursor moves on once the active credential hits its quota."""
    pool = CredentialPool(make_credentials(2), quota=2)

    leases = [await pool.acquire() for _ in range(3)]

    assert [lease.credential.auth_id for lease in leases] == ["id-0", "id-0", "id-1"]
    assert [lease.index for lease in leases] == [0, 0, 1]
    assert pool.cursor == 1
    assert pool.usage == 1


@pytest.mark.asyncio
async def test_acquire_cursor_never_decreases():
    """Test sequential acquires observe a non-decreasing cursor."""
    pool = CredentialPool(make_credentials(3), quota=1)

    indexes = []
    for _ in range(3):
        lease = await pool.acquire()
        indexes.append(lease.index)
        await pool.invalidate(lease)

    assert indexes == sorted(indexes)
    assert pool.cursor == 3


@pytest.mark.asyncio
async def test_acquire_replenishes_when_exhausted():
    """Test new credentials are appended and served when the pool runs dry."""
    prompt = FakePrompt([[Credential(auth_id="fresh", auth_token="secret")]])
    pool = CredentialPool(make_credentials(1), quota=1, replenish=prompt)

    first = await pool.acquire()
    second = await pool.acquire()

    assert first.credential.auth_id == "id-0"
    assert second.credential.auth_id == "fresh"
    assert second.index == 1
    assert prompt.calls == [1]
    assert len(pool) == 2


@pytest.mark.asyncio
async def test_acquire_returns_none_when_prompt_refused():
    """Test an empty replenishment is the terminal exhaustion signal."""
    prompt = FakePrompt()
    pool = CredentialPool(make_credentials(1), quota=1, replenish=prompt)

    assert await pool.acquire() is not None
    assert await pool.acquire() is None
    assert pool.exhausted is True


@pytest.mark.asyncio
async def test_refused_pool_does_not_prompt_again():
    """Test later callers get None without another prompt after a refusal."""
    prompt = FakePrompt()
    pool = CredentialPool([], quota=5, replenish=prompt)

    results = await asyncio.gather(*(pool.acquire() for _ in range(4)))

    assert results == [None, None, None, None]
    assert prompt.calls == [1]


@pytest.mark.asyncio
async def test_acquire_without_replenisher_is_exhausted():
    """Test a pool with no replenishment source reports exhaustion."""
    pool = CredentialPool([], quota=5)

    assert await pool.acquire() is None


@pytest.mark.asyncio
async def test_concurrent_acquire_serializes_replenishment():
    """Test only one replenishment round runs when many callers hit exhaustion."""
    gate = asyncio.Event()
    calls = []

    async def slow_prompt(min_count: int) -> list[Credential]:
        calls.append(min_count)
        await gate.wait()
        return [Credential(auth_id="fresh", auth_token="secret")]

    pool = CredentialPool([], quota=10, replenish=slow_prompt)
    pending = [asyncio.create_task(pool.acquire()) for _ in range(5)]
    await asyncio.sleep(0)
    gate.set()
    leases = await asyncio.gather(*pending)

    assert calls == [1]
    assert {lease.credential.auth_id for lease in leases} == {"fresh"}
    assert pool.usage == 5


@pytest.mark.asyncio
async def test_invalidate_is_idempotent_for_stale_leases():
    """Test concurrent invalidation of the same credential advances once."""
    pool = CredentialPool(make_credentials(5), quota=100)
    leases = [await pool.acquire() for _ in range(4)]

    advanced = await asyncio.gather(*(pool.invalidate(lease) for lease in leases))

    assert advanced.count(True) == 1
    assert pool.cursor == 1


@pytest.mark.asyncio
async def test_invalidate_resets_usage():
    """Test forced rotation ignores the usage counter and resets it."""
    pool = CredentialPool(make_credentials(2), quota=100)
    lease = await pool.acquire()

    assert await pool.invalidate(lease) is True
    assert pool.usage == 0

    next_lease = await pool.acquire()
    assert next_lease.credential.auth_id == "id-1"


@pytest.mark.asyncio
async def test_invalidate_past_end_is_noop():
    """Test invalidating when already exhausted leaves the cursor alone."""
    pool = CredentialPool(make_credentials(1), quota=100)
    lease = await pool.acquire()
    await pool.invalidate(lease)

    assert await pool.invalidate(lease) is False
    assert pool.cursor == 1


@pytest.mark.asyncio
async def test_snapshot_is_a_copy():
    """Test snapshots include added credentials and are detached from the pool."""
    prompt = FakePrompt([[Credential(auth_id="fresh", auth_token="secret")]])
    pool = CredentialPool(make_credentials(1), quota=1, replenish=prompt)
    await pool.acquire()
    await pool.acquire()

    snapshot = pool.snapshot()
    snapshot[0].uses = 999
    snapshot.append(Credential(auth_id="extra", auth_token="x"))

    assert [c.auth_id for c in pool.snapshot()] == ["id-0", "fresh"]
    assert pool.snapshot()[0].uses == 1


def test_quota_must_be_positive():
    """Test a zero quota is rejected."""
    with pytest.raises(ValueError):
        CredentialPool([], quota=0)
