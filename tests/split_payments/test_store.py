import pytest

from infrastructure.repositories.split_payment_store import InMemorySplitPaymentStore, RedisSplitPaymentStore

HOUR_MS = 60 * 60 * 1000


class Clock:
    def __init__(self, now=1_000_000):
        self.now = now

    def __call__(self):
        return self.now


def _store(clock, rolls=None, probability=0.1):
    rolls = list(rolls or [])
    return InMemorySplitPaymentStore(
        clock=clock,
        rng=lambda: rolls.pop(0) if rolls else 0.99,
        cleanup_probability=probability,
    )


@pytest.mark.asyncio
async def test_read_strips_internal_fields():
    store = _store(Clock())
    await store.save("SPT-1", {"split_trx_id": "SPT-1", "status": "processing"})
    assert await store.get("SPT-1") == {"split_trx_id": "SPT-1", "status": "processing"}
    assert await store.exists("SPT-1")


@pytest.mark.asyncio
async def test_repeated_reads_are_identical_and_isolated():
    store = _store(Clock())
    await store.save("SPT-1", {"parts": [{"status": "pending"}]})
    first = await store.get("SPT-1")
    first["parts"][0]["status"] = "tampered"
    assert await store.get("SPT-1") == {"parts": [{"status": "pending"}]}


@pytest.mark.asyncio
async def test_update_requires_existing_record():
    store = _store(Clock())
    assert await store.update("SPT-missing", {"status": "failed"}) is False
    await store.save("SPT-1", {"status": "processing", "reference": "100"})
    assert await store.update("SPT-1", {"status": "completed"}) is True
    assert await store.get("SPT-1") == {"status": "completed", "reference": "100"}


@pytest.mark.asyncio
async def test_expired_entry_reads_as_absent():
    clock = Clock()
    store = _store(clock)
    await store.save("SPT-1", {"status": "completed"})
    clock.now += 24 * HOUR_MS + 1
    assert await store.get("SPT-1") is None
    assert not await store.exists("SPT-1")
    assert await store.update("SPT-1", {"status": "failed"}) is False


@pytest.mark.asyncio
async def test_update_keeps_original_retention():
    clock = Clock()
    store = _store(clock)
    await store.save("SPT-1", {"status": "processing"})
    clock.now += 23 * HOUR_MS
    await store.update("SPT-1", {"status": "completed"})
    clock.now += 2 * HOUR_MS
    assert await store.get("SPT-1") is None


@pytest.mark.asyncio
async def test_cleanup_runs_on_lucky_write():
    clock = Clock()
    store = _store(clock, rolls=[0.5, 0.05])
    await store.save("SPT-old", {"status": "completed"})
    clock.now += 25 * HOUR_MS
    await store.save("SPT-new", {"status": "processing"})
    assert store.stats() == {"total_entries": 1, "oldest_entry_age_ms": 0}


@pytest.mark.asyncio
async def test_stats_and_delete():
    clock = Clock()
    store = _store(clock, probability=0)
    assert store.stats() == {"total_entries": 0, "oldest_entry_age_ms": None}
    await store.save("SPT-1", {})
    clock.now += 500
    await store.save("SPT-2", {})
    assert store.stats() == {"total_entries": 2, "oldest_entry_age_ms": 500}
    assert await store.delete("SPT-1") is True
    assert await store.delete("SPT-1") is False


class FakeCache:
    """Dict stand-in for RedisCache recording TTL options."""

    def __init__(self):
        self.data = {}
        self.options = []

    async def get(self, key):
        return self.data.get(key)

    async def set(self, key, value, ttl=None, *, only_if_exists=False, keep_ttl=False):
        self.options.append((key, ttl, only_if_exists, keep_ttl))
        if only_if_exists and key not in self.data:
            return False
        self.data[key] = value
        return True

    async def delete(self, key):
        return self.data.pop(key, None) is not None

    async def exists(self, key):
        return key in self.data


@pytest.mark.asyncio
async def test_redis_store_uses_ttl_and_keeps_it_on_update():
    cache = FakeCache()
    store = RedisSplitPaymentStore(cache, retention_hours=24)
    await store.save("SPT-1", {"status": "processing"})
    assert await store.update("SPT-1", {"status": "completed"}) is True
    assert cache.options == [
        ("split-payment:SPT-1", 86400, False, False),
        ("split-payment:SPT-1", None, True, True),
    ]
    assert await store.get("SPT-1") == {"status": "completed"}
    assert await store.update("SPT-2", {"status": "completed"}) is False
