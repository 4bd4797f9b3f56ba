"""Split payment progress stores: process-local memory and Redis."""
from __future__ import annotations

import copy
import random
import time
from typing import Any, Callable, Optional

from core.logging_config import get_logger
from domain.split_payment import SplitPaymentStore
from infrastructure.cache.redis_cache import RedisCache


logger = get_logger(__name__)

STORED_AT = "_stored_at"
DEFAULT_RETENTION_HOURS = 24
DEFAULT_CLEANUP_PROBABILITY = 0.1


def _now_ms() -> int:
    return int(time.time() * 1000)


def _strip_internal(record: dict[str, Any]) -> dict[str, Any]:
    return {k: copy.deepcopy(v) for k, v in record.items() if not k.startswith("_")}


class InMemorySplitPaymentStore(SplitPaymentStore):
    """
    Dict-backed store living as long as the process.

    Entries older than the retention window are dropped by an opportunistic
    sweep that runs on a fraction of writes; reads treat an expired entry as
    absent even before the sweep removes it.
    """

    def __init__(
        self,
        *,
        retention_hours: float = DEFAULT_RETENTION_HOURS,
        cleanup_probability: float = DEFAULT_CLEANUP_PROBABILITY,
        clock: Callable[[], int] = _now_ms,
        rng: Callable[[], float] = random.random,
    ) -> None:
        self._records: dict[str, dict[str, Any]] = {}
        self.retention_ms = int(retention_hours * 60 * 60 * 1000)
        self.cleanup_probability = cleanup_probability
        self._clock = clock
        self._rng = rng

    def _expired(self, record: dict[str, Any], now: int) -> bool:
        stored_at = record.get(STORED_AT)
        return stored_at is not None and now - stored_at > self.retention_ms

    def _maybe_cleanup(self) -> None:
        if self._rng() < self.cleanup_probability:
            self.cleanup_expired()

    def cleanup_expired(self) -> int:
        now = self._clock()
        expired = [key for key, record in self._records.items() if self._expired(record, now)]
        for key in expired:
            del self._records[key]
        if expired:
            logger.info("split_payment_store_cleanup", removed=len(expired), remaining=len(self._records))
        return len(expired)

    def _live(self, split_trx_id: str) -> Optional[dict[str, Any]]:
        record = self._records.get(split_trx_id)
        if record is None:
            return None
        if self._expired(record, self._clock()):
            return None
        return record

    async def save(self, split_trx_id: str, data: dict[str, Any]) -> None:
        stored = copy.deepcopy(data)
        stored[STORED_AT] = self._clock()
        self._records[split_trx_id] = stored
        self._maybe_cleanup()

    async def get(self, split_trx_id: str) -> Optional[dict[str, Any]]:
        record = self._live(split_trx_id)
        return _strip_internal(record) if record is not None else None

    async def update(self, split_trx_id: str, data: dict[str, Any]) -> bool:
        existing = self._live(split_trx_id)
        if existing is None:
            return False
        # Retention is counted from creation
        merged = {**existing, **copy.deepcopy(data)}
        merged[STORED_AT] = existing[STORED_AT]
        self._records[split_trx_id] = merged
        self._maybe_cleanup()
        return True

    async def delete(self, split_trx_id: str) -> bool:
        return self._records.pop(split_trx_id, None) is not None

    async def exists(self, split_trx_id: str) -> bool:
        return self._live(split_trx_id) is not None

    def stats(self) -> dict[str, Any]:
        now = self._clock()
        ages = [now - r[STORED_AT] for r in self._records.values() if r.get(STORED_AT) is not None]
        return {
            "total_entries": len(self._records),
            "oldest_entry_age_ms": max(ages) if ages else None,
        }


class RedisSplitPaymentStore(SplitPaymentStore):
    """Redis-backed store; retention is the key TTL so no sweep is needed."""

    key_prefix = "split-payment"

    def __init__(self, cache: RedisCache, *, retention_hours: float = DEFAULT_RETENTION_HOURS) -> None:
        self.cache = cache
        self.ttl_seconds = int(retention_hours * 60 * 60)

    def _key(self, split_trx_id: str) -> str:
        return f"{self.key_prefix}:{split_trx_id}"

    async def save(self, split_trx_id: str, data: dict[str, Any]) -> None:
        stored = dict(data)
        stored[STORED_AT] = _now_ms()
        await self.cache.set(self._key(split_trx_id), stored, ttl=self.ttl_seconds)

    async def get(self, split_trx_id: str) -> Optional[dict[str, Any]]:
        record = await self.cache.get(self._key(split_trx_id))
        if record is None:
            return None
        return _strip_internal(record)

    async def update(self, split_trx_id: str, data: dict[str, Any]) -> bool:
        existing = await self.cache.get(self._key(split_trx_id))
        if existing is None:
            return False
        merged = {**existing, **data}
        return await self.cache.set(
            self._key(split_trx_id), merged, only_if_exists=True, keep_ttl=True
        )

    async def delete(self, split_trx_id: str) -> bool:
        return await self.cache.delete(self._key(split_trx_id))

    async def exists(self, split_trx_id: str) -> bool:
        return await self.cache.exists(self._key(split_trx_id))
