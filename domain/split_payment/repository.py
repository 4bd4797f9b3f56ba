"""
Split payment progress store - abstract key/value port.

Records are JSON-ready snapshots of the SplitPayment aggregate keyed by
split_trx_id. The orchestrator is the single writer per key; readers may
observe an in-progress snapshot.
"""
from abc import ABC, abstractmethod
from typing import Any, Optional


class SplitPaymentStore(ABC):
    """Progress store contract - only what it can do, not how"""

    @abstractmethod
    async def save(self, split_trx_id: str, data: dict[str, Any]) -> None:
        """Create or replace the record"""
        pass

    @abstractmethod
    async def get(self, split_trx_id: str) -> Optional[dict[str, Any]]:
        """Return the record without internal bookkeeping fields, or None"""
        pass

    @abstractmethod
    async def update(self, split_trx_id: str, data: dict[str, Any]) -> bool:
        """Replace an existing record; False if it does not exist"""
        pass

    @abstractmethod
    async def delete(self, split_trx_id: str) -> bool:
        pass

    @abstractmethod
    async def exists(self, split_trx_id: str) -> bool:
        pass
