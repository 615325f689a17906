from __future__ import annotations

"""In-memory keyed store.

Used by unit tests and by deployments that do not need durability across
restarts. Payloads are deep-copied on the way in and out so callers can never
mutate stored state behind the store's back.
"""

import copy
from typing import Dict, Optional, TypeVar

from ..errors import RecordNotFoundError
from ..schemas.approvals import PendingApproval
from ..schemas.messages import ContextMessage, Message
from .interfaces import KeyedStore, StoreBundle, StoredRecord

T = TypeVar("T")


class InMemoryKeyedStore(KeyedStore[T]):
    """Dict-backed ``KeyedStore``.

    Python dicts keep insertion order and re-assigning an existing key keeps its
    slot, which gives the partition ordering the contract asks for.
    """

    def __init__(self) -> None:
        self._records: Dict[str, StoredRecord[T]] = {}

    @staticmethod
    def _copy(record: StoredRecord[T]) -> StoredRecord[T]:
        return StoredRecord(
            primary_key=record.primary_key,
            secondary_key=record.secondary_key,
            payload=copy.deepcopy(record.payload),
        )

    async def create(self, primary_key: str, secondary_key: str, payload: T) -> StoredRecord[T]:
        record = StoredRecord(primary_key=primary_key, secondary_key=secondary_key, payload=copy.deepcopy(payload))
        self._records[primary_key] = record
        return self._copy(record)

    async def read_by_id(self, primary_key: str) -> Optional[StoredRecord[T]]:
        record = self._records.get(primary_key)
        return self._copy(record) if record is not None else None

    async def read(self, secondary_key: str, limit: Optional[int] = None, offset: int = 0) -> list[StoredRecord[T]]:
        matching = [r for r in self._records.values() if r.secondary_key == secondary_key]
        end = offset + limit if limit is not None else None
        return [self._copy(r) for r in matching[offset:end]]

    async def update(self, primary_key: str, payload: T) -> StoredRecord[T]:
        existing = self._records.get(primary_key)
        if existing is None:
            raise RecordNotFoundError(primary_key)
        record = StoredRecord(
            primary_key=primary_key,
            secondary_key=existing.secondary_key,
            payload=copy.deepcopy(payload),
        )
        self._records[primary_key] = record
        return self._copy(record)

    async def delete(self, primary_key: str) -> str:
        self._records.pop(primary_key, None)
        return primary_key

    async def partitions(self) -> list[str]:
        return list(dict.fromkeys(r.secondary_key for r in self._records.values()))


def build_memory_stores() -> StoreBundle:
    """Build a ``StoreBundle`` of fresh in-memory stores."""
    return StoreBundle(
        messages=InMemoryKeyedStore[Message](),
        context=InMemoryKeyedStore[ContextMessage](),
        approvals=InMemoryKeyedStore[PendingApproval](),
    )
