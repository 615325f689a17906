from __future__ import annotations

"""Keyed store interface contract.

The message queue, the agent's conversation context and the pending approval
log all depend on this single Protocol instead of a concrete persistence
implementation.

Contract guidelines
-------------------

- All methods are async.
- Records are addressed by a unique ``primary_key`` and grouped by a
  non-unique ``secondary_key`` (the partition, e.g. a conversation id).
- ``read`` returns records of one partition in insertion order.
- ``create`` and ``update`` are last-writer-wins overwrites keyed by primary
  key. Overwriting an existing key keeps its position in the partition.
- Backend errors propagate unmodified; implementations never retry.
"""

from dataclasses import dataclass
from typing import Generic, Optional, Protocol, TypeVar

from ..schemas.approvals import PendingApproval
from ..schemas.messages import ContextMessage, Message

T = TypeVar("T")


@dataclass(frozen=True)
class StoredRecord(Generic[T]):
    """A payload together with its primary and secondary keys."""

    primary_key: str
    secondary_key: str
    payload: T


class KeyedStore(Protocol[T]):
    """Durable records addressed by primary key and partitioned by secondary key."""

    async def create(self, primary_key: str, secondary_key: str, payload: T) -> StoredRecord[T]:
        """
        Create (or overwrite) a record.

        Args:
            primary_key: Unique record identifier.
            secondary_key: Partition the record belongs to.
            payload: The value to persist.

        Returns:
            The stored record.
        """
        ...

    async def read_by_id(self, primary_key: str) -> Optional[StoredRecord[T]]:
        """
        Retrieve a record by its primary key.

        Args:
            primary_key: The record identifier.

        Returns:
            The record if found, else None.
        """
        ...

    async def read(self, secondary_key: str, limit: Optional[int] = None, offset: int = 0) -> list[StoredRecord[T]]:
        """
        List the records of one partition in insertion order.

        Args:
            secondary_key: The partition to read.
            limit: Max number of records to return (all if None).
            offset: Number of leading records to skip.

        Returns:
            A list of records.
        """
        ...

    async def update(self, primary_key: str, payload: T) -> StoredRecord[T]:
        """
        Replace the payload of an existing record, keeping its partition.

        Args:
            primary_key: The record identifier.
            payload: The new value.

        Returns:
            The stored record.

        Raises:
            RecordNotFoundError: If no record has this primary key.
        """
        ...

    async def delete(self, primary_key: str) -> str:
        """
        Delete a record. Deleting a missing key is a no-op.

        Args:
            primary_key: The record identifier.

        Returns:
            The primary key, as acknowledgement.
        """
        ...

    async def partitions(self) -> list[str]:
        """
        List every secondary key in order of first insertion.

        Returns:
            Distinct secondary keys.
        """
        ...


@dataclass(frozen=True)
class StoreBundle:
    """The three logs a conversation service persists.

    - ``messages``: the message queue log, partitioned by conversation.
    - ``context``: model-facing context messages, partitioned by conversation.
    - ``approvals``: pending approvals keyed by tool call id.
    """

    messages: KeyedStore[Message]
    context: KeyedStore[ContextMessage]
    approvals: KeyedStore[PendingApproval]
