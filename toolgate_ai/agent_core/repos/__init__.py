"""Keyed store interface plus in-memory and SQL implementations.

The keyed store is the persistence boundary for the agent core.

Responsibilities
----------------

- Provide one small async interface (a Protocol) that the queue, the agent and
  the runner depend on.
- Persist three logs, each partitioned by conversation id:

  - the message log (every message sent through the queue, with its
    ``handled`` flag),
  - the conversation context (model-facing messages, append-only),
  - pending approvals (tool calls waiting for a human decision).

Design notes
------------

The runtime is intentionally written against the interface so it can be used
with:

- a SQL database (async SQLAlchemy implementation provided in ``repos.sql``),
- the in-memory implementation in ``repos.memory`` for tests,
- future persistence backends.
"""

from .interfaces import KeyedStore, StoreBundle, StoredRecord
from .memory import InMemoryKeyedStore, build_memory_stores

__all__ = [
    "KeyedStore",
    "StoreBundle",
    "StoredRecord",
    "InMemoryKeyedStore",
    "build_memory_stores",
]
