from __future__ import annotations

"""Durable, typed publish/subscribe message queue.

``MessageQueue`` is the bus every component talks through. It is built on a
``KeyedStore`` holding the message log, partitioned by conversation id.

Delivery model
--------------

- ``send`` persists the message first and only then schedules it. A message
  that was never marked handled is therefore always recoverable.
- Each conversation has its own ``_PartitionWorker``: an asyncio task fed by
  a mailbox. Messages of one conversation are processed strictly in the order
  they were scheduled; different conversations run concurrently, so a
  conversation waiting on a slow model call or tool never delays another.
- Workers are created on demand and exit once their mailbox is empty.
- ``start`` replays every unhandled message from the store, partition by
  partition, in insertion order. This is the crash-recovery path and gives
  at-least-once delivery.

Processing a message
--------------------

1. Skip it if the store already has it marked handled.
2. Run every listener registered for its ``type``, in registration order.
   A listener that raises is logged and skipped; the remaining listeners
   still run and later messages of the conversation are unaffected.
3. Mark it handled in the store.

There is no failed state: a message whose listener raised is still marked
handled. Listeners that need a retry or visibility must emit a follow-up
message themselves.
"""

import asyncio
import logging
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

from ..errors import RecordNotFoundError
from ..repos.interfaces import KeyedStore
from ..schemas.messages import Message, MessageType

logger = logging.getLogger(__name__)

Handler = Callable[[Any], Awaitable[None]]


class _PartitionWorker:
    """Serial executor for the messages of one conversation."""

    def __init__(
        self,
        conversation: str,
        *,
        process: Callable[[Message], Awaitable[None]],
        on_idle: Callable[[_PartitionWorker], None],
    ) -> None:
        self.conversation = conversation
        self._process = process
        self._on_idle = on_idle
        self._mailbox: asyncio.Queue[Message] = asyncio.Queue()
        self.task: Optional[asyncio.Task[None]] = None

    def submit(self, message: Message) -> None:
        self._mailbox.put_nowait(message)
        if self.task is None:
            self.task = asyncio.create_task(self._run(), name=f"toolgate-partition:{self.conversation}")

    async def _run(self) -> None:
        while True:
            try:
                message = self._mailbox.get_nowait()
            except asyncio.QueueEmpty:
                break
            await self._process(message)
        # No await between the empty check and deregistration, so a message
        # submitted afterwards always lands on a fresh worker.
        self._on_idle(self)

    def cancel(self) -> None:
        if self.task is not None and not self.task.done():
            self.task.cancel()


class MessageQueue:
    """Persist, order and dispatch messages to registered listeners."""

    def __init__(self, *, store: KeyedStore[Message]) -> None:
        """
        Initialize the queue.

        Args:
            store: Keyed store used as the message log.
        """
        self._store = store
        self._listeners: Dict[MessageType, List[Handler]] = {t: [] for t in MessageType}
        self._workers: Dict[str, _PartitionWorker] = {}
        self._scheduled: Set[str] = set()
        self._started = False

    @property
    def store(self) -> KeyedStore[Message]:
        """Return the underlying message log."""
        return self._store

    def on(self, message_type: MessageType | str, handler: Handler) -> None:
        """
        Register an async listener for one message variant.

        Args:
            message_type: The variant to listen to (``MessageType`` or its value).
            handler: Coroutine function called with each message of that variant.

        Raises:
            ValueError: If ``message_type`` is not a known variant.
        """
        self._listeners[MessageType(message_type)].append(handler)

    async def send(self, message: Message) -> Message:
        """
        Persist a message and schedule it for dispatch.

        Store failures propagate to the caller and nothing is scheduled.

        Args:
            message: The message to send. Its ``id`` is assigned by the model's factory.

        Returns:
            The persisted message.
        """
        await self._store.create(message.id, message.conversation, message)
        logger.debug(f"Persisted {message.type} message {message.id} for conversation {message.conversation}")
        self._schedule(message)
        return message

    async def start(self) -> int:
        """
        Replay every unhandled message found in the store.

        Calling ``start`` again after a successful start is a no-op.

        Returns:
            The number of messages scheduled for replay.
        """
        if self._started:
            return 0
        replayed = 0
        for conversation in await self._store.partitions():
            records = await self._store.read(conversation)
            for record in records:
                if not record.payload.handled:
                    if self._schedule(record.payload):
                        replayed += 1
        self._started = True
        logger.info(f"Message queue started, replayed {replayed} unhandled message(s)")
        return replayed

    async def stop(self) -> None:
        """Cancel all partition workers.

        Messages still in a mailbox stay unhandled in the store and are
        replayed by the next ``start``.
        """
        workers = list(self._workers.values())
        for worker in workers:
            worker.cancel()
        tasks = [w.task for w in workers if w.task is not None]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._workers.clear()
        self._scheduled.clear()
        self._started = False

    async def join(self, conversation: Optional[str] = None) -> None:
        """
        Wait until scheduled work is drained.

        Messages scheduled by listeners while waiting are waited for as well.
        A listener that never returns makes this wait forever.

        Args:
            conversation: Only wait for this conversation (all if None).
        """
        while True:
            tasks = [
                w.task
                for c, w in self._workers.items()
                if w.task is not None and (conversation is None or c == conversation)
            ]
            if not tasks:
                return
            await asyncio.wait(tasks)

    async def mark_handled(self, message_id: str) -> bool:
        """
        Set the durable ``handled`` flag of a message.

        Args:
            message_id: The message identifier.

        Returns:
            True if the flag was flipped, False if it was already set.

        Raises:
            RecordNotFoundError: If the message is not in the store.
        """
        record = await self._store.read_by_id(message_id)
        if record is None:
            raise RecordNotFoundError(message_id)
        if record.payload.handled:
            return False
        await self._store.update(message_id, record.payload.model_copy(update={"handled": True}))
        return True

    def _schedule(self, message: Message) -> bool:
        if message.id in self._scheduled:
            return False
        self._scheduled.add(message.id)
        worker = self._workers.get(message.conversation)
        if worker is None:
            worker = _PartitionWorker(message.conversation, process=self._process, on_idle=self._release)
            self._workers[message.conversation] = worker
        worker.submit(message)
        return True

    def _release(self, worker: _PartitionWorker) -> None:
        if self._workers.get(worker.conversation) is worker:
            del self._workers[worker.conversation]

    async def _process(self, message: Message) -> None:
        try:
            await self._dispatch(message)
        finally:
            self._scheduled.discard(message.id)

    async def _dispatch(self, message: Message) -> None:
        try:
            record = await self._store.read_by_id(message.id)
        except Exception:
            logger.exception(f"Could not load message {message.id}; it stays unhandled until the next start")
            return
        if record is not None and record.payload.handled:
            logger.debug(f"Skipping already handled message {message.id}")
            return

        listeners = self._listeners[MessageType(message.type)]
        if not listeners:
            logger.warning(f"No listeners registered for {message.type} messages; marking {message.id} handled")

        for listener in listeners:
            try:
                await listener(message)
            except Exception:
                logger.exception(
                    f"Listener {getattr(listener, '__qualname__', listener)!s} failed on {message.type} "
                    f"message {message.id} (conversation {message.conversation})"
                )

        try:
            await self.mark_handled(message.id)
        except Exception:
            logger.exception(f"Could not mark message {message.id} handled")
