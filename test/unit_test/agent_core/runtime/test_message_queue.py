from __future__ import annotations

import asyncio
import logging
from typing import List

import pytest

from toolgate_ai.agent_core.errors import RecordNotFoundError
from toolgate_ai.agent_core.repos.memory import InMemoryKeyedStore
from toolgate_ai.agent_core.runtime.message_queue import MessageQueue
from toolgate_ai.agent_core.schemas.messages import ContextMessage, Error, Message, MessageType, Turn


def _turn(conversation: str, text: str) -> Turn:
    return Turn(conversation=conversation, content=[ContextMessage.user(text)])


@pytest.fixture
def store() -> InMemoryKeyedStore[Message]:
    return InMemoryKeyedStore[Message]()


async def test_messages_of_one_conversation_are_processed_in_send_order(store) -> None:
    q = MessageQueue(store=store)
    seen: List[str] = []

    async def handler(msg: Turn) -> None:
        # Yield so that a concurrent dispatch would interleave.
        await asyncio.sleep(0)
        seen.append(msg.content[0].text)
        await asyncio.sleep(0)

    q.on(MessageType.turn, handler)
    for i in range(5):
        await q.send(_turn("c1", str(i)))
    await q.join()

    assert seen == ["0", "1", "2", "3", "4"]


async def test_handler_of_next_message_waits_for_previous_handler(store) -> None:
    q = MessageQueue(store=store)
    release = asyncio.Event()
    seen: List[str] = []

    async def handler(msg: Turn) -> None:
        text = msg.content[0].text
        if text == "first":
            await release.wait()
        seen.append(text)

    q.on("turn", handler)
    await q.send(_turn("c1", "first"))
    await q.send(_turn("c1", "second"))
    await asyncio.sleep(0.01)
    assert seen == []

    release.set()
    await q.join("c1")
    assert seen == ["first", "second"]


async def test_blocked_conversation_does_not_delay_another(store) -> None:
    q = MessageQueue(store=store)
    never = asyncio.Event()
    seen: List[str] = []

    async def handler(msg: Turn) -> None:
        if msg.conversation == "A":
            await never.wait()
        seen.append(msg.conversation)

    q.on(MessageType.turn, handler)
    await q.send(_turn("A", "stuck"))
    await q.send(_turn("B", "free"))

    await asyncio.wait_for(q.join("B"), timeout=1)
    assert seen == ["B"]
    await q.stop()


async def test_message_is_persisted_before_dispatch(store) -> None:
    q = MessageQueue(store=store)
    found: List[bool] = []

    async def handler(msg: Turn) -> None:
        record = await store.read_by_id(msg.id)
        found.append(record is not None and not record.payload.handled)

    q.on(MessageType.turn, handler)
    await q.send(_turn("c1", "hello"))
    await q.join()

    assert found == [True]
    record = await store.read_by_id((await store.read("c1"))[0].primary_key)
    assert record is not None and record.payload.handled is True


async def test_start_replays_unhandled_messages_in_partition_order(store) -> None:
    a1, a2, b1 = _turn("A", "a1"), _turn("A", "a2"), _turn("B", "b1")
    done = _turn("A", "done").model_copy(update={"handled": True})
    for msg in (a1, done, b1, a2):
        await store.create(msg.id, msg.conversation, msg)

    q = MessageQueue(store=store)
    seen: List[str] = []

    async def handler(msg: Turn) -> None:
        seen.append(msg.content[0].text)

    q.on(MessageType.turn, handler)
    replayed = await q.start()
    await q.join()

    assert replayed == 3
    assert [s for s in seen if s.startswith("a")] == ["a1", "a2"]
    assert sorted(seen) == ["a1", "a2", "b1"]
    assert all(r.payload.handled for c in ("A", "B") for r in await store.read(c))


async def test_start_twice_does_not_replay_again(store) -> None:
    msg = _turn("A", "x")
    await store.create(msg.id, msg.conversation, msg)
    q = MessageQueue(store=store)
    calls: List[str] = []

    async def handler(m: Turn) -> None:
        calls.append(m.id)

    q.on(MessageType.turn, handler)
    assert await q.start() == 1
    assert await q.start() == 0
    await q.join()
    assert calls == [msg.id]


async def test_stop_leaves_in_flight_message_for_replay(store) -> None:
    block = asyncio.Event()
    q1 = MessageQueue(store=store)

    async def blocking(msg: Turn) -> None:
        await block.wait()

    q1.on(MessageType.turn, blocking)
    sent = await q1.send(_turn("A", "interrupted"))
    await asyncio.sleep(0)
    await q1.stop()

    record = await store.read_by_id(sent.id)
    assert record is not None and record.payload.handled is False

    q2 = MessageQueue(store=store)
    seen: List[str] = []

    async def handler(msg: Turn) -> None:
        seen.append(msg.id)

    q2.on(MessageType.turn, handler)
    await q2.start()
    await q2.join()
    assert seen == [sent.id]


async def test_already_handled_message_is_skipped(store) -> None:
    q = MessageQueue(store=store)
    calls: List[str] = []

    async def handler(msg: Turn) -> None:
        calls.append(msg.id)

    q.on(MessageType.turn, handler)
    msg = _turn("A", "x").model_copy(update={"handled": True})
    await q.send(msg)
    await q.join()
    assert calls == []


async def test_mark_handled_is_idempotent(store) -> None:
    q = MessageQueue(store=store)
    msg = _turn("A", "x")
    await store.create(msg.id, msg.conversation, msg)

    assert await q.mark_handled(msg.id) is True
    assert await q.mark_handled(msg.id) is False
    record = await store.read_by_id(msg.id)
    assert record is not None and record.payload.handled is True


async def test_mark_handled_unknown_id_raises(store) -> None:
    q = MessageQueue(store=store)
    with pytest.raises(RecordNotFoundError):
        await q.mark_handled("missing")


async def test_failing_handler_is_logged_and_does_not_stop_the_chain(store, caplog) -> None:
    caplog.set_level(logging.ERROR, logger="toolgate_ai.agent_core.runtime.message_queue")
    q = MessageQueue(store=store)
    second: List[str] = []

    async def boom(msg: Turn) -> None:
        if msg.content[0].text == "bad":
            raise RuntimeError("boom")

    async def after(msg: Turn) -> None:
        second.append(msg.content[0].text)

    q.on(MessageType.turn, boom)
    q.on(MessageType.turn, after)
    bad = await q.send(_turn("A", "bad"))
    await q.send(_turn("A", "good"))
    await q.join()

    assert second == ["bad", "good"]
    record = await store.read_by_id(bad.id)
    assert record is not None and record.payload.handled is True
    assert any("failed" in r.getMessage() and r.exc_info for r in caplog.records)


async def test_variant_without_listener_is_logged_and_marked_handled(store, caplog) -> None:
    caplog.set_level(logging.WARNING, logger="toolgate_ai.agent_core.runtime.message_queue")
    q = MessageQueue(store=store)
    msg = await q.send(Error(conversation="A", body={"message": "x"}))
    await q.join()

    record = await store.read_by_id(msg.id)
    assert record is not None and record.payload.handled is True
    assert any("No listeners" in r.getMessage() for r in caplog.records)


def test_registering_unknown_message_type_raises(store) -> None:
    q = MessageQueue(store=store)

    async def handler(msg) -> None:
        return None

    with pytest.raises(ValueError):
        q.on("agent", handler)


async def test_duplicate_content_is_processed_twice(store) -> None:
    q = MessageQueue(store=store)
    seen: List[str] = []

    async def handler(msg: Turn) -> None:
        seen.append(msg.id)

    q.on(MessageType.turn, handler)
    first = await q.send(_turn("A", "same"))
    second = await q.send(_turn("A", "same"))
    await q.join()

    assert first.id != second.id
    assert seen == [first.id, second.id]


async def test_messages_sent_by_handlers_are_awaited_by_join(store) -> None:
    q = MessageQueue(store=store)
    errors: List[str] = []

    async def on_turn(msg: Turn) -> None:
        await q.send(Error(conversation="other", body={"from": msg.conversation}))

    async def on_error(msg: Error) -> None:
        await asyncio.sleep(0.01)
        errors.append(msg.body["from"])

    q.on(MessageType.turn, on_turn)
    q.on(MessageType.error, on_error)
    await q.send(_turn("A", "x"))
    await q.join()

    assert errors == ["A"]
