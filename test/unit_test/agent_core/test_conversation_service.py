from __future__ import annotations

from typing import Sequence

import pytest

from toolgate_ai.agent_core.abstraction.base import ModelTurn
from toolgate_ai.agent_core.errors import ApprovalAlreadyResolvedError, ApprovalNotFoundError, ModelProviderError
from toolgate_ai.agent_core.policy.approver import SinkApprover
from toolgate_ai.agent_core.policy.models import ApprovalPolicy, PolicyConfig
from toolgate_ai.agent_core.schemas.approvals import ApprovalDecision, ApprovalOutcome
from toolgate_ai.agent_core.schemas.messages import (
    ContextMessage,
    Role,
    TextPart,
    ToolCall,
    ToolCallPart,
    Turn,
)


def _call_echo(call_id: str = "call-1", msg: str = "hello") -> ModelTurn:
    return ModelTurn(
        messages=[
            ContextMessage(role=Role.assistant, parts=[ToolCallPart(call_id=call_id, tool_name="echo", args={"msg": msg})])
        ],
        tool_calls=[ToolCall(call_id=call_id, tool_name="echo", args={"msg": msg})],
    )


def _reply(text: str) -> ModelTurn:
    return ModelTurn(messages=[ContextMessage(role=Role.assistant, parts=[TextPart(text=text)])])


def _last_tool_result(messages: Sequence[ContextMessage]):
    for m in reversed(messages):
        if m.role == Role.tool:
            return m.tool_results[0]
    return None


async def test_echo_is_auto_approved_and_result_reaches_the_model(make_service, sink) -> None:
    config = PolicyConfig(approval_policy=ApprovalPolicy(always_approve={"echo"}))
    svc, model = make_service(steps=[_call_echo(), _reply("done")], policy_config=config)
    await svc.start()

    await svc.submit_turn("c1", "please echo hello")
    await svc.join()

    assert len(model.calls) == 2
    result = _last_tool_result(model.calls[1]["messages"])
    assert result is not None
    assert (result.call_id, result.result, result.is_error) == ("call-1", "hello", False)
    assert sink.texts == [("c1", "done")]
    assert sink.approvals == []


async def test_pending_call_waits_for_resolve_approval(make_service, sink) -> None:
    svc, model = make_service(steps=[_call_echo(), _reply("thanks")])
    await svc.start()

    await svc.submit_turn("c1", "please echo hello")
    await svc.join()

    assert len(model.calls) == 1
    assert [a[2] for a in sink.approvals] == ["call-1"]
    [pending] = await svc.pending_approvals("c1")
    assert pending.call_id == "call-1"

    response = await svc.resolve_approval("call-1", True, decided_by="alice")
    await svc.join()

    assert response.approved is True
    assert response.decided_by == "alice"
    assert len(model.calls) == 2
    assert _last_tool_result(model.calls[1]["messages"]).result == "hello"
    assert await svc.pending_approvals("c1") == []


async def test_rejected_approval_reports_rejection_to_the_model(make_service) -> None:
    svc, model = make_service(steps=[_call_echo(), _reply("ok, I won't")])
    await svc.start()

    await svc.submit_turn("c1", "please echo hello")
    await svc.join()
    await svc.resolve_approval("call-1", False, reason="not now", decided_by="bob")
    await svc.join()

    result = _last_tool_result(model.calls[1]["messages"])
    assert result.is_error is True
    assert result.result == "rejected by operator: not now"


async def test_resolve_unknown_call_raises(make_service) -> None:
    svc, _ = make_service()
    with pytest.raises(ApprovalNotFoundError):
        await svc.resolve_approval("nope", True)


async def test_resolve_twice_raises(make_service, stores) -> None:
    svc, _ = make_service(steps=[_call_echo()])
    await svc.start()
    await svc.submit_turn("c1", "echo")
    await svc.join()

    await svc.resolve_approval("call-1", False)
    with pytest.raises(ApprovalAlreadyResolvedError) as exc:
        await svc.resolve_approval("call-1", True)

    assert exc.value.decision == ApprovalDecision.rejected.value
    record = await stores.approvals.read_by_id("call-1")
    assert record.payload.decision == ApprovalDecision.rejected
    assert record.payload.decided_at is not None


async def test_model_errors_are_rendered_through_the_sink(make_service, sink) -> None:
    svc, _ = make_service(steps=[ModelProviderError("bad key", status_code=401)])
    await svc.start()

    await svc.submit_turn("c1", "hi")
    await svc.join()

    [(conversation, body)] = sink.errors
    assert conversation == "c1"
    assert body["message"] == "bad key"
    assert body["status_code"] == 401


async def test_conversations_progress_independently(make_service, sink) -> None:
    svc, model = make_service(steps=[_call_echo("a-1"), _reply("b done")])
    await svc.start()

    await svc.submit_turn("A", "needs approval")
    await svc.join("A")
    await svc.submit_turn("B", "just chat")
    await svc.join("B")

    assert [a[2] for a in sink.approvals] == ["a-1"]
    assert ("B", "b done") in sink.texts


async def test_submit_turn_accepts_context_messages(make_service, stores) -> None:
    svc, _ = make_service()
    await svc.start()

    turn = await svc.submit_turn("c1", [ContextMessage.system("be brief"), ContextMessage.user("hi")])
    await svc.join()

    stored = await stores.messages.read_by_id(turn.id)
    assert stored is not None and stored.payload.handled is True
    assert [m.role for m in turn.content] == [Role.system, Role.user]


async def test_restart_replays_unfinished_turn(make_service, stores) -> None:
    # A turn persisted by a previous process that crashed before handling it.
    turn = Turn(conversation="c1", content=[ContextMessage.user("hello")])
    await stores.messages.create(turn.id, turn.conversation, turn)

    svc, model = make_service(steps=[_reply("back")])
    assert await svc.start() == 1
    await svc.join()

    assert len(model.calls) == 1
    record = await stores.messages.read_by_id(turn.id)
    assert record.payload.handled is True


class _ChatOpsSink:
    """Sink whose operator answers the approval prompt before it returns."""

    def __init__(self) -> None:
        self.service = None
        self.texts: list[tuple[str, str]] = []

    async def render_text(self, conversation: str, text: str) -> None:
        self.texts.append((conversation, text))

    async def request_approval(self, conversation: str, content: str, call_id: str) -> None:
        await self.service.resolve_approval(call_id, True, decided_by="oncall")

    async def render_error(self, conversation: str, body) -> None:
        pass


async def test_approval_resolved_while_prompt_is_shown(make_service) -> None:
    chat = _ChatOpsSink()
    svc, model = make_service(steps=[_call_echo(), _reply("echoed")], approver=SinkApprover(chat))
    chat.service = svc
    await svc.start()

    await svc.submit_turn("c1", "please echo hello")
    await svc.join()

    assert len(model.calls) == 2
    assert _last_tool_result(model.calls[1]["messages"]).result == "hello"
    assert await svc.pending_approvals("c1") == []


class _ResolvingApprover:
    def __init__(self) -> None:
        self.service = None

    async def request_approval(self, request) -> ApprovalOutcome:
        await self.service.resolve_approval(request.tool_call.call_id, False, reason="too late", decided_by="alice")
        return ApprovalOutcome.approved


async def test_decision_made_during_approval_wins_over_returned_outcome(make_service, stores) -> None:
    approver = _ResolvingApprover()
    svc, model = make_service(steps=[_call_echo(), _reply("ok")], approver=approver)
    approver.service = svc
    await svc.start()

    await svc.submit_turn("c1", "please echo hello")
    await svc.join()

    assert len(model.calls) == 2
    result = _last_tool_result(model.calls[1]["messages"])
    assert result.is_error is True
    assert result.result == "rejected by operator: too late"
    record = await stores.approvals.read_by_id("call-1")
    assert record.payload.decided_by == "alice"
