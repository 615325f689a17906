from __future__ import annotations

"""Approval gating and tool execution.

``Runner`` sits between the model's tool call requests and the tools.

On ``tool_call_request``
------------------------

1. Ask ``GlobalPolicy``. A blocked call is answered with a rejecting
   ``ApprovalResponse``; a call that needs no approval with an approving one.
2. Otherwise record a ``PendingApproval`` and ask the ``Approver``.
   ``approved`` and ``rejected`` settle the record and are answered
   immediately. ``pending`` emits nothing; the decision arrives through
   ``ConversationService.resolve_approval``, possibly before the approver
   has even returned.

On ``approval_response``
------------------------

Every response produces exactly one ``Turn`` carrying a tool result for its
call id:

- rejected: an error result ``"rejected by operator"`` (plus the reason),
- unknown tool: an error result ``"tool not found: <name>"``,
- tool raised: an error result with the exception message,
- otherwise: the tool's return value.
"""

import logging
from typing import Any, Optional

from ..capabilities.base import ToolContext, execute_tool
from ..capabilities.registry import ToolRegistry
from ..policy.approver import Approver
from ..policy.global_policy import GlobalPolicy
from ..repos.interfaces import KeyedStore
from ..schemas.approvals import ApprovalDecision, ApprovalOutcome, PendingApproval
from ..schemas.base import utc_now
from ..schemas.messages import (
    ApprovalResponse,
    ContextMessage,
    Message,
    MessageType,
    ToolCallRequest,
    Turn,
)
from .message_queue import MessageQueue

logger = logging.getLogger(__name__)

REJECTED_RESULT = "rejected by operator"
POLICY_DECIDER = "policy"
# Stands in for tools that return nothing, since a None result marks a pending call.
EMPTY_RESULT = "ok"


class Runner:
    """Gate tool call requests and execute approved tools."""

    def __init__(
        self,
        *,
        tools: ToolRegistry,
        policy: GlobalPolicy,
        approver: Approver,
        approvals: KeyedStore[PendingApproval],
    ) -> None:
        self._tools = tools
        self._policy = policy
        self._approver = approver
        self._approvals = approvals
        self._queue: Optional[MessageQueue] = None

    def register(self, queue: MessageQueue) -> None:
        self._queue = queue
        queue.on(MessageType.tool_call_request, self.handle_tool_call)
        queue.on(MessageType.approval_response, self.handle_approval_response)

    async def _send(self, message: Message) -> None:
        if self._queue is None:
            raise RuntimeError("Runner is not registered with a message queue")
        await self._queue.send(message)

    async def handle_tool_call(self, request: ToolCallRequest) -> Optional[ApprovalResponse]:
        """
        Decide what happens to a tool call request.

        Args:
            request: The request emitted by the agent.

        Returns:
            The emitted response, or None if the decision is pending or was
            delivered through ``resolve_approval`` while the approver ran.
        """
        call = request.tool_call
        decision = self._policy.decide(call.tool_name, args=call.args)
        if decision.block:
            logger.info(f"Tool call {call.call_id} ({call.tool_name}) blocked by policy: {decision.block_reason}")
            response = ApprovalResponse.for_request(
                request, approved=False, reason=decision.block_reason, decided_by=POLICY_DECIDER
            )
        elif not decision.require_approval:
            logger.debug(f"Tool call {call.call_id} ({call.tool_name}) pre-authorized at risk={decision.risk.value}")
            response = ApprovalResponse.for_request(request, approved=True, decided_by=POLICY_DECIDER)
        else:
            return await self._ask_approver(request)

        await self._send(response)
        return response

    async def handle_approval_response(self, response: ApprovalResponse) -> Turn:
        """
        Execute (or refuse) an approved (or rejected) tool call.

        Args:
            response: The decision on a tool call request.

        Returns:
            The emitted turn carrying the tool result.
        """
        call = response.tool_call
        if not response.approved:
            text = f"{REJECTED_RESULT}: {response.reason}" if response.reason else REJECTED_RESULT
            result = ContextMessage.tool_result(call_id=call.call_id, tool_name=call.tool_name, result=text, is_error=True)
        else:
            result = await self._run_tool(response)

        turn = Turn(conversation=response.conversation, content=[result])
        await self._send(turn)
        return turn

    async def _run_tool(self, response: ApprovalResponse) -> ContextMessage:
        call = response.tool_call
        tool = self._tools.get(call.tool_name, response.conversation)
        if tool is None:
            logger.warning(f"Approved tool call {call.call_id} names unknown tool {call.tool_name}")
            return ContextMessage.tool_result(
                call_id=call.call_id, tool_name=call.tool_name, result=f"tool not found: {call.tool_name}", is_error=True
            )

        ctx = ToolContext(conversation=response.conversation, call_id=call.call_id, messages=response.messages)
        try:
            value: Any = await execute_tool(tool, ctx, args=call.args)
        except Exception as e:
            return ContextMessage.tool_result(call_id=call.call_id, tool_name=call.tool_name, result=str(e), is_error=True)
        return ContextMessage.tool_result(
            call_id=call.call_id, tool_name=call.tool_name, result=EMPTY_RESULT if value is None else value
        )

    async def _ask_approver(self, request: ToolCallRequest) -> Optional[ApprovalResponse]:
        call = request.tool_call
        # Recorded first so a decision delivered while the approver is still
        # talking to a human can already be resolved.
        pending = PendingApproval(call_id=call.call_id, conversation=request.conversation, request=request)
        await self._approvals.create(call.call_id, request.conversation, pending)

        outcome = await self._approver.request_approval(request)
        if outcome == ApprovalOutcome.pending:
            logger.info(f"Tool call {call.call_id} ({call.tool_name}) is waiting for approval")
            return None

        record = await self._approvals.read_by_id(call.call_id)
        if record is not None and record.payload.decision is not None:
            logger.info(f"Tool call {call.call_id} was already {record.payload.decision.value} while asking the approver")
            return None

        decided_by = type(self._approver).__name__
        decision = ApprovalDecision.approved if outcome == ApprovalOutcome.approved else ApprovalDecision.rejected
        await self._approvals.update(
            call.call_id,
            pending.model_copy(update={"decision": decision, "decided_at": utc_now(), "decided_by": decided_by}),
        )
        response = ApprovalResponse.for_request(
            request, approved=decision == ApprovalDecision.approved, decided_by=decided_by
        )
        await self._send(response)
        return response
