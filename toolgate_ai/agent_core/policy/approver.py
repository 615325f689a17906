from __future__ import annotations

"""Approvers: who decides on tool calls the policy did not settle.

An approver answers synchronously with ``approved`` or ``rejected``, or
returns ``pending`` after handing the request to a human. A pending request is
recorded by the ``Runner`` and decided later through
``ConversationService.resolve_approval``; there is no timeout.
"""

import json
import logging
from typing import Protocol

from ..schemas.approvals import ApprovalOutcome
from ..schemas.messages import ToolCallRequest
from ..sink import Sink

logger = logging.getLogger(__name__)


class Approver(Protocol):
    """Protocol for approval decision makers."""

    async def request_approval(self, request: ToolCallRequest) -> ApprovalOutcome: ...


class AlwaysApprove:
    """Approve every tool call."""

    async def request_approval(self, request: ToolCallRequest) -> ApprovalOutcome:
        return ApprovalOutcome.approved


class AlwaysReject:
    """Reject every tool call."""

    async def request_approval(self, request: ToolCallRequest) -> ApprovalOutcome:
        return ApprovalOutcome.rejected


def format_approval_request(request: ToolCallRequest) -> str:
    """Render a tool call as the text shown to the human approver."""
    call = request.tool_call
    args = json.dumps(call.args, indent=2, default=str)
    return f'[{call.call_id}] Approve call to tool "{call.tool_name}" with arguments:\n{args}'


class SinkApprover:
    """Ask a human through the sink and leave the decision pending."""

    def __init__(self, sink: Sink) -> None:
        self._sink = sink

    async def request_approval(self, request: ToolCallRequest) -> ApprovalOutcome:
        await self._sink.request_approval(
            request.conversation, format_approval_request(request), request.tool_call.call_id
        )
        logger.info(
            f"Approval requested for tool call {request.tool_call.call_id} "
            f"({request.tool_call.tool_name}) in conversation {request.conversation}"
        )
        return ApprovalOutcome.pending
