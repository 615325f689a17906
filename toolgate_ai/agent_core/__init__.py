"""Durable, approval-gated tool calling runtime.

This package contains the "engine room" of the system.

Design overview
---------------

Everything that happens in a conversation is a message on a durable queue:

- ``turn``: new context (user input, tool results) for the model.
- ``tool_call_request``: a tool call the model proposed.
- ``approval_response``: the decision on a proposed call.
- ``error``: a diagnostic for a failed model call.

The ``Agent`` turns turns into tool call requests, the ``Runner`` turns
requests into decisions (policy first, then the approver) and decisions into
tool results, which flow back to the agent as new turns. Messages are
persisted before they are processed and replayed after a restart, and the
messages of one conversation are processed strictly in order.

Typical usage
-------------

Most applications should use ``agent_core.factory.build_service``:

1. Build the service from settings.
2. ``await service.start()`` to replay unfinished work.
3. Feed user input with ``submit_turn``.
4. Feed human approval decisions with ``resolve_approval``.
"""

from .errors import (
    ApprovalAlreadyResolvedError,
    ApprovalError,
    ApprovalNotFoundError,
    ModelProviderError,
    RecordNotFoundError,
    StoreError,
    ToolExecutionError,
    ToolgateError,
)
from .factory import build_service
from .service import ConversationService

__all__ = [
    "ConversationService",
    "build_service",
    "ToolgateError",
    "StoreError",
    "RecordNotFoundError",
    "ModelProviderError",
    "ToolExecutionError",
    "ApprovalError",
    "ApprovalNotFoundError",
    "ApprovalAlreadyResolvedError",
]
