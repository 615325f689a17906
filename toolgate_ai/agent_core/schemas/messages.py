from __future__ import annotations

"""Message schemas flowing through the message queue.

Every message is one variant of a tagged union discriminated by ``type``:

- ``Turn`` (``"turn"``): role-tagged content appended to a conversation's
  model-facing context.
- ``ToolCallRequest`` (``"tool_call_request"``): one tool invocation proposed
  by the model, plus the context messages that produced it.
- ``ApprovalResponse`` (``"approval_response"``): the decision on a prior
  ``ToolCallRequest``.
- ``Error`` (``"error"``): an opaque diagnostic payload for out-of-band
  failures.

All variants share ``id``, ``conversation``, ``created_at`` and ``handled``.
The ``handled`` flag is the only field the core ever mutates after a message
is persisted.

Context content
---------------

A ``ContextMessage`` is what the model sees: a role plus a list of parts.
Tool results whose ``result`` is ``None`` (and which are not errors) stand for
a tool call that is still outstanding.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import Field, TypeAdapter

from .base import BaseSchema, new_id, utc_now


class Role(str, Enum):
    user = "user"
    assistant = "assistant"
    tool = "tool"
    system = "system"


class MessageType(str, Enum):
    turn = "turn"
    tool_call_request = "tool_call_request"
    approval_response = "approval_response"
    error = "error"


class TextPart(BaseSchema):
    type: Literal["text"] = "text"
    text: str


class ToolCallPart(BaseSchema):
    type: Literal["tool-call"] = "tool-call"
    call_id: str
    tool_name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class ToolResultPart(BaseSchema):
    type: Literal["tool-result"] = "tool-result"
    call_id: str
    tool_name: str
    result: Any = None
    is_error: bool = False

    @property
    def is_pending(self) -> bool:
        """True when this result is a placeholder for an outstanding call."""
        return self.result is None and not self.is_error


ContentPart = Annotated[Union[TextPart, ToolCallPart, ToolResultPart], Field(discriminator="type")]


class ContextMessage(BaseSchema):
    """A single role-tagged entry of a conversation's context."""

    role: Role
    parts: List[ContentPart] = Field(default_factory=list)

    @classmethod
    def user(cls, text: str) -> ContextMessage:
        return cls(role=Role.user, parts=[TextPart(text=text)])

    @classmethod
    def system(cls, text: str) -> ContextMessage:
        return cls(role=Role.system, parts=[TextPart(text=text)])

    @classmethod
    def assistant(cls, text: str) -> ContextMessage:
        return cls(role=Role.assistant, parts=[TextPart(text=text)])

    @classmethod
    def tool_result(
        cls,
        *,
        call_id: str,
        tool_name: str,
        result: Any = None,
        is_error: bool = False,
    ) -> ContextMessage:
        return cls(
            role=Role.tool,
            parts=[ToolResultPart(call_id=call_id, tool_name=tool_name, result=result, is_error=is_error)],
        )

    @property
    def text(self) -> str:
        """Concatenated text of all ``TextPart`` items."""
        return "".join(p.text for p in self.parts if isinstance(p, TextPart))

    @property
    def tool_results(self) -> List[ToolResultPart]:
        return [p for p in self.parts if isinstance(p, ToolResultPart)]


class ToolCall(BaseSchema):
    """A model-requested invocation of a named tool."""

    call_id: str
    tool_name: str
    args: Dict[str, Any] = Field(default_factory=dict)


class _MessageBase(BaseSchema):
    id: str = Field(default_factory=new_id)
    conversation: str
    created_at: datetime = Field(default_factory=utc_now)
    handled: bool = False


class Turn(_MessageBase):
    type: Literal["turn"] = "turn"
    content: List[ContextMessage]


class ToolCallRequest(_MessageBase):
    type: Literal["tool_call_request"] = "tool_call_request"
    tool_call: ToolCall
    messages: List[ContextMessage] = Field(default_factory=list)


class ApprovalResponse(_MessageBase):
    type: Literal["approval_response"] = "approval_response"
    tool_call: ToolCall
    messages: List[ContextMessage] = Field(default_factory=list)
    approved: bool
    reason: Optional[str] = None
    decided_by: Optional[str] = None

    @classmethod
    def for_request(
        cls,
        request: ToolCallRequest,
        *,
        approved: bool,
        reason: Optional[str] = None,
        decided_by: Optional[str] = None,
    ) -> ApprovalResponse:
        """Build the response to ``request`` in the same conversation."""
        return cls(
            conversation=request.conversation,
            tool_call=request.tool_call,
            messages=request.messages,
            approved=approved,
            reason=reason,
            decided_by=decided_by,
        )


class Error(_MessageBase):
    type: Literal["error"] = "error"
    body: Dict[str, Any] = Field(default_factory=dict)


Message = Annotated[Union[Turn, ToolCallRequest, ApprovalResponse, Error], Field(discriminator="type")]

MESSAGE_ADAPTER: TypeAdapter[Message] = TypeAdapter(Message)
CONTEXT_MESSAGE_ADAPTER: TypeAdapter[ContextMessage] = TypeAdapter(ContextMessage)
