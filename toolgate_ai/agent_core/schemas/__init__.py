"""Schemas and DTOs for the agent core."""

from .approvals import ApprovalDecision, ApprovalOutcome, PendingApproval
from .messages import (
    ApprovalResponse,
    ContentPart,
    ContextMessage,
    Error,
    Message,
    MessageType,
    Role,
    TextPart,
    ToolCall,
    ToolCallPart,
    ToolCallRequest,
    ToolResultPart,
    Turn,
)

__all__ = [
    "ApprovalDecision",
    "ApprovalOutcome",
    "ApprovalResponse",
    "ContentPart",
    "ContextMessage",
    "Error",
    "Message",
    "MessageType",
    "PendingApproval",
    "Role",
    "TextPart",
    "ToolCall",
    "ToolCallPart",
    "ToolCallRequest",
    "ToolResultPart",
    "Turn",
]
