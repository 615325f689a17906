from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import Field

from .base import BaseSchema, utc_now
from .messages import ToolCallRequest


class ApprovalOutcome(str, Enum):
    """Answer an approver gives for a tool call request."""

    approved = "approved"
    rejected = "rejected"
    pending = "pending"


class ApprovalDecision(str, Enum):
    approved = "approved"
    rejected = "rejected"


class PendingApproval(BaseSchema):
    """A tool call waiting for an out-of-band decision.

    Stored with ``call_id`` as primary key and ``conversation`` as secondary
    key. The record is kept after the decision so a repeated decision can be
    detected.
    """

    call_id: str
    conversation: str
    request: ToolCallRequest

    requested_at: datetime = Field(default_factory=utc_now)

    decision: Optional[ApprovalDecision] = None
    decided_at: Optional[datetime] = None
    decided_by: Optional[str] = None
