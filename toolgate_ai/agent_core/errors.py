"""Error types for the agent core.

Defines a small hierarchy of exceptions raised by the store, the model client,
tools and the approval flow.

Only store errors are expected to reach top-level callers. Model provider and
tool errors are converted into conversation messages close to where they
happen.
"""

from __future__ import annotations

from typing import Any, Optional


class ToolgateError(Exception):
    """Base error for all agent core exceptions."""


class StoreError(ToolgateError):
    """Base error for keyed store failures."""


class RecordNotFoundError(StoreError, KeyError):
    """Raised when updating a record whose primary key does not exist."""

    def __init__(self, primary_key: str) -> None:
        super().__init__(f"Record not found: '{primary_key}'")
        self.primary_key = primary_key

    def __str__(self) -> str:
        return str(self.args[0])


class ModelProviderError(ToolgateError):
    """Recoverable failure reported by the language model provider.

    Args:
        message: Human-readable error description.
        kind: Coarse classification (e.g. ``"api"``, ``"model_behavior"``).
        status_code: Optional HTTP status code returned by the provider.
        cause: Optional structured payload from the provider (e.g. JSON body).
    """

    def __init__(
        self,
        message: str,
        *,
        kind: str = "api",
        status_code: Optional[int] = None,
        cause: Optional[Any] = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.cause = cause


class ToolExecutionError(ToolgateError):
    """Raised by tools for failures that should be reported back to the model."""

    def __init__(self, tool_name: str, message: str) -> None:
        super().__init__(f"Tool '{tool_name}' failed: {message}")
        self.tool_name = tool_name


class ApprovalError(ToolgateError):
    """Base error for the out-of-band approval flow."""


class ApprovalNotFoundError(ApprovalError):
    """Raised when no pending approval exists for a tool call id."""

    def __init__(self, call_id: str) -> None:
        super().__init__(f"No pending approval for tool call '{call_id}'")
        self.call_id = call_id


class ApprovalAlreadyResolvedError(ApprovalError):
    """Raised when a decision arrives for an approval that was already decided."""

    def __init__(self, call_id: str, decision: str) -> None:
        super().__init__(f"Approval for tool call '{call_id}' was already {decision}")
        self.call_id = call_id
        self.decision = decision
