"""Base abstraction for language model clients.

This module defines the interface the ``Agent`` calls to get the next model
step, keeping the runtime independent of any particular LLM framework.
"""

from abc import ABC, abstractmethod
from typing import List, Literal, Sequence

from pydantic import BaseModel, ConfigDict, Field

from ..capabilities.base import ToolSchema
from ..schemas.messages import ContextMessage, ToolCall

ToolChoice = Literal["auto", "required"]


class ModelTurn(BaseModel):
    """One model step.

    Attributes:
        messages: Assistant-authored context messages the model produced
        tool_calls: Tool invocations the model requested, in order
    """

    model_config = ConfigDict(frozen=True)

    messages: List[ContextMessage] = Field(default_factory=list, description="Assistant messages to persist")
    tool_calls: List[ToolCall] = Field(default_factory=list, description="Requested tool calls")

    @property
    def text(self) -> str:
        """Concatenated assistant text of this step."""
        return "".join(m.text for m in self.messages)


class ModelClient(ABC):
    """Abstract base class for model clients.

    Implementations translate ``ContextMessage`` history and ``ToolSchema``
    lists into a framework request and back. Provider and API failures must be
    raised as ``ModelProviderError``; anything else is treated as a bug.
    """

    @abstractmethod
    async def invoke(
        self,
        messages: Sequence[ContextMessage],
        tools: Sequence[ToolSchema],
        *,
        tool_choice: ToolChoice = "required",
    ) -> ModelTurn:
        """Run a single model step.

        Args:
            messages: The conversation window, oldest first
            tools: Tools the model may call
            tool_choice: ``"required"`` forces a tool call when tools exist

        Returns:
            ModelTurn with the produced messages and tool calls

        Raises:
            ModelProviderError: If the provider rejected or failed the request
        """
