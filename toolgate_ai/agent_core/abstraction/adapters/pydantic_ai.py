"""Pydantic AI model client adapter.

This module implements ``ModelClient`` on top of Pydantic AI's direct model
request API. It performs exactly one model round per call: tools are described
to the model but never executed here, since execution is gated by the runner.
"""

from typing import Any, Dict, List, Optional, Sequence, Union

from pydantic_ai import messages as ai
from pydantic_ai.direct import model_request
from pydantic_ai.exceptions import ModelAPIError, ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.models import Model, ModelRequestParameters
from pydantic_ai.settings import ModelSettings
from pydantic_ai.tools import ToolDefinition

from toolgate_ai.core.logging_config import get_logger

from ...capabilities.base import ToolSchema
from ...errors import ModelProviderError
from ...schemas.messages import (
    ContextMessage,
    Role,
    TextPart,
    ToolCall,
    ToolCallPart,
)
from ..base import ModelClient, ModelTurn, ToolChoice

logger = get_logger(__name__)


def to_model_messages(messages: Sequence[ContextMessage], system_prompt: Optional[str] = None) -> List[ai.ModelMessage]:
    """Map context messages to Pydantic AI request/response messages.

    Consecutive system, user and tool messages are merged into one
    ``ModelRequest`` and consecutive assistant messages into one
    ``ModelResponse``, so tool results always directly follow their calls.
    Tool results that are still pending are left out.
    """
    out: List[ai.ModelMessage] = []
    pending: List[ai.ModelRequestPart] = []
    if system_prompt:
        pending.append(ai.SystemPromptPart(content=system_prompt))

    def flush() -> None:
        if pending:
            out.append(ai.ModelRequest(parts=list(pending)))
            pending.clear()

    for msg in messages:
        if msg.role == Role.assistant:
            flush()
            parts: List[ai.ModelResponsePart] = []
            for part in msg.parts:
                if isinstance(part, TextPart):
                    parts.append(ai.TextPart(content=part.text))
                elif isinstance(part, ToolCallPart):
                    parts.append(ai.ToolCallPart(tool_name=part.tool_name, args=part.args, tool_call_id=part.call_id))
            if not parts:
                continue
            if out and isinstance(out[-1], ai.ModelResponse):
                out[-1] = ai.ModelResponse(parts=[*out[-1].parts, *parts])
            else:
                out.append(ai.ModelResponse(parts=parts))
        elif msg.role == Role.system:
            pending.append(ai.SystemPromptPart(content=msg.text))
        elif msg.role == Role.user:
            pending.append(ai.UserPromptPart(content=msg.text))
        else:
            for result in msg.tool_results:
                if result.is_pending:
                    continue
                content: Any = {"error": result.result} if result.is_error else result.result
                pending.append(
                    ai.ToolReturnPart(tool_name=result.tool_name, content=content, tool_call_id=result.call_id)
                )
    flush()
    return out


def from_model_response(response: ai.ModelResponse) -> ModelTurn:
    """Map a Pydantic AI response to a ``ModelTurn``."""
    parts: List[Union[TextPart, ToolCallPart]] = []
    tool_calls: List[ToolCall] = []
    for part in response.parts:
        if isinstance(part, ai.TextPart):
            if part.content:
                parts.append(TextPart(text=part.content))
        elif isinstance(part, ai.ToolCallPart):
            args = part.args_as_dict()
            parts.append(ToolCallPart(call_id=part.tool_call_id, tool_name=part.tool_name, args=args))
            tool_calls.append(ToolCall(call_id=part.tool_call_id, tool_name=part.tool_name, args=args))
    messages = [ContextMessage(role=Role.assistant, parts=parts)] if parts else []
    return ModelTurn(messages=messages, tool_calls=tool_calls)


def to_tool_definitions(tools: Sequence[ToolSchema]) -> List[ToolDefinition]:
    return [
        ToolDefinition(name=t.name, description=t.description, parameters_json_schema=t.parameters) for t in tools
    ]


class PydanticAIModelClient(ModelClient):
    """``ModelClient`` backed by ``pydantic_ai.direct.model_request``.

    Attributes:
        _model: A Pydantic AI ``Model`` or a ``provider:model`` name
        _system_prompt: Optional prompt sent ahead of the conversation
        _settings: Model settings (temperature, ...)
    """

    def __init__(
        self,
        model: Union[Model, str],
        *,
        system_prompt: Optional[str] = None,
        temperature: Optional[float] = None,
    ) -> None:
        self._model = model
        self._system_prompt = system_prompt
        settings: Dict[str, Any] = {}
        if temperature is not None:
            settings["temperature"] = temperature
        self._settings: Optional[ModelSettings] = ModelSettings(**settings) if settings else None

    @property
    def model_name(self) -> str:
        return self._model if isinstance(self._model, str) else self._model.model_name

    async def invoke(
        self,
        messages: Sequence[ContextMessage],
        tools: Sequence[ToolSchema],
        *,
        tool_choice: ToolChoice = "required",
    ) -> ModelTurn:
        params = ModelRequestParameters(
            function_tools=to_tool_definitions(tools),
            allow_text_output=not (tool_choice == "required" and tools),
        )
        request = to_model_messages(messages, self._system_prompt)
        logger.debug(f"Requesting {self.model_name} with {len(request)} messages and {len(tools)} tools")
        try:
            response = await model_request(
                self._model, request, model_settings=self._settings, model_request_parameters=params
            )
        except ModelHTTPError as e:
            raise ModelProviderError(e.message, kind="api", status_code=e.status_code, cause=e.body) from e
        except ModelAPIError as e:
            # Connection failures, timeouts and undecodable provider responses
            raise ModelProviderError(e.message, kind="api") from e
        except UnexpectedModelBehavior as e:
            raise ModelProviderError(e.message, kind="model_behavior", cause=e.body) from e

        turn = from_model_response(response)
        logger.debug(f"{self.model_name} returned {len(turn.tool_calls)} tool calls")
        return turn
