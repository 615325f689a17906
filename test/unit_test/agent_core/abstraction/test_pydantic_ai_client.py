from __future__ import annotations

from typing import List

import pytest
from pydantic_ai import messages as ai
from pydantic_ai.exceptions import ModelAPIError, ModelHTTPError, UnexpectedModelBehavior
from pydantic_ai.models.function import AgentInfo, FunctionModel

from toolgate_ai.agent_core.abstraction.adapters.pydantic_ai import (
    PydanticAIModelClient,
    from_model_response,
    to_model_messages,
)
from toolgate_ai.agent_core.capabilities.base import ToolSchema
from toolgate_ai.agent_core.errors import ModelProviderError
from toolgate_ai.agent_core.schemas.messages import ContextMessage, Role, TextPart, ToolCallPart

ECHO = ToolSchema(
    name="echo",
    description="Echo the given message back.",
    parameters={"type": "object", "properties": {"msg": {"type": "string"}}, "required": ["msg"]},
)


def _history() -> List[ContextMessage]:
    return [
        ContextMessage.user("echo hi"),
        ContextMessage(
            role=Role.assistant,
            parts=[TextPart(text="sure"), ToolCallPart(call_id="c-1", tool_name="echo", args={"msg": "hi"})],
        ),
        ContextMessage.tool_result(call_id="c-1", tool_name="echo", result="hi"),
        ContextMessage.tool_result(call_id="c-2", tool_name="echo"),
        ContextMessage.tool_result(call_id="c-3", tool_name="echo", result="boom", is_error=True),
    ]


def test_context_messages_map_to_requests_and_responses() -> None:
    out = to_model_messages(_history(), system_prompt="be brief")

    assert [type(m) for m in out] == [ai.ModelRequest, ai.ModelResponse, ai.ModelRequest]
    first, response, last = out
    assert isinstance(first.parts[0], ai.SystemPromptPart)
    assert first.parts[0].content == "be brief"
    assert isinstance(first.parts[1], ai.UserPromptPart)
    assert first.parts[1].content == "echo hi"

    assert isinstance(response.parts[0], ai.TextPart)
    call = response.parts[1]
    assert isinstance(call, ai.ToolCallPart)
    assert (call.tool_call_id, call.tool_name, call.args) == ("c-1", "echo", {"msg": "hi"})

    # The pending c-2 result is left out.
    assert [p.tool_call_id for p in last.parts] == ["c-1", "c-3"]
    assert last.parts[0].content == "hi"
    assert last.parts[1].content == {"error": "boom"}


def test_response_maps_to_model_turn() -> None:
    response = ai.ModelResponse(
        parts=[
            ai.TextPart(content="calling echo"),
            ai.ToolCallPart(tool_name="echo", args='{"msg": "hi"}', tool_call_id="c-9"),
        ]
    )
    turn = from_model_response(response)

    [message] = turn.messages
    assert message.role == Role.assistant
    assert turn.text == "calling echo"
    [call] = turn.tool_calls
    assert (call.call_id, call.tool_name, call.args) == ("c-9", "echo", {"msg": "hi"})


def test_empty_response_maps_to_empty_turn() -> None:
    turn = from_model_response(ai.ModelResponse(parts=[ai.TextPart(content="")]))
    assert turn.messages == []
    assert turn.tool_calls == []


async def test_invoke_sends_tools_and_requires_a_tool_call() -> None:
    seen: List[AgentInfo] = []

    def respond(messages: List[ai.ModelMessage], info: AgentInfo) -> ai.ModelResponse:
        seen.append(info)
        return ai.ModelResponse(parts=[ai.ToolCallPart(tool_name="echo", args={"msg": "hi"}, tool_call_id="c-1")])

    client = PydanticAIModelClient(FunctionModel(respond), system_prompt="sys", temperature=0.1)
    turn = await client.invoke([ContextMessage.user("hi")], [ECHO])

    [info] = seen
    assert [t.name for t in info.function_tools] == ["echo"]
    assert info.function_tools[0].parameters_json_schema == ECHO.parameters
    assert info.allow_text_output is False
    assert [c.tool_name for c in turn.tool_calls] == ["echo"]


async def test_invoke_without_tools_allows_text() -> None:
    seen: List[AgentInfo] = []

    def respond(messages: List[ai.ModelMessage], info: AgentInfo) -> ai.ModelResponse:
        seen.append(info)
        return ai.ModelResponse(parts=[ai.TextPart(content="hello")])

    client = PydanticAIModelClient(FunctionModel(respond))
    turn = await client.invoke([ContextMessage.user("hi")], [])

    assert seen[0].allow_text_output is True
    assert turn.text == "hello"
    assert turn.tool_calls == []


async def test_http_errors_become_model_provider_errors() -> None:
    def respond(messages: List[ai.ModelMessage], info: AgentInfo) -> ai.ModelResponse:
        raise ModelHTTPError(status_code=429, model_name="fake", body={"error": "slow down"})

    client = PydanticAIModelClient(FunctionModel(respond))
    with pytest.raises(ModelProviderError) as exc:
        await client.invoke([ContextMessage.user("hi")], [ECHO])

    assert exc.value.kind == "api"
    assert exc.value.status_code == 429
    assert exc.value.cause == {"error": "slow down"}


async def test_connection_errors_become_model_provider_errors() -> None:
    def respond(messages: List[ai.ModelMessage], info: AgentInfo) -> ai.ModelResponse:
        raise ModelAPIError(model_name="fake", message="Connection error.")

    client = PydanticAIModelClient(FunctionModel(respond))
    with pytest.raises(ModelProviderError) as exc:
        await client.invoke([ContextMessage.user("hi")], [ECHO])

    assert exc.value.kind == "api"
    assert exc.value.status_code is None
    assert "Connection error." in str(exc.value)
    assert isinstance(exc.value.__cause__, ModelAPIError)


async def test_unexpected_behavior_becomes_model_provider_error() -> None:
    def respond(messages: List[ai.ModelMessage], info: AgentInfo) -> ai.ModelResponse:
        raise UnexpectedModelBehavior("garbled output")

    client = PydanticAIModelClient(FunctionModel(respond))
    with pytest.raises(ModelProviderError) as exc:
        await client.invoke([ContextMessage.user("hi")], [ECHO])

    assert exc.value.kind == "model_behavior"
    assert "garbled output" in str(exc.value)


async def test_other_errors_propagate() -> None:
    def respond(messages: List[ai.ModelMessage], info: AgentInfo) -> ai.ModelResponse:
        raise KeyError("bug")

    client = PydanticAIModelClient(FunctionModel(respond))
    with pytest.raises(KeyError):
        await client.invoke([ContextMessage.user("hi")], [ECHO])


def test_waiting_note_shares_the_response_of_its_tool_call() -> None:
    history = [
        ContextMessage.user("echo hi"),
        ContextMessage(role=Role.assistant, parts=[ToolCallPart(call_id="c-1", tool_name="echo", args={"msg": "hi"})]),
        ContextMessage.assistant("[c-1] I am waiting for approval"),
        ContextMessage.tool_result(call_id="c-1", tool_name="echo", result="hi"),
    ]

    out = to_model_messages(history)

    assert [type(m) for m in out] == [ai.ModelRequest, ai.ModelResponse, ai.ModelRequest]
    assert [type(p) for p in out[1].parts] == [ai.ToolCallPart, ai.TextPart]
    assert isinstance(out[2].parts[0], ai.ToolReturnPart)
