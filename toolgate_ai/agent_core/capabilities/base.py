from __future__ import annotations

"""Tool protocol and execution data models.

A tool is the concrete execution unit behind a model tool call.

The ``Runner`` resolves ``ToolCall.tool_name`` through a ``ToolRegistry`` and
executes the implementation with a ``ToolContext`` once the call has been
approved.

Tools should:

- return a JSON-compatible value (or a pydantic model) as their result,
- raise on failure; the runner turns the exception into an error tool result,
- avoid performing policy decisions themselves (policy is enforced by the
  runner before invocation).
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, List, Optional, Protocol, Type

from pydantic import BaseModel, ValidationError

from ..errors import ToolExecutionError
from ..schemas.messages import ContextMessage

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ToolContext:
    """Execution context passed to tool implementations.

    Attributes
    ----------
    conversation:
        The conversation the call belongs to.
    call_id:
        The model-assigned id of the tool call.
    messages:
        The context messages that produced the call.
    """

    conversation: str
    call_id: str
    messages: List[ContextMessage] = field(default_factory=list)


@dataclass(frozen=True)
class ToolSchema:
    """Model-facing description of a tool."""

    name: str
    description: str
    parameters: Dict[str, Any]


class Tool(Protocol):
    """Protocol for tool implementations."""

    name: str
    description: str

    @property
    def input_schema(self) -> Dict[str, Any]: ...

    async def execute(self, ctx: ToolContext, *, args: Dict[str, Any]) -> Any: ...


ToolFn = Callable[[ToolContext, Any], Awaitable[Any]]


@dataclass(frozen=True)
class FunctionTool:
    """A tool backed by an async function and a pydantic input model.

    ``args`` are validated against ``input_model`` and the function receives
    the validated model instance.
    """

    name: str
    description: str
    input_model: Type[BaseModel]
    fn: ToolFn

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()

    async def execute(self, ctx: ToolContext, *, args: Dict[str, Any]) -> Any:
        try:
            parsed = self.input_model.model_validate(args)
        except ValidationError as e:
            raise ToolExecutionError(self.name, f"invalid arguments: {e}") from e
        return await self.fn(ctx, parsed)


def schema_of(tool: Tool) -> ToolSchema:
    return ToolSchema(name=tool.name, description=tool.description, parameters=tool.input_schema)


async def execute_tool(tool: Tool, ctx: ToolContext, *, args: Dict[str, Any]) -> Any:
    """
    Execute a tool, logging its start, completion and failure.

    Args:
        tool: The tool to run.
        ctx: The execution context.
        args: The model-supplied arguments.

    Returns:
        The tool result, with pydantic models dumped to JSON-compatible values.

    Raises:
        Exception: Whatever the tool raised, after it was logged.
    """
    logger.info(f"Executing tool {tool.name} (call {ctx.call_id}, conversation {ctx.conversation})")
    logger.debug(f"Tool {tool.name} args: {args}")
    started = time.perf_counter()
    try:
        result: Optional[Any] = await tool.execute(ctx, args=args)
    except Exception as e:
        logger.warning(f"Tool {tool.name} failed after {time.perf_counter() - started:.3f}s: {e}")
        raise
    logger.info(f"Tool {tool.name} finished in {time.perf_counter() - started:.3f}s")
    if isinstance(result, BaseModel):
        return result.model_dump(mode="json")
    return result
