"""Tool registry and tool execution pipeline.

A *tool* is the execution unit behind a model tool call.

- The model emits tool calls by name.
- The runtime resolves that name through ``ToolRegistry`` for the calling
  conversation.
- The runner executes the tool with a ``ToolContext`` only after policy and
  the approver allowed it.

This package exports:

- ``Tool``: protocol for async tool execution.
- ``FunctionTool``: a tool built from an async function and a pydantic model.
- ``ToolRegistry``: name -> tool (or per-conversation factory) mapping.
- ``ToolContext``/``ToolSchema``: execution input and model-facing schema.
"""

from .base import FunctionTool, Tool, ToolContext, ToolSchema, execute_tool
from .builtin import echo_tool, send_message_factory
from .registry import ToolRegistry

__all__ = [
    "Tool",
    "FunctionTool",
    "ToolContext",
    "ToolSchema",
    "ToolRegistry",
    "execute_tool",
    "echo_tool",
    "send_message_factory",
]
