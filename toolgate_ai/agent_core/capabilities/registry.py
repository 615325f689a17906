from __future__ import annotations

"""Tool registry.

The registry maps a tool name to either a tool instance or a factory that
builds the tool for one conversation (e.g. a tool that posts into the
conversation's own channel). ``resolve`` turns it into the concrete tool set
of a conversation.
"""

from typing import Callable, Dict, List, Optional, Union

from .base import Tool, ToolSchema, schema_of

ToolFactory = Callable[[str], Tool]


class ToolRegistry:
    """
    Mapping of tool names to tools or per-conversation tool factories.

    Notes:
        - ``register`` and ``register_factory`` overwrite any existing entry
          with the same name.
        - ``get`` returns None if the tool is missing; the runner reports a
          missing tool back to the model.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Union[Tool, ToolFactory]] = {}
        self._factories: set[str] = set()

    def register(self, tool: Tool) -> None:
        """
        Register a conversation-independent tool.

        Args:
            tool: The tool instance. It must expose a ``name`` attribute.
        """
        self._entries[tool.name] = tool
        self._factories.discard(tool.name)

    def register_factory(self, name: str, factory: ToolFactory) -> None:
        """
        Register a tool that is built per conversation.

        Args:
            name: The tool name the model sees.
            factory: Called with the conversation id; returns the tool.
        """
        self._entries[name] = factory
        self._factories.add(name)

    def names(self) -> List[str]:
        return list(self._entries)

    def has(self, name: str) -> bool:
        return name in self._entries

    def get(self, name: str, conversation: str) -> Optional[Tool]:
        """
        Resolve a single tool for a conversation.

        Args:
            name: The tool name.
            conversation: The conversation id passed to factories.

        Returns:
            The tool, or None if nothing is registered under ``name``.
        """
        entry = self._entries.get(name)
        if entry is None:
            return None
        if name in self._factories:
            return entry(conversation)  # type: ignore[operator]
        return entry  # type: ignore[return-value]

    def resolve(self, conversation: str) -> Dict[str, Tool]:
        """Return the concrete tool set of a conversation."""
        return {name: tool for name in self._entries if (tool := self.get(name, conversation)) is not None}

    def schemas(self, conversation: str) -> List[ToolSchema]:
        """Return the model-facing schemas of a conversation's tool set."""
        return [schema_of(tool) for tool in self.resolve(conversation).values()]
