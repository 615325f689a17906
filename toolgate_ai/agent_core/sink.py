from __future__ import annotations

"""Output side of the chat platform.

A sink is where a conversation becomes visible to humans: assistant text,
approval prompts for gated tool calls, and error reports. Approval decisions
come back out of band through ``ConversationService.resolve_approval``.
"""

import json
import logging
from typing import Any, Dict, Protocol

logger = logging.getLogger(__name__)


class Sink(Protocol):
    """Protocol for chat platform renderers."""

    async def render_text(self, conversation: str, text: str) -> None: ...

    async def request_approval(self, conversation: str, content: str, call_id: str) -> None: ...

    async def render_error(self, conversation: str, body: Dict[str, Any]) -> None: ...


class LoggingSink:
    """Sink that writes everything to the log.

    Used for headless deployments and as the default when no chat platform is
    wired in.
    """

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    async def render_text(self, conversation: str, text: str) -> None:
        self._log.info(f"[{conversation}] assistant: {text}")

    async def request_approval(self, conversation: str, content: str, call_id: str) -> None:
        self._log.warning(f"[{conversation}] approval required for tool call {call_id}:\n{content}")

    async def render_error(self, conversation: str, body: Dict[str, Any]) -> None:
        self._log.error(f"[{conversation}] error: {json.dumps(body, indent=2, default=str)}")
