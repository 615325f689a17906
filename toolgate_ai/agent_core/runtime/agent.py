from __future__ import annotations

"""The model-facing side of a conversation.

``Agent`` listens for ``turn`` messages. For each turn it:

1. Appends the turn's content to the conversation context.
2. Returns early when the turn only carries placeholder tool results, i.e. a
   tool call is still waiting for its real result.
3. Calls the model once with the context window and the conversation's tool
   schemas, requiring a tool call.
4. Stores the assistant messages the model produced, plus a waiting note per
   requested tool call so later model calls know the call is outstanding.
5. Emits one ``ToolCallRequest`` per requested tool call.
6. Renders the assistant text through the sink, if one is configured. A
   failing sink is logged; the requests are already on their way.

Provider failures become ``Error`` messages in the same conversation. Any other
exception propagates to the queue, which logs it.
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence

from ..abstraction.base import ModelClient
from ..capabilities.registry import ToolRegistry
from ..errors import ModelProviderError
from ..schemas.messages import ContextMessage, Error, Message, MessageType, Role, ToolCall, ToolCallRequest, Turn
from ..sink import Sink
from .context import ConversationContext
from .message_queue import MessageQueue

logger = logging.getLogger(__name__)

_JSON_SCALARS = (str, int, float, bool, type(None), dict, list)


def awaiting_tool_results(content: Sequence[ContextMessage]) -> bool:
    """True if every item is a tool message whose results are all still pending."""
    return all(m.role == Role.tool and all(r.is_pending for r in m.tool_results) for m in content)


def waiting_note(call: ToolCall) -> ContextMessage:
    """Assistant note recording that ``call`` is outstanding until its result arrives."""
    args = json.dumps(call.args, indent=2, default=str)
    return ContextMessage.assistant(
        f'[{call.call_id}] I am waiting for approval to call the tool "{call.tool_name}" with arguments: {args}'
    )


def error_body(exc: ModelProviderError) -> Dict[str, Any]:
    cause = exc.cause if isinstance(exc.cause, _JSON_SCALARS) else str(exc.cause)
    return {
        "name": type(exc).__name__,
        "message": str(exc),
        "kind": exc.kind,
        "status_code": exc.status_code,
        "cause": cause,
    }


class Agent:
    """Turn handler that calls the model and proposes tool calls."""

    def __init__(
        self,
        *,
        model: ModelClient,
        tools: ToolRegistry,
        context: ConversationContext,
        sink: Optional[Sink] = None,
    ) -> None:
        self._model = model
        self._tools = tools
        self._context = context
        self._sink = sink
        self._queue: Optional[MessageQueue] = None

    @property
    def tools(self) -> ToolRegistry:
        return self._tools

    @property
    def context(self) -> ConversationContext:
        return self._context

    def register(self, queue: MessageQueue) -> None:
        self._queue = queue
        queue.on(MessageType.turn, self.handle_turn)

    async def _send(self, message: Message) -> None:
        if self._queue is None:
            raise RuntimeError("Agent is not registered with a message queue")
        await self._queue.send(message)

    async def handle_turn(self, turn: Turn) -> List[ToolCallRequest]:
        """
        Process one turn.

        Args:
            turn: The turn message.

        Returns:
            The tool call requests that were emitted.
        """
        conversation = turn.conversation
        for item in turn.content:
            await self._context.append(conversation, item)

        if awaiting_tool_results(turn.content):
            logger.debug(f"Turn {turn.id} only carries pending tool results; not calling the model")
            return []

        window = await self._context.messages(conversation)
        try:
            step = await self._model.invoke(window, self._tools.schemas(conversation), tool_choice="required")
        except ModelProviderError as e:
            logger.warning(f"Model call failed for conversation {conversation}: {e}")
            await self._send(Error(conversation=conversation, body=error_body(e)))
            return []

        for message in step.messages:
            await self._context.append(conversation, message)
        for call in step.tool_calls:
            await self._context.append(conversation, waiting_note(call))

        requests: List[ToolCallRequest] = []
        for call in step.tool_calls:
            request = ToolCallRequest(conversation=conversation, tool_call=call, messages=step.messages)
            await self._send(request)
            requests.append(request)
        logger.info(f"Turn {turn.id} in {conversation} produced {len(requests)} tool call request(s)")

        if self._sink is not None and step.text:
            try:
                await self._sink.render_text(conversation, step.text)
            except Exception:
                logger.exception(f"Could not render assistant text of turn {turn.id} in {conversation}")
        return requests
