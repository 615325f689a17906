from __future__ import annotations

"""High-level API for driving conversations.

``ConversationService`` wires the queue, the agent and the runner together and
gives the chat platform the two entry points it needs.

Workflow
--------

- ``submit_turn``: the event source hands over what a user said. The turn is
  persisted and processed by the conversation's worker.
- ``resolve_approval``: a human decided on a pending tool call. The decision is
  recorded and an ``ApprovalResponse`` resumes the conversation.

``start`` must be awaited once before traffic flows; it replays messages that
were persisted but not handled before the last shutdown.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Sequence, Union

from .abstraction.base import ModelClient
from .capabilities.registry import ToolRegistry
from .errors import ApprovalAlreadyResolvedError, ApprovalNotFoundError
from .policy.approver import Approver
from .policy.global_policy import GlobalPolicy
from .repos.interfaces import StoreBundle
from .runtime.agent import Agent
from .runtime.context import DEFAULT_CONTEXT_WINDOW, ConversationContext
from .runtime.message_queue import MessageQueue
from .runtime.runner import Runner
from .schemas.approvals import ApprovalDecision, PendingApproval
from .schemas.base import utc_now
from .schemas.messages import ApprovalResponse, ContextMessage, Error, MessageType, Turn
from .sink import LoggingSink, Sink

logger = logging.getLogger(__name__)


class ConversationService:
    """Own the message pipeline of every conversation in this process."""

    def __init__(
        self,
        *,
        stores: StoreBundle,
        model: ModelClient,
        tools: ToolRegistry,
        policy: GlobalPolicy,
        approver: Approver,
        sink: Optional[Sink] = None,
        context_window: int = DEFAULT_CONTEXT_WINDOW,
        on_stop: Sequence[Callable[[], Awaitable[None]]] = (),
    ) -> None:
        self._stores = stores
        self._sink: Sink = sink if sink is not None else LoggingSink()
        self._on_stop = list(on_stop)

        self._queue = MessageQueue(store=stores.messages)
        self._agent = Agent(
            model=model,
            tools=tools,
            context=ConversationContext(store=stores.context, window=context_window),
            sink=self._sink,
        )
        self._runner = Runner(tools=tools, policy=policy, approver=approver, approvals=stores.approvals)

        self._agent.register(self._queue)
        self._runner.register(self._queue)
        self._queue.on(MessageType.error, self._handle_error)

    @property
    def queue(self) -> MessageQueue:
        return self._queue

    @property
    def agent(self) -> Agent:
        return self._agent

    @property
    def runner(self) -> Runner:
        return self._runner

    async def start(self) -> int:
        """Start processing and replay unhandled messages.

        Returns:
            The number of replayed messages.
        """
        return await self._queue.start()

    async def stop(self) -> None:
        """Stop all conversation workers and release resources."""
        await self._queue.stop()
        for callback in self._on_stop:
            await callback()

    async def join(self, conversation: Optional[str] = None) -> None:
        """Wait until queued work (of one conversation, or all) is processed."""
        await self._queue.join(conversation)

    async def submit_turn(self, conversation: str, content: Union[str, Sequence[ContextMessage]]) -> Turn:
        """
        Submit new input for a conversation.

        Args:
            conversation: The conversation id.
            content: Plain user text, or ready-made context messages.

        Returns:
            The persisted turn.
        """
        items = [ContextMessage.user(content)] if isinstance(content, str) else list(content)
        turn = Turn(conversation=conversation, content=items)
        await self._queue.send(turn)
        return turn

    async def resolve_approval(
        self,
        call_id: str,
        approved: bool,
        reason: Optional[str] = None,
        decided_by: Optional[str] = None,
    ) -> ApprovalResponse:
        """
        Record a human decision on a pending tool call and resume its conversation.

        The decision is stored before the response is sent, so a repeated
        decision is refused even if sending fails.

        Args:
            call_id: The tool call id shown in the approval request.
            approved: The decision.
            reason: Optional reason, reported to the model on rejection.
            decided_by: Optional identifier of the human who decided.

        Returns:
            The sent approval response.

        Raises:
            ApprovalNotFoundError: If no approval was requested for ``call_id``.
            ApprovalAlreadyResolvedError: If the approval was already decided.
        """
        record = await self._stores.approvals.read_by_id(call_id)
        if record is None:
            raise ApprovalNotFoundError(call_id)
        pending = record.payload
        if pending.decision is not None:
            raise ApprovalAlreadyResolvedError(call_id, pending.decision.value)

        decision = ApprovalDecision.approved if approved else ApprovalDecision.rejected
        await self._stores.approvals.update(
            call_id,
            pending.model_copy(update={"decision": decision, "decided_at": utc_now(), "decided_by": decided_by}),
        )
        response = ApprovalResponse.for_request(pending.request, approved=approved, reason=reason, decided_by=decided_by)
        await self._queue.send(response)
        logger.info(f"Tool call {call_id} {decision.value} by {decided_by or 'unknown'}")
        return response

    async def pending_approvals(self, conversation: str) -> List[PendingApproval]:
        """List the undecided approvals of a conversation, oldest first."""
        records = await self._stores.approvals.read(conversation)
        return [r.payload for r in records if r.payload.decision is None]

    async def _handle_error(self, message: Error) -> None:
        logger.error(f"Error in conversation {message.conversation}: {message.body}")
        await self._sink.render_error(message.conversation, message.body)
