"""Message-driven conversation runtime.

The runtime is a durable message queue with two participants:

- ``Agent`` consumes ``turn`` messages, calls the model and emits
  ``tool_call_request`` messages.
- ``Runner`` gates ``tool_call_request`` messages through policy and the
  approver, and turns ``approval_response`` messages into tool results that
  flow back to the agent as new turns.

All activity of one conversation is serialized by the queue; different
conversations proceed independently.
"""

from .agent import Agent
from .context import ConversationContext
from .message_queue import MessageQueue
from .runner import Runner

__all__ = [
    "Agent",
    "ConversationContext",
    "MessageQueue",
    "Runner",
]
