from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field

from ..sink import Sink
from .base import FunctionTool, Tool, ToolContext


class EchoInput(BaseModel):
    msg: str = Field(..., description="Text to echo back")


class SendMessageInput(BaseModel):
    message: str = Field(..., max_length=2000, description="Markdown text to post into the conversation")


async def _echo(ctx: ToolContext, args: EchoInput) -> str:
    return args.msg


def echo_tool() -> FunctionTool:
    """
    Tool that returns its ``msg`` argument unchanged.

    Useful to verify the call/approve/execute round trip end to end.
    """
    return FunctionTool(
        name="echo",
        description="Echo the given message back.",
        input_model=EchoInput,
        fn=_echo,
    )


def send_message_factory(sink: Sink):
    """
    Build the per-conversation factory of the ``send_message`` tool.

    The tool posts text into the conversation it was resolved for, so the
    model can talk to the humans in the channel outside of its own replies.

    Args:
        sink: Where messages are rendered.

    Returns:
        A factory suitable for ``ToolRegistry.register_factory``.
    """

    def _factory(conversation: str) -> Tool:
        async def _send(ctx: ToolContext, args: SendMessageInput) -> Dict[str, Any]:
            await sink.render_text(conversation, args.message)
            return {"delivered": True}

        return FunctionTool(
            name="send_message",
            description="Send a message to the conversation's channel. Markdown is supported.",
            input_model=SendMessageInput,
            fn=_send,
        )

    return _factory
