from __future__ import annotations

"""Convenience factories for wiring the agent core.

This module contains small helpers to build the default tool registry, a
``PolicyConfig`` from settings, the store bundle, and a ready-to-start
``ConversationService``.

The intent is to keep application wiring and tests concise, while still
allowing deployments to provide their own model client, tools, approver, sink
or stores.
"""

import logging
from typing import Awaitable, Callable, List, Optional, Tuple

from toolgate_ai.core.config import ApprovalConfig, Settings
from toolgate_ai.core.config import settings as default_settings

from .abstraction.adapters.pydantic_ai import PydanticAIModelClient
from .abstraction.base import ModelClient
from .capabilities.builtin import echo_tool, send_message_factory
from .capabilities.registry import ToolRegistry
from .policy.approver import Approver, SinkApprover
from .policy.global_policy import GlobalPolicy
from .policy.models import ApprovalPolicy, AutonomyProfile, PolicyConfig, SafetyPolicy, ToolPolicy
from .repos.interfaces import StoreBundle
from .repos.memory import build_memory_stores
from .repos.sql import build_sql_stores, create_all, create_engine, create_sessionmaker
from .service import ConversationService
from .sink import LoggingSink, Sink

logger = logging.getLogger(__name__)


def build_default_registry(sink: Sink) -> ToolRegistry:
    """Build the default ``ToolRegistry``.

    The default registry includes the built-in tools shipped with the
    package: ``echo`` and the conversation-bound ``send_message``.
    """
    reg = ToolRegistry()
    reg.register(echo_tool())
    reg.register_factory("send_message", send_message_factory(sink))
    return reg


def build_policy_config(approval: ApprovalConfig) -> PolicyConfig:
    """Translate approval settings into a ``PolicyConfig``."""
    return PolicyConfig(
        autonomy_profile=AutonomyProfile(approval.autonomy_profile),
        tool_policy=ToolPolicy(blocked_tools=approval.blocked_tool_names),
        approval_policy=ApprovalPolicy(always_approve=approval.always_approve_tools),
        safety_policy=SafetyPolicy(max_tool_args_bytes=approval.max_tool_args_bytes),
    )


async def build_stores(database_url: Optional[str]) -> Tuple[StoreBundle, List[Callable[[], Awaitable[None]]]]:
    """
    Build the store bundle for a database URL.

    An empty URL selects in-memory stores. Otherwise the tables are created if
    missing and the returned cleanup callbacks dispose of the engine.

    Args:
        database_url: Async SQLAlchemy URL, or None/empty for in-memory.

    Returns:
        The stores and their cleanup callbacks.
    """
    if not database_url:
        logger.info("Using in-memory stores; conversations will not survive a restart")
        return build_memory_stores(), []
    engine = create_engine(database_url)
    await create_all(engine)
    logger.info(f"Using SQL stores at {engine.url.render_as_string(hide_password=True)}")
    return build_sql_stores(session_factory=create_sessionmaker(engine)), [engine.dispose]


async def build_service(
    settings: Optional[Settings] = None,
    *,
    model: Optional[ModelClient] = None,
    tools: Optional[ToolRegistry] = None,
    approver: Optional[Approver] = None,
    sink: Optional[Sink] = None,
    stores: Optional[StoreBundle] = None,
) -> ConversationService:
    """
    Wire a ``ConversationService`` from settings.

    Every collaborator can be overridden; the defaults are a Pydantic AI model
    client, the built-in tools, a ``SinkApprover`` and a ``LoggingSink``.

    Args:
        settings: Settings to use (module-level settings if None).
        model: Model client override.
        tools: Tool registry override.
        approver: Approver override.
        sink: Sink override.
        stores: Store bundle override; skips database setup.

    Returns:
        An unstarted service.
    """
    cfg = settings if settings is not None else default_settings
    sink = sink if sink is not None else LoggingSink()

    on_stop: List[Callable[[], Awaitable[None]]] = []
    if stores is None:
        stores, on_stop = await build_stores(cfg.database_url)

    if model is None:
        llm = cfg.llm
        model = PydanticAIModelClient(llm.name, system_prompt=llm.system_prompt, temperature=llm.temperature)

    return ConversationService(
        stores=stores,
        model=model,
        tools=tools if tools is not None else build_default_registry(sink),
        policy=GlobalPolicy(build_policy_config(cfg.approval)),
        approver=approver if approver is not None else SinkApprover(sink),
        sink=sink,
        context_window=cfg.context_window,
        on_stop=on_stop,
    )
