from __future__ import annotations

from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Union

import httpx
import pytest

from toolgate_ai.agent_core.abstraction.base import ModelClient, ModelTurn, ToolChoice
from toolgate_ai.agent_core.capabilities.base import ToolSchema
from toolgate_ai.agent_core.factory import build_default_registry
from toolgate_ai.agent_core.policy.approver import Approver, SinkApprover
from toolgate_ai.agent_core.policy.global_policy import GlobalPolicy
from toolgate_ai.agent_core.policy.models import PolicyConfig
from toolgate_ai.agent_core.repos.interfaces import StoreBundle
from toolgate_ai.agent_core.repos.memory import build_memory_stores
from toolgate_ai.agent_core.capabilities.registry import ToolRegistry
from toolgate_ai.agent_core.schemas.messages import ContextMessage
from toolgate_ai.agent_core.service import ConversationService

Step = Union[ModelTurn, BaseException, Callable[[Sequence[ContextMessage]], ModelTurn]]


class ScriptedModel(ModelClient):
    """Model client that replays prepared steps and records every call."""

    def __init__(self, steps: Iterable[Step] = ()) -> None:
        self.steps: List[Step] = list(steps)
        self.calls: List[Dict[str, Any]] = []

    async def invoke(
        self,
        messages: Sequence[ContextMessage],
        tools: Sequence[ToolSchema],
        *,
        tool_choice: ToolChoice = "required",
    ) -> ModelTurn:
        self.calls.append({"messages": list(messages), "tools": [t.name for t in tools], "tool_choice": tool_choice})
        if not self.steps:
            return ModelTurn()
        step = self.steps.pop(0)
        if isinstance(step, BaseException):
            raise step
        if callable(step):
            return step(messages)
        return step


class RecordingSink:
    def __init__(self) -> None:
        self.texts: List[tuple[str, str]] = []
        self.approvals: List[tuple[str, str, str]] = []
        self.errors: List[tuple[str, Dict[str, Any]]] = []

    async def render_text(self, conversation: str, text: str) -> None:
        self.texts.append((conversation, text))

    async def request_approval(self, conversation: str, content: str, call_id: str) -> None:
        self.approvals.append((conversation, content, call_id))

    async def render_error(self, conversation: str, body: Dict[str, Any]) -> None:
        self.errors.append((conversation, body))


@pytest.fixture
def stores() -> StoreBundle:
    return build_memory_stores()


@pytest.fixture
def sink() -> RecordingSink:
    return RecordingSink()


@pytest.fixture
def scripted_model() -> Callable[..., ScriptedModel]:
    return ScriptedModel


@pytest.fixture
async def make_service(stores: StoreBundle, sink: RecordingSink):
    """Factory fixture building started-on-demand services over in-memory stores."""
    created: List[ConversationService] = []

    def _make(
        *,
        steps: Iterable[Step] = (),
        approver: Optional[Approver] = None,
        policy_config: Optional[PolicyConfig] = None,
        tools: Optional[ToolRegistry] = None,
        context_window: int = 100,
        bundle: Optional[StoreBundle] = None,
    ) -> tuple[ConversationService, ScriptedModel]:
        model = ScriptedModel(steps)
        svc = ConversationService(
            stores=bundle or stores,
            model=model,
            tools=tools if tools is not None else build_default_registry(sink),
            policy=GlobalPolicy(policy_config or PolicyConfig()),
            approver=approver if approver is not None else SinkApprover(sink),
            sink=sink,
            context_window=context_window,
        )
        created.append(svc)
        return svc, model

    yield _make

    for svc in created:
        await svc.stop()


@pytest.fixture(autouse=True)
def _global_offline_http_guard(monkeypatch: pytest.MonkeyPatch):
    allowed_prefixes: Iterable[str] = (
        "http://mock",
        "https://mock",
        "http://localhost",
        "http://127.0.0.1",
        "http://0.0.0.0",
    )

    orig_sync = httpx._client.Client.request
    orig_async = httpx._client.AsyncClient.request

    def _is_allowed(url_str: str) -> bool:
        return any(url_str.startswith(p) for p in allowed_prefixes)

    def offline_sync(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return orig_sync(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard: {url_str}")

    async def offline_async(self, method, url, *args, **kwargs):
        url_str = str(url)
        if _is_allowed(url_str):
            return await orig_async(self, method, url, *args, **kwargs)
        raise RuntimeError(f"External HTTP blocked by global offline guard (async): {url_str}")

    monkeypatch.setattr(httpx._client.Client, "request", offline_sync, raising=True)
    monkeypatch.setattr(httpx._client.AsyncClient, "request", offline_async, raising=True)
