from __future__ import annotations

"""Global policy decisions for tool calls.

``GlobalPolicy`` is the runtime authority the ``Runner`` consults before a
tool call ever reaches the approver.

Decision order
--------------

1. Blocked tool names and the optional allow-list.
2. Safety validation (argument size).
3. Pre-authorized tool names (``approval_policy.always_approve``).
4. Risk classification and the autonomy profile.

A blocked call is answered with a rejecting ``ApprovalResponse``; a call that
does not require approval is answered with an approving one. Everything else
is handed to the approver.
"""

import json
from typing import Any, Dict, Optional

from .models import PolicyConfig, PolicyDecision, RiskLevel


class GlobalPolicy:
    """Aggregate policy decisions for tool calls.

    ``GlobalPolicy`` is configured by ``PolicyConfig`` and is stateless, so one
    instance is shared by every conversation.
    """

    def __init__(self, config: PolicyConfig) -> None:
        self._cfg = config

    @property
    def config(self) -> PolicyConfig:
        return self._cfg

    def classify_risk(self, tool_name: str) -> RiskLevel:
        """Risk level of ``tool_name`` under the approval policy."""
        return self._cfg.approval_policy.risk_of(tool_name)

    def decide(self, tool_name: str, *, args: Dict[str, Any]) -> PolicyDecision:
        """
        Compute the policy decision for a tool call.

        Args:
            tool_name: The tool to evaluate.
            args: The arguments the model supplied.

        Returns:
            Whether the call is blocked, pre-authorized or needs the approver.
        """
        tool_policy = self._cfg.tool_policy
        if tool_name in tool_policy.blocked_tools:
            return PolicyDecision.blocked(f"tool blocked: {tool_name}")
        if tool_policy.allowed_tools is not None and tool_name not in tool_policy.allowed_tools:
            return PolicyDecision.blocked(f"tool not allowed: {tool_name}")

        err = self.validate_tool_args(args)
        if err is not None:
            return PolicyDecision.blocked(err)

        approval = self._cfg.approval_policy
        risk = self.classify_risk(tool_name)
        if tool_name in approval.always_approve:
            return PolicyDecision(risk=risk, require_approval=False)
        return PolicyDecision(risk=risk, require_approval=approval.requires_approval(risk, self._cfg.autonomy_profile))

    def validate_tool_args(self, args: Dict[str, Any]) -> Optional[str]:
        """Return the block reason for oversized ``args``, or None if they fit."""
        raw = json.dumps(args, default=str).encode("utf-8")
        if len(raw) > self._cfg.safety_policy.max_tool_args_bytes:
            return "tool args too large"
        return None
