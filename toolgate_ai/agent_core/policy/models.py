from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import Field

from ..schemas.base import BaseSchema


class AutonomyProfile(str, Enum):
    """How much the model may do without asking a human."""

    unrestricted = "unrestricted"
    balanced = "balanced"
    strict = "strict"


class RiskLevel(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"

    @property
    def rank(self) -> int:
        return _RISK_RANK[self]

    def at_least(self, other: RiskLevel) -> bool:
        return self.rank >= other.rank


_RISK_RANK = {RiskLevel.low: 0, RiskLevel.medium: 1, RiskLevel.high: 2}


class ToolPolicy(BaseSchema):
    """
    Which tools a conversation may call at all.

    With no ``allowed_tools`` every registered tool is callable, minus the
    ``blocked_tools``.
    """

    allowed_tools: Optional[set[str]] = Field(default=None, description="Allow-list of tool names; None allows all.")
    blocked_tools: set[str] = Field(default_factory=set, description="Tool names rejected outright.")


class ApprovalPolicy(BaseSchema):
    """
    When a tool call has to be decided by the approver.

    Tools are rated with a ``RiskLevel``; ``tool_risk_overrides`` rates
    individual tools and ``default_tool_risk`` rates the rest. Tools in
    ``always_approve`` skip the approver regardless of risk.
    """

    require_for_risk_at_or_above: RiskLevel = RiskLevel.medium
    default_tool_risk: RiskLevel = RiskLevel.medium
    always_approve: set[str] = Field(default_factory=set, description="Pre-authorized tool names.")
    tool_risk_overrides: dict[str, RiskLevel] = Field(default_factory=dict, description="Risk per tool name.")

    def risk_of(self, tool_name: str) -> RiskLevel:
        return self.tool_risk_overrides.get(tool_name, self.default_tool_risk)

    def requires_approval(self, risk: RiskLevel, profile: AutonomyProfile) -> bool:
        """
        Apply the autonomy profile to a risk level.

        ``unrestricted`` only escalates high risk calls, ``strict`` escalates
        every call, and ``balanced`` escalates from
        ``require_for_risk_at_or_above`` upwards.
        """
        if profile == AutonomyProfile.strict:
            return True
        if profile == AutonomyProfile.unrestricted:
            return risk.at_least(RiskLevel.high)
        return risk.at_least(self.require_for_risk_at_or_above)


class SafetyPolicy(BaseSchema):
    """Limits applied to tool arguments before anything else is decided."""

    max_tool_args_bytes: int = Field(default=64_000, ge=1, le=5_000_000)


class PolicyConfig(BaseSchema):
    """Everything a ``GlobalPolicy`` is configured with."""

    version: str = Field(default="policy-v1")

    autonomy_profile: AutonomyProfile = AutonomyProfile.balanced
    tool_policy: ToolPolicy = Field(default_factory=ToolPolicy)
    approval_policy: ApprovalPolicy = Field(default_factory=ApprovalPolicy)
    safety_policy: SafetyPolicy = Field(default_factory=SafetyPolicy)


@dataclass(frozen=True)
class PolicyDecision:
    """
    Verdict on one tool call.

    Attributes:
        risk: Risk level of the tool (``low`` for blocked calls).
        require_approval: The approver has to decide.
        block: The call is refused without asking anyone.
        block_reason: Why the call was refused; reported to the model.
    """

    risk: RiskLevel
    require_approval: bool
    block: bool = False
    block_reason: Optional[str] = None

    @classmethod
    def blocked(cls, reason: str) -> PolicyDecision:
        return cls(risk=RiskLevel.low, require_approval=False, block=True, block_reason=reason)
