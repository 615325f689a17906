"""Policy subsystem for tool approval gating.

The policy layer decides, outside of prompting, what happens to a tool call
the model asked for:

- ``ToolPolicy``: allow/deny which tools may run at all.
- ``ApprovalPolicy`` and ``AutonomyProfile``: decide whether a call is
  pre-authorized or needs a decision from the approver.
- ``SafetyPolicy``: basic safety checks (argument size limit).

``GlobalPolicy`` aggregates these configurations. Calls it does not settle go
to an ``Approver`` (``AlwaysApprove``, ``AlwaysReject`` or ``SinkApprover``).
"""

from .approver import AlwaysApprove, AlwaysReject, Approver, SinkApprover
from .global_policy import GlobalPolicy
from .models import (
    ApprovalPolicy,
    AutonomyProfile,
    PolicyConfig,
    PolicyDecision,
    RiskLevel,
    SafetyPolicy,
    ToolPolicy,
)

__all__ = [
    "AlwaysApprove",
    "AlwaysReject",
    "Approver",
    "SinkApprover",
    "GlobalPolicy",
    "PolicyConfig",
    "PolicyDecision",
    "ToolPolicy",
    "ApprovalPolicy",
    "SafetyPolicy",
    "AutonomyProfile",
    "RiskLevel",
]
