"""Shared enumerations for Tork governance."""

from enum import Enum


class GovernanceAction(str, Enum):
    """Actions that can be taken on content."""
    ALLOW = "allow"
    DENY = "deny"
    REDACT = "redact"
    ESCALATE = "escalate"


# Actions a client may fall back to when PII is found.
ENFORCEMENT_ACTIONS = (
    GovernanceAction.DENY,
    GovernanceAction.REDACT,
    GovernanceAction.ESCALATE,
)
