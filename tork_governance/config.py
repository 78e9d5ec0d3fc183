"""
Configuration for Tork governance clients.
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from .errors import ConfigurationError
from .types import ENFORCEMENT_ACTIONS, GovernanceAction

DEFAULT_POLICY_VERSION = "1.0.0"
DEFAULT_ACTION = GovernanceAction.REDACT


def parse_action(value: Union[str, GovernanceAction]) -> GovernanceAction:
    """
    Normalize a default action given as an enum member or its string value.

    Only enforcement actions are accepted: ``allow`` is what every client does
    when no PII is found, so it can never be the fallback for detected PII.
    """
    try:
        action = GovernanceAction(value.strip().lower() if isinstance(value, str) else value)
    except ValueError:
        raise ConfigurationError(f"Unknown governance action: {value!r}") from None

    if action not in ENFORCEMENT_ACTIONS:
        raise ConfigurationError(
            f"default_action must be one of "
            f"{', '.join(a.value for a in ENFORCEMENT_ACTIONS)}, got {action.value!r}"
        )
    return action


@dataclass
class TorkConfig:
    """Configuration for Tork client."""
    policy_version: str = DEFAULT_POLICY_VERSION
    default_action: GovernanceAction = DEFAULT_ACTION
    api_key: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.policy_version, str) or not self.policy_version:
            raise ConfigurationError("policy_version must be a non-empty string")
        self.default_action = parse_action(self.default_action)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TorkConfig":
        """
        Build a configuration from ``TORK_*`` environment variables.

        Reads ``TORK_API_KEY``, ``TORK_POLICY_VERSION`` and
        ``TORK_DEFAULT_ACTION``; unset variables fall back to the defaults.
        """
        if environ is None:
            environ = os.environ
        return cls(
            policy_version=environ.get("TORK_POLICY_VERSION") or DEFAULT_POLICY_VERSION,
            default_action=environ.get("TORK_DEFAULT_ACTION") or DEFAULT_ACTION,
            api_key=environ.get("TORK_API_KEY") or None,
        )
