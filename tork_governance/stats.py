"""
Usage statistics for a Tork client.

Every update and reset happens under one lock, so concurrent ``govern`` calls
never lose an increment and no reader observes a half-reset state.
"""

import threading
from dataclasses import dataclass, field
from typing import Dict

from .types import GovernanceAction


def _zero_action_counts() -> Dict[str, int]:
    return {action.value: 0 for action in GovernanceAction}


@dataclass
class ClientStats:
    """Aggregate counters for one client."""
    total_calls: int = 0
    total_pii_detected: int = 0
    total_processing_ns: int = 0
    action_counts: Dict[str, int] = field(default_factory=_zero_action_counts)

    @property
    def avg_processing_time_ns(self) -> int:
        if self.total_calls == 0:
            return 0
        return self.total_processing_ns // self.total_calls

    def copy(self) -> "ClientStats":
        return ClientStats(
            total_calls=self.total_calls,
            total_pii_detected=self.total_pii_detected,
            total_processing_ns=self.total_processing_ns,
            action_counts=dict(self.action_counts),
        )

    def to_dict(self) -> dict:
        return {
            "total_calls": self.total_calls,
            "total_pii_detected": self.total_pii_detected,
            "total_processing_ns": self.total_processing_ns,
            "avg_processing_time_ns": self.avg_processing_time_ns,
            "action_counts": dict(self.action_counts),
        }


class StatsAccumulator:
    """Lock-guarded owner of a ``ClientStats`` value."""

    def __init__(self):
        self._lock = threading.Lock()
        self._stats = ClientStats()

    def record(self, action: GovernanceAction, pii_detected: bool, processing_time_ns: int) -> None:
        """Apply one governance call to the counters."""
        key = GovernanceAction(action).value
        with self._lock:
            stats = self._stats
            stats.total_calls += 1
            if pii_detected:
                stats.total_pii_detected += 1
            stats.total_processing_ns += processing_time_ns
            stats.action_counts[key] += 1

    def snapshot(self) -> ClientStats:
        """Return a consistent copy of the current counters."""
        with self._lock:
            return self._stats.copy()

    def reset(self) -> None:
        """Swap in an all-zero ``ClientStats``."""
        fresh = ClientStats()
        with self._lock:
            self._stats = fresh
