"""
Tork Governance Core Module

PII detection, redaction, and governance with cryptographic receipts.
"""

import logging
import time
from dataclasses import dataclass
from typing import Any, Optional, Sequence, Union

from .config import DEFAULT_ACTION, DEFAULT_POLICY_VERSION, TorkConfig
from .detectors.pii_patterns import (
    PIIDetector,
    PIIMatch,
    PIIResult,
    PIIType,
    coerce_text,
    detect_pii,
    redact_pii,
)
from .errors import BlockedError
from .receipt import Receipt, generate_receipt_id, hash_text
from .stats import ClientStats, StatsAccumulator
from .types import GovernanceAction

logger = logging.getLogger(__name__)

Region = Union[str, Sequence[str]]


@dataclass(frozen=True)
class GovernanceResult:
    """Result of governance evaluation."""
    action: GovernanceAction
    output: str
    pii: PIIResult
    receipt: Receipt
    region: Optional[Region] = None
    industry: Optional[str] = None

    @property
    def allowed(self) -> bool:
        return self.action == GovernanceAction.ALLOW

    @property
    def denied(self) -> bool:
        return self.action == GovernanceAction.DENY

    @property
    def redacted(self) -> bool:
        return self.action == GovernanceAction.REDACT

    @property
    def escalated(self) -> bool:
        return self.action == GovernanceAction.ESCALATE

    def raise_for_action(self) -> "GovernanceResult":
        """
        Raise ``BlockedError`` when the action is deny or escalate.

        Blocking is left to the caller; this is the in-process way to do it.
        """
        if self.denied or self.escalated:
            raise BlockedError(self)
        return self

    def to_dict(self) -> dict:
        data = {
            "action": self.action.value,
            "output": self.output,
            "pii": self.pii.to_dict(),
            "receipt": self.receipt.to_dict(),
        }
        if self.region is not None:
            data["region"] = self.region if isinstance(self.region, str) else list(self.region)
        if self.industry is not None:
            data["industry"] = self.industry
        return data


class Tork:
    """
    Main Tork governance client.

    Statistics are shared by every thread that calls ``govern`` on the same
    instance; detection and receipt generation are stateless.

    Example:
        >>> tork = Tork()
        >>> result = tork.govern("My SSN is 123-45-6789")
        >>> print(result.output)  # "My SSN is [SSN_REDACTED]"
        >>> print(result.receipt.receipt_id)  # "rcpt_..."
    """

    def __init__(
        self,
        config: Optional[TorkConfig] = None,
        api_key: Optional[str] = None,
        policy_version: str = DEFAULT_POLICY_VERSION,
        default_action: Union[str, GovernanceAction] = DEFAULT_ACTION,
        detector: Optional[PIIDetector] = None,
    ):
        if config:
            self.config = config
        else:
            self.config = TorkConfig(
                policy_version=policy_version,
                default_action=default_action,
                api_key=api_key
            )

        self.detector = detector or PIIDetector()
        self._stats = StatsAccumulator()

    @property
    def policy_version(self) -> str:
        return self.config.policy_version

    @property
    def default_action(self) -> GovernanceAction:
        return self.config.default_action

    @property
    def api_key(self) -> Optional[str]:
        return self.config.api_key

    def govern(
        self,
        input_text: Any,
        region: Optional[Region] = None,
        industry: Optional[str] = None,
    ) -> GovernanceResult:
        """
        Apply governance rules to input text.

        Args:
            input_text: The text to govern
            region: Optional regional profile(s), carried through to the result
            industry: Optional industry profile, carried through to the result

        Returns:
            GovernanceResult with action, output, PII info, and receipt
        """
        input_text = coerce_text(input_text)
        start_time = time.perf_counter_ns()

        pii = self.detector.detect(input_text)

        if pii.has_pii:
            action = self.config.default_action
            output = pii.redacted_text if action == GovernanceAction.REDACT else input_text
        else:
            action = GovernanceAction.ALLOW
            output = input_text

        processing_time_ns = time.perf_counter_ns() - start_time

        receipt = Receipt.generate(
            input_text=input_text,
            output_text=output,
            action=action,
            pii_types=pii.types,
            pii_count=pii.count,
            policy_version=self.config.policy_version,
            processing_time_ns=processing_time_ns,
        )

        self._stats.record(action, pii.has_pii, receipt.processing_time_ns)

        logger.debug(
            "Governed input: action=%s pii_count=%d receipt_id=%s",
            action.value, pii.count, receipt.receipt_id,
        )

        return GovernanceResult(
            action=action,
            output=output,
            pii=pii,
            receipt=receipt,
            region=region,
            industry=industry,
        )

    @property
    def stats(self) -> dict:
        """Usage statistics as a plain dict."""
        return self._stats.snapshot().to_dict()

    def get_stats(self) -> dict:
        """Get usage statistics."""
        return self.stats

    def stats_snapshot(self) -> ClientStats:
        """Consistent copy of the statistics counters."""
        return self._stats.snapshot()

    def reset_stats(self) -> None:
        """Reset usage statistics."""
        self._stats.reset()


__all__ = [
    "Tork",
    "TorkConfig",
    "GovernanceResult",
    "GovernanceAction",
    "ClientStats",
    "PIIType",
    "PIIMatch",
    "PIIResult",
    "Receipt",
    "detect_pii",
    "redact_pii",
    "hash_text",
    "generate_receipt_id",
]
