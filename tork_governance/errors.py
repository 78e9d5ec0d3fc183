"""
Tork Governance Errors

Detection and governance never raise on text input. These exceptions cover
misconfiguration, malformed serialized receipts, and callers that choose to
enforce a blocking action in-process.
"""

from typing import Any, Optional


class TorkError(Exception):
    """Base class for all Tork governance errors."""


class ConfigurationError(TorkError, ValueError):
    """Raised when a client or adapter is configured with invalid values."""


class ReceiptFormatError(TorkError, ValueError):
    """Raised when a serialized receipt cannot be loaded."""


class BlockedError(TorkError):
    """
    Raised when content is blocked by governance policy.

    Carries the governance result so callers can report the receipt id and
    the detected PII types.
    """

    def __init__(self, result: Any, message: Optional[str] = None):
        self.result = result
        if message is None:
            message = (
                f"Content blocked by governance policy "
                f"(action={result.action.value}, receipt_id={result.receipt.receipt_id})"
            )
        super().__init__(message)

    @property
    def receipt_id(self) -> str:
        return self.result.receipt.receipt_id
