"""
Tork Governance SDK for Python

On-device AI governance with PII detection, redaction, and cryptographic receipts.
"""

from .config import TorkConfig
from .core import (
    Tork,
    PIIResult,
    GovernanceResult,
    Receipt,
    detect_pii,
    redact_pii,
    hash_text,
    generate_receipt_id,
    PIIType,
    PIIMatch,
    GovernanceAction,
)
from .detectors import PIIDetector, PIIPattern, PII_PATTERNS
from .errors import BlockedError, ConfigurationError, ReceiptFormatError, TorkError
from .stats import ClientStats
from . import registry

__version__ = "0.17.0"
__all__ = [
    "Tork",
    "TorkConfig",
    "PIIResult",
    "PIIMatch",
    "GovernanceResult",
    "Receipt",
    "detect_pii",
    "redact_pii",
    "hash_text",
    "generate_receipt_id",
    "PIIType",
    "PIIDetector",
    "PIIPattern",
    "PII_PATTERNS",
    "GovernanceAction",
    "ClientStats",
    "TorkError",
    "ConfigurationError",
    "ReceiptFormatError",
    "BlockedError",
    "registry",
]
