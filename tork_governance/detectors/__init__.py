"""Tork Governance PII Detectors"""
from .pii_patterns import (
    ADDRESS_MAX_WORDS,
    PII_PATTERNS,
    PIIDetector,
    PIIMatch,
    PIIPattern,
    PIIResult,
    PIIType,
    coerce_text,
    detect_pii,
    redact_pii,
)

__all__ = [
    "ADDRESS_MAX_WORDS",
    "PII_PATTERNS",
    "PIIDetector",
    "PIIMatch",
    "PIIPattern",
    "PIIResult",
    "PIIType",
    "coerce_text",
    "detect_pii",
    "redact_pii",
]
