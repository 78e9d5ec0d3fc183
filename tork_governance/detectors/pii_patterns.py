"""
PII Detection Patterns

Fixed, ordered catalog of regex detectors used by the governance pipeline.
Catalog order is significant: each pattern is substituted into the working
copy before the next one runs, so a span that fits two shapes belongs to the
earlier pattern and a placeholder is never matched again.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Pattern, Tuple
import logging

logger = logging.getLogger(__name__)


class PIIType(str, Enum):
    """Types of PII that can be detected."""
    SSN = "ssn"
    CREDIT_CARD = "credit_card"
    EMAIL = "email"
    PHONE = "phone"
    ADDRESS = "address"
    IP_ADDRESS = "ip_address"
    DATE_OF_BIRTH = "date_of_birth"


@dataclass(frozen=True)
class PIIPattern:
    """A typed detector with its fixed redaction placeholder."""
    pii_type: PIIType
    pattern: Pattern
    redaction: str


@dataclass(frozen=True)
class PIIMatch:
    """A single PII match; offsets refer to the original text."""
    type: PIIType
    value: str
    start_index: int
    end_index: int


@dataclass(frozen=True)
class PIIResult:
    """Result of PII detection."""
    has_pii: bool
    types: Tuple[PIIType, ...]
    count: int
    matches: Tuple[PIIMatch, ...]
    redacted_text: str

    def to_dict(self) -> dict:
        return {
            "has_pii": self.has_pii,
            "types": [t.value for t in self.types],
            "count": self.count,
        }


# ASCII classes keep \d and \w to [0-9] and [A-Za-z0-9_].
_FLAGS = re.ASCII

# Repetitions are bounded so every scan start does a fixed amount of work.
# Email parts follow the RFC 5321 / DNS length limits.
ADDRESS_MAX_WORDS = 10

PII_PATTERNS: Tuple[PIIPattern, ...] = (
    PIIPattern(
        PIIType.SSN,
        re.compile(r'\b\d{3}-\d{2}-\d{4}\b', _FLAGS),
        '[SSN_REDACTED]',
    ),
    PIIPattern(
        PIIType.CREDIT_CARD,
        re.compile(r'\b\d{4}[-\s]?\d{4}[-\s]?\d{4}[-\s]?\d{4}\b', _FLAGS),
        '[CARD_REDACTED]',
    ),
    PIIPattern(
        PIIType.EMAIL,
        re.compile(
            r'\b[A-Za-z0-9._%+-]{1,64}@[A-Za-z0-9.-]{1,253}\.[A-Za-z]{2,63}\b',
            _FLAGS,
        ),
        '[EMAIL_REDACTED]',
    ),
    PIIPattern(
        PIIType.PHONE,
        re.compile(r'\b(?:\+?1[-.\s]?)?\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b', _FLAGS),
        '[PHONE_REDACTED]',
    ),
    PIIPattern(
        PIIType.ADDRESS,
        re.compile(
            r'\b\d{1,5}\s+\w+(?:\s+\w+){0,%d}\s+' % (ADDRESS_MAX_WORDS - 1) +
            r'(?:Street|St|Avenue|Ave|Road|Rd|Boulevard|Blvd|Drive|Dr|Lane|Ln|Court|Ct|Way|Place|Pl)\b',
            _FLAGS | re.IGNORECASE,
        ),
        '[ADDRESS_REDACTED]',
    ),
    PIIPattern(
        PIIType.IP_ADDRESS,
        re.compile(
            r'\b(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}'
            r'(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\b',
            _FLAGS,
        ),
        '[IP_REDACTED]',
    ),
    PIIPattern(
        PIIType.DATE_OF_BIRTH,
        re.compile(r'\b(?:0[1-9]|1[0-2])/(?:0[1-9]|[12]\d|3[01])/(?:19|20)\d{2}\b', _FLAGS),
        '[DOB_REDACTED]',
    ),
)


def coerce_text(value: Any) -> str:
    """Return ``value`` as text; ``None`` becomes the empty string."""
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8", errors="replace")
    return str(value)


class PIIDetector:
    """
    Scans text against an ordered catalog of typed detectors.

    The detector holds no mutable state, so one instance can be shared by any
    number of threads.
    """

    def __init__(self, patterns: Tuple[PIIPattern, ...] = PII_PATTERNS):
        self.patterns = tuple(patterns)

    def detect(self, text: Any) -> PIIResult:
        """
        Detect PII in text and return results with redacted text.

        Matches are collected from the original text for every pattern, while
        redaction is applied to a working copy one pattern at a time.

        Args:
            text: The text to scan for PII

        Returns:
            PIIResult with detection results and redacted text
        """
        text = coerce_text(text)
        matches: List[PIIMatch] = []
        detected_types: List[PIIType] = []
        redacted_text = text

        for entry in self.patterns:
            found = False
            for match in entry.pattern.finditer(text):
                found = True
                matches.append(PIIMatch(
                    type=entry.pii_type,
                    value=match.group(),
                    start_index=match.start(),
                    end_index=match.end(),
                ))
            if found and entry.pii_type not in detected_types:
                detected_types.append(entry.pii_type)
            redacted_text = entry.pattern.sub(entry.redaction, redacted_text)

        if matches:
            logger.debug(
                "Detected %d PII match(es) of type(s) %s",
                len(matches), ", ".join(t.value for t in detected_types),
            )

        return PIIResult(
            has_pii=len(matches) > 0,
            types=tuple(detected_types),
            count=len(matches),
            matches=tuple(matches),
            redacted_text=redacted_text,
        )

    def redact(self, text: Any) -> str:
        """Return ``text`` with every detected span replaced by its placeholder."""
        return self.detect(text).redacted_text

    def get_supported_types(self) -> List[str]:
        """Get list of supported PII types, in evaluation order."""
        return [entry.pii_type.value for entry in self.patterns]


_default_detector = PIIDetector()


def detect_pii(text: Any) -> PIIResult:
    """Detect PII with the default catalog."""
    return _default_detector.detect(text)


def redact_pii(text: Any) -> str:
    """Convenience function to redact PII from text."""
    return _default_detector.redact(text)
