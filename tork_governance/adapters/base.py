"""
Shared request-governance helpers for the web framework adapters.

A request body is parsed into either a ``ParsedBody`` or the
``NOT_APPLICABLE`` marker; adapters branch on the marker instead of catching
parse errors. The governed field is the first of ``CONTENT_KEYS`` holding a
non-empty string.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional, Sequence, Union

from ..core import GovernanceResult, Tork
from ..types import GovernanceAction

logger = logging.getLogger(__name__)

CONTENT_KEYS = ("content", "message", "text", "prompt", "query", "input")
GOVERNED_METHODS = ("POST", "PUT", "PATCH")
BLOCKED_MESSAGE = "Request blocked by governance policy"

OnBlock = Callable[[Any, GovernanceResult], Any]


class NotApplicable:
    """Marker for request bodies that are not governable JSON documents."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "NOT_APPLICABLE"


NOT_APPLICABLE = NotApplicable()


@dataclass(frozen=True)
class ParsedBody:
    """A request body successfully parsed as JSON."""
    document: Any


@dataclass(frozen=True)
class ExtractedContent:
    """The field chosen for governance and its text."""
    key: str
    value: str


@dataclass(frozen=True)
class BodyGovernance:
    """Outcome of governing one request body."""
    result: GovernanceResult
    field: ExtractedContent
    document: Any

    @property
    def blocked(self) -> bool:
        return self.result.action == GovernanceAction.DENY

    @property
    def rewritten(self) -> bool:
        return self.result.action == GovernanceAction.REDACT and self.result.pii.has_pii

    def encoded_document(self) -> bytes:
        return json.dumps(self.document).encode("utf-8")


def parse_json_body(raw: Union[bytes, bytearray, str, None]) -> Union[ParsedBody, NotApplicable]:
    """Parse a raw body as UTF-8 JSON, or return ``NOT_APPLICABLE``."""
    if not raw:
        return NOT_APPLICABLE

    if isinstance(raw, (bytes, bytearray)):
        try:
            raw = bytes(raw).decode("utf-8")
        except UnicodeDecodeError:
            return NOT_APPLICABLE

    try:
        document = json.loads(raw)
    except ValueError:
        return NOT_APPLICABLE

    return ParsedBody(document)


def extract_content(
    document: Any,
    content_keys: Sequence[str] = CONTENT_KEYS,
) -> Optional[ExtractedContent]:
    """Return the first candidate key holding a non-empty string."""
    if not isinstance(document, dict):
        return None
    for key in content_keys:
        value = document.get(key)
        if isinstance(value, str) and value:
            return ExtractedContent(key, value)
    return None


def replace_content(document: Dict[str, Any], key: str, value: str) -> Dict[str, Any]:
    """Return a copy of ``document`` with ``key`` set to ``value``."""
    updated = dict(document)
    updated[key] = value
    return updated


def blocked_payload(result: GovernanceResult) -> Dict[str, Any]:
    """JSON body of the 403 response for a denied request."""
    return {
        "error": BLOCKED_MESSAGE,
        "receipt_id": result.receipt.receipt_id,
        "pii_types": [t.value for t in result.pii.types],
    }


def path_is_governed(
    path: str,
    protected_paths: Sequence[str],
    skip_paths: Sequence[str] = (),
) -> bool:
    if any(path.startswith(p) for p in skip_paths):
        return False
    return any(path.startswith(p) for p in protected_paths)


def method_is_governed(method: Optional[str]) -> bool:
    return (method or "").upper() in GOVERNED_METHODS


def govern_body(
    tork: Tork,
    raw: Union[bytes, bytearray, str, None],
    content_keys: Sequence[str] = CONTENT_KEYS,
) -> Optional[BodyGovernance]:
    """
    Govern the text field of a JSON request body.

    Returns ``None`` when the body is not JSON or has no candidate field, in
    which case the request passes through ungoverned.
    """
    parsed = parse_json_body(raw)
    if parsed is NOT_APPLICABLE:
        return None

    field = extract_content(parsed.document, content_keys)
    if field is None:
        return None

    result = tork.govern(field.value)
    document = parsed.document
    if result.action == GovernanceAction.REDACT and result.pii.has_pii:
        document = replace_content(document, field.key, result.output)

    if result.action == GovernanceAction.DENY:
        logger.info(
            "Blocked request field %r (receipt_id=%s)",
            field.key, result.receipt.receipt_id,
        )

    return BodyGovernance(result=result, field=field, document=document)


def setting_list(value: Any, default: Sequence[str]) -> list:
    """Normalize a path-list setting that may be a string or a sequence."""
    if value is None:
        return list(default)
    if isinstance(value, str):
        return [value]
    return list(value)
