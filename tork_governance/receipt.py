"""
Tork Governance Receipts

A receipt is a hash-bound audit record of an (input, output, action) triple.
It stores SHA-256 digests of both texts, never the texts themselves, so the
pair a receipt attests to can be proven later with ``Receipt.verify``.
"""

import hashlib
import hmac
import json
import secrets
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, Mapping, Tuple

from .detectors.pii_patterns import PIIType
from .errors import ReceiptFormatError
from .types import GovernanceAction

RECEIPT_ID_PREFIX = "rcpt_"
HASH_PREFIX = "sha256:"

# Serialized field order; audit consumers rely on this exact set.
RECEIPT_FIELDS = (
    "id",
    "timestamp",
    "input_hash",
    "output_hash",
    "action",
    "pii_types",
    "pii_count",
    "policy_version",
    "processing_time_ns",
)


def hash_text(text: str) -> str:
    """Generate SHA256 hash of text with prefix."""
    data = text.encode("utf-8", errors="surrogatepass")
    return f"{HASH_PREFIX}{hashlib.sha256(data).hexdigest()}"


def generate_receipt_id() -> str:
    """
    Generate a unique receipt ID from the OS entropy source.

    Failure of the entropy source propagates; there is no weaker fallback.
    """
    return f"{RECEIPT_ID_PREFIX}{secrets.token_hex(16)}"


def _digests_equal(a: str, b: str) -> bool:
    return hmac.compare_digest(
        a.encode("utf-8", errors="surrogatepass"),
        b.encode("utf-8", errors="surrogatepass"),
    )


def utc_timestamp() -> str:
    """Current UTC instant, ISO-8601 with microseconds."""
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.%fZ")


@dataclass(frozen=True)
class Receipt:
    """Cryptographic receipt for governance audit trail."""
    receipt_id: str
    timestamp: str
    input_hash: str
    output_hash: str
    action: GovernanceAction
    policy_version: str
    processing_time_ns: int
    pii_types: Tuple[PIIType, ...] = ()
    pii_count: int = 0

    @property
    def id(self) -> str:
        return self.receipt_id

    @classmethod
    def generate(
        cls,
        input_text: str,
        output_text: str,
        action: GovernanceAction,
        pii_types: Iterable[PIIType],
        pii_count: int,
        policy_version: str,
        processing_time_ns: int,
    ) -> "Receipt":
        """Generate a receipt for one governance operation."""
        return cls(
            receipt_id=generate_receipt_id(),
            timestamp=utc_timestamp(),
            input_hash=hash_text(input_text),
            output_hash=hash_text(output_text),
            action=GovernanceAction(action),
            policy_version=policy_version,
            processing_time_ns=max(0, int(processing_time_ns)),
            pii_types=tuple(pii_types),
            pii_count=pii_count,
        )

    def verify(self, input_text: str, output_text: str) -> bool:
        """Verify that input/output match the receipt hashes."""
        input_ok = _digests_equal(hash_text(input_text), self.input_hash)
        output_ok = _digests_equal(hash_text(output_text), self.output_hash)
        return input_ok and output_ok

    def to_dict(self) -> Dict[str, Any]:
        """Serialize with the stable audit field order."""
        return {
            "id": self.receipt_id,
            "timestamp": self.timestamp,
            "input_hash": self.input_hash,
            "output_hash": self.output_hash,
            "action": self.action.value,
            "pii_types": [t.value for t in self.pii_types],
            "pii_count": self.pii_count,
            "policy_version": self.policy_version,
            "processing_time_ns": self.processing_time_ns,
        }

    def to_json(self, **kwargs) -> str:
        return json.dumps(self.to_dict(), **kwargs)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Receipt":
        """Load a receipt serialized by ``to_dict``."""
        missing = [name for name in RECEIPT_FIELDS if name not in data]
        if missing:
            raise ReceiptFormatError(f"Receipt is missing field(s): {', '.join(missing)}")

        try:
            return cls(
                receipt_id=str(data["id"]),
                timestamp=str(data["timestamp"]),
                input_hash=str(data["input_hash"]),
                output_hash=str(data["output_hash"]),
                action=GovernanceAction(data["action"]),
                policy_version=str(data["policy_version"]),
                processing_time_ns=int(data["processing_time_ns"]),
                pii_types=tuple(PIIType(t) for t in data["pii_types"]),
                pii_count=int(data["pii_count"]),
            )
        except (TypeError, ValueError) as exc:
            raise ReceiptFormatError(f"Invalid receipt: {exc}") from exc

    @classmethod
    def from_json(cls, payload: str) -> "Receipt":
        try:
            data = json.loads(payload)
        except ValueError as exc:
            raise ReceiptFormatError(f"Receipt is not valid JSON: {exc}") from exc
        if not isinstance(data, dict):
            raise ReceiptFormatError("Receipt JSON must be an object")
        return cls.from_dict(data)
