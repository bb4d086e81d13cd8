"""
Deterministic hashing utilities.

Audit entries are chained per workflow item; the functions here are the
only way those hashes are computed, so the recorder and the chain
validator can never disagree.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """
    Serializer for types json does not handle.

    Raises:
        TypeError: If the object type is not supported.
    """
    if isinstance(obj, Decimal):
        # Normalized so 50 and 50.000000000 hash identically
        return format(obj.normalize(), "f")
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)

    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: dict | list | Any) -> str:
    """
    Convert data to a canonical JSON string: sorted keys, no whitespace,
    Decimal/datetime/UUID/Enum rendered as strings.
    """
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def to_json_safe(data: dict) -> dict:
    """Round-trip ``data`` through canonical JSON so it can be stored in a JSON column."""
    return json.loads(canonicalize_json(data))


def hash_payload(payload: dict) -> str:
    """
    Compute the SHA-256 hash of a payload.

    Returns:
        Hex-encoded SHA-256 hash (64 characters).
    """
    canonical = canonicalize_json(payload)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()


def hash_audit_entry(
    item_number: str,
    action: str,
    seq: int,
    payload_hash: str,
    prev_hash: str | None,
) -> str:
    """
    Compute the chained hash of one audit entry.

    The previous entry's hash is part of the input, so editing or removing
    any earlier entry of the same item breaks every later hash.

    Args:
        item_number: Human-readable number of the workflow item.
        action: Action being recorded.
        seq: Global audit sequence of the entry.
        payload_hash: Hash of the entry's canonical payload.
        prev_hash: Hash of the item's previous entry (None for the first).
    """
    components = [
        item_number,
        action,
        str(seq),
        payload_hash,
        prev_hash or "GENESIS",
    ]
    data = "|".join(components)
    return hashlib.sha256(data.encode("utf-8")).hexdigest()
