"""Utility modules for the inventory kernel."""

from inventory_kernel.utils.hashing import (
    canonicalize_json,
    hash_audit_entry,
    hash_payload,
)

__all__ = [
    "hash_payload",
    "hash_audit_entry",
    "canonicalize_json",
]
