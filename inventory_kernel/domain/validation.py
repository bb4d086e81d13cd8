"""
Payload and patch validation for workflow items.

Responsibility:
    Normalizes creation payloads and edit patches (Decimal coercion,
    whitespace trimming) and rejects malformed input before any row is
    locked.  Also computes the field-level change set an edit records in
    the audit trail.

Architecture position:
    Kernel > Domain -- pure functions, zero I/O.

Failure modes:
    - InvalidPayloadError naming the offending field.
"""

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal, InvalidOperation
from typing import Any

from inventory_kernel.domain.dtos import ItemPatch, ItemPayload
from inventory_kernel.domain.workflow import ItemKind
from inventory_kernel.exceptions import InvalidPayloadError

_MAX_LENGTHS = {
    "counterparty_name": 255,
    "counterparty_tax_id": 50,
    "counterparty_phone": 50,
    "reference": 100,
    "reason": 2000,
}

_SUPPLY_ONLY = ("unit_price", "counterparty_tax_id")
_DISTRIBUTION_ONLY = ("counterparty_phone",)

# Numeric(38, 9) columns
_SCALE = 9
_INTEGER_DIGITS = 29


def to_decimal(field_name: str, value: Any) -> Decimal:
    """Coerce ``value`` to a finite Decimal that fits the stored scale."""
    if isinstance(value, float):
        value = repr(value)
    try:
        result = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        raise InvalidPayloadError(field_name, f"not a number: {value!r}") from None
    if not result.is_finite():
        raise InvalidPayloadError(field_name, "must be finite")
    if result.as_tuple().exponent < -_SCALE:
        raise InvalidPayloadError(field_name, f"more than {_SCALE} decimal places")
    if result != 0 and result.adjusted() >= _INTEGER_DIGITS:
        raise InvalidPayloadError(field_name, f"more than {_INTEGER_DIGITS} integer digits")
    return result


def _positive_quantity(value: Any) -> Decimal:
    quantity = to_decimal("quantity", value)
    if quantity <= 0:
        raise InvalidPayloadError("quantity", "must be greater than zero")
    return quantity


def _price(value: Any) -> Decimal:
    price = to_decimal("unit_price", value)
    if price < 0:
        raise InvalidPayloadError("unit_price", "must not be negative")
    return price


def _clean_text(field_name: str, value: str | None) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    limit = _MAX_LENGTHS.get(field_name)
    if limit is not None and len(text) > limit:
        raise InvalidPayloadError(field_name, f"longer than {limit} characters")
    return text or None


def _check_kind_fields(kind: ItemKind, values: dict[str, Any]) -> None:
    forbidden = _DISTRIBUTION_ONLY if kind == ItemKind.SUPPLY else _SUPPLY_ONLY
    for name in forbidden:
        if values.get(name) is not None:
            raise InvalidPayloadError(name, f"not allowed on a {kind.value} request")


def validate_payload(kind: ItemKind | str, payload: ItemPayload) -> ItemPayload:
    """Return a normalized copy of ``payload`` or raise InvalidPayloadError."""
    kind = ItemKind(kind)
    if payload.product_id is None:
        raise InvalidPayloadError("product_id", "is required")
    if payload.organizational_unit_id is None:
        raise InvalidPayloadError("organizational_unit_id", "is required")

    _check_kind_fields(kind, vars(payload))

    unit_price = None
    if kind == ItemKind.SUPPLY:
        if payload.unit_price is None:
            raise InvalidPayloadError("unit_price", "is required for a supply request")
        unit_price = _price(payload.unit_price)

    counterparty_name = _clean_text("counterparty_name", payload.counterparty_name)
    if counterparty_name is None:
        raise InvalidPayloadError("counterparty_name", "is required")

    return replace(
        payload,
        quantity=_positive_quantity(payload.quantity),
        unit_price=unit_price,
        counterparty_name=counterparty_name,
        counterparty_tax_id=_clean_text("counterparty_tax_id", payload.counterparty_tax_id),
        counterparty_phone=_clean_text("counterparty_phone", payload.counterparty_phone),
        reason=_clean_text("reason", payload.reason),
        reference=_clean_text("reference", payload.reference),
    )


def validate_patch(kind: ItemKind | str, patch: ItemPatch) -> dict[str, Any]:
    """Return the normalized fields the patch sets.

    Raises:
        InvalidPayloadError: empty patch, bad value, or field foreign to ``kind``.
    """
    kind = ItemKind(kind)
    values = patch.changed_fields()
    if not values:
        raise InvalidPayloadError("patch", "no fields to change")
    _check_kind_fields(kind, values)

    cleaned: dict[str, Any] = {}
    for name, value in values.items():
        if name == "quantity":
            cleaned[name] = _positive_quantity(value)
        elif name == "unit_price":
            cleaned[name] = _price(value)
        elif name == "product_id":
            cleaned[name] = value
        else:
            text = _clean_text(name, value)
            if name == "counterparty_name" and text is None:
                raise InvalidPayloadError(name, "must not be blank")
            cleaned[name] = text
    return cleaned


def diff_fields(current: dict[str, Any], proposed: dict[str, Any]) -> dict[str, dict[str, Any]]:
    """Field-level changes as ``{field: {"from": old, "to": new}}``."""
    changes: dict[str, dict[str, Any]] = {}
    for name, new in proposed.items():
        old = current.get(name)
        if old == new:
            continue
        changes[name] = {"from": old, "to": new}
    return changes


def describe_changes(changes: dict[str, dict[str, Any]]) -> str:
    """Human-readable summary stored as the edit's audit comment."""
    if not changes:
        return "No field changes"
    parts = [
        f"{name}: {_fmt(change['from'])} -> {_fmt(change['to'])}"
        for name, change in sorted(changes.items())
    ]
    return "; ".join(parts)


def _fmt(value: Any) -> str:
    if value is None:
        return "(empty)"
    if isinstance(value, Decimal):
        return format(value.normalize(), "f")
    return str(value)
