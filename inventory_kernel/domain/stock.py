"""
Stock movements -- the tagged variant applied at final approval.

Responsibility:
    Expresses the only difference between the two request kinds: a Supply
    increments stock (and reprices the product), a Distribution decrements
    stock after checking sufficiency.  ``apply_movement`` is the pure
    arithmetic; the ledger mutator supplies the locked product row.

Architecture position:
    Kernel > Domain -- pure functional core, zero I/O.

Invariants enforced:
    - On-hand quantity never goes negative: ``DecrementWithCheck`` raises
      ``InsufficientStockError`` instead of producing a negative result.
    - Movement quantities are strictly positive.
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Union

from inventory_kernel.domain.workflow import ItemKind
from inventory_kernel.exceptions import InsufficientStockError


class MovementKind(str, Enum):
    """Direction of a ledger entry."""

    INCREMENT = "increment"
    DECREMENT = "decrement"


@dataclass(frozen=True)
class Increment:
    """Supply: add ``quantity`` and set the reference unit price."""

    quantity: Decimal
    unit_price: Decimal | None = None

    kind = MovementKind.INCREMENT

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("Increment quantity must be positive")


@dataclass(frozen=True)
class DecrementWithCheck:
    """Distribution: remove ``quantity`` only if that much is on hand."""

    quantity: Decimal

    kind = MovementKind.DECREMENT

    def __post_init__(self) -> None:
        if self.quantity <= 0:
            raise ValueError("Decrement quantity must be positive")


StockMovement = Union[Increment, DecrementWithCheck]


@dataclass(frozen=True)
class MovementResult:
    """Quantities before and after a movement, plus the resulting price."""

    quantity_before: Decimal
    quantity_after: Decimal
    unit_price: Decimal | None


def movement_for(
    kind: ItemKind | str,
    quantity: Decimal,
    unit_price: Decimal | None = None,
) -> StockMovement:
    """Build the movement a terminal approval of ``kind`` applies."""
    if ItemKind(kind) == ItemKind.SUPPLY:
        return Increment(quantity=quantity, unit_price=unit_price)
    return DecrementWithCheck(quantity=quantity)


def apply_movement(
    movement: StockMovement,
    on_hand: Decimal,
    current_price: Decimal | None,
    product_id: str = "",
) -> MovementResult:
    """Compute the product's new quantity (and price) under ``movement``.

    Raises:
        InsufficientStockError: decrement larger than ``on_hand``.
    """
    if isinstance(movement, Increment):
        price = movement.unit_price if movement.unit_price is not None else current_price
        return MovementResult(
            quantity_before=on_hand,
            quantity_after=on_hand + movement.quantity,
            unit_price=price,
        )

    if movement.quantity > on_hand:
        raise InsufficientStockError(
            product_id=product_id,
            available=on_hand,
            requested=movement.quantity,
        )
    return MovementResult(
        quantity_before=on_hand,
        quantity_after=on_hand - movement.quantity,
        unit_price=current_price,
    )
