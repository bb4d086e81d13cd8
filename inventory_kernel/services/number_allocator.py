"""
NumberAllocator -- human-readable request numbers.

Responsibility:
    Turns a numbering scope into the next request number:

        Supply:        ALI-2026-0001
        Distribution:  OCT-MSAN-DPS-2026-0007

    Supply numbers are scoped by year; Distribution numbers by year and
    organizational unit.  The counter behind each scope is a locked
    SequenceCounter row, incremented inside the caller's transaction.

Architecture position:
    Kernel > Services.  Called by the orchestrator's create operation.

Invariants enforced:
    - Uniqueness within a scope: two concurrent creations lock the same
      counter row and therefore see different values.
    - No reuse: a rolled-back allocation returns its value with the
      transaction; a committed one is never handed out again.

Failure modes:
    - UnitNotFoundError when a Distribution's unit is unknown.
"""

from dataclasses import dataclass
from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.domain.workflow import ItemKind
from inventory_kernel.logging_config import get_logger
from inventory_kernel.services.product_catalog import ProductCatalog
from inventory_kernel.services.sequence_service import SequenceService

logger = get_logger("services.number_allocator")


@dataclass(frozen=True)
class NumberingScope:
    """Counter scope: (kind, year) or (kind, year, unit)."""

    kind: ItemKind
    year: int
    organizational_unit_id: UUID | None = None

    @property
    def counter_name(self) -> str:
        if self.kind == ItemKind.SUPPLY:
            return f"supply:{self.year}"
        return f"distribution:{self.year}:{self.organizational_unit_id}"


def scope_for(kind: ItemKind | str, year: int, organizational_unit_id: UUID | None) -> NumberingScope:
    """Build the numbering scope for a new item."""
    kind = ItemKind(kind)
    if kind == ItemKind.SUPPLY:
        return NumberingScope(kind=kind, year=year)
    if organizational_unit_id is None:
        raise ValueError("Distribution numbering requires an organizational unit")
    return NumberingScope(kind=kind, year=year, organizational_unit_id=organizational_unit_id)


class NumberAllocator:
    """
    Allocates request numbers inside the caller's transaction.

    Contract:
        ``next_number(scope)`` returns a string unique within the scope.

    Non-goals:
        - Does NOT commit; does NOT retry.  The orchestrator retries the
          insert when the store reports a number collision.
    """

    def __init__(self, session: Session, numbering):
        """
        Args:
            session: SQLAlchemy session inside an active transaction.
            numbering: ``NumberingSettings`` from inventory_config.
        """
        self._session = session
        self._numbering = numbering
        self._sequences = SequenceService(session)
        self._catalog = ProductCatalog(session)

    def next_number(self, scope: NumberingScope) -> str:
        value = self._sequences.next_value(scope.counter_name)
        counter = str(value).zfill(self._numbering.width)

        if scope.kind == ItemKind.SUPPLY:
            number = f"{self._numbering.supply_prefix}-{scope.year}-{counter}"
        else:
            unit = self._catalog.get_unit(scope.organizational_unit_id)
            parent = self._catalog.find_unit(unit.parent_id)
            parent_abbrev = (
                parent.abbreviation if parent is not None and parent.abbreviation
                else self._numbering.default_parent_abbreviation
            )
            unit_abbrev = unit.abbreviation or self._numbering.default_unit_abbreviation
            number = (
                f"{self._numbering.distribution_prefix}-{parent_abbrev}-"
                f"{unit_abbrev}-{scope.year}-{counter}"
            )

        logger.debug(
            "number_allocated",
            extra={"scope": scope.counter_name, "number": number},
        )
        return number
