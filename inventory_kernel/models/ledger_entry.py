"""
Module: inventory_kernel.models.ledger_entry
Responsibility: ORM persistence for stock ledger entries -- the record of
    each quantity change caused by a final approval.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain types only.

Invariants enforced:
    - At most one entry per workflow item (UNIQUE workflow_item_id).  A
      retried final approval can never double-apply stock.
    - Append-only (listeners in db/immutability.py).
    - quantity_after = quantity_before +/- quantity, never negative.

Failure modes:
    - IntegrityError on a second entry for the same item.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UTCDateTime, UUIDString
from inventory_kernel.domain.dtos import LedgerEntry
from inventory_kernel.domain.stock import MovementKind


class StockLedgerEntryModel(Base):
    """One applied stock movement."""

    __tablename__ = "stock_ledger_entries"

    __table_args__ = (
        CheckConstraint(
            "kind IN ('increment', 'decrement')",
            name="ck_stock_ledger_kind",
        ),
        CheckConstraint("quantity > 0", name="ck_stock_ledger_quantity_positive"),
        CheckConstraint("quantity_after >= 0", name="ck_stock_ledger_after_non_negative"),
        Index("ix_stock_ledger_product", "product_id", "created_at"),
    )

    workflow_item_id: Mapped[UUID] = mapped_column(
        UUIDString(), nullable=False, unique=True,
    )
    item_number: Mapped[str] = mapped_column(String(64), nullable=False)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    quantity: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    quantity_before: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    quantity_after: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False,
    )
    organizational_unit_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    counterparty_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<StockLedgerEntry {self.item_number} {self.kind} {self.quantity}>"

    def to_dto(self) -> LedgerEntry:
        return LedgerEntry(
            id=self.id,
            workflow_item_id=self.workflow_item_id,
            item_number=self.item_number,
            kind=MovementKind(self.kind),
            quantity=self.quantity,
            quantity_before=self.quantity_before,
            quantity_after=self.quantity_after,
            product_id=self.product_id,
            organizational_unit_id=self.organizational_unit_id,
            counterparty_name=self.counterparty_name,
            unit_price=self.unit_price,
            created_at=self.created_at,
        )
