"""
Module: inventory_kernel.models.product
Responsibility: The slice of the product catalog the workflow mutates:
    on-hand quantity and reference unit price.
Architecture position: Kernel > Models.  May import from db/base.py only.

Invariants enforced:
    - quantity >= 0 at the database level (CHECK constraint).  The ledger
      mutator checks first; the constraint is the last line.

Failure modes:
    - IntegrityError if any writer tries to store a negative quantity.

Audit relevance:
    Quantity changes made by the workflow always come with a
    StockLedgerEntry written in the same transaction.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from uuid import UUID

from sqlalchemy import CheckConstraint, ForeignKey, Index, Numeric, String, func
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UTCDateTime, UUIDString


class ProductModel(Base):
    """A stocked product belonging to one organizational unit."""

    __tablename__ = "products"

    __table_args__ = (
        CheckConstraint("quantity >= 0", name="ck_products_quantity_non_negative"),
        Index("ix_products_unit", "organizational_unit_id"),
    )

    name: Mapped[str] = mapped_column(String(255), nullable=False)
    organizational_unit_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("organizational_units.id"),
        nullable=False,
    )
    quantity: Mapped[Decimal] = mapped_column(
        Numeric(38, 9),
        nullable=False,
        default=Decimal("0"),
    )
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime(),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    def __repr__(self) -> str:
        return f"<Product {self.name} qty={self.quantity}>"
