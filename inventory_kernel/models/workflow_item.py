"""
Module: inventory_kernel.models.workflow_item
Responsibility: ORM persistence for Supply and Distribution requests.

Architecture position: Kernel > Models.  May import from db/base.py and the
    domain enums only.

Invariants enforced:
    - number is UNIQUE for the lifetime of the system.
    - status and kind are limited to the domain enum values (CHECK).
    - quantity > 0 (CHECK).
    - A locked row is immutable except for the privileged unlock
      (ORM listener in db/immutability.py).

Failure modes:
    - IntegrityError on duplicate number (allocator retries).
    - ImmutabilityViolationError on UPDATE/DELETE of a locked row.

Audit relevance:
    Every status change of a row is mirrored by exactly one
    WorkflowAuditEntryModel row written in the same transaction.
"""

from __future__ import annotations

from decimal import Decimal
from uuid import UUID

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import TrackedBase, UUIDString
from inventory_kernel.domain.dtos import WorkflowItem
from inventory_kernel.domain.workflow import ItemKind, ItemStatus


def _in_list(column: str, enum_cls) -> str:
    values = ", ".join(f"'{member.value}'" for member in enum_cls)
    return f"{column} IN ({values})"


class WorkflowItemModel(TrackedBase):
    """One Supply or Distribution request."""

    __tablename__ = "workflow_items"

    __table_args__ = (
        CheckConstraint(_in_list("status", ItemStatus), name="ck_workflow_items_status"),
        CheckConstraint(_in_list("kind", ItemKind), name="ck_workflow_items_kind"),
        CheckConstraint("quantity > 0", name="ck_workflow_items_quantity_positive"),
        Index("ix_workflow_items_status", "status", "created_at"),
        Index("ix_workflow_items_unit_status", "organizational_unit_id", "status"),
        Index("ix_workflow_items_product_status", "product_id", "status"),
    )

    number: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    kind: Mapped[str] = mapped_column(String(20), nullable=False)
    status: Mapped[str] = mapped_column(
        String(32), nullable=False, default=ItemStatus.PENDING.value,
    )
    year: Mapped[int] = mapped_column(Integer, nullable=False)

    product_id: Mapped[UUID] = mapped_column(
        UUIDString(), ForeignKey("products.id"), nullable=False,
    )
    organizational_unit_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    parent_unit_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    quantity: Mapped[Decimal] = mapped_column(Numeric(38, 9), nullable=False)
    unit_price: Mapped[Decimal | None] = mapped_column(Numeric(38, 9), nullable=True)
    counterparty_name: Mapped[str | None] = mapped_column(String(255), nullable=True)
    counterparty_tax_id: Mapped[str | None] = mapped_column(String(50), nullable=True)
    counterparty_phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    reason: Mapped[str | None] = mapped_column(Text, nullable=True)
    reference: Mapped[str | None] = mapped_column(String(100), nullable=True)

    locked: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)

    EDITABLE_FIELDS = (
        "product_id",
        "quantity",
        "unit_price",
        "counterparty_name",
        "counterparty_tax_id",
        "counterparty_phone",
        "reason",
        "reference",
    )

    def __repr__(self) -> str:
        return f"<WorkflowItem {self.number} {self.kind} status={self.status} locked={self.locked}>"

    def field_values(self) -> dict:
        """Current values of the editable fields."""
        return {name: getattr(self, name) for name in self.EDITABLE_FIELDS}

    def to_dto(self) -> WorkflowItem:
        """Convert ORM model to frozen domain DTO."""
        return WorkflowItem(
            id=self.id,
            number=self.number,
            kind=ItemKind(self.kind),
            status=ItemStatus(self.status),
            product_id=self.product_id,
            organizational_unit_id=self.organizational_unit_id,
            parent_unit_id=self.parent_unit_id,
            quantity=self.quantity,
            unit_price=self.unit_price,
            counterparty_name=self.counterparty_name,
            counterparty_tax_id=self.counterparty_tax_id,
            counterparty_phone=self.counterparty_phone,
            reason=self.reason,
            reference=self.reference,
            locked=self.locked,
            comment=self.comment,
            created_by=self.created_by_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
            updated_by=self.updated_by_id,
        )
