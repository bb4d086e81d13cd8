"""
Module: inventory_kernel.models.audit_entry
Responsibility: ORM persistence for the workflow audit trail.

Architecture position: Kernel > Models.  May import from db/base.py and
    domain enums only.

Invariants enforced:
    - Append-only: UPDATE and DELETE raise ImmutabilityViolationError
      (listeners in db/immutability.py).
    - seq is UNIQUE and allocated from the locked ``audit_entry`` counter,
      so ordering never depends on clock resolution.
    - No foreign key to workflow_items: entries outlive a deleted item.

Audit relevance:
    hash = H(payload_hash | item_number | action | seq | prev_hash) chains
    the entries of one item; validate_chain() recomputes it.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import JSON, BigInteger, Index, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from inventory_kernel.db.base import Base, UTCDateTime, UUIDString
from inventory_kernel.domain.dtos import AuditEntry
from inventory_kernel.domain.workflow import ItemStatus, Role, WorkflowAction


class WorkflowAuditEntryModel(Base):
    """One immutable audit record."""

    __tablename__ = "workflow_audit_entries"

    __table_args__ = (
        Index("ix_workflow_audit_item_seq", "workflow_item_id", "seq"),
        Index("ix_workflow_audit_action", "workflow_item_id", "action"),
    )

    seq: Mapped[int] = mapped_column(BigInteger, nullable=False, unique=True)
    workflow_item_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    item_number: Mapped[str] = mapped_column(String(64), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    from_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    to_status: Mapped[str | None] = mapped_column(String(32), nullable=True)
    actor_id: Mapped[UUID] = mapped_column(UUIDString(), nullable=False)
    actor_role: Mapped[str] = mapped_column(String(32), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    payload: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False, default=dict)
    payload_hash: Mapped[str] = mapped_column(String(64), nullable=False)
    prev_hash: Mapped[str | None] = mapped_column(String(64), nullable=True)
    hash: Mapped[str] = mapped_column(String(64), nullable=False)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime(), nullable=False)

    def __repr__(self) -> str:
        return f"<AuditEntry #{self.seq} {self.item_number} {self.action}>"

    def to_dto(self) -> AuditEntry:
        """Convert ORM model to frozen domain DTO."""
        return AuditEntry(
            seq=self.seq,
            workflow_item_id=self.workflow_item_id,
            item_number=self.item_number,
            action=WorkflowAction(self.action),
            from_status=ItemStatus(self.from_status) if self.from_status else None,
            to_status=ItemStatus(self.to_status) if self.to_status else None,
            actor_id=self.actor_id,
            actor_role=Role(self.actor_role),
            comment=self.comment,
            created_at=self.created_at,
            payload=dict(self.payload or {}),
            payload_hash=self.payload_hash,
            prev_hash=self.prev_hash,
            hash=self.hash,
        )
