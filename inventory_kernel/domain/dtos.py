"""
Data transfer objects for the workflow kernel.

Every object the orchestrator and selectors hand back to callers is a
frozen dataclass defined here; ORM instances never leave a unit of work.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from inventory_kernel.domain.stock import MovementKind
from inventory_kernel.domain.workflow import (
    ItemKind,
    ItemStatus,
    Role,
    WorkflowAction,
)


@dataclass(frozen=True)
class ItemPayload:
    """Creation payload for a Supply or Distribution request.

    ``unit_price`` and ``counterparty_tax_id`` apply to Supply only;
    ``counterparty_phone`` to Distribution only.  ``parent_unit_id``
    defaults to the unit's parent in the catalog.
    """

    product_id: UUID
    organizational_unit_id: UUID
    quantity: Decimal
    parent_unit_id: UUID | None = None
    unit_price: Decimal | None = None
    counterparty_name: str | None = None
    counterparty_tax_id: str | None = None
    counterparty_phone: str | None = None
    reason: str | None = None
    reference: str | None = None


@dataclass(frozen=True)
class ItemPatch:
    """Edit patch.  ``None`` leaves a field unchanged."""

    product_id: UUID | None = None
    quantity: Decimal | None = None
    unit_price: Decimal | None = None
    counterparty_name: str | None = None
    counterparty_tax_id: str | None = None
    counterparty_phone: str | None = None
    reason: str | None = None
    reference: str | None = None

    def changed_fields(self) -> dict[str, Any]:
        """Fields explicitly set by the patch."""
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not None
        }


@dataclass(frozen=True)
class WorkflowItem:
    """Read model of a workflow item."""

    id: UUID
    number: str
    kind: ItemKind
    status: ItemStatus
    product_id: UUID
    organizational_unit_id: UUID
    parent_unit_id: UUID | None
    quantity: Decimal
    unit_price: Decimal | None
    counterparty_name: str | None
    counterparty_tax_id: str | None
    counterparty_phone: str | None
    reason: str | None
    reference: str | None
    locked: bool
    comment: str | None
    created_by: UUID
    created_at: datetime
    updated_at: datetime
    updated_by: UUID | None = None

    @property
    def status_label(self) -> str:
        return self.status.label

    @property
    def is_terminal(self) -> bool:
        return self.status in (ItemStatus.APPROVED_FINAL, ItemStatus.REJECTED)


@dataclass(frozen=True)
class AuditEntry:
    """One immutable audit record, ordered by ``seq``."""

    seq: int
    workflow_item_id: UUID
    item_number: str
    action: WorkflowAction
    from_status: ItemStatus | None
    to_status: ItemStatus | None
    actor_id: UUID
    actor_role: Role
    comment: str | None
    created_at: datetime
    payload: dict[str, Any] = field(default_factory=dict)
    payload_hash: str = ""
    prev_hash: str | None = None
    hash: str = ""

    @property
    def changes_status(self) -> bool:
        return self.to_status is not None and self.to_status != self.from_status


@dataclass(frozen=True)
class LedgerEntry:
    """Stock change produced by a final approval."""

    id: UUID
    workflow_item_id: UUID
    item_number: str
    kind: MovementKind
    quantity: Decimal
    quantity_before: Decimal
    quantity_after: Decimal
    product_id: UUID
    organizational_unit_id: UUID
    counterparty_name: str | None
    unit_price: Decimal | None
    created_at: datetime


@dataclass(frozen=True)
class DeleteAck:
    """Acknowledgement returned by ``delete``."""

    item_id: UUID
    number: str
    action: WorkflowAction
    deleted_at: datetime
    audit_seq: int


@dataclass(frozen=True)
class ListFilters:
    """Optional filters for ``list_for``."""

    kind: ItemKind | None = None
    status: ItemStatus | None = None
    product_id: UUID | None = None
    organizational_unit_id: UUID | None = None
    parent_unit_id: UUID | None = None
    created_from: datetime | None = None
    created_to: datetime | None = None
    limit: int | None = None
    offset: int = 0


@dataclass(frozen=True)
class ActorInfo:
    """What the actor resolver knows about an actor."""

    actor_id: UUID
    role: Role
    organizational_unit_id: UUID | None
    approved: bool = True
