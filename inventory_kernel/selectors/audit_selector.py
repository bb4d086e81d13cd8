"""
AuditSelector -- derived reads over the workflow audit trail.

``history`` returns an item's entries in sequence order; it keeps working
after the item is deleted.  ``has_unread_comment`` answers the
observation gate: a role has unread comments when a revision request or
rejection authored by another role carries a comment and is newer than
that role's latest acknowledgement.
"""

from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import AuditEntry
from inventory_kernel.domain.workflow import (
    OBSERVATION_ACTIONS,
    Role,
    WorkflowAction,
    has_comment,
)
from inventory_kernel.models.audit_entry import WorkflowAuditEntryModel
from inventory_kernel.selectors.base import BaseSelector


class AuditSelector(BaseSelector):
    """Read side of the audit trail."""

    def history(self, item_id: UUID) -> tuple[AuditEntry, ...]:
        rows = self.session.execute(
            select(WorkflowAuditEntryModel)
            .where(WorkflowAuditEntryModel.workflow_item_id == item_id)
            .order_by(WorkflowAuditEntryModel.seq)
        ).scalars().all()
        return tuple(row.to_dto() for row in rows)

    def _last_acknowledgement_seq(self, item_id: UUID, role: Role) -> int:
        seq = self.session.execute(
            select(WorkflowAuditEntryModel.seq)
            .where(
                WorkflowAuditEntryModel.workflow_item_id == item_id,
                WorkflowAuditEntryModel.action == WorkflowAction.ACKNOWLEDGE_COMMENTS.value,
                WorkflowAuditEntryModel.actor_role == role.value,
            )
            .order_by(WorkflowAuditEntryModel.seq.desc())
            .limit(1)
        ).scalar_one_or_none()
        return seq or 0

    def unread_comments(self, item_id: UUID, role: Role | str) -> tuple[AuditEntry, ...]:
        """Observation entries ``role`` has not acknowledged yet."""
        role = Role(role)
        since = self._last_acknowledgement_seq(item_id, role)
        rows = self.session.execute(
            select(WorkflowAuditEntryModel)
            .where(
                WorkflowAuditEntryModel.workflow_item_id == item_id,
                WorkflowAuditEntryModel.seq > since,
                WorkflowAuditEntryModel.action.in_([a.value for a in OBSERVATION_ACTIONS]),
                WorkflowAuditEntryModel.actor_role != role.value,
            )
            .order_by(WorkflowAuditEntryModel.seq)
        ).scalars().all()
        return tuple(row.to_dto() for row in rows if has_comment(row.comment))

    def has_unread_comment(self, item_id: UUID, role: Role | str) -> bool:
        return len(self.unread_comments(item_id, role)) > 0
