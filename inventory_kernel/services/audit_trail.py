"""
AuditTrailRecorder -- append-only, hash-chained workflow audit trail.

Responsibility:
    Records exactly one immutable entry per successful workflow operation
    (create, revision request, approval, rejection, edit, delete, force
    unlock, comment acknowledgement) in the same transaction as the
    operation.  Validates an item's hash chain on demand.

Architecture position:
    Kernel > Services -- imperative shell, called by the orchestrator as
    the last write of every unit of work (lock order: item, product,
    audit counter).

Invariants enforced:
    - Ordering via SequenceService (locked counter), never max+1.
    - hash = H(item_number | action | seq | payload_hash | prev_hash),
      where prev_hash is the item's previous entry.
    - Append-only: the model is protected by ORM listeners.

Failure modes:
    - AuditChainBrokenError from validate_chain() on tampering.

Audit relevance:
    This IS the audit trail.  ``history`` and the unread-comment gate are
    derived reads over these rows.
"""

from typing import Any
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import AuditEntry
from inventory_kernel.domain.workflow import ItemStatus, Role, WorkflowAction
from inventory_kernel.exceptions import AuditChainBrokenError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.audit_entry import WorkflowAuditEntryModel
from inventory_kernel.models.workflow_item import WorkflowItemModel
from inventory_kernel.services.sequence_service import SequenceService
from inventory_kernel.utils.hashing import hash_audit_entry, hash_payload, to_json_safe

logger = get_logger("services.audit_trail")


class AuditTrailRecorder:
    """
    Writes audit entries for workflow operations.

    Contract:
        ``record`` is called once per successful operation, inside the
        operation's transaction, after every other write of the unit.

    Guarantees:
        - Each entry carries a unique, increasing ``seq``.
        - Each entry links to the previous entry of the same item.

    Non-goals:
        - Does NOT call ``session.commit()``.
        - Does NOT decide whether an operation is allowed.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._sequences = SequenceService(session)

    def _last_hash(self, item_id: UUID) -> str | None:
        return self._session.execute(
            select(WorkflowAuditEntryModel.hash)
            .where(WorkflowAuditEntryModel.workflow_item_id == item_id)
            .order_by(WorkflowAuditEntryModel.seq.desc())
            .limit(1)
        ).scalar_one_or_none()

    def record(
        self,
        item: WorkflowItemModel,
        action: WorkflowAction,
        from_status: ItemStatus | str | None,
        to_status: ItemStatus | str | None,
        actor_id: UUID,
        actor_role: Role | str,
        comment: str | None = None,
        payload: dict[str, Any] | None = None,
    ) -> AuditEntry:
        """
        Append one entry for ``item``.

        Postconditions:
            - A new row is flushed with the next audit ``seq``.
            - ``hash`` links to the item's previous entry.
        """
        seq = self._sequences.next_value(SequenceService.AUDIT_ENTRY)
        prev_hash = self._last_hash(item.id)

        action = WorkflowAction(action)
        actor_role = Role(actor_role)
        from_value = ItemStatus(from_status).value if from_status else None
        to_value = ItemStatus(to_status).value if to_status else None

        body = to_json_safe({
            "action": action.value,
            "from_status": from_value,
            "to_status": to_value,
            "actor_id": actor_id,
            "actor_role": actor_role.value,
            "comment": comment,
            "data": payload or {},
        })
        payload_hash = hash_payload(body)
        entry_hash = hash_audit_entry(
            item_number=item.number,
            action=action.value,
            seq=seq,
            payload_hash=payload_hash,
            prev_hash=prev_hash,
        )

        entry = WorkflowAuditEntryModel(
            seq=seq,
            workflow_item_id=item.id,
            item_number=item.number,
            action=action.value,
            from_status=from_value,
            to_status=to_value,
            actor_id=actor_id,
            actor_role=actor_role.value,
            comment=comment,
            payload=body["data"],
            payload_hash=payload_hash,
            prev_hash=prev_hash,
            hash=entry_hash,
            created_at=self._clock.now(),
        )
        self._session.add(entry)
        self._session.flush()

        logger.info(
            "audit_entry_recorded",
            extra={
                "item_number": item.number,
                "action": action.value,
                "from_status": from_value,
                "to_status": to_value,
                "seq": seq,
            },
        )
        return entry.to_dto()

    def validate_chain(self, item_id: UUID) -> bool:
        """
        Recompute every hash of ``item_id``'s trail.

        Raises:
            AuditChainBrokenError: a stored hash or link does not match.
        """
        entries = self._session.execute(
            select(WorkflowAuditEntryModel)
            .where(WorkflowAuditEntryModel.workflow_item_id == item_id)
            .order_by(WorkflowAuditEntryModel.seq)
        ).scalars().all()

        prev_hash: str | None = None
        for entry in entries:
            if entry.prev_hash != prev_hash:
                logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                raise AuditChainBrokenError(entry.seq, prev_hash or "GENESIS", entry.prev_hash or "GENESIS")

            body = {
                "action": entry.action,
                "from_status": entry.from_status,
                "to_status": entry.to_status,
                "actor_id": str(entry.actor_id),
                "actor_role": entry.actor_role,
                "comment": entry.comment,
                "data": entry.payload or {},
            }
            if hash_payload(body) != entry.payload_hash:
                logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                raise AuditChainBrokenError(entry.seq, hash_payload(body), entry.payload_hash)

            expected = hash_audit_entry(
                item_number=entry.item_number,
                action=entry.action,
                seq=entry.seq,
                payload_hash=entry.payload_hash,
                prev_hash=entry.prev_hash,
            )
            if expected != entry.hash:
                logger.critical("audit_chain_broken", extra={"seq": entry.seq})
                raise AuditChainBrokenError(entry.seq, expected, entry.hash)
            prev_hash = entry.hash

        logger.info(
            "audit_chain_valid",
            extra={"item_id": str(item_id), "entry_count": len(entries)},
        )
        return True
