"""
LockEnforcer -- at-most-once terminal transitions.

Responsibility:
    Sets ``locked`` in the same unit as the stock movement, refuses every
    later transition, edit or delete of a locked item, and implements the
    privileged Admin force-unlock.

Architecture position:
    Kernel > Services.  Stateless helper over WorkflowItemModel rows the
    orchestrator has already loaded FOR UPDATE.

Invariants enforced:
    - locked = True implies no further status change.  Backed by the ORM
      listener in db/immutability.py, which rejects any flush that changes
      a locked row except the unlock itself.
    - Force-unlock is Admin-only, needs a comment, and leaves the status
      at ApprovedFinal.  The stock movement is never reversed.

Failure modes:
    - ItemLockedError, TransitionDeniedError, MissingCommentError.
"""

from datetime import datetime
from uuid import UUID

from inventory_kernel.domain.workflow import ItemStatus, Role, WorkflowAction, has_comment
from inventory_kernel.exceptions import (
    ItemLockedError,
    MissingCommentError,
    TransitionDeniedError,
)
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.workflow_item import WorkflowItemModel

logger = get_logger("services.lock_enforcer")


class LockEnforcer:
    """Guards and flips the terminal lock of workflow items."""

    def ensure_unlocked(self, item: WorkflowItemModel, action: WorkflowAction | str) -> None:
        """Raise ItemLockedError if ``item`` is locked."""
        if item.locked:
            action = WorkflowAction(action)
            logger.info(
                "locked_item_mutation_refused",
                extra={"item_number": item.number, "action": action.value},
            )
            raise ItemLockedError(str(item.id), item.number, action.value)

    def lock(self, item: WorkflowItemModel, actor_id: UUID, now: datetime) -> None:
        """Mark ``item`` locked; called in the unit that applies its stock movement."""
        self.ensure_unlocked(item, WorkflowAction.APPROVE)
        item.locked = True
        item.updated_at = now
        item.updated_by_id = actor_id

    def force_unlock(
        self,
        item: WorkflowItemModel,
        actor_id: UUID,
        actor_role: Role | str,
        comment: str | None,
        now: datetime,
    ) -> None:
        """
        Privileged unlock of a terminally approved item.

        Raises:
            TransitionDeniedError: actor is not Admin, or item is not locked.
            MissingCommentError: no justification supplied.
        """
        role = Role(actor_role)
        status = ItemStatus(item.status)
        action = WorkflowAction.ADMIN_FORCE_UNLOCK

        if role != Role.ADMIN:
            raise TransitionDeniedError(
                action.value, role.value, status.value, status.label,
                reason="only an administrator may force-unlock",
            )
        if not item.locked:
            raise TransitionDeniedError(
                action.value, role.value, status.value, status.label,
                reason="item is not locked",
            )
        if not has_comment(comment):
            raise MissingCommentError(action.value, role.value)

        item.locked = False
        item.updated_at = now
        item.updated_by_id = actor_id

        logger.warning(
            "item_force_unlocked",
            extra={
                "item_number": item.number,
                "status": status.value,
                "actor": str(actor_id),
            },
        )
