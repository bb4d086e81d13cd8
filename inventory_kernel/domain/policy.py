"""
Edit, delete and visibility policy (``inventory_kernel.domain.policy``).

Responsibility
--------------
Decides, per role and current status, whether an unlocked item may be
edited or deleted, which status an edit produces, and which statuses
each role sees in its work list.

Architecture position
---------------------
**Kernel domain layer** -- pure functions over ``domain.workflow``
enums.  ZERO I/O.

Invariants enforced
-------------------
* A locked item is never editable or deletable here; the orchestrator
  raises ``ItemLockedError`` before consulting this module, and these
  functions refuse ``locked=True`` as a second line.
* Deleting an ``ApprovedFinal`` item is only reachable through the Admin
  override path, and only once the item has been force-unlocked.

Failure modes
-------------
* ``EditDeniedError`` / ``DeleteDeniedError`` -- role or status refused.
* ``ItemLockedError`` -- ``locked=True`` passed in.
"""

from __future__ import annotations

from dataclasses import dataclass

from inventory_kernel.domain.workflow import ItemStatus, Role, WorkflowAction
from inventory_kernel.exceptions import (
    DeleteDeniedError,
    EditDeniedError,
    ItemLockedError,
)

EDITABLE_STATUSES: frozenset[ItemStatus] = frozenset({
    ItemStatus.PENDING,
    ItemStatus.REVISION_PURCHASING,
    ItemStatus.REVISION_FINANCE,
    ItemStatus.REJECTED,
})

EDITOR_ROLES: frozenset[Role] = frozenset({
    Role.ENTRY_AGENT,
    Role.PURCHASING_MANAGER,
    Role.ADMIN,
})

DELETABLE_STATUSES: dict[Role, frozenset[ItemStatus]] = {
    Role.ENTRY_AGENT: EDITABLE_STATUSES,
    Role.PURCHASING_MANAGER: EDITABLE_STATUSES | {
        ItemStatus.APPROVED_PURCHASING,
        ItemStatus.APPROVED_FINANCE,
    },
    Role.ADMIN: frozenset(ItemStatus) - {ItemStatus.APPROVED_FINAL},
}

ALL_STATUSES: frozenset[ItemStatus] = frozenset(ItemStatus)

VISIBLE_STATUSES: dict[Role, frozenset[ItemStatus]] = {
    Role.ENTRY_AGENT: frozenset({
        ItemStatus.PENDING,
        ItemStatus.REVISION_PURCHASING,
        ItemStatus.REVISION_FINANCE,
        ItemStatus.APPROVED_FINANCE,
        ItemStatus.REJECTED,
        ItemStatus.APPROVED_FINAL,
    }),
    Role.PURCHASING_MANAGER: ALL_STATUSES,
    Role.FINANCE_MANAGER: frozenset({
        ItemStatus.APPROVED_PURCHASING,
        ItemStatus.REVISION_FINANCE,
        ItemStatus.APPROVED_FINANCE,
        ItemStatus.REJECTED,
        ItemStatus.APPROVED_FINAL,
    }),
    Role.APPROVING_OFFICER: frozenset({
        ItemStatus.APPROVED_FINANCE,
        ItemStatus.REJECTED,
        ItemStatus.APPROVED_FINAL,
    }),
    Role.ADMIN: ALL_STATUSES,
}


@dataclass(frozen=True)
class DeleteDecision:
    """Outcome of the delete policy.

    ``override`` is True when the Admin override path was used; the
    orchestrator audits it as ``admin_override_delete``.
    """

    action: WorkflowAction
    override: bool = False


def edit_result_status(
    role: Role | str,
    status: ItemStatus | str,
    locked: bool = False,
    item_id: str = "",
) -> ItemStatus:
    """Return the status an edit by ``role`` produces.

    Raises:
        ItemLockedError: item is locked.
        EditDeniedError: role may not edit, or status is not editable.
    """
    role = Role(role)
    status = ItemStatus(status)

    if locked:
        raise ItemLockedError(item_id, action=WorkflowAction.EDIT.value)
    if role not in EDITOR_ROLES:
        raise EditDeniedError(
            role.value, status.value, status.label,
            reason="role may not edit requests",
        )
    if status not in EDITABLE_STATUSES:
        raise EditDeniedError(role.value, status.value, status.label)

    if role == Role.ENTRY_AGENT:
        if status == ItemStatus.PENDING:
            return ItemStatus.PENDING
        return ItemStatus.REVISION_PURCHASING

    if role == Role.PURCHASING_MANAGER:
        if status in (ItemStatus.REVISION_FINANCE, ItemStatus.REJECTED):
            return ItemStatus.APPROVED_PURCHASING
        return status

    # Admin: a rejected item goes back to finance review.
    if status == ItemStatus.REJECTED:
        return ItemStatus.REVISION_FINANCE
    return status


def decide_delete(
    role: Role | str,
    status: ItemStatus | str,
    locked: bool = False,
    override: bool = False,
    item_id: str = "",
) -> DeleteDecision:
    """Decide whether ``role`` may delete an item in ``status``.

    Raises:
        ItemLockedError: item is locked (force-unlock first).
        DeleteDeniedError: role/status combination refused.
    """
    role = Role(role)
    status = ItemStatus(status)

    if locked:
        raise ItemLockedError(item_id, action=WorkflowAction.DELETE.value)

    if role == Role.ADMIN and status == ItemStatus.APPROVED_FINAL:
        if not override:
            raise DeleteDeniedError(
                role.value, status.value, status.label,
                reason="deleting a finally approved item requires the override path",
            )
        return DeleteDecision(action=WorkflowAction.ADMIN_OVERRIDE_DELETE, override=True)

    allowed = DELETABLE_STATUSES.get(role)
    if allowed is None or status not in allowed:
        raise DeleteDeniedError(role.value, status.value, status.label)
    return DeleteDecision(action=WorkflowAction.DELETE)


def visible_statuses(role: Role | str) -> frozenset[ItemStatus]:
    """Statuses ``role`` is expected to act on or monitor."""
    return VISIBLE_STATUSES[Role(role)]
