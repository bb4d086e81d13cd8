"""
Approval state machine (``inventory_kernel.domain.workflow``).

Responsibility
--------------
Pure decision logic for Supply and Distribution requests: given the
actor's role, the requested action and the item's current status,
return the single permitted transition or raise.  Both request kinds
share one transition table; their differences live in
``domain.stock`` (increment vs. decrement-with-check).

Architecture position
---------------------
**Kernel domain layer** -- pure value objects.  ZERO I/O.  No imports
from ``db/``, ``services/``, ``selectors/``, or outer layers.

Invariants enforced
-------------------
* Every (role, action, status) triple resolves to at most one row.
* ``ApprovedFinal`` has no outgoing row; no role, Admin included, can
  re-open it through a transition.
* ``request_revision`` and ``reject`` require a non-empty comment.  The
  role/status check runs first, so an unauthorised caller always sees
  ``TransitionDeniedError`` even without a comment.

Failure modes
-------------
* ``TransitionDeniedError`` -- triple not in the table.
* ``MissingCommentError`` -- comment-bearing action without a comment.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from inventory_kernel.exceptions import MissingCommentError, TransitionDeniedError


class ItemKind(str, Enum):
    """Request kind discriminator."""

    SUPPLY = "supply"
    DISTRIBUTION = "distribution"


class ItemStatus(str, Enum):
    """Workflow item lifecycle states."""

    PENDING = "pending"
    REVISION_PURCHASING = "revision_purchasing"
    APPROVED_PURCHASING = "approved_purchasing"
    REVISION_FINANCE = "revision_finance"
    APPROVED_FINANCE = "approved_finance"
    APPROVED_FINAL = "approved_final"
    REJECTED = "rejected"

    @property
    def label(self) -> str:
        return STATUS_LABELS[self]


STATUS_LABELS: dict[ItemStatus, str] = {
    ItemStatus.PENDING: "pending purchasing review",
    ItemStatus.REVISION_PURCHASING: "sent back for revision by purchasing",
    ItemStatus.APPROVED_PURCHASING: "approved by purchasing, awaiting finance",
    ItemStatus.REVISION_FINANCE: "sent back for revision by finance",
    ItemStatus.APPROVED_FINANCE: "approved by finance, awaiting final approval",
    ItemStatus.APPROVED_FINAL: "finally approved",
    ItemStatus.REJECTED: "rejected",
}


class Role(str, Enum):
    """Roles that act on workflow items."""

    ENTRY_AGENT = "entry_agent"
    PURCHASING_MANAGER = "purchasing_manager"
    FINANCE_MANAGER = "finance_manager"
    APPROVING_OFFICER = "approving_officer"
    ADMIN = "admin"


class WorkflowAction(str, Enum):
    """Every action that can appear in the audit trail."""

    CREATE = "create"
    REQUEST_REVISION = "request_revision"
    APPROVE = "approve"
    REJECT = "reject"
    EDIT = "edit"
    DELETE = "delete"
    ADMIN_FORCE_UNLOCK = "admin_force_unlock"
    ADMIN_OVERRIDE_DELETE = "admin_override_delete"
    ACKNOWLEDGE_COMMENTS = "acknowledge_comments"


# Actions accepted by ``transition``; the rest have their own operations.
TRANSITION_ACTIONS: frozenset[WorkflowAction] = frozenset({
    WorkflowAction.REQUEST_REVISION,
    WorkflowAction.APPROVE,
    WorkflowAction.REJECT,
})

# Actions whose comment is read by the other roles.
OBSERVATION_ACTIONS: frozenset[WorkflowAction] = frozenset({
    WorkflowAction.REQUEST_REVISION,
    WorkflowAction.REJECT,
})

CREATOR_ROLES: frozenset[Role] = frozenset({
    Role.ENTRY_AGENT,
    Role.PURCHASING_MANAGER,
    Role.ADMIN,
})

TERMINAL_STATUSES: frozenset[ItemStatus] = frozenset({
    ItemStatus.APPROVED_FINAL,
    ItemStatus.REJECTED,
})


@dataclass(frozen=True)
class Transition:
    """One row of the approval table.

    Contract: frozen.  ``terminal=True`` marks the stock-mutating final
    approval; the orchestrator applies the ledger and the lock with it.
    """

    role: Role
    action: WorkflowAction
    from_statuses: frozenset[ItemStatus]
    to_status: ItemStatus
    requires_comment: bool = False
    terminal: bool = False


TRANSITIONS: tuple[Transition, ...] = (
    Transition(
        role=Role.PURCHASING_MANAGER,
        action=WorkflowAction.REQUEST_REVISION,
        from_statuses=frozenset({ItemStatus.PENDING}),
        to_status=ItemStatus.REVISION_PURCHASING,
        requires_comment=True,
    ),
    Transition(
        role=Role.PURCHASING_MANAGER,
        action=WorkflowAction.APPROVE,
        from_statuses=frozenset({ItemStatus.PENDING, ItemStatus.REVISION_PURCHASING}),
        to_status=ItemStatus.APPROVED_PURCHASING,
    ),
    Transition(
        role=Role.FINANCE_MANAGER,
        action=WorkflowAction.REQUEST_REVISION,
        from_statuses=frozenset({ItemStatus.APPROVED_PURCHASING}),
        to_status=ItemStatus.REVISION_FINANCE,
        requires_comment=True,
    ),
    Transition(
        role=Role.FINANCE_MANAGER,
        action=WorkflowAction.APPROVE,
        from_statuses=frozenset({ItemStatus.APPROVED_PURCHASING, ItemStatus.REVISION_FINANCE}),
        to_status=ItemStatus.APPROVED_FINANCE,
    ),
    # Send-back from the final stage always lands in purchasing revision.
    Transition(
        role=Role.APPROVING_OFFICER,
        action=WorkflowAction.REQUEST_REVISION,
        from_statuses=frozenset({ItemStatus.APPROVED_FINANCE}),
        to_status=ItemStatus.REVISION_PURCHASING,
        requires_comment=True,
    ),
    Transition(
        role=Role.APPROVING_OFFICER,
        action=WorkflowAction.APPROVE,
        from_statuses=frozenset({ItemStatus.APPROVED_FINANCE}),
        to_status=ItemStatus.APPROVED_FINAL,
        terminal=True,
    ),
    Transition(
        role=Role.APPROVING_OFFICER,
        action=WorkflowAction.REJECT,
        from_statuses=frozenset({ItemStatus.APPROVED_FINANCE}),
        to_status=ItemStatus.REJECTED,
        requires_comment=True,
    ),
)


def find_transition(
    role: Role,
    action: WorkflowAction,
    status: ItemStatus,
) -> Transition | None:
    """Look up the row for (role, action, status); Admin may use any role's row."""
    for row in TRANSITIONS:
        if row.action != action or status not in row.from_statuses:
            continue
        if row.role == role or role == Role.ADMIN:
            return row
    return None


def has_comment(comment: str | None) -> bool:
    return comment is not None and comment.strip() != ""


def decide_transition(
    role: Role | str,
    action: WorkflowAction | str,
    status: ItemStatus | str,
    comment: str | None = None,
) -> Transition:
    """Resolve the permitted transition or raise.

    Preconditions: ``role``, ``action`` and ``status`` are valid enum
    values (strings are coerced; unknown strings raise ValueError).

    Raises:
        TransitionDeniedError: the triple is not in the table.
        MissingCommentError: the row requires a comment and none was given.
    """
    role = Role(role)
    action = WorkflowAction(action)
    status = ItemStatus(status)

    row = None
    if action in TRANSITION_ACTIONS:
        row = find_transition(role, action, status)
    if row is None:
        raise TransitionDeniedError(
            action=action.value,
            role=role.value,
            current_status=status.value,
            status_label=status.label,
        )
    if row.requires_comment and not has_comment(comment):
        raise MissingCommentError(action=action.value, role=role.value)
    return row


def allowed_actions(role: Role | str, status: ItemStatus | str) -> tuple[WorkflowAction, ...]:
    """Transition actions the role may perform from ``status``, in table order."""
    role = Role(role)
    status = ItemStatus(status)
    seen: list[WorkflowAction] = []
    for row in TRANSITIONS:
        if row.action in seen:
            continue
        if find_transition(role, row.action, status) is not None:
            seen.append(row.action)
    return tuple(seen)
