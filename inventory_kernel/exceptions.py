"""
Typed exception hierarchy for the inventory workflow kernel.

===============================================================================
WHY TYPED EXCEPTIONS
===============================================================================

Callers (HTTP handlers, the CLI, tests) must decide what to show an actor
without parsing message strings.  Every error therefore:
  1. Has its own class (catch by type, not message)
  2. Carries a class-level ``code`` attribute (machine-readable, API-safe)
  3. Stores its context as attributes (item id, status, quantities)

Example:
    try:
        orchestrator.transition(item_id, "approve", actor_id, Role.APPROVING_OFFICER)
    except InsufficientStockError as e:
        api_response(code=e.code, available=e.available, requested=e.requested)

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

    InventoryKernelError (base)
    |
    +-- WorkflowError
    |   +-- TransitionDeniedError
    |   |   +-- EditDeniedError
    |   |   +-- DeleteDeniedError
    |   |   +-- OutOfScopeError
    |   +-- MissingCommentError
    |   +-- UnreadCommentError
    |   +-- InvalidPayloadError
    |
    +-- ActorError
    |   +-- ActorNotApprovedError
    |   +-- ActorRoleMismatchError
    |
    +-- LockError
    |   +-- ItemLockedError
    |
    +-- StockError
    |   +-- InsufficientStockError
    |
    +-- ConcurrencyError
    |   +-- SequenceConflictError
    |
    +-- NotFoundError
    |   +-- ItemNotFoundError
    |   +-- ProductNotFoundError
    |   +-- UnitNotFoundError
    |   +-- ActorNotFoundError
    |
    +-- AuditError
    |   +-- AuditChainBrokenError
    |
    +-- ImmutabilityError
        +-- ImmutabilityViolationError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                             | When Raised
-------------|----------------------------------|--------------------------------------
Workflow     | TRANSITION_DENIED                | (role, status, action) not in table
             | EDIT_DENIED                      | Role/status may not edit
             | DELETE_DENIED                    | Role/status may not delete
             | OUT_OF_SCOPE                     | Actor's unit does not cover the item
             | MISSING_COMMENT                  | Revision/reject/unlock without comment
             | COMMENT_ACKNOWLEDGEMENT_REQUIRED | Unread observation blocks the actor
             | INVALID_PAYLOAD                  | Creation payload or patch is malformed
-------------|----------------------------------|--------------------------------------
Actor        | ACTOR_NOT_APPROVED               | Resolved actor account not approved
             | ACTOR_ROLE_MISMATCH              | Declared role differs from resolved
-------------|----------------------------------|--------------------------------------
Lock         | ITEM_LOCKED                      | Mutation of a terminal, locked item
-------------|----------------------------------|--------------------------------------
Stock        | INSUFFICIENT_STOCK               | Decrement would go below zero
-------------|----------------------------------|--------------------------------------
Concurrency  | SEQUENCE_CONFLICT                | Number allocation retries exhausted
-------------|----------------------------------|--------------------------------------
Not found    | ITEM_NOT_FOUND                   | Workflow item id unknown
             | PRODUCT_NOT_FOUND                | Product unknown or not in the unit
             | UNIT_NOT_FOUND                   | Organizational unit unknown
             | ACTOR_NOT_FOUND                  | Actor resolver has no such actor
-------------|----------------------------------|--------------------------------------
Audit        | AUDIT_CHAIN_BROKEN               | Stored hash chain fails validation
-------------|----------------------------------|--------------------------------------
Immutability | IMMUTABILITY_VIOLATION           | Audit/ledger row or locked item touched

===============================================================================
DESIGN DECISIONS
===============================================================================

1. All classes inherit from Exception (not ValueError etc.) so that domain
   errors are catchable as a group and never confused with programming errors.

2. ``code`` is a class attribute: static per type, readable without an
   instance.

3. Categories let callers treat groups differently:
   - WorkflowError -> show to the actor verbatim
   - StockError -> actor may retry later
   - ImmutabilityError -> operator alert
"""

from decimal import Decimal


class InventoryKernelError(Exception):
    """
    Base exception for all inventory workflow errors.

    All subclasses must have a `code` class attribute for machine-readable
    error identification.
    """

    code: str = "INVENTORY_KERNEL_ERROR"


# Workflow-related exceptions


class WorkflowError(InventoryKernelError):
    """Base exception for workflow decision errors."""

    code: str = "WORKFLOW_ERROR"


class TransitionDeniedError(WorkflowError):
    """
    The action is not permitted for this role in the item's current status.

    The message names the current status in human-readable form so the
    calling layer can surface it verbatim.
    """

    code: str = "TRANSITION_DENIED"

    def __init__(
        self,
        action: str,
        role: str,
        current_status: str,
        status_label: str | None = None,
        reason: str | None = None,
    ):
        self.action = action
        self.role = role
        self.current_status = current_status
        self.status_label = status_label or current_status
        self.reason = reason
        message = (
            f"Action '{action}' is not allowed for role '{role}': "
            f"the item is currently {self.status_label}"
        )
        if reason:
            message = f"{message} ({reason})"
        super().__init__(message)


class EditDeniedError(TransitionDeniedError):
    """Edit not permitted for this role in the item's current status."""

    code: str = "EDIT_DENIED"

    def __init__(
        self,
        role: str,
        current_status: str,
        status_label: str | None = None,
        reason: str | None = None,
    ):
        super().__init__("edit", role, current_status, status_label, reason)


class DeleteDeniedError(TransitionDeniedError):
    """Delete not permitted for this role in the item's current status."""

    code: str = "DELETE_DENIED"

    def __init__(
        self,
        role: str,
        current_status: str,
        status_label: str | None = None,
        reason: str | None = None,
    ):
        super().__init__("delete", role, current_status, status_label, reason)


class OutOfScopeError(TransitionDeniedError):
    """The actor's organizational unit does not cover the item."""

    code: str = "OUT_OF_SCOPE"

    def __init__(
        self,
        action: str,
        role: str,
        current_status: str,
        actor_unit_id: str,
        item_unit_id: str,
        status_label: str | None = None,
    ):
        self.actor_unit_id = actor_unit_id
        self.item_unit_id = item_unit_id
        super().__init__(
            action,
            role,
            current_status,
            status_label,
            reason=f"actor unit {actor_unit_id} does not cover unit {item_unit_id}",
        )


class MissingCommentError(WorkflowError):
    """The action requires a non-empty comment and none was supplied."""

    code: str = "MISSING_COMMENT"

    def __init__(self, action: str, role: str):
        self.action = action
        self.role = role
        super().__init__(
            f"Action '{action}' by role '{role}' requires a non-empty comment"
        )


class UnreadCommentError(WorkflowError):
    """The actor's role has unacknowledged observations on the item."""

    code: str = "COMMENT_ACKNOWLEDGEMENT_REQUIRED"

    def __init__(self, item_id: str, role: str):
        self.item_id = item_id
        self.role = role
        super().__init__(
            f"Role '{role}' must acknowledge pending observations on item "
            f"{item_id} before acting on it"
        )


class InvalidPayloadError(WorkflowError):
    """A creation payload or edit patch is malformed."""

    code: str = "INVALID_PAYLOAD"

    def __init__(self, field: str, reason: str):
        self.field = field
        self.reason = reason
        super().__init__(f"Invalid value for '{field}': {reason}")


# Actor-related exceptions


class ActorError(InventoryKernelError):
    """Base exception for actor resolution errors."""

    code: str = "ACTOR_ERROR"


class ActorNotApprovedError(ActorError):
    """The resolved actor exists but is not approved to act."""

    code: str = "ACTOR_NOT_APPROVED"

    def __init__(self, actor_id: str):
        self.actor_id = actor_id
        super().__init__(f"Actor {actor_id} is not approved")


class ActorRoleMismatchError(ActorError):
    """The declared role differs from the role the resolver reports."""

    code: str = "ACTOR_ROLE_MISMATCH"

    def __init__(self, actor_id: str, declared_role: str, resolved_role: str):
        self.actor_id = actor_id
        self.declared_role = declared_role
        self.resolved_role = resolved_role
        super().__init__(
            f"Actor {actor_id} declared role '{declared_role}' "
            f"but holds role '{resolved_role}'"
        )


# Lock-related exceptions


class LockError(InventoryKernelError):
    """Base exception for terminal-lock errors."""

    code: str = "LOCK_ERROR"


class ItemLockedError(LockError):
    """Attempted mutation of a locked (terminally approved) item."""

    code: str = "ITEM_LOCKED"

    def __init__(self, item_id: str, item_number: str | None = None, action: str | None = None):
        self.item_id = item_id
        self.item_number = item_number
        self.action = action
        label = item_number or item_id
        super().__init__(f"Item {label} is locked and cannot be modified")


# Stock-related exceptions


class StockError(InventoryKernelError):
    """Base exception for stock movement errors."""

    code: str = "STOCK_ERROR"


class InsufficientStockError(StockError):
    """
    Decrement would drive the product's on-hand quantity negative.

    Recoverable: nothing was applied, the caller may retry later.
    """

    code: str = "INSUFFICIENT_STOCK"

    def __init__(self, product_id: str, available: Decimal, requested: Decimal):
        self.product_id = product_id
        self.available = available
        self.requested = requested
        super().__init__(
            f"Insufficient stock for product {product_id}: "
            f"available {available}, requested {requested}"
        )


# Concurrency exceptions


class ConcurrencyError(InventoryKernelError):
    """Base exception for concurrency errors."""

    code: str = "CONCURRENCY_ERROR"


class SequenceConflictError(ConcurrencyError):
    """Number allocation kept colliding after every retry."""

    code: str = "SEQUENCE_CONFLICT"

    def __init__(self, scope: str, attempts: int):
        self.scope = scope
        self.attempts = attempts
        super().__init__(
            f"Could not allocate a unique number in scope '{scope}' "
            f"after {attempts} attempts"
        )


# Not-found exceptions


class NotFoundError(InventoryKernelError):
    """Base exception for missing references."""

    code: str = "NOT_FOUND"


class ItemNotFoundError(NotFoundError):
    """Workflow item with the given id does not exist."""

    code: str = "ITEM_NOT_FOUND"

    def __init__(self, item_id: str):
        self.item_id = item_id
        super().__init__(f"Workflow item not found: {item_id}")


class ProductNotFoundError(NotFoundError):
    """Product does not exist, or does not belong to the given unit."""

    code: str = "PRODUCT_NOT_FOUND"

    def __init__(self, product_id: str, organizational_unit_id: str | None = None):
        self.product_id = product_id
        self.organizational_unit_id = organizational_unit_id
        if organizational_unit_id:
            message = (
                f"Product {product_id} not found in organizational unit "
                f"{organizational_unit_id}"
            )
        else:
            message = f"Product not found: {product_id}"
        super().__init__(message)


class UnitNotFoundError(NotFoundError):
    """Organizational unit does not exist."""

    code: str = "UNIT_NOT_FOUND"

    def __init__(self, unit_id: str):
        self.unit_id = unit_id
        super().__init__(f"Organizational unit not found: {unit_id}")


class ActorNotFoundError(NotFoundError):
    """The actor resolver knows no actor with this id."""

    code: str = "ACTOR_NOT_FOUND"

    def __init__(self, actor_id: str):
        self.actor_id = actor_id
        super().__init__(f"Actor not found: {actor_id}")


# Audit exceptions


class AuditError(InventoryKernelError):
    """Base exception for audit trail errors."""

    code: str = "AUDIT_ERROR"


class AuditChainBrokenError(AuditError):
    """Recomputed audit hash chain does not match the stored one."""

    code: str = "AUDIT_CHAIN_BROKEN"

    def __init__(self, audit_seq: int, expected_hash: str, actual_hash: str):
        self.audit_seq = audit_seq
        self.expected_hash = expected_hash
        self.actual_hash = actual_hash
        super().__init__(
            f"Audit chain broken at entry #{audit_seq}: "
            f"expected {expected_hash}, found {actual_hash}"
        )


# Immutability exceptions


class ImmutabilityError(InventoryKernelError):
    """Base exception for immutability violations."""

    code: str = "IMMUTABILITY_ERROR"


class ImmutabilityViolationError(ImmutabilityError):
    """
    Attempted to modify or delete an immutable record.

    Audit entries and ledger entries are immutable from creation.
    Workflow items are immutable while locked.
    """

    code: str = "IMMUTABILITY_VIOLATION"

    def __init__(self, entity_type: str, entity_id: str, reason: str):
        self.entity_type = entity_type
        self.entity_id = entity_id
        self.reason = reason
        super().__init__(
            f"Immutability violation on {entity_type} {entity_id}: {reason}"
        )
