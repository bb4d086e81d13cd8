"""
ORM-level immutability enforcement.

===============================================================================
WHY THIS EXISTS
===============================================================================

Two kinds of rows must never change once written:

  - Audit entries: the only record of who moved an item and why.
  - Stock ledger entries: the only record of why a product's quantity moved.

A third kind becomes immutable mid-life:

  - Workflow items, once ``locked`` by the final approval.  The only change
    permitted on a locked row is the privileged unlock itself
    (locked True -> False) together with the updated_at/updated_by_id audit
    metadata.

SQLAlchemy fires ``before_update``/``before_delete`` before the SQL is sent.
The listeners below check these rules and raise ImmutabilityViolationError,
aborting the flush; the database is never modified.

===============================================================================
PROTECTED ENTITIES
===============================================================================

Entity                   | When immutable              | Allowed changes
-------------------------|-----------------------------|---------------------------
WorkflowAuditEntryModel  | Always                      | none
StockLedgerEntryModel    | Always                      | none
WorkflowItemModel        | While locked (before flush) | locked -> False, updated_*

===============================================================================
USAGE
===============================================================================

Called once at startup (the orchestrator does it on construction):

    from inventory_kernel.db.immutability import register_immutability_listeners
    register_immutability_listeners()

Tests that need to prove the raw rule can unregister and re-register.
"""

from sqlalchemy import event, inspect
from sqlalchemy.orm.attributes import get_history

from inventory_kernel.exceptions import ImmutabilityViolationError
from inventory_kernel.logging_config import get_logger

logger = get_logger("db.immutability")

_AUDIT_METADATA_FIELDS = frozenset({"updated_at", "updated_by_id"})


def _blocked(entity_type: str, entity_id, operation: str, reason: str, field: str | None = None):
    logger.error(
        "immutability_violation_blocked",
        extra={
            "entity_type": entity_type,
            "entity_id": str(entity_id),
            "operation": operation,
            "field": field,
        },
    )
    return ImmutabilityViolationError(
        entity_type=entity_type,
        entity_id=str(entity_id),
        reason=reason,
    )


def _check_audit_entry_update(mapper, connection, target):
    raise _blocked(
        "WorkflowAuditEntry", target.id, "UPDATE",
        "Audit entries are append-only",
    )


def _check_audit_entry_delete(mapper, connection, target):
    raise _blocked(
        "WorkflowAuditEntry", target.id, "DELETE",
        "Audit entries cannot be deleted",
    )


def _check_ledger_entry_update(mapper, connection, target):
    raise _blocked(
        "StockLedgerEntry", target.id, "UPDATE",
        "Stock ledger entries are append-only",
    )


def _check_ledger_entry_delete(mapper, connection, target):
    raise _blocked(
        "StockLedgerEntry", target.id, "DELETE",
        "Stock ledger entries cannot be deleted",
    )


def _was_locked(target) -> bool:
    """True when the row was locked before the pending changes."""
    history = get_history(target, "locked")
    if history.deleted:
        return bool(history.deleted[0])
    if history.added:
        # Newly set in this flush without a prior loaded value.
        return False
    return bool(target.locked)


def _check_workflow_item_update(mapper, connection, target):
    """Block changes to a locked item other than the privileged unlock."""
    if not _was_locked(target):
        return

    for attr in inspect(target).attrs:
        if attr.key in _AUDIT_METADATA_FIELDS:
            continue
        hist = attr.history
        if not hist.has_changes():
            continue
        if attr.key == "locked" and target.locked is False:
            continue
        raise _blocked(
            "WorkflowItem", target.id, "UPDATE",
            f"Cannot modify field '{attr.key}' on locked item {target.number}",
            field=attr.key,
        )


def _check_workflow_item_delete(mapper, connection, target):
    if _was_locked(target) or target.locked:
        raise _blocked(
            "WorkflowItem", target.id, "DELETE",
            f"Cannot delete locked item {target.number}",
        )


def _listeners():
    from inventory_kernel.models.audit_entry import WorkflowAuditEntryModel
    from inventory_kernel.models.ledger_entry import StockLedgerEntryModel
    from inventory_kernel.models.workflow_item import WorkflowItemModel

    return (
        (WorkflowAuditEntryModel, "before_update", _check_audit_entry_update),
        (WorkflowAuditEntryModel, "before_delete", _check_audit_entry_delete),
        (StockLedgerEntryModel, "before_update", _check_ledger_entry_update),
        (StockLedgerEntryModel, "before_delete", _check_ledger_entry_delete),
        (WorkflowItemModel, "before_update", _check_workflow_item_update),
        (WorkflowItemModel, "before_delete", _check_workflow_item_delete),
    )


def register_immutability_listeners() -> None:
    """Register all ORM immutability listeners (idempotent)."""
    for model, name, fn in _listeners():
        if not event.contains(model, name, fn):
            event.listen(model, name, fn)
    logger.debug("immutability_listeners_registered")


def unregister_immutability_listeners() -> None:
    """Remove all ORM immutability listeners. FOR TESTING ONLY."""
    for model, name, fn in _listeners():
        if event.contains(model, name, fn):
            event.remove(model, name, fn)
