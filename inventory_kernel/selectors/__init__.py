"""Selectors for the inventory kernel (read side)."""

from inventory_kernel.selectors.audit_selector import AuditSelector
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.selectors.workflow_selector import WorkflowSelector

__all__ = [
    "AuditSelector",
    "LedgerSelector",
    "WorkflowSelector",
]
