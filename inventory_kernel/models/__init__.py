"""ORM models for the inventory kernel."""

from inventory_kernel.models.audit_entry import WorkflowAuditEntryModel
from inventory_kernel.models.ledger_entry import StockLedgerEntryModel
from inventory_kernel.models.organizational_unit import OrganizationalUnitModel
from inventory_kernel.models.product import ProductModel
from inventory_kernel.models.workflow_item import WorkflowItemModel

__all__ = [
    "OrganizationalUnitModel",
    "ProductModel",
    "WorkflowItemModel",
    "WorkflowAuditEntryModel",
    "StockLedgerEntryModel",
]
