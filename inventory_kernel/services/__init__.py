"""Services for the inventory kernel (write side)."""

from inventory_kernel.services.audit_trail import AuditTrailRecorder
from inventory_kernel.services.lock_enforcer import LockEnforcer
from inventory_kernel.services.number_allocator import NumberAllocator, NumberingScope
from inventory_kernel.services.product_catalog import ProductCatalog
from inventory_kernel.services.sequence_service import SequenceService
from inventory_kernel.services.stock_ledger import StockLedgerMutator
from inventory_kernel.services.workflow_orchestrator import WorkflowOrchestrator

__all__ = [
    "AuditTrailRecorder",
    "LockEnforcer",
    "NumberAllocator",
    "NumberingScope",
    "ProductCatalog",
    "SequenceService",
    "StockLedgerMutator",
    "WorkflowOrchestrator",
]
