"""
Pure domain layer.

Decision tables, value objects and DTOs for the approval workflow, with
NO dependencies on:
- ORM (SQLAlchemy)
- Database
- I/O

Time comes in through ``domain.clock``; actors through
``domain.collaborators``.
"""

from inventory_kernel.domain.workflow import ItemKind, ItemStatus, Role, WorkflowAction

__all__ = ["ItemKind", "ItemStatus", "Role", "WorkflowAction"]
