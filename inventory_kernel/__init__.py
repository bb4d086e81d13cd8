"""
Inventory Kernel - approval workflow for stock requests

Supply (incoming) and Distribution (outgoing) requests move through a
multi-stage approval chain with:
- Role-gated transitions
- Exactly-once stock movement on final approval
- Terminal locking with an audited Admin override
- Append-only, hash-linked audit trail
"""

__version__ = "0.1.0"
