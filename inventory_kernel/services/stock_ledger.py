"""
StockLedgerMutator -- the one-time stock change of a final approval.

Responsibility:
    Applies a Supply's increment (and reprices the product) or a
    Distribution's checked decrement to the locked product row, and
    appends the matching StockLedgerEntry, all inside the caller's unit.

Architecture position:
    Kernel > Services.  Invoked only by the orchestrator, for the
    ``approve`` transition into ApprovedFinal.

Invariants enforced:
    - Non-negative stock: the product row is locked FOR UPDATE and the
      sufficiency check runs against that locked value, so two concurrent
      Distribution approvals cannot both pass against stale quantity.
    - At most one ledger entry per item (UNIQUE workflow_item_id).
    - The product must belong to the item's organizational unit.

Failure modes:
    - InsufficientStockError: decrement exceeds the locked on-hand
      quantity.  Nothing has been written; the orchestrator rolls back.
    - ProductNotFoundError: product missing or outside the item's unit.

Audit relevance:
    Every quantity change made by the workflow has a ledger entry with
    before/after quantities.
"""

from uuid import UUID

from sqlalchemy.orm import Session

from inventory_kernel.domain.clock import Clock, SystemClock
from inventory_kernel.domain.dtos import LedgerEntry
from inventory_kernel.domain.stock import apply_movement, movement_for
from inventory_kernel.exceptions import InsufficientStockError
from inventory_kernel.logging_config import get_logger
from inventory_kernel.models.ledger_entry import StockLedgerEntryModel
from inventory_kernel.models.workflow_item import WorkflowItemModel
from inventory_kernel.services.product_catalog import ProductCatalog

logger = get_logger("services.stock_ledger")


class StockLedgerMutator:
    """
    Applies terminal stock movements.

    Non-goals:
        - Does NOT change the item's status or lock; the orchestrator does
          that in the same unit.
        - Does NOT commit.
    """

    def __init__(self, session: Session, clock: Clock | None = None):
        self._session = session
        self._clock = clock or SystemClock()
        self._catalog = ProductCatalog(session)

    def apply_terminal(self, item: WorkflowItemModel, actor_id: UUID | None = None) -> LedgerEntry:
        """
        Apply ``item``'s movement to its product and append the ledger entry.

        Preconditions: caller holds the item row lock and the transition
            into ApprovedFinal has been authorized.

        Raises:
            InsufficientStockError: Distribution larger than on-hand stock.
            ProductNotFoundError: product missing or outside the unit.
        """
        product = self._catalog.get_product(
            item.product_id,
            organizational_unit_id=item.organizational_unit_id,
            for_update=True,
        )
        movement = movement_for(item.kind, item.quantity, item.unit_price)

        try:
            result = apply_movement(
                movement,
                on_hand=product.quantity,
                current_price=product.unit_price,
                product_id=str(product.id),
            )
        except InsufficientStockError:
            logger.warning(
                "insufficient_stock",
                extra={
                    "item_number": item.number,
                    "product_id": str(product.id),
                    "available": product.quantity,
                    "requested": item.quantity,
                },
            )
            raise

        now = self._clock.now()
        product.quantity = result.quantity_after
        product.unit_price = result.unit_price
        product.updated_at = now

        entry = StockLedgerEntryModel(
            workflow_item_id=item.id,
            item_number=item.number,
            kind=movement.kind.value,
            quantity=item.quantity,
            quantity_before=result.quantity_before,
            quantity_after=result.quantity_after,
            product_id=product.id,
            organizational_unit_id=item.organizational_unit_id,
            counterparty_name=item.counterparty_name,
            unit_price=item.unit_price,
            created_at=now,
        )
        self._session.add(entry)
        self._session.flush()

        logger.info(
            "stock_ledger_applied",
            extra={
                "item_number": item.number,
                "product_id": str(product.id),
                "movement": movement.kind.value,
                "quantity": item.quantity,
                "quantity_before": result.quantity_before,
                "quantity_after": result.quantity_after,
                "actor": str(actor_id) if actor_id else None,
            },
        )
        return entry.to_dto()
