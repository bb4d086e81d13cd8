"""Read access to stock ledger entries."""

from uuid import UUID

from sqlalchemy import select

from inventory_kernel.domain.dtos import LedgerEntry
from inventory_kernel.models.ledger_entry import StockLedgerEntryModel
from inventory_kernel.selectors.base import BaseSelector


class LedgerSelector(BaseSelector):
    """Ledger entries by item or by product."""

    def for_item(self, item_id: UUID) -> LedgerEntry | None:
        row = self.session.execute(
            select(StockLedgerEntryModel).where(StockLedgerEntryModel.workflow_item_id == item_id)
        ).scalar_one_or_none()
        return row.to_dto() if row else None

    def for_product(self, product_id: UUID) -> tuple[LedgerEntry, ...]:
        rows = self.session.execute(
            select(StockLedgerEntryModel)
            .where(StockLedgerEntryModel.product_id == product_id)
            .order_by(StockLedgerEntryModel.created_at, StockLedgerEntryModel.item_number)
        ).scalars().all()
        return tuple(row.to_dto() for row in rows)
