"""
ProductCatalog -- the workflow's window onto products and units.

Responsibility:
    Loads products (optionally locked ``FOR UPDATE``) and organizational
    units, enforces that a product belongs to the item's unit, resolves
    default parent units, and computes the quantity already reserved by
    in-flight Distribution requests.

Architecture position:
    Kernel > Services.  Used by the orchestrator and StockLedgerMutator.
    Never writes quantity itself; only the ledger mutator does.

Failure modes:
    - ProductNotFoundError: unknown product, or product outside the unit.
    - UnitNotFoundError: unknown organizational unit.
"""

from decimal import Decimal
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from inventory_kernel.domain.workflow import ItemKind, ItemStatus
from inventory_kernel.exceptions import ProductNotFoundError, UnitNotFoundError
from inventory_kernel.models.organizational_unit import OrganizationalUnitModel
from inventory_kernel.models.product import ProductModel
from inventory_kernel.models.workflow_item import WorkflowItemModel

# Distribution requests still able to reach final approval.
IN_FLIGHT_STATUSES: frozenset[ItemStatus] = frozenset({
    ItemStatus.PENDING,
    ItemStatus.REVISION_PURCHASING,
    ItemStatus.APPROVED_PURCHASING,
    ItemStatus.REVISION_FINANCE,
    ItemStatus.APPROVED_FINANCE,
})


class ProductCatalog:
    """Read access to products and units, scoped to one session."""

    def __init__(self, session: Session):
        self._session = session

    def get_unit(self, unit_id: UUID) -> OrganizationalUnitModel:
        unit = self._session.get(OrganizationalUnitModel, unit_id)
        if unit is None:
            raise UnitNotFoundError(str(unit_id))
        return unit

    def find_unit(self, unit_id: UUID | None) -> OrganizationalUnitModel | None:
        if unit_id is None:
            return None
        return self._session.get(OrganizationalUnitModel, unit_id)

    def resolve_parent_unit(self, unit_id: UUID, parent_unit_id: UUID | None) -> UUID | None:
        """Explicit parent if given (must exist), else the unit's catalog parent."""
        unit = self.get_unit(unit_id)
        if parent_unit_id is not None:
            self.get_unit(parent_unit_id)
            return parent_unit_id
        return unit.parent_id

    def get_product(
        self,
        product_id: UUID,
        organizational_unit_id: UUID | None = None,
        for_update: bool = False,
    ) -> ProductModel:
        """Load a product, optionally locked and checked against a unit."""
        stmt = select(ProductModel).where(ProductModel.id == product_id)
        if for_update:
            stmt = stmt.with_for_update().execution_options(populate_existing=True)
        product = self._session.execute(stmt).scalar_one_or_none()
        if product is None:
            raise ProductNotFoundError(str(product_id))
        if (
            organizational_unit_id is not None
            and product.organizational_unit_id != organizational_unit_id
        ):
            raise ProductNotFoundError(str(product_id), str(organizational_unit_id))
        return product

    def reserved_quantity(self, product_id: UUID, exclude_item_id: UUID | None = None) -> Decimal:
        """Sum of in-flight Distribution quantities on ``product_id``."""
        stmt = select(func.coalesce(func.sum(WorkflowItemModel.quantity), 0)).where(
            WorkflowItemModel.product_id == product_id,
            WorkflowItemModel.kind == ItemKind.DISTRIBUTION.value,
            WorkflowItemModel.status.in_([s.value for s in IN_FLIGHT_STATUSES]),
        )
        if exclude_item_id is not None:
            stmt = stmt.where(WorkflowItemModel.id != exclude_item_id)
        return Decimal(str(self._session.execute(stmt).scalar_one()))
