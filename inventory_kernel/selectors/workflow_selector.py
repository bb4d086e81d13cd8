"""
WorkflowSelector -- read-only queries over workflow items.

Responsibility:
    Single-item lookup and the role-scoped work list behind ``list_for``.
    Status visibility per role is decided in ``domain.policy``; this
    selector only applies the resulting status set, the optional unit
    scope and the caller's filters.
"""

from collections.abc import Iterable
from uuid import UUID

from sqlalchemy import or_, select

from inventory_kernel.domain.dtos import ListFilters, WorkflowItem
from inventory_kernel.domain.workflow import ItemKind, ItemStatus
from inventory_kernel.exceptions import ItemNotFoundError
from inventory_kernel.models.workflow_item import WorkflowItemModel
from inventory_kernel.selectors.base import BaseSelector


class WorkflowSelector(BaseSelector):
    """Queries over workflow_items returning WorkflowItem DTOs."""

    def get(self, item_id: UUID) -> WorkflowItem:
        row = self.session.get(WorkflowItemModel, item_id)
        if row is None:
            raise ItemNotFoundError(str(item_id))
        return row.to_dto()

    def get_by_number(self, number: str) -> WorkflowItem:
        row = self.session.execute(
            select(WorkflowItemModel).where(WorkflowItemModel.number == number)
        ).scalar_one_or_none()
        if row is None:
            raise ItemNotFoundError(number)
        return row.to_dto()

    def list_items(
        self,
        statuses: Iterable[ItemStatus],
        filters: ListFilters | None = None,
        unit_scope: Iterable[UUID] | None = None,
    ) -> tuple[WorkflowItem, ...]:
        """
        Items whose status is in ``statuses``, newest first.

        Args:
            statuses: visible statuses for the caller's role.
            filters: optional caller filters; a status filter outside
                ``statuses`` yields an empty result.
            unit_scope: when given, only items whose unit or parent unit is
                in the scope are returned.
        """
        filters = filters or ListFilters()
        visible = {ItemStatus(s).value for s in statuses}
        if filters.status is not None:
            wanted = ItemStatus(filters.status).value
            visible = visible & {wanted}
        if not visible:
            return ()

        stmt = select(WorkflowItemModel).where(WorkflowItemModel.status.in_(sorted(visible)))

        if unit_scope is not None:
            scope = list(unit_scope)
            stmt = stmt.where(
                or_(
                    WorkflowItemModel.organizational_unit_id.in_(scope),
                    WorkflowItemModel.parent_unit_id.in_(scope),
                )
            )
        if filters.kind is not None:
            stmt = stmt.where(WorkflowItemModel.kind == ItemKind(filters.kind).value)
        if filters.product_id is not None:
            stmt = stmt.where(WorkflowItemModel.product_id == filters.product_id)
        if filters.organizational_unit_id is not None:
            stmt = stmt.where(
                WorkflowItemModel.organizational_unit_id == filters.organizational_unit_id
            )
        if filters.parent_unit_id is not None:
            stmt = stmt.where(WorkflowItemModel.parent_unit_id == filters.parent_unit_id)
        if filters.created_from is not None:
            stmt = stmt.where(WorkflowItemModel.created_at >= filters.created_from)
        if filters.created_to is not None:
            stmt = stmt.where(WorkflowItemModel.created_at <= filters.created_to)

        stmt = stmt.order_by(
            WorkflowItemModel.created_at.desc(),
            WorkflowItemModel.number.desc(),
        )
        if filters.offset:
            stmt = stmt.offset(filters.offset)
        if filters.limit is not None:
            stmt = stmt.limit(filters.limit)

        return tuple(row.to_dto() for row in self.session.execute(stmt).scalars().all())
