"""Selector queries over items and the stock ledger."""

from datetime import datetime, timedelta, timezone

import pytest

from inventory_kernel.domain.dtos import ListFilters
from inventory_kernel.domain.workflow import ItemStatus
from inventory_kernel.exceptions import ItemNotFoundError
from inventory_kernel.selectors.ledger_selector import LedgerSelector
from inventory_kernel.selectors.workflow_selector import WorkflowSelector

ALL = tuple(ItemStatus)


@pytest.fixture
def three_items(clock, structure, make_product, create_supply):
    product = make_product(structure)
    items = []
    for day in range(3):
        clock.set_time(datetime(2026, 2, 1 + day, 9, 0, tzinfo=timezone.utc))
        items.append(create_supply(product))
    return product, items


def test_get_by_number(session_factory, three_items):
    _, items = three_items
    with session_factory() as s:
        found = WorkflowSelector(s).get_by_number(items[1].number)
        assert found.id == items[1].id
        with pytest.raises(ItemNotFoundError):
            WorkflowSelector(s).get_by_number("ALI-1999-0001")


def test_newest_first_with_paging(session_factory, three_items):
    _, items = three_items
    with session_factory() as s:
        selector = WorkflowSelector(s)
        ordered = selector.list_items(ALL)
        assert [i.id for i in ordered] == [i.id for i in reversed(items)]

        page = selector.list_items(ALL, ListFilters(offset=1, limit=1))
        assert [i.id for i in page] == [items[1].id]


def test_created_range(session_factory, three_items):
    _, items = three_items
    start = datetime(2026, 2, 2, tzinfo=timezone.utc)
    with session_factory() as s:
        selected = WorkflowSelector(s).list_items(
            ALL, ListFilters(created_from=start, created_to=start + timedelta(days=1)),
        )
    assert [i.id for i in selected] == [items[1].id]


def test_unit_scope_and_product_filter(session_factory, ministry, make_unit, three_items):
    product, items = three_items
    other_unit = make_unit("Central Laboratory", "LAB", parent_id=ministry)
    with session_factory() as s:
        selector = WorkflowSelector(s)
        assert selector.list_items(ALL, unit_scope=[other_unit]) == ()
        assert len(selector.list_items(ALL, unit_scope=[ministry])) == 3
        assert len(selector.list_items(ALL, ListFilters(product_id=product))) == 3


def test_status_outside_visible_set(session_factory, three_items):
    with session_factory() as s:
        result = WorkflowSelector(s).list_items(
            [ItemStatus.APPROVED_FINAL], ListFilters(status=ItemStatus.PENDING),
        )
    assert result == ()


def test_ledger_for_product(session_factory, three_items, approve_through):
    product, items = three_items
    approve_through(items[0].id)
    approve_through(items[2].id)
    with session_factory() as s:
        selector = LedgerSelector(s)
        entries = selector.for_product(product)
        assert {e.workflow_item_id for e in entries} == {items[0].id, items[2].id}
        assert selector.for_item(items[1].id) is None
