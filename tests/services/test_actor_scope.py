"""
Actor resolution and unit scope.

With an ActorResolver configured, the orchestrator checks that the actor
exists, is approved, holds the declared role and belongs to the item's
unit or parent unit.  Admin is never scoped.
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from inventory_kernel.domain.dtos import ItemPayload, ListFilters
from inventory_kernel.domain.workflow import ItemKind, ItemStatus, Role, WorkflowAction
from inventory_kernel.exceptions import (
    ActorNotApprovedError,
    ActorNotFoundError,
    ActorRoleMismatchError,
    OutOfScopeError,
    TransitionDeniedError,
)


@pytest.fixture
def lab(make_unit, ministry):
    return make_unit("Central Laboratory", "LAB", parent_id=ministry)


@pytest.fixture
def scoped(make_orchestrator, resolver):
    return make_orchestrator(resolver=resolver)


def _payload(product_id, unit_id) -> ItemPayload:
    return ItemPayload(
        product_id=product_id,
        organizational_unit_id=unit_id,
        quantity=Decimal("5"),
        unit_price=Decimal("1.00"),
        counterparty_name="Pharma SARL",
    )


class TestActorResolution:
    def test_unknown_actor(self, scoped, structure, make_product):
        with pytest.raises(ActorNotFoundError):
            scoped.create(ItemKind.SUPPLY, _payload(make_product(structure), structure), uuid4(), Role.ENTRY_AGENT)

    def test_unapproved_actor(self, scoped, resolver, structure, make_product):
        actor = uuid4()
        resolver.register(actor, Role.ENTRY_AGENT, structure, approved=False)
        with pytest.raises(ActorNotApprovedError):
            scoped.create(ItemKind.SUPPLY, _payload(make_product(structure), structure), actor, Role.ENTRY_AGENT)

    def test_declared_role_must_match(self, scoped, resolver, structure, make_product):
        actor = uuid4()
        resolver.register(actor, Role.ENTRY_AGENT, structure)
        with pytest.raises(ActorRoleMismatchError) as exc_info:
            scoped.create(
                ItemKind.SUPPLY, _payload(make_product(structure), structure), actor, Role.PURCHASING_MANAGER,
            )
        assert exc_info.value.resolved_role == "entry_agent"


class TestUnitScope:
    def test_create_in_own_unit(self, scoped, resolver, structure, make_product):
        actor = uuid4()
        resolver.register(actor, Role.ENTRY_AGENT, structure)
        item = scoped.create(ItemKind.SUPPLY, _payload(make_product(structure), structure), actor, Role.ENTRY_AGENT)
        assert item.status == ItemStatus.PENDING

    def test_create_in_foreign_unit(self, scoped, resolver, structure, lab, make_product):
        actor = uuid4()
        resolver.register(actor, Role.ENTRY_AGENT, lab)
        with pytest.raises(OutOfScopeError) as exc_info:
            scoped.create(ItemKind.SUPPLY, _payload(make_product(structure), structure), actor, Role.ENTRY_AGENT)
        assert isinstance(exc_info.value, TransitionDeniedError)
        assert exc_info.value.item_unit_id == str(structure)

    def test_parent_unit_actor_may_approve(self, scoped, resolver, ministry, structure, make_product):
        agent, manager = uuid4(), uuid4()
        resolver.register(agent, Role.ENTRY_AGENT, structure)
        resolver.register(manager, Role.PURCHASING_MANAGER, ministry)
        item = scoped.create(ItemKind.SUPPLY, _payload(make_product(structure), structure), agent, Role.ENTRY_AGENT)

        approved = scoped.transition(item.id, WorkflowAction.APPROVE, manager, Role.PURCHASING_MANAGER)
        assert approved.status == ItemStatus.APPROVED_PURCHASING

    def test_foreign_reviewer_is_refused(self, scoped, resolver, structure, lab, make_product):
        agent, manager = uuid4(), uuid4()
        resolver.register(agent, Role.ENTRY_AGENT, structure)
        resolver.register(manager, Role.PURCHASING_MANAGER, lab)
        item = scoped.create(ItemKind.SUPPLY, _payload(make_product(structure), structure), agent, Role.ENTRY_AGENT)

        with pytest.raises(OutOfScopeError):
            scoped.transition(item.id, WorkflowAction.APPROVE, manager, Role.PURCHASING_MANAGER)
        assert scoped.get(item.id).status == ItemStatus.PENDING

    def test_admin_is_not_scoped(self, scoped, resolver, structure, lab, make_product):
        admin = uuid4()
        resolver.register(admin, Role.ADMIN, lab)
        item = scoped.create(ItemKind.SUPPLY, _payload(make_product(structure), structure), admin, Role.ADMIN)
        assert scoped.delete(item.id, admin, Role.ADMIN).action == WorkflowAction.DELETE


class TestListing:
    def test_lists_follow_role_visibility(
        self, orchestrator, actors, structure, make_product, create_supply, approve_through,
    ):
        product = make_product(structure)
        pending = create_supply(product)
        at_final = create_supply(product)
        approve_through(at_final.id, stages=2)

        officer = orchestrator.list_for(actors[Role.APPROVING_OFFICER], Role.APPROVING_OFFICER)
        assert [i.id for i in officer] == [at_final.id]

        finance = orchestrator.list_for(actors[Role.FINANCE_MANAGER], Role.FINANCE_MANAGER)
        assert pending.id not in {i.id for i in finance}

        everything = orchestrator.list_for(actors[Role.ADMIN], Role.ADMIN)
        assert [i.number for i in everything] == ["ALI-2026-0002", "ALI-2026-0001"]

    def test_filters(self, orchestrator, actors, structure, make_product, create_supply, create_distribution):
        product = make_product(structure, quantity=100)
        supply = create_supply(product)
        create_distribution(product)

        by_kind = orchestrator.list_for(
            actors[Role.ADMIN], Role.ADMIN, ListFilters(kind=ItemKind.SUPPLY),
        )
        assert [i.id for i in by_kind] == [supply.id]

        limited = orchestrator.list_for(actors[Role.ADMIN], Role.ADMIN, ListFilters(limit=1))
        assert len(limited) == 1

        invisible = orchestrator.list_for(
            actors[Role.APPROVING_OFFICER], Role.APPROVING_OFFICER,
            ListFilters(status=ItemStatus.PENDING),
        )
        assert invisible == ()

    def test_scoped_listing(self, scoped, resolver, ministry, structure, lab, make_product):
        agent = uuid4()
        resolver.register(agent, Role.ENTRY_AGENT, structure)
        scoped.create(ItemKind.SUPPLY, _payload(make_product(structure), structure), agent, Role.ENTRY_AGENT)

        own, foreign, parent, homeless = uuid4(), uuid4(), uuid4(), uuid4()
        resolver.register(own, Role.PURCHASING_MANAGER, structure)
        resolver.register(foreign, Role.PURCHASING_MANAGER, lab)
        resolver.register(parent, Role.PURCHASING_MANAGER, ministry)
        resolver.register(homeless, Role.PURCHASING_MANAGER, None)

        assert len(scoped.list_for(own, Role.PURCHASING_MANAGER)) == 1
        assert len(scoped.list_for(parent, Role.PURCHASING_MANAGER)) == 1
        assert scoped.list_for(foreign, Role.PURCHASING_MANAGER) == ()
        assert scoped.list_for(homeless, Role.PURCHASING_MANAGER) == ()
