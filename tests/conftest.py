"""
Pytest fixtures for the inventory kernel test suite.

Provides:
- One engine and schema per test session
- Per-test cleanup by deleting every row (the orchestrator commits for
  real, so rollback isolation is not an option)
- Catalog factories (units, products), actor ids per role and a
  deterministic clock
- A ready WorkflowOrchestrator and helpers that walk items through the
  approval chain

Environment Variables:
- INVENTORY_TEST_DATABASE_URL: database URL for the suite.  If not set, a
  SQLite file in the pytest temp directory is used.  Tests marked
  ``postgres`` are skipped on SQLite.
"""

import json
import logging
import os
from decimal import Decimal
from io import StringIO
from uuid import UUID, uuid4

import pytest
from sqlalchemy import text
from sqlalchemy.orm import Session, sessionmaker

from inventory_config.schema import InventoryConfig, WorkflowSettings
from inventory_kernel.db.base import Base
from inventory_kernel.db.engine import create_tables, init_engine_from_url, reset_engine
from inventory_kernel.db.immutability import (
    register_immutability_listeners,
    unregister_immutability_listeners,
)
from inventory_kernel.domain.clock import DeterministicClock
from inventory_kernel.domain.collaborators import StaticActorResolver
from inventory_kernel.domain.dtos import ItemPayload
from inventory_kernel.domain.workflow import ItemKind, Role, WorkflowAction
from inventory_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from inventory_kernel.models.organizational_unit import OrganizationalUnitModel
from inventory_kernel.models.product import ProductModel
from inventory_kernel.services.workflow_orchestrator import WorkflowOrchestrator


# =============================================================================
# Markers
# =============================================================================


def pytest_configure(config):
    """Register custom markers."""
    config.addinivalue_line(
        "markers", "postgres: mark test as requiring PostgreSQL"
    )
    config.addinivalue_line(
        "markers", "slow_locks: mark test as potentially waiting for DB locks"
    )


def pytest_collection_modifyitems(config, items):
    url = os.environ.get("INVENTORY_TEST_DATABASE_URL", "")
    if url.startswith("postgresql"):
        return
    skip_pg = pytest.mark.skip(reason="requires INVENTORY_TEST_DATABASE_URL=postgresql://...")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture inventory_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, orchestrator):
            orchestrator.create(...)
            assert any(r["message"] == "workflow_item_created" for r in captured_logs())
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("inventory_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Session-scoped DB infrastructure
# =============================================================================


@pytest.fixture(scope="session")
def database_url(tmp_path_factory) -> str:
    url = os.environ.get("INVENTORY_TEST_DATABASE_URL")
    if url:
        return url
    return f"sqlite:///{tmp_path_factory.mktemp('db') / 'inventory_test.db'}"


@pytest.fixture(scope="session")
def db_engine(database_url):
    """Single engine for the whole session; pool sized for concurrency tests."""
    eng = init_engine_from_url(
        database_url, echo=False,
        pool_size=30, max_overflow=20, pool_timeout=10,
    )
    Base.metadata.drop_all(eng)
    create_tables()
    register_immutability_listeners()
    yield eng
    unregister_immutability_listeners()
    Base.metadata.drop_all(eng)
    eng.dispose()
    reset_engine()


def _delete_all_rows(engine) -> None:
    """Remove every row with raw SQL; ORM immutability guards do not apply."""
    table_names = [t.name for t in reversed(Base.metadata.sorted_tables)]
    with engine.connect() as conn:
        if engine.dialect.name == "postgresql":
            conn.execute(text("TRUNCATE " + ", ".join(table_names) + " CASCADE"))
        else:
            for name in table_names:
                conn.execute(text(f"DELETE FROM {name}"))
        conn.commit()


@pytest.fixture
def session_factory(db_engine) -> sessionmaker[Session]:
    """Session factory bound to the test engine; wipes all rows afterwards."""
    factory = sessionmaker(bind=db_engine, expire_on_commit=False)
    yield factory
    _delete_all_rows(db_engine)


@pytest.fixture
def session(session_factory) -> Session:
    """A plain session for service-level tests; rolled back at teardown."""
    s = session_factory()
    yield s
    s.rollback()
    s.close()


# =============================================================================
# Domain fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def config() -> InventoryConfig:
    return InventoryConfig()


@pytest.fixture
def actors() -> dict[Role, UUID]:
    """One actor id per role."""
    return {role: uuid4() for role in Role}


@pytest.fixture
def orchestrator(session_factory, config, clock) -> WorkflowOrchestrator:
    return WorkflowOrchestrator(session_factory, config=config, clock=clock)


@pytest.fixture
def make_orchestrator(session_factory, clock):
    """Build an orchestrator with custom workflow settings or a resolver."""

    def _make(resolver=None, **workflow) -> WorkflowOrchestrator:
        cfg = InventoryConfig(workflow=WorkflowSettings(**workflow))
        return WorkflowOrchestrator(session_factory, config=cfg, clock=clock, actor_resolver=resolver)

    return _make


@pytest.fixture
def resolver() -> StaticActorResolver:
    return StaticActorResolver()


# =============================================================================
# Catalog factories
# =============================================================================


@pytest.fixture
def make_unit(session_factory):
    def _make(name: str, abbreviation: str | None = None, parent_id: UUID | None = None) -> UUID:
        with session_factory() as s:
            unit = OrganizationalUnitModel(name=name, abbreviation=abbreviation, parent_id=parent_id)
            s.add(unit)
            s.commit()
            return unit.id

    return _make


@pytest.fixture
def make_product(session_factory):
    def _make(
        unit_id: UUID,
        quantity: Decimal | int | str = 0,
        unit_price: Decimal | str | None = None,
        name: str = "Paracetamol 500mg",
    ) -> UUID:
        with session_factory() as s:
            product = ProductModel(
                name=name,
                organizational_unit_id=unit_id,
                quantity=Decimal(str(quantity)),
                unit_price=Decimal(str(unit_price)) if unit_price is not None else None,
            )
            s.add(product)
            s.commit()
            return product.id

    return _make


@pytest.fixture
def ministry(make_unit) -> UUID:
    return make_unit("Ministry of Health", "MSAN")


@pytest.fixture
def structure(make_unit, ministry) -> UUID:
    return make_unit("Pharmacy Service", "DPS", parent_id=ministry)


@pytest.fixture
def product_quantity(session_factory):
    """Read a product's on-hand quantity in a fresh session."""

    def _get(product_id: UUID) -> Decimal:
        with session_factory() as s:
            return s.get(ProductModel, product_id).quantity

    return _get


# =============================================================================
# Workflow helpers
# =============================================================================


@pytest.fixture
def create_supply(orchestrator, actors, structure):
    def _create(product_id: UUID, quantity="50", unit_price="2.50", role=Role.ENTRY_AGENT, orch=None):
        orch = orch or orchestrator
        payload = ItemPayload(
            product_id=product_id,
            organizational_unit_id=structure,
            quantity=Decimal(str(quantity)),
            unit_price=Decimal(str(unit_price)),
            counterparty_name="Pharma Distribution SARL",
        )
        return orch.create(ItemKind.SUPPLY, payload, actors[role], role)

    return _create


@pytest.fixture
def create_distribution(orchestrator, actors, structure):
    def _create(product_id: UUID, quantity="10", role=Role.ENTRY_AGENT, orch=None):
        orch = orch or orchestrator
        payload = ItemPayload(
            product_id=product_id,
            organizational_unit_id=structure,
            quantity=Decimal(str(quantity)),
            counterparty_name="Regional Hospital",
        )
        return orch.create(ItemKind.DISTRIBUTION, payload, actors[role], role)

    return _create


@pytest.fixture
def approve_through(orchestrator, actors):
    """Walk an item through the approval chain up to ``stop_after`` roles."""

    chain = (Role.PURCHASING_MANAGER, Role.FINANCE_MANAGER, Role.APPROVING_OFFICER)

    def _approve(item_id: UUID, stages: int = 3, orch=None):
        orch = orch or orchestrator
        item = None
        for role in chain[:stages]:
            item = orch.transition(item_id, WorkflowAction.APPROVE, actors[role], role)
        return item

    return _approve
