#!/usr/bin/env python3
"""
Operator CLI for the stock request workflow.

Runs one orchestrator operation per invocation and prints the result as
JSON on stdout.  Workflow errors are printed as JSON on stderr with their
machine-readable code, and the process exits with status 2.

Usage:
    python3 scripts/workflow_cli.py --db-url sqlite:///inventory.db init-db
    python3 scripts/workflow_cli.py add-unit --name "Ministry of Health" --abbreviation MSAN
    python3 scripts/workflow_cli.py create-supply --actor-id <uuid> --role entry_agent \\
        --product-id <uuid> --unit-id <uuid> --quantity 50 --unit-price 2.5 --supplier "ACME"
    python3 scripts/workflow_cli.py transition <item-id> approve --actor-id <uuid> --role purchasing_manager
    python3 scripts/workflow_cli.py edit <item-id> --actor-id <uuid> --role entry_agent --quantity 40
    python3 scripts/workflow_cli.py history <item-id>

Actors are taken at their word: the CLI has no actor directory, so the
declared role is the role used.
"""

from __future__ import annotations

import argparse
import json
import sys
from dataclasses import asdict
from decimal import Decimal
from pathlib import Path
from typing import Any
from uuid import UUID

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from inventory_config import get_active_config  # noqa: E402
from inventory_kernel.db.engine import (  # noqa: E402
    create_tables,
    get_session_factory,
    init_engine_from_config,
    session_scope,
)
from inventory_kernel.domain.clock import SystemClock  # noqa: E402
from inventory_kernel.domain.dtos import ItemPatch, ItemPayload, ListFilters  # noqa: E402
from inventory_kernel.domain.workflow import ItemKind, ItemStatus, Role  # noqa: E402
from inventory_kernel.exceptions import InventoryKernelError  # noqa: E402
from inventory_kernel.logging_config import configure_logging  # noqa: E402
from inventory_kernel.models.organizational_unit import OrganizationalUnitModel  # noqa: E402
from inventory_kernel.models.product import ProductModel  # noqa: E402
from inventory_kernel.services.workflow_orchestrator import WorkflowOrchestrator  # noqa: E402
from inventory_kernel.utils.hashing import canonicalize_json  # noqa: E402

ROLE_CHOICES = [r.value for r in Role]


def _emit(value: Any) -> None:
    if hasattr(value, "__dataclass_fields__"):
        value = asdict(value)
    elif isinstance(value, tuple):
        value = [asdict(v) if hasattr(v, "__dataclass_fields__") else v for v in value]
    print(json.dumps(json.loads(canonicalize_json(value)), indent=2, sort_keys=True))


def _add_actor_args(p: argparse.ArgumentParser) -> None:
    p.add_argument("--actor-id", type=UUID, required=True)
    p.add_argument("--role", choices=ROLE_CHOICES, required=True)


def _add_item_args(p: argparse.ArgumentParser) -> None:
    _add_actor_args(p)
    p.add_argument("--product-id", type=UUID, required=True)
    p.add_argument("--unit-id", type=UUID, required=True)
    p.add_argument("--parent-unit-id", type=UUID)
    p.add_argument("--quantity", type=Decimal, required=True)
    p.add_argument("--reason")
    p.add_argument("--reference")


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Supply / Distribution approval workflow")
    p.add_argument("--config", type=Path, help="YAML file overriding defaults.yaml")
    p.add_argument("--db-url", help="Database URL (overrides database.url)")
    sub = p.add_subparsers(dest="command", required=True)

    sub.add_parser("init-db", help="Create all tables")

    unit = sub.add_parser("add-unit", help="Register an organizational unit")
    unit.add_argument("--name", required=True)
    unit.add_argument("--abbreviation")
    unit.add_argument("--parent-id", type=UUID)

    product = sub.add_parser("add-product", help="Register a product in a unit")
    product.add_argument("--name", required=True)
    product.add_argument("--unit-id", type=UUID, required=True)
    product.add_argument("--quantity", type=Decimal, default=Decimal("0"))
    product.add_argument("--unit-price", type=Decimal)

    supply = sub.add_parser("create-supply", help="Create a Supply request")
    _add_item_args(supply)
    supply.add_argument("--unit-price", type=Decimal, required=True)
    supply.add_argument("--supplier", required=True)
    supply.add_argument("--tax-id")

    dist = sub.add_parser("create-distribution", help="Create a Distribution request")
    _add_item_args(dist)
    dist.add_argument("--beneficiary", required=True)
    dist.add_argument("--phone")

    tr = sub.add_parser("transition", help="request_revision, approve or reject")
    tr.add_argument("item_id", type=UUID)
    tr.add_argument("action", choices=["request_revision", "approve", "reject"])
    _add_actor_args(tr)
    tr.add_argument("--comment")

    edit = sub.add_parser("edit", help="Change fields of an item under revision")
    edit.add_argument("item_id", type=UUID)
    _add_actor_args(edit)
    edit.add_argument("--product-id", type=UUID)
    edit.add_argument("--quantity", type=Decimal)
    edit.add_argument("--unit-price", type=Decimal)
    edit.add_argument("--counterparty", dest="counterparty_name")
    edit.add_argument("--tax-id")
    edit.add_argument("--phone")
    edit.add_argument("--reason")
    edit.add_argument("--reference")

    ack = sub.add_parser("acknowledge", help="Acknowledge unread comments")
    ack.add_argument("item_id", type=UUID)
    _add_actor_args(ack)

    hist = sub.add_parser("history", help="Audit trail of an item")
    hist.add_argument("item_id", type=UUID)

    ls = sub.add_parser("list", help="Work list for a role")
    _add_actor_args(ls)
    ls.add_argument("--kind", choices=[k.value for k in ItemKind])
    ls.add_argument("--status", choices=[s.value for s in ItemStatus])
    ls.add_argument("--limit", type=int)

    unlock = sub.add_parser("unlock", help="Admin force-unlock of a finally approved item")
    unlock.add_argument("item_id", type=UUID)
    _add_actor_args(unlock)
    unlock.add_argument("--comment", required=True)

    delete = sub.add_parser("delete", help="Delete an item")
    delete.add_argument("item_id", type=UUID)
    _add_actor_args(delete)
    delete.add_argument("--override", action="store_true")

    return p


def _add_unit(args) -> dict:
    with session_scope() as session:
        unit = OrganizationalUnitModel(
            name=args.name, abbreviation=args.abbreviation, parent_id=args.parent_id,
        )
        session.add(unit)
        session.flush()
        return {"id": unit.id, "name": unit.name, "abbreviation": unit.abbreviation}


def _add_product(args) -> dict:
    with session_scope() as session:
        product = ProductModel(
            name=args.name,
            organizational_unit_id=args.unit_id,
            quantity=args.quantity,
            unit_price=args.unit_price,
        )
        session.add(product)
        session.flush()
        return {"id": product.id, "name": product.name, "quantity": product.quantity}


def _payload(args, kind: ItemKind) -> ItemPayload:
    common = dict(
        product_id=args.product_id,
        organizational_unit_id=args.unit_id,
        parent_unit_id=args.parent_unit_id,
        quantity=args.quantity,
        reason=args.reason,
        reference=args.reference,
    )
    if kind == ItemKind.SUPPLY:
        return ItemPayload(
            unit_price=args.unit_price,
            counterparty_name=args.supplier,
            counterparty_tax_id=args.tax_id,
            **common,
        )
    return ItemPayload(counterparty_name=args.beneficiary, counterparty_phone=args.phone, **common)


def run(args: argparse.Namespace) -> Any:
    overrides = {"database": {"url": args.db_url}} if args.db_url else None
    config = get_active_config(args.config, overrides)
    configure_logging(level=config.logging.level)
    init_engine_from_config(config)

    if args.command == "init-db":
        create_tables()
        return {"status": "ok"}
    if args.command == "add-unit":
        return _add_unit(args)
    if args.command == "add-product":
        return _add_product(args)

    orchestrator = WorkflowOrchestrator(get_session_factory(), config=config, clock=SystemClock())

    if args.command == "create-supply":
        return orchestrator.create(ItemKind.SUPPLY, _payload(args, ItemKind.SUPPLY), args.actor_id, args.role)
    if args.command == "create-distribution":
        return orchestrator.create(
            ItemKind.DISTRIBUTION, _payload(args, ItemKind.DISTRIBUTION), args.actor_id, args.role,
        )
    if args.command == "transition":
        return orchestrator.transition(args.item_id, args.action, args.actor_id, args.role, args.comment)
    if args.command == "edit":
        patch = ItemPatch(
            product_id=args.product_id,
            quantity=args.quantity,
            unit_price=args.unit_price,
            counterparty_name=args.counterparty_name,
            counterparty_tax_id=args.tax_id,
            counterparty_phone=args.phone,
            reason=args.reason,
            reference=args.reference,
        )
        return orchestrator.edit(args.item_id, patch, args.actor_id, args.role)
    if args.command == "acknowledge":
        return {"acknowledged": orchestrator.acknowledge_comments(args.item_id, args.actor_id, args.role)}
    if args.command == "history":
        return orchestrator.history(args.item_id)
    if args.command == "list":
        filters = ListFilters(kind=args.kind, status=args.status, limit=args.limit)
        return orchestrator.list_for(args.actor_id, args.role, filters)
    if args.command == "unlock":
        return orchestrator.force_unlock(args.item_id, args.actor_id, args.role, args.comment)
    if args.command == "delete":
        return orchestrator.delete(args.item_id, args.actor_id, args.role, override=args.override)
    raise ValueError(f"Unknown command {args.command!r}")


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    try:
        result = run(args)
    except InventoryKernelError as exc:
        print(json.dumps({"error": exc.code, "message": str(exc)}), file=sys.stderr)
        return 2
    _emit(result)
    return 0


if __name__ == "__main__":
    sys.exit(main())
