"""Operator CLI: one operation per invocation, JSON in and out."""

import json
from datetime import datetime, timezone
from uuid import uuid4

import pytest

from inventory_kernel.db.engine import reset_engine
from scripts.workflow_cli import build_parser, main


@pytest.fixture
def cli(tmp_path, capsys):
    """Run the CLI against a private SQLite file; returns (exit_code, stdout_json, stderr)."""
    url = f"sqlite:///{tmp_path / 'cli.db'}"

    def _run(*argv):
        code = main(["--db-url", url, *argv])
        out, err = capsys.readouterr()
        return code, (json.loads(out) if out.strip() else None), err

    assert _run("init-db")[0] == 0
    yield _run
    reset_engine()


def _chain():
    return [
        ("purchasing_manager", str(uuid4())),
        ("finance_manager", str(uuid4())),
        ("approving_officer", str(uuid4())),
    ]


def test_parser_requires_command():
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_distribution_through_the_chain(cli):
    _, ministry, _ = cli("add-unit", "--name", "Ministry of Health", "--abbreviation", "MSAN")
    _, unit, _ = cli("add-unit", "--name", "Pharmacy Service", "--abbreviation", "DPS", "--parent-id", ministry["id"])
    _, product, _ = cli("add-product", "--name", "Gauze", "--unit-id", unit["id"], "--quantity", "100")

    agent = str(uuid4())
    code, item, _ = cli(
        "create-distribution",
        "--actor-id", agent, "--role", "entry_agent",
        "--product-id", product["id"], "--unit-id", unit["id"],
        "--quantity", "30", "--beneficiary", "Regional Hospital",
    )
    assert code == 0
    year = datetime.now(timezone.utc).year
    assert item["number"] == f"OCT-MSAN-DPS-{year}-0001"
    assert item["status"] == "pending"

    for role, actor in _chain():
        code, item, _ = cli("transition", item["id"], "approve", "--actor-id", actor, "--role", role)
        assert code == 0
    assert item["status"] == "approved_final"
    assert item["locked"] is True

    code, history, _ = cli("history", item["id"])
    assert code == 0
    assert [e["action"] for e in history] == ["create", "approve", "approve", "approve"]


def test_errors_are_reported_as_json(cli):
    _, unit, _ = cli("add-unit", "--name", "Pharmacy Service", "--abbreviation", "DPS")
    _, product, _ = cli("add-product", "--name", "Gauze", "--unit-id", unit["id"], "--quantity", "5")

    code, out, err = cli(
        "create-distribution",
        "--actor-id", str(uuid4()), "--role", "entry_agent",
        "--product-id", product["id"], "--unit-id", unit["id"],
        "--quantity", "6", "--beneficiary", "Clinic",
    )
    assert code == 2
    assert out is None
    assert json.loads(err.strip().splitlines()[-1])["error"] == "INSUFFICIENT_STOCK"


def test_revision_needs_comment(cli):
    _, unit, _ = cli("add-unit", "--name", "Pharmacy Service")
    _, product, _ = cli("add-product", "--name", "Gauze", "--unit-id", unit["id"])
    _, item, _ = cli(
        "create-supply",
        "--actor-id", str(uuid4()), "--role", "entry_agent",
        "--product-id", product["id"], "--unit-id", unit["id"],
        "--quantity", "10", "--unit-price", "1.25", "--supplier", "ACME",
    )

    manager = str(uuid4())
    code, _, err = cli("transition", item["id"], "request_revision", "--actor-id", manager, "--role", "purchasing_manager")
    assert code == 2
    assert "MISSING_COMMENT" in err

    code, sent_back, _ = cli(
        "transition", item["id"], "request_revision",
        "--actor-id", manager, "--role", "purchasing_manager", "--comment", "Wrong supplier",
    )
    assert code == 0
    assert sent_back["status"] == "revision_purchasing"

    code, ack, _ = cli("acknowledge", item["id"], "--actor-id", str(uuid4()), "--role", "entry_agent")
    assert ack == {"acknowledged": True}

    code, listed, _ = cli("list", "--actor-id", manager, "--role", "purchasing_manager", "--kind", "supply")
    assert [i["id"] for i in listed] == [item["id"]]


def test_edit_after_revision(cli):
    _, unit, _ = cli("add-unit", "--name", "Pharmacy Service")
    _, product, _ = cli("add-product", "--name", "Gauze", "--unit-id", unit["id"], "--quantity", "100")
    agent = str(uuid4())
    _, item, _ = cli(
        "create-distribution",
        "--actor-id", agent, "--role", "entry_agent",
        "--product-id", product["id"], "--unit-id", unit["id"],
        "--quantity", "30", "--beneficiary", "Clinic",
    )
    cli(
        "transition", item["id"], "request_revision",
        "--actor-id", str(uuid4()), "--role", "purchasing_manager", "--comment", "Too many",
    )
    cli("acknowledge", item["id"], "--actor-id", agent, "--role", "entry_agent")

    code, _, err = cli(
        "edit", item["id"], "--actor-id", agent, "--role", "entry_agent", "--quantity", "20.0000000001",
    )
    assert code == 2
    assert json.loads(err.strip().splitlines()[-1])["error"] == "INVALID_PAYLOAD"

    code, edited, _ = cli(
        "edit", item["id"], "--actor-id", agent, "--role", "entry_agent",
        "--quantity", "20", "--reason", "Reduced",
    )
    assert code == 0
    assert edited["status"] == "revision_purchasing"
    assert edited["reason"] == "Reduced"

    _, history, _ = cli("history", item["id"])
    assert [e["action"] for e in history][-1] == "edit"
