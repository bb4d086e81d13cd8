"""Unread-comment gate and acknowledgements."""

import pytest

from inventory_kernel.domain.workflow import ItemStatus, Role, WorkflowAction
from inventory_kernel.exceptions import UnreadCommentError

EA = Role.ENTRY_AGENT
PM = Role.PURCHASING_MANAGER
FM = Role.FINANCE_MANAGER
AO = Role.APPROVING_OFFICER


@pytest.fixture
def sent_back_from_final(orchestrator, actors, structure, make_product, create_supply, approve_through):
    item = create_supply(make_product(structure))
    approve_through(item.id, stages=2)
    orchestrator.transition(
        item.id, WorkflowAction.REQUEST_REVISION, actors[AO], AO, comment="Attach the invoice",
    )
    return item


def test_comment_is_unread_for_other_roles(orchestrator, sent_back_from_final):
    item_id = sent_back_from_final.id
    assert orchestrator.has_unread_comment(item_id, EA)
    assert orchestrator.has_unread_comment(item_id, PM)
    assert not orchestrator.has_unread_comment(item_id, AO)


def test_transition_blocked_until_acknowledged(orchestrator, actors, sent_back_from_final, captured_logs):
    item_id = sent_back_from_final.id
    with pytest.raises(UnreadCommentError) as exc_info:
        orchestrator.transition(item_id, WorkflowAction.APPROVE, actors[PM], PM)
    assert exc_info.value.code == "COMMENT_ACKNOWLEDGEMENT_REQUIRED"
    assert orchestrator.get(item_id).status == ItemStatus.REVISION_PURCHASING
    assert any(r["message"] == "unread_comment_blocked" for r in captured_logs())

    assert orchestrator.acknowledge_comments(item_id, actors[PM], PM) is True
    assert not orchestrator.has_unread_comment(item_id, PM)
    assert orchestrator.has_unread_comment(item_id, EA)

    approved = orchestrator.transition(item_id, WorkflowAction.APPROVE, actors[PM], PM)
    assert approved.status == ItemStatus.APPROVED_PURCHASING


def test_acknowledgement_is_audited_once(orchestrator, actors, sent_back_from_final):
    item_id = sent_back_from_final.id
    before = len(orchestrator.history(item_id))

    assert orchestrator.acknowledge_comments(item_id, actors[EA], EA) is True
    assert orchestrator.acknowledge_comments(item_id, actors[EA], EA) is False

    history = orchestrator.history(item_id)
    assert len(history) == before + 1
    ack = history[-1]
    assert ack.action == WorkflowAction.ACKNOWLEDGE_COMMENTS
    assert ack.from_status == ack.to_status == ItemStatus.REVISION_PURCHASING
    assert ack.payload["acknowledged_seqs"] == [history[-2].seq]


def test_new_comment_after_acknowledgement_is_unread(orchestrator, actors, sent_back_from_final):
    item_id = sent_back_from_final.id
    orchestrator.acknowledge_comments(item_id, actors[PM], PM)
    orchestrator.transition(item_id, WorkflowAction.APPROVE, actors[PM], PM)
    orchestrator.transition(
        item_id, WorkflowAction.REQUEST_REVISION, actors[FM], FM, comment="Wrong tax id",
    )
    assert orchestrator.has_unread_comment(item_id, PM)


def test_gate_can_be_disabled(make_orchestrator, actors, structure, make_product, create_supply, approve_through):
    orch = make_orchestrator(require_comment_acknowledgement=False)
    item = create_supply(make_product(structure), orch=orch)
    approve_through(item.id, stages=2, orch=orch)
    orch.transition(item.id, WorkflowAction.REQUEST_REVISION, actors[AO], AO, comment="Recount")

    approved = orch.transition(item.id, WorkflowAction.APPROVE, actors[PM], PM)
    assert approved.status == ItemStatus.APPROVED_PURCHASING
