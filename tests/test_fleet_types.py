# tests/test_fleet_types.py
"""Tests for fleet/types.py - workloads, allocation state, plans."""

import pytest

from fleet.types import (
    AllocationState,
    ComposeAction,
    Node,
    NodeOutcome,
    NodePlan,
    TransitionReport,
    Workload,
)


def test_workload_other_and_folder():
    assert Workload.PROVER_1.other is Workload.PROVER_2
    assert Workload.PROVER_2.other is Workload.PROVER_1
    assert Workload.PROVER_1.folder == "~/prover-1-aux-cluster"
    assert Workload.PROVER_2.folder == "~/prover-2-aux-cluster"


def test_initial_state_is_empty():
    state = AllocationState.initial()
    assert state.active_workload is None
    assert state.split_active is False
    assert state.describe() == "none"


def test_split_state_has_no_active_workload():
    state = AllocationState.split()
    assert state.split_active is True
    assert state.active_workload is None
    assert state.to_dict() == {"active_workload": None, "split_active": True}


def test_state_rejects_split_with_active_workload():
    """split_active and active_workload can never both be set."""
    with pytest.raises(ValueError):
        AllocationState(active_workload=Workload.PROVER_1, split_active=True)


def test_node_password_not_exposed():
    node = Node("10.0.0.9", password="s3cret")
    assert node.uses_password
    assert "s3cret" not in repr(node)
    assert node.to_dict() == {"address": "10.0.0.9", "auth": "password"}
    assert Node("10.0.0.9").to_dict()["auth"] == "key"


def test_node_plan_steps_stop_before_start():
    plan = NodePlan(Node("a"), stop=Workload.PROVER_2, start=Workload.PROVER_1)
    assert plan.steps() == [
        (ComposeAction.STOP, Workload.PROVER_2),
        (ComposeAction.START, Workload.PROVER_1),
    ]
    assert NodePlan(Node("a"), start=Workload.PROVER_1).steps() == [
        (ComposeAction.START, Workload.PROVER_1),
    ]


def test_transition_report_failures():
    report = TransitionReport(
        kind="switch",
        target=Workload.PROVER_1,
        state=AllocationState.single(Workload.PROVER_1),
        outcomes=[
            NodeOutcome("a", Workload.PROVER_1, ComposeAction.START, ok=True),
            NodeOutcome("b", Workload.PROVER_1, ComposeAction.START, ok=False, message="boom"),
        ],
    )
    assert not report.ok
    assert [o.address for o in report.failures] == ["b"]
    data = report.to_dict()
    assert data["failed"] == 1
    assert data["target"] == "prover-1"
    assert data["state"]["active_workload"] == "prover-1"
