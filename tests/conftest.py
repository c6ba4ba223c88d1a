"""
Shared pytest fixtures.

No test touches the network or runs ssh: the remote runner and the demand
oracle are replaced with in-process fakes.
"""

import sys
from pathlib import Path

# Add project root to sys.path for imports
project_root = Path(__file__).parent.parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

import threading
from typing import Dict, List, Optional, Set, Tuple

import pytest

from core.services import ServiceUnavailable
from fleet.controller import AllocationController
from fleet.executor import FleetExecutor
from fleet.remote import RemoteCommandError, RemoteCommandRunner
from fleet.types import ComposeAction, Node, Workload


class RecordingRunner(RemoteCommandRunner):
    """
    Stands in for ssh. Records every call in order and fails the
    (address, action) pairs listed in fail_on.
    """

    def __init__(self, fail_on: Optional[Set[Tuple[str, ComposeAction]]] = None):
        super().__init__(ssh_user="tester")
        self.fail_on = fail_on or set()
        self.calls: List[Tuple[str, ComposeAction, Workload]] = []
        self._lock = threading.Lock()

    def run(self, node: Node, workload: Workload, action: ComposeAction) -> str:
        with self._lock:
            self.calls.append((node.address, action, workload))
        if (node.address, action) in self.fail_on:
            raise RemoteCommandError(
                node.address, action, workload, "exit status 1", "no such service"
            )
        return ""

    def calls_for(self, address: str) -> List[Tuple[ComposeAction, Workload]]:
        return [(a, w) for addr, a, w in self.calls if addr == address]


class StubDemand:
    """Demand oracle stub: a value or an exception per workload."""

    def __init__(self, answers: Dict[Workload, object]):
        self.answers = answers
        self.queries: List[Workload] = []

    def is_assigned(self, workload: Workload) -> bool:
        self.queries.append(workload)
        answer = self.answers[workload]
        if isinstance(answer, Exception):
            raise answer
        return answer

    def close(self):
        pass


@pytest.fixture
def two_nodes() -> List[Node]:
    return [Node("10.0.0.1"), Node("10.0.0.2", password="hunter2")]


@pytest.fixture
def runner() -> RecordingRunner:
    return RecordingRunner()


@pytest.fixture
def controller(two_nodes, runner) -> AllocationController:
    return AllocationController(two_nodes, FleetExecutor(runner))


@pytest.fixture
def oracle_down() -> ServiceUnavailable:
    return ServiceUnavailable(
        "demand-prover-2", "http://oracle.test/assigned", ConnectionError("refused")
    )


def pytest_configure(config):
    """Add custom markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture
def runner_factory():
    """RecordingRunner class, for tests that need failing nodes."""
    return RecordingRunner


@pytest.fixture
def stub_demand():
    """StubDemand class, built per test with its own answers."""
    return StubDemand
