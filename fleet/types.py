"""
Fleet Types - Shared data structures for prover allocation.

These types are passed between the poller, the allocation controller,
the fleet executor and the remote command runner.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional


class Workload(str, Enum):
    """The two mutually exclusive workloads a node can run."""
    PROVER_1 = "prover-1"
    PROVER_2 = "prover-2"

    @property
    def folder(self) -> str:
        """Remote working directory holding this workload's compose file."""
        return WORKLOAD_FOLDERS[self]

    @property
    def other(self) -> "Workload":
        if self is Workload.PROVER_1:
            return Workload.PROVER_2
        return Workload.PROVER_1


WORKLOAD_FOLDERS: Dict[Workload, str] = {
    Workload.PROVER_1: "~/prover-1-aux-cluster",
    Workload.PROVER_2: "~/prover-2-aux-cluster",
}


class ComposeAction(str, Enum):
    """docker compose subcommand issued against a node."""
    START = "start"
    STOP = "stop"


@dataclass(frozen=True)
class Node:
    """One machine in the fleet."""
    address: str
    password: Optional[str] = field(default=None, repr=False)

    @property
    def uses_password(self) -> bool:
        return bool(self.password)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "auth": "password" if self.uses_password else "key",
        }


@dataclass(frozen=True)
class AllocationState:
    """
    What the fleet is meant to be running.

    Either a single workload everywhere, split mode, or nothing known yet
    (startup). split_active and active_workload are never both set.
    """
    active_workload: Optional[Workload] = None
    split_active: bool = False

    def __post_init__(self):
        if self.split_active and self.active_workload is not None:
            raise ValueError(
                f"Split mode cannot have an active workload ({self.active_workload.value})"
            )

    @classmethod
    def initial(cls) -> "AllocationState":
        return cls()

    @classmethod
    def single(cls, workload: Workload) -> "AllocationState":
        return cls(active_workload=workload, split_active=False)

    @classmethod
    def split(cls) -> "AllocationState":
        return cls(active_workload=None, split_active=True)

    def describe(self) -> str:
        if self.split_active:
            return "split"
        if self.active_workload is None:
            return "none"
        return self.active_workload.value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "active_workload": self.active_workload.value if self.active_workload else None,
            "split_active": self.split_active,
        }


@dataclass(frozen=True)
class DemandSignal:
    """One poll cycle's answer from the demand oracle."""
    prover_1: bool
    prover_2: bool


@dataclass(frozen=True)
class NodePlan:
    """What to do on one node during a transition. Stop runs before start."""
    node: Node
    stop: Optional[Workload] = None
    start: Optional[Workload] = None

    def steps(self) -> List[tuple]:
        """(action, workload) pairs in execution order."""
        steps = []
        if self.stop is not None:
            steps.append((ComposeAction.STOP, self.stop))
        if self.start is not None:
            steps.append((ComposeAction.START, self.start))
        return steps


@dataclass
class NodeOutcome:
    """Result of one compose action on one node."""
    address: str
    workload: Workload
    action: ComposeAction
    ok: bool
    message: str = ""
    finished_at: str = field(default_factory=lambda: datetime.now().isoformat())

    def to_dict(self) -> Dict[str, Any]:
        return {
            "address": self.address,
            "workload": self.workload.value,
            "action": self.action.value,
            "ok": self.ok,
            "message": self.message,
            "finished_at": self.finished_at,
        }


@dataclass
class TransitionReport:
    """Everything that happened during one switch or split."""
    kind: str  # "switch" or "split"
    target: Optional[Workload]
    state: AllocationState
    outcomes: List[NodeOutcome] = field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def failures(self) -> List[NodeOutcome]:
        return [o for o in self.outcomes if not o.ok]

    @property
    def ok(self) -> bool:
        return not self.failures

    def to_dict(self) -> Dict[str, Any]:
        return {
            "kind": self.kind,
            "target": self.target.value if self.target else None,
            "state": self.state.to_dict(),
            "outcomes": [o.to_dict() for o in self.outcomes],
            "failed": len(self.failures),
            "duration_seconds": round(self.duration_seconds, 2),
        }
