"""
Allocation Controller - decides what every node in the fleet should run.

The controller owns the fleet's AllocationState and exposes two transitions:

    switch_to(workload)  - whole fleet on one prover
    split_to()           - first half on prover-1, second half on prover-2

Both are idempotent and serialized behind one lock, which is held for the
whole decide -> execute -> commit sequence. A transition waiting on the lock
re-checks idempotence against the state it finds once it gets in.

The new state is committed once every node has finished, whether or not each
node's commands succeeded. Failures are logged and reported, not rolled back.

Usage:
    from fleet.controller import AllocationController
    controller = AllocationController(nodes, FleetExecutor(RemoteCommandRunner()))
    controller.switch_to(Workload.PROVER_1)
    controller.split_to()
"""

import json
import logging
import threading
import time
from typing import List, Optional, Sequence, Tuple

from fleet.executor import FleetExecutor
from fleet.types import AllocationState, Node, NodePlan, TransitionReport, Workload

logger = logging.getLogger("fleet.controller")


def split_assignment(index: int, count: int) -> Workload:
    """Workload for the node at position index when count nodes are split."""
    if index < count // 2:
        return Workload.PROVER_1
    return Workload.PROVER_2


def partition_nodes(nodes: Sequence[Node]) -> Tuple[List[Node], List[Node]]:
    """
    Split nodes into (prover-1 half, prover-2 half), keeping order.

    The first len(nodes) // 2 go to prover-1; for an odd count prover-2
    gets the extra node.
    """
    mid = len(nodes) // 2
    return list(nodes[:mid]), list(nodes[mid:])


class AllocationController:
    """Single owner of the fleet's allocation state."""

    def __init__(
        self,
        nodes: Sequence[Node],
        executor: FleetExecutor,
        initial_state: Optional[AllocationState] = None,
    ):
        self.nodes: Tuple[Node, ...] = tuple(nodes)
        self.executor = executor
        self._state = initial_state or AllocationState.initial()
        self._lock = threading.Lock()

    @property
    def state(self) -> AllocationState:
        """Current allocation. Immutable, so safe to hand out."""
        return self._state

    # =========================================================================
    # TRANSITIONS
    # =========================================================================

    def switch_to(self, target: Workload) -> Optional[TransitionReport]:
        """
        Put every node on target.

        Returns:
            TransitionReport, or None if the fleet was already on target
        """
        with self._lock:
            state = self._state
            if state.active_workload == target and not state.split_active:
                return None

            logger.info(f"Switching to {target.value} (from {state.describe()})")

            plans = [
                NodePlan(
                    node=node,
                    stop=self._stop_for_switch(state, index, target),
                    start=target,
                )
                for index, node in enumerate(self.nodes)
            ]
            report = self._execute("switch", target, plans, AllocationState.single(target))

            logger.info(f"{target.value} active on all {len(self.nodes)} nodes")
            return report

    def split_to(self) -> Optional[TransitionReport]:
        """
        Run prover-1 on the first half of the fleet and prover-2 on the rest.

        Returns:
            TransitionReport, or None if already split
        """
        with self._lock:
            if self._state.split_active:
                return None

            count = len(self.nodes)
            first, second = partition_nodes(self.nodes)
            logger.info(
                f"Splitting {count} nodes: {Workload.PROVER_1.value} gets {len(first)}, "
                f"{Workload.PROVER_2.value} gets {len(second)}"
            )

            plans = []
            for index, node in enumerate(self.nodes):
                assigned = split_assignment(index, count)
                plans.append(NodePlan(node=node, stop=assigned.other, start=assigned))

            report = self._execute("split", None, plans, AllocationState.split())

            halves = []
            if first:
                halves.append(f"nodes 0-{len(first) - 1} -> {Workload.PROVER_1.value}")
            halves.append(f"nodes {len(first)}-{count - 1} -> {Workload.PROVER_2.value}")
            logger.info(f"Split mode active: {', '.join(halves)}")
            return report

    # =========================================================================
    # INTERNALS (call with self._lock held)
    # =========================================================================

    def _stop_for_switch(
        self,
        state: AllocationState,
        index: int,
        target: Workload,
    ) -> Optional[Workload]:
        """What node index is running now and must stop before starting target."""
        if state.split_active:
            running = split_assignment(index, len(self.nodes))
        elif state.active_workload is not None:
            running = state.active_workload
        else:
            # Nothing known yet: make sure the other prover is down
            return target.other

        if running == target:
            return None
        return running

    def _execute(
        self,
        kind: str,
        target: Optional[Workload],
        plans: List[NodePlan],
        new_state: AllocationState,
    ) -> TransitionReport:
        started = time.monotonic()
        outcomes = self.executor.execute(plans)

        self._state = new_state

        report = TransitionReport(
            kind=kind,
            target=target,
            state=new_state,
            outcomes=outcomes,
            duration_seconds=time.monotonic() - started,
        )
        if report.failures:
            failed = sorted({o.address for o in report.failures})
            logger.warning(
                f"{kind} committed as {new_state.describe()} with "
                f"{len(report.failures)} failed node command(s) on: {', '.join(failed)}"
            )
        logger.info(f"{kind} finished in {report.duration_seconds:.1f}s")
        logger.debug(f"Transition report: {json.dumps(report.to_dict())}")
        return report
