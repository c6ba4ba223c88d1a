"""
Fleet Executor - fan a transition out to every node at once.

Each node gets its own worker thread which runs the node's stop action and
then its start action. Workers never affect each other: a failure on one node
is recorded and the rest carry on. execute() returns once every node is done.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import List, Sequence

from fleet.remote import RemoteCommandError, RemoteCommandRunner, describe_failure
from fleet.types import NodeOutcome, NodePlan

logger = logging.getLogger("fleet.executor")


class FleetExecutor:
    """Runs per-node plans concurrently via a RemoteCommandRunner."""

    def __init__(self, runner: RemoteCommandRunner):
        self.runner = runner
        self._outcomes_lock = threading.Lock()

    def execute(self, plans: Sequence[NodePlan]) -> List[NodeOutcome]:
        """
        Run every plan, one worker per node.

        Args:
            plans: One NodePlan per node

        Returns:
            All NodeOutcomes, in the order they finished
        """
        if not plans:
            return []

        outcomes: List[NodeOutcome] = []

        with ThreadPoolExecutor(
            max_workers=len(plans),
            thread_name_prefix="fleet-node",
        ) as pool:
            futures = {
                pool.submit(self._run_plan, plan, outcomes): plan
                for plan in plans
            }
            for future, plan in futures.items():
                try:
                    future.result()
                except Exception as e:
                    # _run_plan records its own outcomes; this only catches bugs
                    logger.exception(f"[{plan.node.address}] worker crashed: {e}")

        return outcomes

    def _run_plan(self, plan: NodePlan, outcomes: List[NodeOutcome]):
        """Stop then start on a single node. Start runs even if stop failed."""
        for action, workload in plan.steps():
            try:
                self.runner.run(plan.node, workload, action)
                outcome = NodeOutcome(
                    address=plan.node.address,
                    workload=workload,
                    action=action,
                    ok=True,
                )
            except RemoteCommandError as e:
                logger.error(str(e))
                detail = describe_failure(e)
                outcome = NodeOutcome(
                    address=plan.node.address,
                    workload=workload,
                    action=action,
                    ok=False,
                    message=f"{e.cause}: {detail}" if detail else e.cause,
                )
            except Exception as e:
                logger.exception(
                    f"[{plan.node.address}] docker compose {action.value} "
                    f"({workload.folder}) raised unexpectedly"
                )
                outcome = NodeOutcome(
                    address=plan.node.address,
                    workload=workload,
                    action=action,
                    ok=False,
                    message=f"unexpected error: {e}",
                )

            with self._outcomes_lock:
                outcomes.append(outcome)
