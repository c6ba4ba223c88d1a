"""
Fleet - prover allocation across a fixed set of nodes.

Decides, every few seconds, whether the fleet should run prover-1,
prover-2, or be split between them, and drives that decision out to every
node with `docker compose start|stop` over SSH.

Components:
    - types.py: Shared data types
    - config.py: Environment configuration
    - remote.py: Remote command runner (ssh / sshpass)
    - executor.py: Concurrent per-node fan-out
    - controller.py: Allocation state machine
    - demand.py: Demand oracle client
    - poller.py: Polling loop and decision table

Usage:
    # Run the allocator
    python3 -m fleet
"""

from fleet.types import AllocationState, Node, NodeOutcome, Workload

__all__ = ["AllocationState", "Node", "NodeOutcome", "Workload"]
