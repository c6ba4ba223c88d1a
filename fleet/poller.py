"""
Demand Poller - the controller's heartbeat.

Every interval it asks the demand oracle about both provers (one after the
other), turns the answers into a Decision and applies it to the
AllocationController:

    query error (either)  -> switch to prover-1 (fail-safe)
    both assigned         -> split
    only prover-1         -> switch to prover-1
    only prover-2         -> switch to prover-2
    neither               -> keep current allocation
"""

import logging
import threading
import time
from enum import Enum
from typing import Dict, Optional

from core.services import ServiceError
from fleet.config import DEFAULT_POLL_INTERVAL_S
from fleet.controller import AllocationController
from fleet.demand import DemandClient
from fleet.types import DemandSignal, Workload

logger = logging.getLogger("fleet.poller")

FAILSAFE_WORKLOAD = Workload.PROVER_1


class Decision(str, Enum):
    """What one poll cycle asks the controller to do."""
    SWITCH_PROVER_1 = "switch_prover_1"
    SWITCH_PROVER_2 = "switch_prover_2"
    SPLIT = "split"
    HOLD = "hold"


def decide(signal: Optional[DemandSignal]) -> Decision:
    """
    Map one cycle's demand to a Decision.

    Args:
        signal: Demand for both provers, or None if either query failed
    """
    if signal is None:
        return Decision.SWITCH_PROVER_1
    if signal.prover_1 and signal.prover_2:
        return Decision.SPLIT
    if signal.prover_1:
        return Decision.SWITCH_PROVER_1
    if signal.prover_2:
        return Decision.SWITCH_PROVER_2
    return Decision.HOLD


class DemandPoller:
    """Polls demand on a fixed interval and drives the controller."""

    def __init__(
        self,
        demand: DemandClient,
        controller: AllocationController,
        interval_s: float = DEFAULT_POLL_INTERVAL_S,
    ):
        self.demand = demand
        self.controller = controller
        self.interval_s = interval_s
        self._stop_event = threading.Event()

    def fetch_signal(self) -> Optional[DemandSignal]:
        """Query both provers. Returns None if either query failed."""
        results: Dict[Workload, bool] = {}
        errors: Dict[Workload, ServiceError] = {}

        for workload in Workload:
            try:
                results[workload] = self.demand.is_assigned(workload)
            except ServiceError as e:
                errors[workload] = e

        if errors:
            detail = ", ".join(
                f"{w.value}={errors.get(w, 'ok')}" for w in Workload
            )
            logger.warning(
                f"Endpoint error ({detail}), defaulting to {FAILSAFE_WORKLOAD.value}"
            )
            return None

        return DemandSignal(
            prover_1=results[Workload.PROVER_1],
            prover_2=results[Workload.PROVER_2],
        )

    def poll_once(self) -> Decision:
        """One full cycle: query, decide, apply."""
        signal = self.fetch_signal()
        decision = decide(signal)

        if decision == Decision.SPLIT:
            self.controller.split_to()
        elif decision == Decision.SWITCH_PROVER_1:
            self.controller.switch_to(Workload.PROVER_1)
        elif decision == Decision.SWITCH_PROVER_2:
            self.controller.switch_to(Workload.PROVER_2)
        else:
            logger.info(
                f"No orders, keeping current allocation ({self.controller.state.describe()})"
            )

        logger.info(f"Poll decision: {decision.value}")
        return decision

    def run(self):
        """
        Poll until stop() is called.

        The first cycle runs one interval after start. A cycle that overruns
        the interval is followed immediately by the next one; missed ticks
        are dropped, not queued.
        """
        logger.info(f"Starting demand poller (interval={self.interval_s}s)")

        next_tick = time.monotonic() + self.interval_s
        while not self._stop_event.is_set():
            delay = max(0.0, next_tick - time.monotonic())
            if self._stop_event.wait(delay):
                break

            try:
                self.poll_once()
            except Exception as e:
                logger.exception(f"Error in poll cycle: {e}")

            next_tick += self.interval_s
            now = time.monotonic()
            if next_tick < now:
                next_tick = now

        logger.info("Demand poller stopped")

    def stop(self):
        """Ask run() to return after the in-flight cycle."""
        self._stop_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()
