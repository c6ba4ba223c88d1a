#!/usr/bin/env python3
"""
Prover fleet allocator - main entry point.

Usage:
    CLUSTER_IPS=10.0.0.1,10.0.0.2 \\
    API_ENDPOINT=http://orders.local/api/assigned \\
    PROVER1_ADDRESS=0xaaa PROVER2_ADDRESS=0xbbb \\
    python -m fleet

Configuration comes from the environment only (see fleet/config.py).
Runs until SIGINT/SIGTERM; exits 1 if the configuration is unusable.
"""

import json
import logging
import os
import signal
import sys
from typing import Mapping, Optional

from fleet.config import ConfigError, FleetConfig
from fleet.controller import AllocationController
from fleet.demand import DemandClient
from fleet.executor import FleetExecutor
from fleet.poller import DemandPoller
from fleet.remote import RemoteCommandRunner

logger = logging.getLogger("fleet")


def build_poller(config: FleetConfig) -> DemandPoller:
    """Wire runner -> executor -> controller -> poller from config."""
    runner = RemoteCommandRunner(ssh_user=config.ssh_user)
    controller = AllocationController(config.nodes, FleetExecutor(runner))
    demand = DemandClient(config.demand_endpoints, timeout_s=config.demand_timeout_s)
    return DemandPoller(demand, controller, interval_s=config.poll_interval_s)


def main(environ: Optional[Mapping[str, str]] = None) -> int:
    env = os.environ if environ is None else environ

    logging.basicConfig(
        level=(env.get("LOG_LEVEL") or "INFO").upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        config = FleetConfig.from_env(env)
    except ConfigError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    logger.info("=" * 60)
    logger.info("Prover fleet allocator starting")
    logger.info(f"Nodes: {len(config.nodes)}, poll interval: {config.poll_interval_s}s")
    logger.info("=" * 60)
    logger.debug(f"Config: {json.dumps(config.to_dict(), indent=2)}")

    poller = build_poller(config)

    def signal_handler(signum, frame):
        logger.info("Shutdown signal received")
        poller.stop()

    signal.signal(signal.SIGTERM, signal_handler)
    signal.signal(signal.SIGINT, signal_handler)

    try:
        poller.run()
    finally:
        poller.demand.close()

    return 0


if __name__ == "__main__":
    sys.exit(main())
