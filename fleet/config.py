"""
Fleet configuration - loaded once from the environment at startup.

Required:
    CLUSTER_IPS          comma-separated node addresses
    API_ENDPOINT         demand oracle base URL
    PROVER1_ADDRESS      prover identity sent as ?prover=
    PROVER2_ADDRESS

Optional:
    SSH_PASSWORDS        comma-separated, one per node (same count as CLUSTER_IPS)
    SSH_USER             remote login (default: user01)
    PROVER1_DEMAND_URL   discrete oracle URLs; when both are set they replace
    PROVER2_DEMAND_URL   API_ENDPOINT + PROVERn_ADDRESS
    POLL_INTERVAL_S      seconds between polls (default: 5)
    DEMAND_TIMEOUT_S     HTTP timeout for oracle queries (default: 10)
    LOG_LEVEL            logging level name (default: INFO, read by fleet.__main__)
"""

import logging
import math
import os
from dataclasses import dataclass
from typing import Any, Dict, List, Mapping, Optional

from fleet.types import Node, Workload

logger = logging.getLogger("fleet.config")

DEFAULT_SSH_USER = "user01"
DEFAULT_POLL_INTERVAL_S = 5.0
DEFAULT_DEMAND_TIMEOUT_S = 10.0


class FleetError(Exception):
    """Base error for the fleet allocator."""
    pass


class ConfigError(FleetError):
    """Required configuration is missing or inconsistent."""
    pass


@dataclass(frozen=True)
class DemandEndpoint:
    """Where to ask whether a workload has an order assigned."""
    url: str
    prover_address: Optional[str] = None

    @property
    def params(self) -> Optional[Dict[str, str]]:
        if self.prover_address:
            return {"prover": self.prover_address}
        return None


@dataclass
class FleetConfig:
    """Everything the allocator needs, validated."""
    nodes: List[Node]
    demand_endpoints: Dict[Workload, DemandEndpoint]
    ssh_user: str = DEFAULT_SSH_USER
    poll_interval_s: float = DEFAULT_POLL_INTERVAL_S
    demand_timeout_s: float = DEFAULT_DEMAND_TIMEOUT_S

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "FleetConfig":
        """
        Build config from environment variables.

        Args:
            environ: Mapping to read from (default: os.environ)

        Raises:
            ConfigError: A required value is missing or values disagree
        """
        env = os.environ if environ is None else environ

        return cls(
            nodes=_parse_nodes(env.get("CLUSTER_IPS", ""), env.get("SSH_PASSWORDS", "")),
            demand_endpoints=_parse_demand_endpoints(env),
            ssh_user=env.get("SSH_USER") or DEFAULT_SSH_USER,
            poll_interval_s=_positive_float(env, "POLL_INTERVAL_S", DEFAULT_POLL_INTERVAL_S),
            demand_timeout_s=_positive_float(env, "DEMAND_TIMEOUT_S", DEFAULT_DEMAND_TIMEOUT_S),
        )

    def to_dict(self) -> Dict[str, Any]:
        """Summary safe to log: passwords are never included."""
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "ssh_user": self.ssh_user,
            "demand_endpoints": {
                w.value: {"url": e.url, "prover": e.prover_address}
                for w, e in self.demand_endpoints.items()
            },
            "poll_interval_s": self.poll_interval_s,
            "demand_timeout_s": self.demand_timeout_s,
        }


def _parse_nodes(ips: str, passwords: str) -> List[Node]:
    if not ips.strip():
        raise ConfigError("CLUSTER_IPS env var is required")

    addresses = [ip.strip() for ip in ips.split(",")]
    if any(not a for a in addresses):
        raise ConfigError(f"CLUSTER_IPS contains an empty entry: {ips!r}")

    if not passwords:
        return [Node(address=a) for a in addresses]

    secrets = [p.strip() for p in passwords.split(",")]
    if len(secrets) != len(addresses):
        raise ConfigError(
            f"SSH_PASSWORDS has {len(secrets)} entries but CLUSTER_IPS has "
            f"{len(addresses)}, they must match"
        )

    return [Node(address=a, password=p or None) for a, p in zip(addresses, secrets)]


def _parse_demand_endpoints(env: Mapping[str, str]) -> Dict[Workload, DemandEndpoint]:
    url_1 = env.get("PROVER1_DEMAND_URL")
    url_2 = env.get("PROVER2_DEMAND_URL")
    if url_1 and url_2:
        return {
            Workload.PROVER_1: DemandEndpoint(url=url_1),
            Workload.PROVER_2: DemandEndpoint(url=url_2),
        }
    if url_1 or url_2:
        logger.warning(
            "Only one of PROVER1_DEMAND_URL/PROVER2_DEMAND_URL is set, "
            "falling back to API_ENDPOINT"
        )

    api_endpoint = env.get("API_ENDPOINT")
    prover_1 = env.get("PROVER1_ADDRESS")
    prover_2 = env.get("PROVER2_ADDRESS")
    if not api_endpoint or not prover_1 or not prover_2:
        raise ConfigError("API_ENDPOINT, PROVER1_ADDRESS, and PROVER2_ADDRESS must be set")

    return {
        Workload.PROVER_1: DemandEndpoint(url=api_endpoint, prover_address=prover_1),
        Workload.PROVER_2: DemandEndpoint(url=api_endpoint, prover_address=prover_2),
    }


def _positive_float(env: Mapping[str, str], name: str, default: float) -> float:
    raw = env.get(name)
    if not raw:
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ConfigError(f"{name} must be a number, got {raw!r}")
    if not math.isfinite(value) or value <= 0:
        raise ConfigError(f"{name} must be a positive finite number, got {raw!r}")
    return value
