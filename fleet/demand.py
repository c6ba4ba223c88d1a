"""
Demand client - asks the order oracle whether a prover has work assigned.

The oracle answers GET <url>[?prover=<address>] with {"assigned": true|false}.
The HTTP status is not consulted: whatever the oracle answers is decoded, so
only transport failures and bad bodies are errors. Failures surface as
core.services.ServiceError subclasses; nothing is retried.
"""

import logging
from typing import Dict, Mapping, Optional

from core.services import ServiceClient, ServiceConfig, ServiceDecodeError, ServiceId
from fleet.config import DEFAULT_DEMAND_TIMEOUT_S, DemandEndpoint
from fleet.types import Workload

logger = logging.getLogger("fleet.demand")


class DemandClient:
    """One ServiceClient per workload, wrapped with response validation."""

    def __init__(
        self,
        endpoints: Mapping[Workload, DemandEndpoint],
        timeout_s: float = DEFAULT_DEMAND_TIMEOUT_S,
    ):
        missing = [w.value for w in Workload if w not in endpoints]
        if missing:
            raise ValueError(f"No demand endpoint for: {', '.join(missing)}")

        self.endpoints: Dict[Workload, DemandEndpoint] = dict(endpoints)
        self._clients: Dict[Workload, ServiceClient] = {
            workload: ServiceClient(ServiceConfig(
                id=ServiceId(name=f"demand-{workload.value}"),
                base_url=endpoint.url,
                timeout_s=timeout_s,
            ))
            for workload, endpoint in self.endpoints.items()
        }

    def is_assigned(self, workload: Workload) -> bool:
        """
        Whether an order is currently assigned to workload.

        Raises:
            ServiceUnavailable: Oracle unreachable or timed out
            ServiceDecodeError: Body is not JSON or not {"assigned": bool}
        """
        client = self._clients[workload]
        endpoint = self.endpoints[workload]
        body = client.get_json(params=endpoint.params, raise_for_status=False)

        assigned = _parse_assigned(body, client.base_url)
        logger.debug(f"{workload.value} assigned={assigned}")
        return assigned

    def close(self):
        for client in self._clients.values():
            client.close()


def _parse_assigned(body, url: Optional[str] = None) -> bool:
    if not isinstance(body, dict):
        raise ServiceDecodeError(
            f"Expected a JSON object from {url}, got {type(body).__name__}", url
        )
    # A missing field reads as "no order"
    assigned = body.get("assigned", False)
    if not isinstance(assigned, bool):
        raise ServiceDecodeError(
            f"'assigned' must be a boolean, got {assigned!r}", url
        )
    return assigned
