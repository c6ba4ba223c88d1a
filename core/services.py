"""
Service Client - JSON-over-HTTP access to remote services.

Provides:
- A single requests.Session per service
- Configurable timeouts
- Standard exception hierarchy (raw requests errors never leak)

Usage:
    from core.services import ServiceClient, ServiceConfig, ServiceId, ServiceError

    client = ServiceClient(ServiceConfig(
        id=ServiceId(name="demand-prover-1"),
        base_url="http://orders.local/api/assigned",
    ))

    try:
        body = client.get_json(params={"prover": "0xabc"})
    except ServiceUnavailable:
        # Service is down, degrade gracefully
        pass

Domain-specific clients should wrap ServiceClient (see fleet.demand).

Each call makes exactly one attempt. Callers decide what a failure means.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Mapping, Optional

import requests

logger = logging.getLogger("services")


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ServiceError(Exception):
    """Base error for any remote service problem."""
    pass


class ServiceUnavailable(ServiceError):
    """Service not reachable - connection error or timeout."""

    def __init__(self, service: str, url: str, cause: Optional[Exception] = None):
        self.service = service
        self.url = url
        self.cause = cause
        message = f"Service '{service}' at {url} is unavailable"
        if cause:
            message += f": {cause}"
        super().__init__(message)


class ServiceHttpError(ServiceError):
    """HTTP 4xx/5xx error from the service."""

    def __init__(self, status: int, body: Optional[str] = None, url: Optional[str] = None):
        self.status = status
        self.body = body
        self.url = url
        truncated = body[:200] if body else ""
        super().__init__(f"HTTP {status}: {truncated}")


class ServiceDecodeError(ServiceError):
    """Response wasn't valid JSON or missing expected fields."""

    def __init__(self, message: str, url: Optional[str] = None):
        self.url = url
        super().__init__(message)


class ServiceAuthError(ServiceError):
    """Authentication failed (401/403)."""

    def __init__(self, service: str, message: str = "Authentication required"):
        self.service = service
        super().__init__(f"Auth error for '{service}': {message}")


# =============================================================================
# CONFIGURATION
# =============================================================================

@dataclass(frozen=True)
class ServiceId:
    """Logical identity of a remote service."""
    name: str  # e.g., "demand-prover-1"

    def __str__(self) -> str:
        return self.name


@dataclass
class ServiceConfig:
    """Configuration for a remote service."""
    id: ServiceId
    base_url: str
    timeout_s: float = 10.0
    headers: Dict[str, str] = field(default_factory=dict)


# =============================================================================
# SERVICE CLIENT
# =============================================================================

class ServiceClient:
    """
    Low-level HTTP client for remote services.

    Usage:
        client = ServiceClient(config)
        result = client.get_json("/health")
    """

    def __init__(self, config: ServiceConfig):
        self.config = config
        self._session = requests.Session()

        self._session.headers.update({"Accept": "application/json"})
        self._session.headers.update(config.headers)

    @property
    def service_name(self) -> str:
        """Name of the service this client connects to."""
        return self.config.id.name

    @property
    def base_url(self) -> str:
        """Base URL of the service."""
        return self.config.base_url

    def _full_url(self, path: str) -> str:
        """Build full URL for a path. An empty path is the base URL itself."""
        if not path:
            return self.config.base_url
        if not path.startswith("/"):
            path = "/" + path
        return self.config.base_url.rstrip("/") + path

    def get_json(
        self,
        path: str = "",
        params: Optional[Mapping[str, Any]] = None,
        timeout: Optional[float] = None,
        raise_for_status: bool = True,
    ) -> Any:
        """
        Make a GET request and return the decoded JSON body.

        Args:
            path: URL path appended to base_url ("" for base_url itself)
            params: Query parameters
            timeout: Request timeout (overrides config)
            raise_for_status: Map 4xx/5xx onto ServiceAuthError / ServiceHttpError.
                When False the body is decoded whatever the status.

        Raises:
            ServiceUnavailable: Connection failed or timeout
            ServiceAuthError: HTTP 401/403 (raise_for_status only)
            ServiceHttpError: Other HTTP 4xx/5xx (raise_for_status only)
            ServiceDecodeError: Invalid JSON response
        """
        url = self._full_url(path)
        timeout = timeout or self.config.timeout_s

        try:
            resp = self._session.get(url, params=params, timeout=timeout)
        except requests.RequestException as e:
            logger.debug(f"[{self.service_name}] GET {url} failed: {e}")
            raise ServiceUnavailable(self.service_name, url, e)

        if raise_for_status:
            if resp.status_code == 401 or resp.status_code == 403:
                raise ServiceAuthError(self.service_name, resp.text)

            if resp.status_code >= 400:
                raise ServiceHttpError(resp.status_code, resp.text, url)
        elif resp.status_code >= 400:
            logger.debug(f"[{self.service_name}] GET {url} returned HTTP {resp.status_code}")

        try:
            return resp.json()
        except ValueError as e:
            raise ServiceDecodeError(f"Invalid JSON from {url}: {e}", url)

    def close(self):
        self._session.close()
