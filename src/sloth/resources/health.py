"""
=============================================================================
HEALTH RESOURCES
=============================================================================

Ready-made resources for load balancers and orchestrators.

    ┌──────────────────────┬──────────┬──────────────────────────────────┐
    │ Resource             │ Methods  │ Answers                          │
    ├──────────────────────┼──────────┼──────────────────────────────────┤
    │ HealthResource       │ GET HEAD │ 200 when every check passes,     │
    │                      │          │ 503 when any fails               │
    │ LivenessResource     │ GET      │ always 200 {"status": "alive"}   │
    └──────────────────────┴──────────┴──────────────────────────────────┘

Both are ordinary resources: they implement the capability methods and
return (status, payload, headers). Any other method gets the dispatcher's
405.

    health = HealthResource()
    health.add_check("database", check_database)
    api.add_resource(health, "/health")
    api.add_resource(LivenessResource(), "/health/live")

Responses are never cacheable (Cache-Control: no-store): a cached "healthy"
from a dead instance would keep traffic flowing to it.

=============================================================================
"""

import time
import platform
import sys
import logging
from typing import Callable, Dict, Any
from dataclasses import dataclass, field

from ..http.headers import Headers
from ..http.request import HTTPRequest
from ..http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


@dataclass
class HealthStatus:
    """
    Result of one health check.

        def check_database():
            if db.ping():
                return HealthStatus(healthy=True)
            return HealthStatus(healthy=False, message="Connection failed")
    """

    healthy: bool
    message: str = "OK"
    details: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "status": "healthy" if self.healthy else "unhealthy",
            "message": self.message,
            **self.details,
        }


HealthCheck = Callable[[], HealthStatus]


def _no_store() -> Headers:
    headers = Headers()
    headers.set("Cache-Control", "no-store")
    return headers


class HealthResource:
    """
    Aggregated health of registered checks.

    Healthy (200):
        {"status": "healthy", "uptime_seconds": 3600,
         "checks": {"database": {"status": "healthy", "message": "OK"}}}

    Unhealthy (503):
        {"status": "unhealthy", "uptime_seconds": 3600,
         "checks": {"database": {"status": "unhealthy", "error": "..."}}}

    Args:
        include_details: Include per-check results.
        include_system_info: Include hostname, platform and Python version.
    """

    def __init__(self, include_details: bool = True, include_system_info: bool = False):
        self.include_details = include_details
        self.include_system_info = include_system_info
        self._checks: Dict[str, HealthCheck] = {}
        self._start_time = time.time()

    def add_check(self, name: str, check: HealthCheck) -> "HealthResource":
        """Register a check run on every request. Keep it fast."""
        self._checks[name] = check
        return self

    def report(self) -> tuple[bool, Dict[str, Any]]:
        """Run every check; (all healthy, response document)."""
        results = {}
        all_healthy = True

        for name, check in self._checks.items():
            try:
                status = check()
            except Exception as e:
                logger.warning(f"Health check {name!r} raised: {e}")
                results[name] = {"status": "unhealthy", "error": str(e)}
                all_healthy = False
                continue

            results[name] = status.to_dict()
            if not status.healthy:
                all_healthy = False

        document: Dict[str, Any] = {
            "status": "healthy" if all_healthy else "unhealthy",
            "uptime_seconds": int(time.time() - self._start_time),
        }

        if self.include_details and results:
            document["checks"] = results

        if self.include_system_info:
            document["system"] = {
                "hostname": platform.node(),
                "platform": platform.system(),
                "python_version": sys.version.split()[0],
            }

        return all_healthy, document

    def get(self, request: HTTPRequest):
        healthy, document = self.report()
        status = HTTPStatus.OK if healthy else HTTPStatus.SERVICE_UNAVAILABLE
        return status, document, _no_store()

    def head(self, request: HTTPRequest):
        # Same status and headers as GET; the server drops the body
        return self.get(request)


class LivenessResource:
    """Answers 200 while the process can serve requests at all."""

    def get(self, request: HTTPRequest):
        return HTTPStatus.OK, {"status": "alive"}, _no_store()
