"""Built-in resources."""

from .health import HealthResource, HealthStatus, HealthCheck, LivenessResource

__all__ = [
    "HealthResource",
    "HealthStatus",
    "HealthCheck",
    "LivenessResource",
]
