"""Domain models read by the drift detectors."""

from specular_drift.domain.models import (
    ApiEndpoint,
    DockerPolicy,
    ExecutionPolicy,
    Feature,
    LockedFeature,
    Plan,
    Policy,
    Priority,
    ProductSpec,
    RunManifest,
    SecurityPolicy,
    SpecLock,
    Task,
    TestPolicy,
)

__all__ = [
    "ApiEndpoint",
    "DockerPolicy",
    "ExecutionPolicy",
    "Feature",
    "LockedFeature",
    "Plan",
    "Policy",
    "Priority",
    "ProductSpec",
    "RunManifest",
    "SecurityPolicy",
    "SpecLock",
    "Task",
    "TestPolicy",
]
