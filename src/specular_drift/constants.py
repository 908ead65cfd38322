"""Stable constants shared across the drift engine."""

from __future__ import annotations

from typing import Final

# Schema version of the persisted config contract.
CONFIG_SCHEMA_VERSION: Final[int] = 1

# SARIF interchange constants.
SARIF_VERSION: Final[str] = "2.1.0"
SARIF_SCHEMA_URI: Final[str] = (
    "https://raw.githubusercontent.com/oasis-tcs/sarif-spec/master/Schemata/sarif-schema-2.1.0.json"
)
TOOL_NAME: Final[str] = "specular-drift"
TOOL_INFORMATION_URI: Final[str] = "https://github.com/felixgeelhaar/specular"

# Feature priorities, highest first.
PRIORITIES: Final[tuple[str, ...]] = ("P0", "P1", "P2")

# Default input locations, relative to the project root.
DEFAULT_CONFIG_FILE: Final[str] = "specdrift.toml"
DEFAULT_SPEC_PATH: Final[str] = ".specular/spec.yaml"
DEFAULT_LOCK_PATH: Final[str] = ".specular/spec.lock.json"
DEFAULT_PLAN_PATH: Final[str] = "plan.json"
DEFAULT_POLICY_PATH: Final[str] = ".specular/policy.yaml"
DEFAULT_MANIFESTS_DIR: Final[str] = ".specular/runs"

__all__ = [
    "CONFIG_SCHEMA_VERSION",
    "DEFAULT_CONFIG_FILE",
    "DEFAULT_LOCK_PATH",
    "DEFAULT_MANIFESTS_DIR",
    "DEFAULT_PLAN_PATH",
    "DEFAULT_POLICY_PATH",
    "DEFAULT_SPEC_PATH",
    "PRIORITIES",
    "SARIF_SCHEMA_URI",
    "SARIF_VERSION",
    "TOOL_INFORMATION_URI",
    "TOOL_NAME",
]
