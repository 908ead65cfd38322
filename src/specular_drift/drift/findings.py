"""Finding value object, severities, and the stable finding-code vocabulary."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from enum import StrEnum
from typing import Final


class Severity(StrEnum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class FindingCode:
    """Stable string identifiers; consumers match on these, never on messages."""

    # plan drift
    UNKNOWN_FEATURE: Final = "UNKNOWN_FEATURE"
    HASH_MISMATCH: Final = "HASH_MISMATCH"
    MISSING_TASK: Final = "MISSING_TASK"
    # code drift
    MISSING_TEST: Final = "MISSING_TEST"
    HASH_ERROR: Final = "HASH_ERROR"
    MISSING_TRACE: Final = "MISSING_TRACE"
    TRACE_ERROR: Final = "TRACE_ERROR"
    MISSING_API_SPEC: Final = "MISSING_API_SPEC"
    INVALID_API_SPEC: Final = "INVALID_API_SPEC"
    MISSING_API_PATH: Final = "MISSING_API_PATH"
    MISSING_API_METHOD: Final = "MISSING_API_METHOD"
    NO_TESTS: Final = "NO_TESTS"
    # infra drift
    MISSING_DOCKER_IMAGE: Final = "MISSING_DOCKER_IMAGE"
    DISALLOWED_DOCKER_IMAGE: Final = "DISALLOWED_DOCKER_IMAGE"
    ALLOW_LOCAL_EXECUTION: Final = "ALLOW_LOCAL_EXECUTION"
    NETWORK_ACCESS_ENABLED: Final = "NETWORK_ACCESS_ENABLED"
    MISSING_CPU_LIMIT: Final = "MISSING_CPU_LIMIT"
    MISSING_MEMORY_LIMIT: Final = "MISSING_MEMORY_LIMIT"
    TESTS_NOT_REQUIRED: Final = "TESTS_NOT_REQUIRED"
    SECRETS_SCAN_DISABLED: Final = "SECRETS_SCAN_DISABLED"
    DEPENDENCY_SCAN_DISABLED: Final = "DEPENDENCY_SCAN_DISABLED"
    EXECUTION_FAILED: Final = "EXECUTION_FAILED"
    DISALLOWED_EXECUTION_IMAGE: Final = "DISALLOWED_EXECUTION_IMAGE"

    @classmethod
    def all(cls) -> tuple[str, ...]:
        return tuple(
            value
            for name, value in vars(cls).items()
            if name.isupper() and isinstance(value, str)
        )


@dataclass(frozen=True, slots=True)
class Finding:
    """One detected inconsistency.

    ``severity`` is kept as a plain string so reports reloaded from disk keep
    severities this version does not know about; they count toward totals only.
    """

    code: str
    message: str
    severity: str
    feature_id: str = ""
    location: str = ""

    @property
    def is_error(self) -> bool:
        return self.severity == Severity.ERROR

    @property
    def is_warning(self) -> bool:
        return self.severity == Severity.WARNING

    def to_dict(self) -> dict[str, str]:
        payload = {
            "code": self.code,
            "feature_id": self.feature_id,
            "message": self.message,
            "severity": self.severity,
        }
        if self.location:
            payload["location"] = self.location
        return payload

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Finding:
        if not isinstance(data, Mapping):
            raise ValueError(f"Finding: expected object, got {type(data).__name__}")
        values: dict[str, str] = {}
        for key in ("code", "feature_id", "message", "severity", "location"):
            raw = data.get(key, "")
            if raw is None:
                raw = ""
            if not isinstance(raw, str):
                raise ValueError(f"Finding.{key}: expected string, got {type(raw).__name__}")
            values[key] = raw
        if not values["code"]:
            raise ValueError("Finding.code: must not be empty")
        return cls(**values)


__all__ = ["Finding", "FindingCode", "Severity"]
