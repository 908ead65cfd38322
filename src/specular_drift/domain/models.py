"""Dataclass domain models for specs, locks, plans, policies, and run manifests.

Every model is immutable and parsed through strict ``from_dict`` helpers that
raise ``ValueError`` with a dotted field path. Unknown fields are ignored:
these documents are owned by other subsystems and carry more than the drift
engine reads.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from types import MappingProxyType
from typing import NoReturn

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]


class Priority(StrEnum):
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"


def _fail(path: str, message: str) -> NoReturn:
    raise ValueError(f"{path}: {message}")


def _canonical_json(value: JSONValue) -> str:
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _expect_object(value: object, path: str, *, required: set[str]) -> dict[str, object]:
    if not isinstance(value, Mapping):
        _fail(path, f"expected object, got {type(value).__name__}")

    parsed: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            _fail(path, f"object keys must be strings, got {type(key).__name__}")
        parsed[key] = item

    missing = sorted(key for key in required if key not in parsed)
    if missing:
        _fail(path, f"missing required fields: {missing}")
    return parsed


def _as_str(value: object, path: str, *, allow_empty: bool = True) -> str:
    if value is None:
        value = ""
    if not isinstance(value, str):
        _fail(path, f"expected string, got {type(value).__name__}")
    normalized = value.strip()
    if not allow_empty and not normalized:
        _fail(path, "must not be empty")
    return normalized


def _as_scalar_text(value: object, path: str) -> str:
    # YAML turns `cpu_limit: 2` into an int; limits are opaque text to the engine.
    if isinstance(value, bool):
        _fail(path, "expected string, got bool")
    if isinstance(value, (int, float)):
        return str(value)
    return _as_str(value, path)


def _as_bool(value: object, path: str, *, default: bool = False) -> bool:
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    _fail(path, f"expected boolean, got {type(value).__name__}")


def _as_int(value: object, path: str, *, default: int = 0) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int):
        _fail(path, f"expected integer, got {type(value).__name__}")
    return value


def _as_float(value: object, path: str, *, default: float = 0.0) -> float:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        _fail(path, f"expected number, got {type(value).__name__}")
    return float(value)


def _as_str_tuple(value: object, path: str) -> tuple[str, ...]:
    if value is None:
        return ()
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        _fail(path, f"expected array, got {type(value).__name__}")
    return tuple(_as_str(item, f"{path}[{idx}]") for idx, item in enumerate(value))


def _as_str_mapping(value: object, path: str) -> Mapping[str, str]:
    if value is None:
        return MappingProxyType({})
    parsed = _expect_object(value, path, required=set())
    return MappingProxyType(
        {key: _as_str(item, f"{path}.{key}") for key, item in sorted(parsed.items())}
    )


def _as_optional_datetime(value: object, path: str) -> datetime | None:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if not isinstance(value, str):
        _fail(path, f"expected ISO-8601 timestamp, got {type(value).__name__}")
    text = value[:-1] + "+00:00" if value.endswith("Z") else value
    try:
        return datetime.fromisoformat(text)
    except ValueError as exc:
        _fail(path, f"invalid ISO-8601 timestamp: {exc}")


# ---------------------------------------------------------------------------
# Product specification
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ApiEndpoint:
    method: str
    path: str
    request: str = ""
    response: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, object], path: str = "ApiEndpoint") -> ApiEndpoint:
        parsed = _expect_object(data, path, required={"method", "path"})
        return cls(
            method=_as_str(parsed["method"], f"{path}.method", allow_empty=False),
            path=_as_str(parsed["path"], f"{path}.path", allow_empty=False),
            request=_as_str(parsed.get("request"), f"{path}.request"),
            response=_as_str(parsed.get("response"), f"{path}.response"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        payload: dict[str, JSONValue] = {"method": self.method, "path": self.path}
        if self.request:
            payload["request"] = self.request
        if self.response:
            payload["response"] = self.response
        return payload


@dataclass(frozen=True, slots=True)
class Feature:
    id: str
    title: str
    priority: str = Priority.P2.value
    desc: str = ""
    api: tuple[ApiEndpoint, ...] = ()
    success: tuple[str, ...] = ()
    trace: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, object], path: str = "Feature") -> Feature:
        parsed = _expect_object(data, path, required={"id"})
        raw_api = parsed.get("api") or ()
        if not isinstance(raw_api, (list, tuple)):
            _fail(f"{path}.api", f"expected array, got {type(raw_api).__name__}")
        return cls(
            id=_as_str(parsed["id"], f"{path}.id", allow_empty=False),
            title=_as_str(parsed.get("title"), f"{path}.title"),
            priority=_as_str(parsed.get("priority"), f"{path}.priority"),
            desc=_as_str(parsed.get("desc"), f"{path}.desc"),
            api=tuple(
                ApiEndpoint.from_dict(item, f"{path}.api[{idx}]")
                for idx, item in enumerate(raw_api)
            ),
            success=_as_str_tuple(parsed.get("success"), f"{path}.success"),
            trace=_as_str_tuple(parsed.get("trace"), f"{path}.trace"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "title": self.title,
            "desc": self.desc,
            "priority": self.priority,
            "api": [item.to_dict() for item in self.api],
            "success": list(self.success),
            "trace": list(self.trace),
        }


@dataclass(frozen=True, slots=True)
class ProductSpec:
    product: str = ""
    features: tuple[Feature, ...] = ()
    goals: tuple[str, ...] = ()
    acceptance: tuple[str, ...] = ()

    def __post_init__(self) -> None:
        seen: set[str] = set()
        for feature in self.features:
            if feature.id in seen:
                _fail("ProductSpec.features", f"duplicate feature id {feature.id!r}")
            seen.add(feature.id)

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> ProductSpec:
        parsed = _expect_object(data, "ProductSpec", required=set())
        raw_features = parsed.get("features") or ()
        if not isinstance(raw_features, (list, tuple)):
            _fail("ProductSpec.features", f"expected array, got {type(raw_features).__name__}")
        return cls(
            product=_as_str(parsed.get("product"), "ProductSpec.product"),
            features=tuple(
                Feature.from_dict(item, f"ProductSpec.features[{idx}]")
                for idx, item in enumerate(raw_features)
            ),
            goals=_as_str_tuple(parsed.get("goals"), "ProductSpec.goals"),
            acceptance=_as_str_tuple(parsed.get("acceptance"), "ProductSpec.acceptance"),
        )

    def feature_ids(self) -> tuple[str, ...]:
        return tuple(feature.id for feature in self.features)

    def feature(self, feature_id: str) -> Feature | None:
        for feature in self.features:
            if feature.id == feature_id:
                return feature
        return None

    def has_api_entries(self) -> bool:
        return any(feature.api for feature in self.features)

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "product": self.product,
            "goals": list(self.goals),
            "features": [feature.to_dict() for feature in self.features],
            "acceptance": list(self.acceptance),
        }


# ---------------------------------------------------------------------------
# Spec lock
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class LockedFeature:
    hash: str
    openapi_path: str = ""
    test_paths: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, object], path: str = "LockedFeature") -> LockedFeature:
        parsed = _expect_object(data, path, required={"hash"})
        return cls(
            hash=_as_str(parsed["hash"], f"{path}.hash"),
            openapi_path=_as_str(parsed.get("openapi_path"), f"{path}.openapi_path"),
            test_paths=_as_str_tuple(parsed.get("test_paths"), f"{path}.test_paths"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "hash": self.hash,
            "openapi_path": self.openapi_path,
            "test_paths": list(self.test_paths),
        }


@dataclass(frozen=True, slots=True)
class SpecLock:
    """Hash-pinned snapshot of a specification, keyed by feature id."""

    version: str = ""
    features: Mapping[str, LockedFeature] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "features", MappingProxyType(dict(self.features)))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> SpecLock:
        parsed = _expect_object(data, "SpecLock", required=set())
        raw_features = parsed.get("features") or {}
        features_obj = _expect_object(raw_features, "SpecLock.features", required=set())
        features: dict[str, LockedFeature] = {}
        for feature_id, item in features_obj.items():
            key = _as_str(feature_id, "SpecLock.features", allow_empty=False)
            features[key] = LockedFeature.from_dict(item, f"SpecLock.features.{key}")
        return cls(
            version=_as_scalar_text(parsed.get("version"), "SpecLock.version"),
            features=features,
        )

    def get(self, feature_id: str) -> LockedFeature | None:
        return self.features.get(feature_id)

    def sorted_feature_ids(self) -> tuple[str, ...]:
        return tuple(sorted(self.features))

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "version": self.version,
            "features": {key: self.features[key].to_dict() for key in sorted(self.features)},
        }

    def to_json(self) -> str:
        return _canonical_json(self.to_dict())


# ---------------------------------------------------------------------------
# Plan
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class Task:
    id: str
    feature_id: str
    expected_hash: str = ""
    depends_on: tuple[str, ...] = ()
    skill: str = ""
    priority: str = ""
    model_hint: str = ""
    estimate: int = 0

    @classmethod
    def from_dict(cls, data: Mapping[str, object], path: str = "Task") -> Task:
        parsed = _expect_object(data, path, required={"id", "feature_id"})
        return cls(
            id=_as_str(parsed["id"], f"{path}.id", allow_empty=False),
            feature_id=_as_str(parsed["feature_id"], f"{path}.feature_id", allow_empty=False),
            expected_hash=_as_str(parsed.get("expected_hash"), f"{path}.expected_hash"),
            depends_on=_as_str_tuple(parsed.get("depends_on"), f"{path}.depends_on"),
            skill=_as_str(parsed.get("skill"), f"{path}.skill"),
            priority=_as_str(parsed.get("priority"), f"{path}.priority"),
            model_hint=_as_str(parsed.get("model_hint"), f"{path}.model_hint"),
            estimate=_as_int(parsed.get("estimate"), f"{path}.estimate"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "id": self.id,
            "feature_id": self.feature_id,
            "expected_hash": self.expected_hash,
            "depends_on": list(self.depends_on),
            "skill": self.skill,
            "priority": self.priority,
            "model_hint": self.model_hint,
            "estimate": self.estimate,
        }


@dataclass(frozen=True, slots=True)
class Plan:
    tasks: tuple[Task, ...] = ()

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Plan:
        parsed = _expect_object(data, "Plan", required=set())
        raw_tasks = parsed.get("tasks") or ()
        if not isinstance(raw_tasks, (list, tuple)):
            _fail("Plan.tasks", f"expected array, got {type(raw_tasks).__name__}")
        return cls(
            tasks=tuple(
                Task.from_dict(item, f"Plan.tasks[{idx}]") for idx, item in enumerate(raw_tasks)
            )
        )

    def feature_ids(self) -> frozenset[str]:
        return frozenset(task.feature_id for task in self.tasks)

    def to_dict(self) -> dict[str, JSONValue]:
        return {"tasks": [task.to_dict() for task in self.tasks]}


# ---------------------------------------------------------------------------
# Policy
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class DockerPolicy:
    required: bool = False
    image_allowlist: tuple[str, ...] = ()
    cpu_limit: str = ""
    mem_limit: str = ""
    network: str = ""

    @classmethod
    def from_dict(cls, data: Mapping[str, object] | None) -> DockerPolicy:
        parsed = _expect_object(data or {}, "Policy.execution.docker", required=set())
        return cls(
            required=_as_bool(parsed.get("required"), "Policy.execution.docker.required"),
            image_allowlist=_as_str_tuple(
                parsed.get("image_allowlist"), "Policy.execution.docker.image_allowlist"
            ),
            cpu_limit=_as_scalar_text(parsed.get("cpu_limit"), "Policy.execution.docker.cpu_limit"),
            mem_limit=_as_scalar_text(parsed.get("mem_limit"), "Policy.execution.docker.mem_limit"),
            network=_as_str(parsed.get("network"), "Policy.execution.docker.network"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "required": self.required,
            "image_allowlist": list(self.image_allowlist),
            "cpu_limit": self.cpu_limit,
            "mem_limit": self.mem_limit,
            "network": self.network,
        }


@dataclass(frozen=True, slots=True)
class ExecutionPolicy:
    allow_local: bool = False
    docker: DockerPolicy = field(default_factory=DockerPolicy)

    @classmethod
    def from_dict(cls, data: Mapping[str, object] | None) -> ExecutionPolicy:
        parsed = _expect_object(data or {}, "Policy.execution", required=set())
        return cls(
            allow_local=_as_bool(parsed.get("allow_local"), "Policy.execution.allow_local"),
            docker=DockerPolicy.from_dict(parsed.get("docker")),  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {"allow_local": self.allow_local, "docker": self.docker.to_dict()}


@dataclass(frozen=True, slots=True)
class TestPolicy:
    __test__ = False

    require_pass: bool = False
    min_coverage: float = 0.0

    @classmethod
    def from_dict(cls, data: Mapping[str, object] | None) -> TestPolicy:
        parsed = _expect_object(data or {}, "Policy.tests", required=set())
        return cls(
            require_pass=_as_bool(parsed.get("require_pass"), "Policy.tests.require_pass"),
            min_coverage=_as_float(parsed.get("min_coverage"), "Policy.tests.min_coverage"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {"require_pass": self.require_pass, "min_coverage": self.min_coverage}


@dataclass(frozen=True, slots=True)
class SecurityPolicy:
    secrets_scan: bool = False
    dep_scan: bool = False

    @classmethod
    def from_dict(cls, data: Mapping[str, object] | None) -> SecurityPolicy:
        parsed = _expect_object(data or {}, "Policy.security", required=set())
        return cls(
            secrets_scan=_as_bool(parsed.get("secrets_scan"), "Policy.security.secrets_scan"),
            dep_scan=_as_bool(parsed.get("dep_scan"), "Policy.security.dep_scan"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {"secrets_scan": self.secrets_scan, "dep_scan": self.dep_scan}


@dataclass(frozen=True, slots=True)
class Policy:
    """Execution, test, and security constraints; externally owned and read-only."""

    execution: ExecutionPolicy = field(default_factory=ExecutionPolicy)
    tests: TestPolicy = field(default_factory=TestPolicy)
    security: SecurityPolicy = field(default_factory=SecurityPolicy)

    @classmethod
    def default(cls) -> Policy:
        return cls(
            execution=ExecutionPolicy(
                allow_local=False,
                docker=DockerPolicy(
                    required=True,
                    image_allowlist=(),
                    cpu_limit="2",
                    mem_limit="2g",
                    network="none",
                ),
            ),
            tests=TestPolicy(require_pass=True, min_coverage=0.70),
            security=SecurityPolicy(secrets_scan=True, dep_scan=True),
        )

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Policy:
        parsed = _expect_object(data, "Policy", required=set())
        return cls(
            execution=ExecutionPolicy.from_dict(parsed.get("execution")),  # type: ignore[arg-type]
            tests=TestPolicy.from_dict(parsed.get("tests")),  # type: ignore[arg-type]
            security=SecurityPolicy.from_dict(parsed.get("security")),  # type: ignore[arg-type]
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "execution": self.execution.to_dict(),
            "tests": self.tests.to_dict(),
            "security": self.security.to_dict(),
        }


# ---------------------------------------------------------------------------
# Run manifests
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class RunManifest:
    """Record of one already-executed step; historical and append-only."""

    step_id: str
    exit_code: int = 0
    image: str = ""
    runner: str = ""
    command: tuple[str, ...] = ()
    duration: str = ""
    input_hashes: Mapping[str, str] = field(default_factory=dict)
    output_hashes: Mapping[str, str] = field(default_factory=dict)
    timestamp: datetime | None = None

    def __post_init__(self) -> None:
        object.__setattr__(self, "input_hashes", MappingProxyType(dict(self.input_hashes)))
        object.__setattr__(self, "output_hashes", MappingProxyType(dict(self.output_hashes)))

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> RunManifest:
        parsed = _expect_object(data, "RunManifest", required={"step_id"})
        return cls(
            step_id=_as_str(parsed["step_id"], "RunManifest.step_id", allow_empty=False),
            exit_code=_as_int(parsed.get("exit_code"), "RunManifest.exit_code"),
            image=_as_str(parsed.get("image"), "RunManifest.image"),
            runner=_as_str(parsed.get("runner"), "RunManifest.runner"),
            command=_as_str_tuple(parsed.get("command"), "RunManifest.command"),
            duration=_as_scalar_text(parsed.get("duration"), "RunManifest.duration"),
            input_hashes=_as_str_mapping(parsed.get("input_hashes"), "RunManifest.input_hashes"),
            output_hashes=_as_str_mapping(
                parsed.get("output_hashes"), "RunManifest.output_hashes"
            ),
            timestamp=_as_optional_datetime(parsed.get("timestamp"), "RunManifest.timestamp"),
        )

    def to_dict(self) -> dict[str, JSONValue]:
        return {
            "step_id": self.step_id,
            "exit_code": self.exit_code,
            "image": self.image,
            "runner": self.runner,
            "command": list(self.command),
            "duration": self.duration,
            "input_hashes": dict(self.input_hashes),
            "output_hashes": dict(self.output_hashes),
            "timestamp": self.timestamp.isoformat() if self.timestamp is not None else None,
        }


__all__ = [
    "ApiEndpoint",
    "DockerPolicy",
    "ExecutionPolicy",
    "Feature",
    "JSONScalar",
    "JSONValue",
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
