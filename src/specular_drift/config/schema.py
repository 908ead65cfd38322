"""
specular-drift — config schema and validation.

Purpose
- Define the ``specdrift.toml`` shape, built-in defaults, and strict validation.

Functional requirements
- Unknown keys are rejected with a dotted path.
- Every failure is collected before raising, so one run reports all issues.
- Validated configs are plain dicts with deterministic key order.
"""

from __future__ import annotations

import copy
from collections.abc import Callable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any, Final, TypedDict

from specular_drift.constants import (
    CONFIG_SCHEMA_VERSION,
    DEFAULT_LOCK_PATH,
    DEFAULT_MANIFESTS_DIR,
    DEFAULT_PLAN_PATH,
    DEFAULT_POLICY_PATH,
    DEFAULT_SPEC_PATH,
)

ConfigSchemaVersion: Final[int] = CONFIG_SCHEMA_VERSION

FAIL_ON_VALUES: Final[tuple[str, ...]] = ("error", "warning", "never")
FORMAT_VALUES: Final[tuple[str, ...]] = ("text", "json", "sarif")
LOG_LEVEL_VALUES: Final[tuple[str, ...]] = ("DEBUG", "INFO", "WARNING", "ERROR")

# Resolved against the config file's directory. ``paths.api_spec`` is not listed:
# it is resolved against ``paths.project_root`` by the API pass.
PATH_FIELDS: Final[tuple[tuple[str, ...], ...]] = (
    ("paths", "spec"),
    ("paths", "lock"),
    ("paths", "plan"),
    ("paths", "policy"),
    ("paths", "manifests"),
    ("paths", "task_images"),
    ("paths", "project_root"),
    ("paths", "output"),
    ("observability", "log_dir"),
)

_PATH_KEYS: Final[frozenset[str]] = frozenset(
    {
        "spec",
        "lock",
        "plan",
        "policy",
        "manifests",
        "task_images",
        "api_spec",
        "project_root",
        "output",
    }
)
_REQUIRED_PATH_KEYS: Final[frozenset[str]] = frozenset({"project_root"})


class MetaConfig(TypedDict):
    schema_version: int


class PathsConfig(TypedDict):
    spec: str
    lock: str
    plan: str
    policy: str
    manifests: str
    task_images: str
    api_spec: str
    project_root: str
    output: str


class DriftConfig(TypedDict):
    ignore_globs: list[str]
    fail_on: str
    format: str


class ObservabilityConfig(TypedDict):
    log_level: str
    log_dir: str
    log_to_file: bool


class DriftToolConfig(TypedDict):
    meta: MetaConfig
    paths: PathsConfig
    drift: DriftConfig
    observability: ObservabilityConfig


DEFAULT_CONFIG: Final[DriftToolConfig] = {
    "meta": {"schema_version": ConfigSchemaVersion},
    "paths": {
        "spec": DEFAULT_SPEC_PATH,
        "lock": DEFAULT_LOCK_PATH,
        "plan": DEFAULT_PLAN_PATH,
        "policy": DEFAULT_POLICY_PATH,
        "manifests": DEFAULT_MANIFESTS_DIR,
        "task_images": "",
        "api_spec": "",
        "project_root": ".",
        "output": "",
    },
    "drift": {
        "ignore_globs": [],
        "fail_on": "error",
        "format": "text",
    },
    "observability": {
        "log_level": "WARNING",
        "log_dir": ".specular/logs",
        "log_to_file": False,
    },
}


@dataclass(frozen=True, slots=True)
class ConfigValidationIssue:
    """Single structured validation failure."""

    path: str
    message: str


@dataclass(frozen=True, slots=True)
class ConfigValidationResult:
    config: dict[str, Any] | None
    issues: tuple[ConfigValidationIssue, ...]

    @property
    def is_valid(self) -> bool:
        return self.config is not None and not self.issues


class ConfigValidationError(ValueError):
    """Raised when strict config validation fails."""

    def __init__(self, issues: Sequence[ConfigValidationIssue]) -> None:
        self.issues = tuple(issues)
        if not self.issues:
            rendered = "unknown validation failure"
        else:
            rendered = "\n".join(f"- {item.path}: {item.message}" for item in self.issues)
        super().__init__(f"invalid config:\n{rendered}")


class _IssueCollector:
    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: list[ConfigValidationIssue] = []

    def add(self, path: str, message: str) -> None:
        self._items.append(ConfigValidationIssue(path=path, message=message))

    def items(self) -> tuple[ConfigValidationIssue, ...]:
        return tuple(self._items)

    @property
    def has_issues(self) -> bool:
        return bool(self._items)


def default_config() -> DriftToolConfig:
    """Return a deep copy of the built-in defaults."""

    return copy.deepcopy(DEFAULT_CONFIG)


def migration_guidance(found_version: int) -> str:
    if found_version < ConfigSchemaVersion:
        return (
            f"schema version {found_version} is older than supported {ConfigSchemaVersion}; "
            "upgrade specdrift.toml to the current schema"
        )
    if found_version > ConfigSchemaVersion:
        return (
            f"schema version {found_version} is newer than supported {ConfigSchemaVersion}; "
            "upgrade specular-drift"
        )
    return "schema version is current"


def merge_config(base: Mapping[str, object], overlay: Mapping[str, object]) -> dict[str, Any]:
    """Deterministically deep-merge ``overlay`` onto ``base``. Lists are replaced, not merged."""

    merged = _deep_copy_mapping(base)
    _merge_into(merged, overlay)
    return merged


def validate_config(config: Mapping[str, object] | object) -> ConfigValidationResult:
    issues = _IssueCollector()
    root = _as_object(config, "<root>", issues)
    if root is None:
        return ConfigValidationResult(config=None, issues=issues.items())

    normalized = _validate_root(root, issues)
    if issues.has_issues:
        return ConfigValidationResult(config=None, issues=issues.items())
    return ConfigValidationResult(config=normalized, issues=())


def assert_valid_config(config: Mapping[str, object] | object) -> dict[str, Any]:
    """Validate config and raise ``ConfigValidationError`` on failure."""

    result = validate_config(config)
    if result.config is None:
        raise ConfigValidationError(result.issues)
    return result.config


def _validate_root(payload: Mapping[str, object], issues: _IssueCollector) -> dict[str, Any]:
    sections: dict[str, Callable[[dict[str, object], str, _IssueCollector], dict[str, Any]]] = {
        "meta": _validate_meta,
        "paths": _validate_paths,
        "drift": _validate_drift,
        "observability": _validate_observability,
    }
    _reject_unknown_keys(payload, set(sections), "", issues)
    _require_keys(payload, set(sections), "", issues)

    out: dict[str, Any] = {}
    for key, validator in sections.items():
        raw = payload.get(key)
        if raw is None:
            continue
        section_obj = _as_object(raw, key, issues)
        if section_obj is not None:
            out[key] = validator(section_obj, key, issues)
    return out


def _validate_meta(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, {"schema_version"}, path, issues)
    _require_keys(payload, {"schema_version"}, path, issues)

    out: dict[str, Any] = {}
    if "schema_version" in payload:
        parsed = _as_int(payload["schema_version"], _join(path, "schema_version"), issues, minimum=1)
        if parsed is not None:
            out["schema_version"] = parsed
            if parsed != ConfigSchemaVersion:
                issues.add(_join(path, "schema_version"), migration_guidance(parsed))
    return out


def _validate_paths(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    _reject_unknown_keys(payload, set(_PATH_KEYS), path, issues)
    _require_keys(payload, set(_PATH_KEYS), path, issues)

    out: dict[str, Any] = {}
    for key in sorted(_PATH_KEYS):
        if key not in payload:
            continue
        parsed = _as_path_text(
            payload[key],
            _join(path, key),
            issues,
            allow_empty=key not in _REQUIRED_PATH_KEYS,
        )
        if parsed is not None:
            out[key] = parsed
    return out


def _validate_drift(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"ignore_globs", "fail_on", "format"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "ignore_globs" in payload:
        parsed_globs = _as_str_list(payload["ignore_globs"], _join(path, "ignore_globs"), issues)
        if parsed_globs is not None:
            out["ignore_globs"] = parsed_globs
    if "fail_on" in payload:
        parsed_fail_on = _as_enum(
            payload["fail_on"], _join(path, "fail_on"), issues, allowed_values=FAIL_ON_VALUES
        )
        if parsed_fail_on is not None:
            out["fail_on"] = parsed_fail_on
    if "format" in payload:
        parsed_format = _as_enum(
            payload["format"], _join(path, "format"), issues, allowed_values=FORMAT_VALUES
        )
        if parsed_format is not None:
            out["format"] = parsed_format
    return out


def _validate_observability(
    payload: Mapping[str, object], path: str, issues: _IssueCollector
) -> dict[str, Any]:
    allowed = {"log_level", "log_dir", "log_to_file"}
    _reject_unknown_keys(payload, allowed, path, issues)
    _require_keys(payload, allowed, path, issues)

    out: dict[str, Any] = {}
    if "log_level" in payload:
        raw_level = payload["log_level"]
        if isinstance(raw_level, str):
            raw_level = raw_level.upper()
        parsed_level = _as_enum(
            raw_level, _join(path, "log_level"), issues, allowed_values=LOG_LEVEL_VALUES
        )
        if parsed_level is not None:
            out["log_level"] = parsed_level
    if "log_dir" in payload:
        parsed_dir = _as_path_text(payload["log_dir"], _join(path, "log_dir"), issues)
        if parsed_dir is not None:
            out["log_dir"] = parsed_dir
    if "log_to_file" in payload:
        parsed_flag = _as_bool(payload["log_to_file"], _join(path, "log_to_file"), issues)
        if parsed_flag is not None:
            out["log_to_file"] = parsed_flag
    return out


def _as_object(value: object, path: str, issues: _IssueCollector) -> dict[str, object] | None:
    if not isinstance(value, Mapping):
        issues.add(path, f"expected object, got {type(value).__name__}")
        return None
    out: dict[str, object] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            issues.add(path, f"object key must be string, got {type(key).__name__}")
            continue
        out[key] = item
    return out


def _as_str(
    value: object, path: str, issues: _IssueCollector, *, allow_empty: bool = False
) -> str | None:
    if not isinstance(value, str):
        issues.add(path, f"expected string, got {type(value).__name__}")
        return None
    parsed = value.strip()
    if not parsed and not allow_empty:
        issues.add(path, "must not be empty")
        return None
    return parsed


def _as_path_text(
    value: object, path: str, issues: _IssueCollector, *, allow_empty: bool = False
) -> str | None:
    parsed = _as_str(value, path, issues, allow_empty=allow_empty)
    if parsed is None:
        return None
    if "\x00" in parsed:
        issues.add(path, "must not contain NUL bytes")
        return None
    return parsed


def _as_str_list(value: object, path: str, issues: _IssueCollector) -> list[str] | None:
    if isinstance(value, str) or not isinstance(value, (list, tuple)):
        issues.add(path, f"expected array of strings, got {type(value).__name__}")
        return None
    out: list[str] = []
    for index, item in enumerate(value):
        parsed = _as_str(item, f"{path}[{index}]", issues)
        if parsed is not None:
            out.append(parsed)
    return out


def _as_bool(value: object, path: str, issues: _IssueCollector) -> bool | None:
    if isinstance(value, bool):
        return value
    issues.add(path, f"expected boolean, got {type(value).__name__}")
    return None


def _as_int(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    minimum: int | None = None,
) -> int | None:
    if isinstance(value, bool) or not isinstance(value, int):
        issues.add(path, f"expected integer, got {type(value).__name__}")
        return None
    if minimum is not None and value < minimum:
        issues.add(path, f"must be >= {minimum}")
        return None
    return value


def _as_enum(
    value: object,
    path: str,
    issues: _IssueCollector,
    *,
    allowed_values: tuple[str, ...],
) -> str | None:
    parsed = _as_str(value, path, issues)
    if parsed is None:
        return None
    if parsed not in allowed_values:
        expected = ", ".join(sorted(allowed_values))
        issues.add(path, f"invalid value {parsed!r}; expected one of: {expected}")
        return None
    return parsed


def _reject_unknown_keys(
    payload: Mapping[str, object],
    allowed: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(payload):
        if key not in allowed:
            issues.add(_join(path, key), "unknown field")


def _require_keys(
    payload: Mapping[str, object],
    required: set[str],
    path: str,
    issues: _IssueCollector,
) -> None:
    for key in sorted(required):
        if key not in payload:
            issues.add(_join(path, key), "missing required field")


def _join(path: str, key: str) -> str:
    if not path:
        return key
    return f"{path}.{key}"


def _merge_into(target: dict[str, Any], overlay: Mapping[str, object]) -> None:
    for key in sorted(overlay):
        value = overlay[key]
        if isinstance(value, Mapping):
            existing = target.get(key)
            if isinstance(existing, dict):
                _merge_into(existing, value)
            else:
                nested: dict[str, Any] = {}
                _merge_into(nested, value)
                target[key] = nested
        else:
            target[key] = _deep_copy_value(value)


def _deep_copy_mapping(value: Mapping[str, object]) -> dict[str, Any]:
    return {key: _deep_copy_value(value[key]) for key in sorted(value)}


def _deep_copy_value(value: object) -> Any:
    if isinstance(value, Mapping):
        return {key: _deep_copy_value(item) for key, item in value.items() if isinstance(key, str)}
    if isinstance(value, (list, tuple)):
        return [_deep_copy_value(item) for item in value]
    return copy.deepcopy(value)


__all__ = [
    "DEFAULT_CONFIG",
    "FAIL_ON_VALUES",
    "FORMAT_VALUES",
    "LOG_LEVEL_VALUES",
    "PATH_FIELDS",
    "ConfigSchemaVersion",
    "ConfigValidationError",
    "ConfigValidationIssue",
    "ConfigValidationResult",
    "DriftToolConfig",
    "assert_valid_config",
    "default_config",
    "merge_config",
    "migration_guidance",
    "validate_config",
]
