"""
specular-drift — API contract endpoint matcher

Purpose
- Load an OpenAPI 3.x contract (YAML or JSON) and answer whether a declared
  ``(method, path)`` pair exists in it.

Functional requirements
- Declared paths are normalized before lookup: query string dropped, leading
  ``/`` forced, one trailing ``/`` removed unless the path is the root.
- Lookup is exact first, then parameterized: equal segment counts, and a
  ``{...}`` placeholder on either side matches any segment. Placeholder names
  need not agree.
- Only GET, POST, PUT, PATCH, DELETE, HEAD and OPTIONS are recognised; any other
  declared method is reported as missing.
- Contracts are validated structurally with ``jsonschema`` before use. This is
  not full OpenAPI semantic validation: ``$ref`` targets are not resolved.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Final, cast

import jsonschema
import yaml

from specular_drift.drift.findings import Finding, FindingCode, Severity
from specular_drift.observability.logging import get_logger

if TYPE_CHECKING:
    from specular_drift.domain.models import Feature

SUPPORTED_METHODS: Final[tuple[str, ...]] = (
    "GET",
    "POST",
    "PUT",
    "PATCH",
    "DELETE",
    "HEAD",
    "OPTIONS",
)

_OPERATION_SCHEMA: Final[dict[str, object]] = {"type": "object"}

OPENAPI_STRUCTURE_SCHEMA: Final[dict[str, object]] = {
    "type": "object",
    "required": ["openapi", "info", "paths"],
    "properties": {
        "openapi": {"type": "string", "pattern": r"^3\.\d+(\.\d+)?"},
        "info": {
            "type": "object",
            "required": ["title", "version"],
            "properties": {
                "title": {"type": "string"},
                "version": {"type": "string"},
            },
        },
        "paths": {
            "type": "object",
            "patternProperties": {
                "^/": {
                    "type": "object",
                    "properties": {
                        method.lower(): _OPERATION_SCHEMA for method in SUPPORTED_METHODS
                    },
                },
                "^x-": {},
            },
            "additionalProperties": False,
        },
    },
}


class ContractLoadError(ValueError):
    """Raised when an API contract cannot be read, parsed, or validated."""


def normalize_path(path: str) -> str:
    """Return ``path`` in canonical lookup form; idempotent."""

    normalized = path.split("?", 1)[0]
    if not normalized.startswith("/"):
        normalized = "/" + normalized
    return normalized.rstrip("/") or "/"


def is_path_parameter(segment: str) -> bool:
    return len(segment) >= 2 and segment.startswith("{") and segment.endswith("}")


def paths_match(request_path: str, contract_path: str) -> bool:
    """Segment-wise comparison where a placeholder on either side matches anything."""

    request_segments = request_path.strip("/").split("/")
    contract_segments = contract_path.strip("/").split("/")
    if len(request_segments) != len(contract_segments):
        return False
    for request_segment, contract_segment in zip(request_segments, contract_segments, strict=True):
        if is_path_parameter(contract_segment) or is_path_parameter(request_segment):
            continue
        if request_segment != contract_segment:
            return False
    return True


@dataclass(frozen=True, slots=True)
class OpenAPIContract:
    """Parsed API contract reduced to ``path -> declared methods``.

    ``paths`` keeps the contract's declaration order so parameterized lookup is
    deterministic when more than one template could match.
    """

    source: str
    paths: Mapping[str, frozenset[str]] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "paths", MappingProxyType(dict(self.paths)))

    @classmethod
    def from_mapping(cls, document: object, *, source: str = "<memory>") -> OpenAPIContract:
        try:
            jsonschema.validate(document, OPENAPI_STRUCTURE_SCHEMA)
        except jsonschema.ValidationError as exc:
            location = "/".join(str(part) for part in exc.absolute_path) or "<root>"
            raise ContractLoadError(f"{location}: {exc.message}") from exc

        raw_paths = cast("Mapping[str, object]", cast("Mapping[str, object]", document)["paths"])
        paths: dict[str, frozenset[str]] = {}
        for contract_path, item in raw_paths.items():
            if not contract_path.startswith("/"):
                continue
            item_mapping = cast("Mapping[str, object]", item)
            paths[contract_path] = frozenset(
                method for method in SUPPORTED_METHODS if method.lower() in item_mapping
            )
        return cls(source=source, paths=paths)

    @classmethod
    def load(cls, path: str | Path, *, source: str | None = None) -> OpenAPIContract:
        """Read, parse, and validate a contract file."""

        contract_path = Path(path)
        display = source if source is not None else str(contract_path)
        try:
            text = contract_path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise ContractLoadError(f"failed to read API contract: {exc}") from exc
        return cls.from_mapping(_parse_document(text, contract_path), source=display)

    def find_path_item(self, path: str) -> tuple[str, frozenset[str]] | None:
        methods = self.paths.get(path)
        if methods is not None:
            return path, methods
        for contract_path, contract_methods in self.paths.items():
            if paths_match(path, contract_path):
                return contract_path, contract_methods
        return None

    def has_endpoint(self, method: str, path: str) -> bool:
        found = self.find_path_item(normalize_path(path))
        if found is None:
            return False
        return method.upper() in found[1]

    def validate_endpoints(self, features: Iterable[Feature]) -> list[Finding]:
        findings: list[Finding] = []
        for feature in features:
            for endpoint in feature.api:
                path = normalize_path(endpoint.path)
                method = endpoint.method.upper()
                location = f"{self.source}:{path}"
                found = self.find_path_item(path)
                if found is None:
                    findings.append(
                        Finding(
                            code=FindingCode.MISSING_API_PATH,
                            feature_id=feature.id,
                            message=f"API path not found in OpenAPI spec: {method} {path}",
                            severity=Severity.ERROR,
                            location=location,
                        )
                    )
                    continue
                if method not in SUPPORTED_METHODS or method not in found[1]:
                    findings.append(
                        Finding(
                            code=FindingCode.MISSING_API_METHOD,
                            feature_id=feature.id,
                            message=f"API method not found in OpenAPI spec: {method} {path}",
                            severity=Severity.ERROR,
                            location=location,
                        )
                    )
        return findings

    def endpoint_summary(self) -> dict[str, list[str]]:
        summary: dict[str, list[str]] = {}
        for contract_path, methods in self.paths.items():
            ordered = [method for method in SUPPORTED_METHODS if method in methods]
            if ordered:
                summary[contract_path] = ordered
        return summary


def validate_api_spec(
    spec_path: str,
    project_root: str | Path | None,
    features: Iterable[Feature],
) -> list[Finding]:
    """Check every feature endpoint against the contract at ``project_root/spec_path``.

    A missing or invalid contract produces exactly one finding and no endpoint
    findings.
    """

    logger = get_logger(__name__)
    full_path = Path(project_root) / spec_path if project_root is not None else Path(spec_path)
    if not full_path.exists():
        return [
            Finding(
                code=FindingCode.MISSING_API_SPEC,
                message=f"OpenAPI spec not found at: {spec_path}",
                severity=Severity.ERROR,
                location=spec_path,
            )
        ]

    try:
        contract = OpenAPIContract.load(full_path, source=spec_path)
    except ContractLoadError as exc:
        logger.info("api_contract_rejected", contract=spec_path, error=str(exc))
        return [
            Finding(
                code=FindingCode.INVALID_API_SPEC,
                message=f"Invalid OpenAPI spec: {exc}",
                severity=Severity.ERROR,
                location=spec_path,
            )
        ]

    return contract.validate_endpoints(features)


def _parse_document(text: str, path: Path) -> object:
    if path.suffix.lower() == ".json":
        try:
            return cast("object", json.loads(text))
        except json.JSONDecodeError as exc:
            raise ContractLoadError(f"invalid JSON ({exc})") from exc
    try:
        return cast("object", yaml.safe_load(text))
    except yaml.YAMLError as exc:
        raise ContractLoadError(f"invalid YAML ({exc})") from exc


__all__ = [
    "OPENAPI_STRUCTURE_SCHEMA",
    "SUPPORTED_METHODS",
    "ContractLoadError",
    "OpenAPIContract",
    "is_path_parameter",
    "normalize_path",
    "paths_match",
    "validate_api_spec",
]
