"""
specular-drift — input document loaders

Purpose
- Read the spec, lock, plan, policy, and run-manifest documents the CLI feeds
  into an audit.

Functional requirements
- YAML and JSON are both accepted; ``.json`` files are parsed strictly as JSON.
- Every read, parse, or shape failure raises ``SpecIngestError`` naming the file.
- Directory manifest loading is deterministic: ``*.json`` sorted by file name.
"""

from __future__ import annotations

import json
from collections.abc import Callable
from pathlib import Path
from typing import TypeVar, cast

import yaml

from specular_drift.domain.models import Plan, Policy, ProductSpec, RunManifest, SpecLock

T = TypeVar("T")


class SpecIngestError(ValueError):
    """Raised when an input document cannot be read or does not have the expected shape."""

    def __init__(self, path: Path | str, message: str) -> None:
        self.path = Path(path)
        super().__init__(f"{self.path}: {message}")


def read_document(path: str | Path) -> object:
    source = Path(path)
    try:
        text = source.read_text(encoding="utf-8")
    except FileNotFoundError as exc:
        raise SpecIngestError(source, "file not found") from exc
    except (OSError, UnicodeDecodeError) as exc:
        raise SpecIngestError(source, f"cannot read file ({exc})") from exc

    if source.suffix.lower() == ".json":
        try:
            return cast("object", json.loads(text))
        except json.JSONDecodeError as exc:
            raise SpecIngestError(source, f"invalid JSON ({exc})") from exc
    try:
        return cast("object", yaml.safe_load(text))
    except yaml.YAMLError as exc:
        raise SpecIngestError(source, f"invalid YAML ({exc})") from exc


def _load(path: str | Path, parse: Callable[[dict[str, object]], T]) -> T:
    document = read_document(path)
    if document is None:
        document = {}
    if not isinstance(document, dict):
        raise SpecIngestError(path, f"expected top-level object, got {type(document).__name__}")
    try:
        return parse(document)
    except ValueError as exc:
        raise SpecIngestError(path, str(exc)) from exc


def load_product_spec(path: str | Path) -> ProductSpec:
    return _load(path, ProductSpec.from_dict)


def load_spec_lock(path: str | Path) -> SpecLock:
    return _load(path, SpecLock.from_dict)


def load_plan(path: str | Path) -> Plan:
    return _load(path, Plan.from_dict)


def load_policy(path: str | Path) -> Policy:
    return _load(path, Policy.from_dict)


def load_run_manifest(path: str | Path) -> RunManifest:
    return _load(path, RunManifest.from_dict)


def load_run_manifests(path: str | Path) -> tuple[RunManifest, ...]:
    """Load one manifest file, or every ``*.json`` manifest in a directory."""

    source = Path(path)
    if source.is_dir():
        files = sorted(
            (item for item in source.iterdir() if item.is_file() and item.suffix == ".json"),
            key=lambda item: item.name,
        )
        return tuple(load_run_manifest(item) for item in files)
    return (load_run_manifest(source),)


def load_task_images(path: str | Path) -> dict[str, str]:
    """Load a flat ``task id -> image`` mapping."""

    document = read_document(path)
    if document is None:
        return {}
    if not isinstance(document, dict):
        raise SpecIngestError(path, f"expected top-level object, got {type(document).__name__}")
    images: dict[str, str] = {}
    for task_id, image in document.items():
        if not isinstance(task_id, str) or not isinstance(image, str | None):
            raise SpecIngestError(path, f"expected string task id and image, got {task_id!r}")
        images[task_id] = (image or "").strip()
    return images


__all__ = [
    "SpecIngestError",
    "load_plan",
    "load_policy",
    "load_product_spec",
    "load_run_manifest",
    "load_run_manifests",
    "load_spec_lock",
    "load_task_images",
    "read_document",
]
