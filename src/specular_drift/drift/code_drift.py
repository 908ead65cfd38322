"""
specular-drift — code drift detector

Purpose
- Compare a product spec and its lock against the live project tree.

Passes (concatenated in this order)
- file presence: locked test paths and traced paths must exist.
- API conformance: declared endpoints must exist in the API contract.
- coverage heuristic: features should have test-looking files on disk.

The coverage pass matches file names only. A hit means a file called
something like ``test_<feature>`` exists, not that the feature is tested.
"""

from __future__ import annotations

import fnmatch
import os
import stat
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

from specular_drift.domain.models import Priority
from specular_drift.drift.findings import Finding, FindingCode, Severity
from specular_drift.drift.openapi import validate_api_spec
from specular_drift.observability.logging import get_logger
from specular_drift.utils.fs import iter_project_files
from specular_drift.utils.hashing import sha256_file

if TYPE_CHECKING:
    from specular_drift.domain.models import Feature, ProductSpec, SpecLock


@dataclass(frozen=True, slots=True)
class CodeDriftOptions:
    project_root: Path | None = None
    api_spec_path: str = ""
    ignore_globs: tuple[str, ...] = ()


def detect_code_drift(
    spec: ProductSpec,
    lock: SpecLock,
    options: CodeDriftOptions,
) -> list[Finding]:
    findings: list[Finding] = []
    findings.extend(check_file_presence(spec, lock, options))
    findings.extend(check_api_implementations(spec, options))
    findings.extend(check_test_coverage(spec, options))

    get_logger(__name__).debug(
        "code_drift_checked",
        features=len(spec.features),
        project_root=str(options.project_root) if options.project_root is not None else None,
        findings=len(findings),
    )
    return findings


def check_file_presence(
    spec: ProductSpec,
    lock: SpecLock,
    options: CodeDriftOptions,
) -> list[Finding]:
    """Locked test paths and traced paths must exist below the project root.

    Spec features missing from the lock are skipped; plan drift owns that case.
    """

    findings: list[Finding] = []
    for feature in spec.features:
        locked = lock.get(feature.id)
        if locked is None:
            continue

        for test_path in locked.test_paths:
            full_path = _resolve(options.project_root, test_path)
            if not full_path.exists():
                findings.append(
                    Finding(
                        code=FindingCode.MISSING_TEST,
                        feature_id=feature.id,
                        message=f"Test file missing: {test_path}",
                        severity=Severity.ERROR,
                        location=test_path,
                    )
                )
                continue
            if not full_path.is_file() and not full_path.is_dir():
                findings.append(
                    Finding(
                        code=FindingCode.HASH_ERROR,
                        feature_id=feature.id,
                        message=f"Cannot hash file {test_path}: not a regular file",
                        severity=Severity.WARNING,
                        location=test_path,
                    )
                )
                continue
            # Digest is not compared yet; hashing only proves the file is readable.
            try:
                sha256_file(full_path)
            except OSError as exc:
                findings.append(
                    Finding(
                        code=FindingCode.HASH_ERROR,
                        feature_id=feature.id,
                        message=f"Cannot hash file {test_path}: {_describe(exc)}",
                        severity=Severity.WARNING,
                        location=test_path,
                    )
                )

        for trace_path in feature.trace:
            if _should_ignore(trace_path, options.ignore_globs):
                continue
            full_path = _resolve(options.project_root, trace_path)
            if not full_path.exists():
                findings.append(
                    Finding(
                        code=FindingCode.MISSING_TRACE,
                        feature_id=feature.id,
                        message=f"Traced file missing: {trace_path}",
                        severity=Severity.ERROR,
                        location=trace_path,
                    )
                )
                continue
            if not _is_readable(full_path):
                findings.append(
                    Finding(
                        code=FindingCode.TRACE_ERROR,
                        feature_id=feature.id,
                        message=f"Cannot access traced file {trace_path}",
                        severity=Severity.WARNING,
                        location=trace_path,
                    )
                )
    return findings


def check_api_implementations(spec: ProductSpec, options: CodeDriftOptions) -> list[Finding]:
    if not spec.has_api_entries() or not options.api_spec_path:
        return []
    return validate_api_spec(options.api_spec_path, options.project_root, spec.features)


def check_test_coverage(
    spec: ProductSpec,
    options: CodeDriftOptions,
    *,
    candidate_names: Sequence[str] | None = None,
) -> list[Finding]:
    """Flag P0/P1 features with no test-looking file anywhere in the project.

    ``candidate_names`` may carry a pre-collected list of lower-cased base
    names; otherwise the project tree is walked once for all features.
    """

    names = (
        list(candidate_names)
        if candidate_names is not None
        else collect_test_file_names(options.project_root)
    )

    findings: list[Finding] = []
    for feature in spec.features:
        if feature.priority not in (Priority.P0, Priority.P1):
            continue
        if count_candidate_tests(feature, names) > 0:
            continue
        severity = Severity.ERROR if feature.priority == Priority.P0 else Severity.WARNING
        findings.append(
            Finding(
                code=FindingCode.NO_TESTS,
                feature_id=feature.id,
                message=f"{feature.priority} feature '{feature.title}' has no associated tests",
                severity=severity,
                location=feature.id,
            )
        )
    return findings


def collect_test_file_names(project_root: Path | None) -> list[str]:
    """Lower-cased base names of every file containing ``test``; empty without a root."""

    if project_root is None:
        return []
    return [
        name
        for name in (path.name.lower() for path in iter_project_files(project_root))
        if "test" in name
    ]


def count_candidate_tests(feature: Feature, test_file_names: Iterable[str]) -> int:
    title_key = feature.title.lower().replace(" ", "_")
    # An empty title is not a wildcard; only the feature id can match then.
    count = 0
    for name in test_file_names:
        if "test" not in name:
            continue
        if (title_key and title_key in name) or feature.id in name:
            count += 1
    return count


def _resolve(project_root: Path | None, relative: str) -> Path:
    return project_root / relative if project_root is not None else Path(relative)


def _should_ignore(path: str, ignore_globs: Iterable[str]) -> bool:
    base_name = os.path.basename(path)
    return any(fnmatch.fnmatchcase(base_name, pattern) for pattern in ignore_globs)


def _is_readable(path: Path) -> bool:
    # Never opens the file: FIFOs and device nodes would block a read.
    try:
        mode = os.stat(path).st_mode
    except OSError:
        return False
    if stat.S_ISDIR(mode):
        return os.access(path, os.R_OK | os.X_OK)
    if stat.S_ISREG(mode):
        return os.access(path, os.R_OK)
    return False


def _describe(exc: OSError) -> str:
    return exc.strerror or str(exc)


__all__ = [
    "CodeDriftOptions",
    "check_api_implementations",
    "check_file_presence",
    "check_test_coverage",
    "collect_test_file_names",
    "count_candidate_tests",
    "detect_code_drift",
]
