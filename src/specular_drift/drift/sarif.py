"""SARIF 2.1.0 projection of a drift report."""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING, Any

from specular_drift import __version__
from specular_drift.constants import (
    SARIF_SCHEMA_URI,
    SARIF_VERSION,
    TOOL_INFORMATION_URI,
    TOOL_NAME,
)
from specular_drift.drift.findings import Severity
from specular_drift.utils.fs import atomic_write

if TYPE_CHECKING:
    from specular_drift.drift.findings import Finding
    from specular_drift.drift.report import Report


class SarifExportError(RuntimeError):
    """Raised when a SARIF document cannot be serialized or written."""


def sarif_level(severity: str) -> str:
    if severity == Severity.ERROR:
        return "error"
    if severity == Severity.INFO:
        return "note"
    return "warning"


def _result(finding: Finding) -> dict[str, Any]:
    result: dict[str, Any] = {
        "ruleId": finding.code,
        "level": sarif_level(finding.severity),
        "message": {"text": finding.message},
    }
    if finding.location:
        result["locations"] = [
            {"physicalLocation": {"artifactLocation": {"uri": finding.location}}}
        ]
    return result


def to_sarif(report: Report) -> dict[str, Any]:
    """Build the SARIF document: one run, one result per finding in report order."""

    return {
        "version": SARIF_VERSION,
        "$schema": SARIF_SCHEMA_URI,
        "runs": [
            {
                "tool": {
                    "driver": {
                        "name": TOOL_NAME,
                        "informationUri": TOOL_INFORMATION_URI,
                        "semanticVersion": __version__,
                    }
                },
                "results": [_result(finding) for finding in report.all_findings()],
            }
        ],
    }


def render_sarif(document: dict[str, Any]) -> str:
    try:
        return json.dumps(document, indent=2, ensure_ascii=False, allow_nan=False) + "\n"
    except (TypeError, ValueError) as exc:
        raise SarifExportError(f"marshal SARIF: {exc}") from exc


def save_sarif(document: dict[str, Any], path: str | Path) -> None:
    """Serialize ``document`` and write it atomically. Failures are not retried."""

    payload = render_sarif(document)
    try:
        atomic_write(Path(path), payload)
    except OSError as exc:
        raise SarifExportError(f"write SARIF file {path}: {exc}") from exc


__all__ = ["SarifExportError", "render_sarif", "sarif_level", "save_sarif", "to_sarif"]
