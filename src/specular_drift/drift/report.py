"""Report aggregation plus text/JSON rendering of drift findings."""

from __future__ import annotations

import json
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from specular_drift.drift.findings import Finding, Severity
from specular_drift.utils.fs import atomic_write

_SECTIONS: tuple[tuple[str, str], ...] = (
    ("plan_drift", "Plan drift"),
    ("code_drift", "Code drift"),
    ("infra_drift", "Infra drift"),
)


@dataclass(frozen=True, slots=True)
class Summary:
    total_findings: int = 0
    errors: int = 0
    warnings: int = 0
    info: int = 0

    @classmethod
    def from_findings(cls, findings: Iterable[Finding]) -> Summary:
        total = errors = warnings = info = 0
        for finding in findings:
            total += 1
            if finding.severity == Severity.ERROR:
                errors += 1
            elif finding.severity == Severity.WARNING:
                warnings += 1
            elif finding.severity == Severity.INFO:
                info += 1
        return cls(total_findings=total, errors=errors, warnings=warnings, info=info)

    def to_dict(self) -> dict[str, int]:
        return {
            "total_findings": self.total_findings,
            "errors": self.errors,
            "warnings": self.warnings,
            "info": self.info,
        }


@dataclass(frozen=True, slots=True)
class Report:
    """Findings grouped by detector, with severity totals."""

    plan_drift: tuple[Finding, ...] = ()
    code_drift: tuple[Finding, ...] = ()
    infra_drift: tuple[Finding, ...] = ()
    summary: Summary = Summary()

    def all_findings(self) -> tuple[Finding, ...]:
        return (*self.plan_drift, *self.code_drift, *self.infra_drift)

    def is_clean(self) -> bool:
        return self.summary.total_findings == 0

    def has_errors(self) -> bool:
        return self.summary.errors > 0

    def has_warnings(self) -> bool:
        return self.summary.warnings > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "plan_drift": [finding.to_dict() for finding in self.plan_drift],
            "code_drift": [finding.to_dict() for finding in self.code_drift],
            "infra_drift": [finding.to_dict() for finding in self.infra_drift],
            "summary": self.summary.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Report:
        """Rebuild a report; the summary is recomputed rather than trusted."""

        if not isinstance(data, Mapping):
            raise ValueError(f"Report: expected object, got {type(data).__name__}")
        groups: dict[str, tuple[Finding, ...]] = {}
        for key, _ in _SECTIONS:
            raw = data.get(key) or []
            if not isinstance(raw, list):
                raise ValueError(f"Report.{key}: expected array, got {type(raw).__name__}")
            groups[key] = tuple(Finding.from_dict(item) for item in raw)
        return generate_report(groups["plan_drift"], groups["code_drift"], groups["infra_drift"])

    def to_json(self, *, indent: int | None = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)

    def to_sarif(self) -> dict[str, Any]:
        from specular_drift.drift.sarif import to_sarif

        return to_sarif(self)


def generate_report(
    plan_findings: Iterable[Finding],
    code_findings: Iterable[Finding],
    infra_findings: Iterable[Finding],
) -> Report:
    plan_drift = tuple(plan_findings)
    code_drift = tuple(code_findings)
    infra_drift = tuple(infra_findings)
    return Report(
        plan_drift=plan_drift,
        code_drift=code_drift,
        infra_drift=infra_drift,
        summary=Summary.from_findings((*plan_drift, *code_drift, *infra_drift)),
    )


def format_text(report: Report) -> str:
    """Human-readable rendering grouped by detector."""

    lines: list[str] = []
    for key, title in _SECTIONS:
        findings: tuple[Finding, ...] = getattr(report, key)
        if not findings:
            continue
        lines.append(f"{title} ({len(findings)}):")
        for finding in findings:
            where = f" [{finding.location}]" if finding.location else ""
            lines.append(f"  {finding.severity.upper():<7} {finding.code}: {finding.message}{where}")
        lines.append("")

    summary = report.summary
    if report.is_clean():
        lines.append("No drift detected.")
    else:
        lines.append(
            f"{summary.total_findings} finding(s): {summary.errors} error(s), "
            f"{summary.warnings} warning(s), {summary.info} info"
        )
    return "\n".join(lines) + "\n"


def format_json(report: Report) -> str:
    return report.to_json() + "\n"


def save_report(report: Report, path: str | Path) -> None:
    """Write the JSON rendering atomically; ``OSError`` propagates."""

    atomic_write(Path(path), format_json(report))


__all__ = [
    "Report",
    "Summary",
    "format_json",
    "format_text",
    "generate_report",
    "save_report",
]
