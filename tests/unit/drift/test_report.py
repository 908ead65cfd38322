"""
specular-drift — unit tests for report aggregation and rendering

File: tests/unit/drift/test_report.py

Purpose
- Validate severity totals, status predicates, text/JSON rendering, and the
  persisted JSON form of a report.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from specular_drift.drift.findings import Finding, FindingCode, Severity
from specular_drift.drift.report import (
    Report,
    Summary,
    format_json,
    format_text,
    generate_report,
    save_report,
)

_ERROR = Finding(
    code=FindingCode.HASH_MISMATCH,
    message="Task t has mismatched hash (expected: a, got: b)",
    severity=Severity.ERROR,
    feature_id="feat-1",
    location="task:t",
)
_WARNING = Finding(
    code=FindingCode.MISSING_TASK,
    message="Feature feat-2 in SpecLock has no corresponding task in plan",
    severity=Severity.WARNING,
    feature_id="feat-2",
)
_INFO = Finding(code="CUSTOM_NOTE", message="note", severity=Severity.INFO)


@pytest.mark.unit
class TestSummary:
    def test_counts_by_severity(self) -> None:
        unknown = Finding(code="X", message="x", severity="critical")

        summary = Summary.from_findings([_ERROR, _WARNING, _INFO, unknown, _ERROR])

        assert summary == Summary(total_findings=5, errors=2, warnings=1, info=1)

    def test_generate_report_groups_and_totals(self) -> None:
        report = generate_report([_ERROR], [], [_WARNING, _INFO])

        assert report.plan_drift == (_ERROR,)
        assert report.code_drift == ()
        assert report.infra_drift == (_WARNING, _INFO)
        assert report.all_findings() == (_ERROR, _WARNING, _INFO)
        assert report.summary.to_dict() == {
            "total_findings": 3,
            "errors": 1,
            "warnings": 1,
            "info": 1,
        }

    @pytest.mark.parametrize(
        ("findings", "clean", "errors", "warnings"),
        [
            ((), True, False, False),
            ((_INFO,), False, False, False),
            ((_WARNING,), False, False, True),
            ((_ERROR, _WARNING), False, True, True),
        ],
    )
    def test_status_predicates(
        self,
        findings: tuple[Finding, ...],
        clean: bool,
        errors: bool,
        warnings: bool,
    ) -> None:
        report = generate_report([], findings, [])

        assert report.is_clean() is clean
        assert report.has_errors() is errors
        assert report.has_warnings() is warnings


@pytest.mark.unit
class TestRendering:
    def test_json_shape_uses_empty_arrays_and_omits_empty_location(self) -> None:
        payload = json.loads(format_json(generate_report([], [_WARNING], [])))

        assert payload["plan_drift"] == []
        assert payload["infra_drift"] == []
        assert payload["code_drift"] == [
            {
                "code": "MISSING_TASK",
                "feature_id": "feat-2",
                "message": "Feature feat-2 in SpecLock has no corresponding task in plan",
                "severity": "warning",
            }
        ]
        assert payload["summary"]["total_findings"] == 1

    def test_from_dict_recomputes_summary(self) -> None:
        original = generate_report([_ERROR], [_WARNING], [_INFO])
        payload = original.to_dict()
        payload["summary"] = {"total_findings": 99, "errors": 0, "warnings": 0, "info": 0}

        reloaded = Report.from_dict(payload)

        assert reloaded == original

    def test_from_dict_rejects_malformed_groups(self) -> None:
        with pytest.raises(ValueError, match="plan_drift"):
            Report.from_dict({"plan_drift": {"code": "X"}})
        with pytest.raises(ValueError, match="Finding.code"):
            Report.from_dict({"code_drift": [{"message": "m"}]})

    def test_text_rendering(self) -> None:
        text = format_text(generate_report([_ERROR], [], [_WARNING]))

        assert text.splitlines() == [
            "Plan drift (1):",
            "  ERROR   HASH_MISMATCH: Task t has mismatched hash (expected: a, got: b) [task:t]",
            "",
            "Infra drift (1):",
            "  WARNING MISSING_TASK: Feature feat-2 in SpecLock has no corresponding task in plan",
            "",
            "2 finding(s): 1 error(s), 1 warning(s), 0 info",
        ]

    def test_text_rendering_clean(self) -> None:
        assert format_text(Report()) == "No drift detected.\n"

    def test_save_report_writes_json(self, tmp_path: Path) -> None:
        report = generate_report([_ERROR], [], [])
        target = tmp_path / "report.json"

        save_report(report, target)

        assert Report.from_dict(json.loads(target.read_text(encoding="utf-8"))) == report

    def test_save_report_requires_parent_directory(self, tmp_path: Path) -> None:
        with pytest.raises(OSError):
            save_report(Report(), tmp_path / "missing" / "report.json")
