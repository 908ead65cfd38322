"""Drift detection: plan, code, and infra detectors plus report/SARIF output."""

from specular_drift.drift.audit import AuditInputs, run_audit
from specular_drift.drift.code_drift import CodeDriftOptions, detect_code_drift
from specular_drift.drift.findings import Finding, FindingCode, Severity
from specular_drift.drift.infra_drift import InfraDriftOptions, detect_infra_drift, is_image_allowed
from specular_drift.drift.openapi import (
    ContractLoadError,
    OpenAPIContract,
    normalize_path,
    paths_match,
    validate_api_spec,
)
from specular_drift.drift.plan_drift import detect_plan_drift
from specular_drift.drift.report import (
    Report,
    Summary,
    format_json,
    format_text,
    generate_report,
    save_report,
)
from specular_drift.drift.sarif import SarifExportError, save_sarif, to_sarif

__all__ = [
    "AuditInputs",
    "CodeDriftOptions",
    "ContractLoadError",
    "Finding",
    "FindingCode",
    "InfraDriftOptions",
    "OpenAPIContract",
    "Report",
    "SarifExportError",
    "Severity",
    "Summary",
    "detect_code_drift",
    "detect_infra_drift",
    "detect_plan_drift",
    "format_json",
    "format_text",
    "generate_report",
    "is_image_allowed",
    "normalize_path",
    "paths_match",
    "run_audit",
    "save_report",
    "save_sarif",
    "to_sarif",
    "validate_api_spec",
]
