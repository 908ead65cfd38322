"""Run the three detectors over loaded inputs and aggregate a report."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field

from specular_drift.domain.models import Plan, Policy, ProductSpec, RunManifest, SpecLock
from specular_drift.drift.code_drift import CodeDriftOptions, detect_code_drift
from specular_drift.drift.findings import Finding
from specular_drift.drift.infra_drift import InfraDriftOptions, detect_infra_drift
from specular_drift.drift.plan_drift import detect_plan_drift
from specular_drift.drift.report import Report, generate_report
from specular_drift.observability.logging import get_logger


@dataclass(frozen=True, slots=True)
class AuditInputs:
    spec: ProductSpec | None = None
    lock: SpecLock | None = None
    plan: Plan | None = None
    policy: Policy | None = None
    task_images: Mapping[str, str] = field(default_factory=dict)
    run_manifests: Sequence[RunManifest] = ()
    code_options: CodeDriftOptions = field(default_factory=CodeDriftOptions)


def run_audit(inputs: AuditInputs) -> Report:
    """Detectors run independently; a detector whose inputs are absent contributes nothing."""

    plan_findings: list[Finding] = []
    if inputs.lock is not None and inputs.plan is not None:
        plan_findings = detect_plan_drift(inputs.lock, inputs.plan)

    code_findings: list[Finding] = []
    if inputs.spec is not None and inputs.lock is not None:
        code_findings = detect_code_drift(inputs.spec, inputs.lock, inputs.code_options)

    infra_findings = detect_infra_drift(
        InfraDriftOptions(
            policy=inputs.policy,
            task_images=inputs.task_images,
            run_manifests=inputs.run_manifests,
        )
    )

    report = generate_report(plan_findings, code_findings, infra_findings)
    get_logger(__name__).info(
        "drift_audit_completed",
        plan_checked=inputs.lock is not None and inputs.plan is not None,
        code_checked=inputs.spec is not None and inputs.lock is not None,
        infra_checked=inputs.policy is not None,
        summary=report.summary.to_dict(),
    )
    return report


__all__ = ["AuditInputs", "run_audit"]
