"""Plan drift: compare plan tasks against the spec lock."""

from __future__ import annotations

from typing import TYPE_CHECKING

from specular_drift.drift.findings import Finding, FindingCode, Severity
from specular_drift.observability.logging import get_logger

if TYPE_CHECKING:
    from specular_drift.domain.models import Plan, SpecLock


def detect_plan_drift(lock: SpecLock, plan: Plan) -> list[Finding]:
    """Return plan-drift findings.

    Task findings follow plan order. ``MISSING_TASK`` findings follow, sorted
    by feature id. A task referencing an unknown feature gets no hash check.
    """

    findings: list[Finding] = []

    for task in plan.tasks:
        locked = lock.get(task.feature_id)
        if locked is None:
            findings.append(
                Finding(
                    code=FindingCode.UNKNOWN_FEATURE,
                    feature_id=task.feature_id,
                    message=f"Task {task.id} references unknown feature {task.feature_id}",
                    severity=Severity.ERROR,
                    location=f"task:{task.id}",
                )
            )
            continue

        if task.expected_hash != locked.hash:
            findings.append(
                Finding(
                    code=FindingCode.HASH_MISMATCH,
                    feature_id=task.feature_id,
                    message=(
                        f"Task {task.id} has mismatched hash "
                        f"(expected: {locked.hash}, got: {task.expected_hash})"
                    ),
                    severity=Severity.ERROR,
                    location=f"task:{task.id}",
                )
            )

    planned = plan.feature_ids()
    for feature_id in lock.sorted_feature_ids():
        if feature_id in planned:
            continue
        findings.append(
            Finding(
                code=FindingCode.MISSING_TASK,
                feature_id=feature_id,
                message=f"Feature {feature_id} in SpecLock has no corresponding task in plan",
                severity=Severity.WARNING,
                location=f"feature:{feature_id}",
            )
        )

    get_logger(__name__).debug(
        "plan_drift_checked",
        tasks=len(plan.tasks),
        locked_features=len(lock.features),
        findings=len(findings),
    )
    return findings


__all__ = ["detect_plan_drift"]
