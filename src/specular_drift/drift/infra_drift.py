"""Infra drift: check policy settings, task images, and run manifests."""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from types import MappingProxyType

from specular_drift.domain.models import Policy, RunManifest
from specular_drift.drift.findings import Finding, FindingCode, Severity
from specular_drift.observability.logging import get_logger


@dataclass(frozen=True, slots=True)
class InfraDriftOptions:
    policy: Policy | None = None
    task_images: Mapping[str, str] = field(default_factory=dict)
    run_manifests: Sequence[RunManifest] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "task_images", MappingProxyType(dict(self.task_images)))
        object.__setattr__(self, "run_manifests", tuple(self.run_manifests))


def is_image_allowed(image: str, allowlist: Iterable[str]) -> bool:
    """Match ``image`` against allowlist entries.

    Entries match exactly, as ``name:*`` (any tag of ``name``), or as
    ``prefix/*`` (anything under ``prefix/``).
    """

    for allowed in allowlist:
        if image == allowed:
            return True
        if allowed.endswith(":*") and image.startswith(allowed[:-1]):
            return True
        if allowed.endswith("/*") and image.startswith(allowed[:-1]):
            return True
    return False


def detect_infra_drift(options: InfraDriftOptions) -> list[Finding]:
    policy = options.policy
    if policy is None:
        return []

    findings: list[Finding] = []
    findings.extend(_check_task_images(options.task_images, policy))
    findings.extend(_check_execution_policy(policy))
    findings.extend(_check_run_manifests(options.run_manifests, policy))

    get_logger(__name__).debug(
        "infra_drift_checked",
        task_images=len(options.task_images),
        run_manifests=len(options.run_manifests),
        findings=len(findings),
    )
    return findings


def _check_task_images(task_images: Mapping[str, str], policy: Policy) -> list[Finding]:
    docker = policy.execution.docker
    if not docker.required:
        return []

    findings: list[Finding] = []
    for task_id in sorted(task_images):
        image = task_images[task_id]
        if not image:
            findings.append(
                Finding(
                    code=FindingCode.MISSING_DOCKER_IMAGE,
                    message=f"Task {task_id} missing Docker image (Docker required by policy)",
                    severity=Severity.ERROR,
                    location=task_id,
                )
            )
        elif not is_image_allowed(image, docker.image_allowlist):
            findings.append(
                Finding(
                    code=FindingCode.DISALLOWED_DOCKER_IMAGE,
                    message=f"Task {task_id} uses disallowed Docker image: {image}",
                    severity=Severity.ERROR,
                    location=task_id,
                )
            )
    return findings


def _check_execution_policy(policy: Policy) -> list[Finding]:
    docker = policy.execution.docker
    checks: list[tuple[bool, str, str, str]] = [
        (
            policy.execution.allow_local,
            FindingCode.ALLOW_LOCAL_EXECUTION,
            "Policy allows local execution (security risk)",
            "policy.execution.allow_local",
        ),
        (
            docker.network != "none",
            FindingCode.NETWORK_ACCESS_ENABLED,
            f"Docker network mode '{docker.network}' allows network access",
            "policy.execution.docker.network",
        ),
        (
            not docker.cpu_limit,
            FindingCode.MISSING_CPU_LIMIT,
            "No CPU limit configured (resource exhaustion risk)",
            "policy.execution.docker.cpu_limit",
        ),
        (
            not docker.mem_limit,
            FindingCode.MISSING_MEMORY_LIMIT,
            "No memory limit configured (resource exhaustion risk)",
            "policy.execution.docker.mem_limit",
        ),
        (
            not policy.tests.require_pass,
            FindingCode.TESTS_NOT_REQUIRED,
            "Tests not required to pass (quality risk)",
            "policy.tests.require_pass",
        ),
        (
            not policy.security.secrets_scan,
            FindingCode.SECRETS_SCAN_DISABLED,
            "Secrets scanning disabled (security risk)",
            "policy.security.secrets_scan",
        ),
        (
            not policy.security.dep_scan,
            FindingCode.DEPENDENCY_SCAN_DISABLED,
            "Dependency scanning disabled (security risk)",
            "policy.security.dep_scan",
        ),
    ]
    return [
        Finding(code=code, message=message, severity=Severity.WARNING, location=location)
        for triggered, code, message, location in checks
        if triggered
    ]


def _check_run_manifests(manifests: Sequence[RunManifest], policy: Policy) -> list[Finding]:
    docker = policy.execution.docker
    findings: list[Finding] = []
    for manifest in manifests:
        if manifest.exit_code != 0:
            findings.append(
                Finding(
                    code=FindingCode.EXECUTION_FAILED,
                    message=(
                        f"Step {manifest.step_id} execution failed "
                        f"with exit code {manifest.exit_code}"
                    ),
                    severity=Severity.ERROR,
                    location=manifest.step_id,
                )
            )
        if (
            docker.required
            and manifest.image
            and not is_image_allowed(manifest.image, docker.image_allowlist)
        ):
            findings.append(
                Finding(
                    code=FindingCode.DISALLOWED_EXECUTION_IMAGE,
                    message=f"Step {manifest.step_id} used disallowed Docker image: {manifest.image}",
                    severity=Severity.ERROR,
                    location=manifest.step_id,
                )
            )
    return findings


__all__ = ["InfraDriftOptions", "detect_infra_drift", "is_image_allowed"]
