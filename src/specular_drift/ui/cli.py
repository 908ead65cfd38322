"""Command-line interface router for specular-drift."""

from __future__ import annotations

import argparse
import json
import sys
import uuid
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, Final

from specular_drift.config import (
    ConfigLoadError,
    ConfigValidationError,
    dump_effective_config,
    load_config,
)
from specular_drift.config.schema import FAIL_ON_VALUES, FORMAT_VALUES, LOG_LEVEL_VALUES
from specular_drift.drift.audit import AuditInputs, run_audit
from specular_drift.drift.code_drift import CodeDriftOptions
from specular_drift.drift.openapi import ContractLoadError, OpenAPIContract
from specular_drift.drift.report import Report, format_json, format_text
from specular_drift.drift.sarif import render_sarif, save_sarif, to_sarif
from specular_drift.observability.logging import get_logger, setup_logging
from specular_drift.spec_ingestion import (
    load_plan,
    load_policy,
    load_product_spec,
    load_run_manifests,
    load_spec_lock,
    load_task_images,
)
from specular_drift.utils.fs import atomic_write

EXIT_SUCCESS: Final[int] = 0
EXIT_DRIFT: Final[int] = 1
EXIT_USAGE: Final[int] = 2
EXIT_OUTPUT: Final[int] = 3

# CLI flag -> dotted config key; path flags are resolved against the cwd.
_PATH_FLAGS: Final[dict[str, str]] = {
    "spec": "paths.spec",
    "lock": "paths.lock",
    "plan": "paths.plan",
    "policy": "paths.policy",
    "manifests": "paths.manifests",
    "task_images": "paths.task_images",
    "project_root": "paths.project_root",
    "output": "paths.output",
}


@dataclass(frozen=True, slots=True)
class CLIError(RuntimeError):
    """Typed CLI failure with an explicit process exit code."""

    message: str
    exit_code: int = EXIT_USAGE

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Parser
# ---------------------------------------------------------------------------


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="specdrift",
        description=(
            "specular-drift — detect drift between a locked spec, its plan, the code, "
            "and execution policy.\n\n"
            "Common workflows:\n"
            "  specdrift check                    Audit the current project\n"
            "  specdrift check --format sarif     Emit SARIF 2.1.0 for code scanning\n"
            "  specdrift endpoints --api-spec F   List endpoints declared in a contract\n"
            "  specdrift config                   Show effective configuration\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--config",
        dest="config_path",
        default=None,
        help="Path to specdrift TOML config (default: ./specdrift.toml if present).",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # check ---------------------------------------------------------------
    check_parser = subparsers.add_parser(
        "check",
        parents=[common],
        help="Run a drift audit and report findings",
        description=(
            "Compare spec, lock, plan, project tree, API contract, and policy.\n"
            "Exit code 1 when findings reach the --fail-on threshold.\n\n"
            "Examples:\n"
            "  specdrift check\n"
            "  specdrift check --plan plan.json --fail-on warning\n"
            "  specdrift check --format sarif --output drift.sarif\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    check_parser.add_argument("--spec", default=None, help="Product spec (YAML/JSON)")
    check_parser.add_argument("--lock", default=None, help="Spec lock (JSON/YAML)")
    check_parser.add_argument("--plan", default=None, help="Execution plan (JSON/YAML)")
    check_parser.add_argument("--policy", default=None, help="Execution policy (YAML/JSON)")
    check_parser.add_argument(
        "--manifests", default=None, help="Run manifest file or directory of *.json manifests"
    )
    check_parser.add_argument(
        "--task-images", default=None, help="Mapping of task id to Docker image (YAML/JSON)"
    )
    check_parser.add_argument(
        "--api-spec", default=None, help="API contract path, relative to the project root"
    )
    check_parser.add_argument("--project-root", default=None, help="Project root directory")
    check_parser.add_argument(
        "--ignore",
        dest="ignore_globs",
        action="append",
        default=None,
        metavar="GLOB",
        help="Base-name glob for traced files to skip (repeatable)",
    )
    check_parser.add_argument("--format", choices=FORMAT_VALUES, default=None)
    check_parser.add_argument("--fail-on", choices=FAIL_ON_VALUES, default=None)
    check_parser.add_argument("--output", "-o", default=None, help="Write report to this file")
    check_parser.add_argument(
        "--log-level", choices=LOG_LEVEL_VALUES, default=None, help="stderr/file log level"
    )
    check_parser.set_defaults(handler=_cmd_check)

    # endpoints -----------------------------------------------------------
    endpoints_parser = subparsers.add_parser(
        "endpoints",
        help="List endpoints declared in an API contract",
        description=(
            "Load and validate an OpenAPI 3.x contract, then list its paths and methods.\n\n"
            "Examples:\n"
            "  specdrift endpoints --api-spec openapi.yaml\n"
            "  specdrift endpoints --api-spec openapi.json --json\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    endpoints_parser.add_argument("--api-spec", required=True, help="Path to the contract file")
    endpoints_parser.add_argument("--json", action="store_true", help="Emit JSON output")
    endpoints_parser.set_defaults(handler=_cmd_endpoints)

    # config --------------------------------------------------------------
    config_parser = subparsers.add_parser(
        "config",
        parents=[common],
        help="Show effective configuration",
        description=(
            "Display the effective config after merging defaults, file, and env.\n\n"
            "Examples:\n"
            "  specdrift config\n"
            "  SPECDRIFT_DRIFT_FAIL_ON=warning specdrift config\n"
        ),
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    config_parser.set_defaults(handler=_cmd_config)

    return parser


# ---------------------------------------------------------------------------
# Entrypoints
# ---------------------------------------------------------------------------


def run_cli(argv: Sequence[str] | None = None) -> int:
    """Parse argv, route to a command handler, and return process exit code."""

    parser = build_parser()
    namespace = parser.parse_args(list(argv) if argv is not None else None)
    handler = getattr(namespace, "handler", None)
    if not callable(handler):
        parser.print_help(sys.stderr)
        return EXIT_USAGE

    try:
        result = handler(namespace)
    except CLIError as exc:
        print(f"error: {exc}", file=sys.stderr)
        return exc.exit_code
    return int(result)


# ---------------------------------------------------------------------------
# Command handlers
# ---------------------------------------------------------------------------


def _cmd_check(args: argparse.Namespace) -> int:
    overrides = _check_overrides(args)
    config = _load_effective_config(args, overrides)
    paths: Mapping[str, str] = config["paths"]
    drift_cfg: Mapping[str, Any] = config["drift"]

    handle = setup_logging(config["observability"], run_id=_new_run_id())
    try:
        explicit = {name for name in _PATH_FLAGS if getattr(args, name, None) is not None}
        inputs = AuditInputs(
            spec=_optional_input(paths, "spec", explicit, load_product_spec),
            lock=_optional_input(paths, "lock", explicit, load_spec_lock),
            plan=_optional_input(paths, "plan", explicit, load_plan),
            policy=_optional_input(paths, "policy", explicit, load_policy),
            task_images=_optional_input(paths, "task_images", explicit, load_task_images) or {},
            run_manifests=_optional_input(paths, "manifests", explicit, load_run_manifests) or (),
            code_options=CodeDriftOptions(
                project_root=Path(paths["project_root"]),
                api_spec_path=paths["api_spec"],
                ignore_globs=tuple(drift_cfg["ignore_globs"]),
            ),
        )
        _require_directory(Path(paths["project_root"]))

        report = run_audit(inputs)
        _emit_report(report, drift_cfg["format"], paths["output"])
        return _exit_code_for(report, drift_cfg["fail_on"])
    finally:
        handle.shutdown()


def _cmd_endpoints(args: argparse.Namespace) -> int:
    contract_path = Path(args.api_spec)
    if not contract_path.is_file():
        raise CLIError(f"API contract not found: {contract_path}")
    try:
        contract = OpenAPIContract.load(contract_path)
    except ContractLoadError as exc:
        raise CLIError(f"invalid API contract {contract_path}: {exc}") from exc

    summary = contract.endpoint_summary()
    if args.json:
        print(json.dumps(summary, sort_keys=True, indent=2, ensure_ascii=False))
        return EXIT_SUCCESS
    for path in sorted(summary):
        print(f"{' '.join(summary[path]):<24} {path}")
    return EXIT_SUCCESS


def _cmd_config(args: argparse.Namespace) -> int:
    config = _load_effective_config(args, {})
    print(dump_effective_config(config))
    return EXIT_SUCCESS


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _check_overrides(args: argparse.Namespace) -> dict[str, object]:
    overrides: dict[str, object] = {}
    for flag, key in _PATH_FLAGS.items():
        raw = getattr(args, flag, None)
        if raw is not None:
            overrides[key] = Path(raw).expanduser().resolve().as_posix()
    if args.api_spec is not None:
        overrides["paths.api_spec"] = args.api_spec
    if args.ignore_globs is not None:
        overrides["drift.ignore_globs"] = list(args.ignore_globs)
    if args.format is not None:
        overrides["drift.format"] = args.format
    if args.fail_on is not None:
        overrides["drift.fail_on"] = args.fail_on
    if args.log_level is not None:
        overrides["observability.log_level"] = args.log_level
    return overrides


def _load_effective_config(
    args: argparse.Namespace, overrides: Mapping[str, object]
) -> dict[str, Any]:
    config_path = getattr(args, "config_path", None)
    try:
        return load_config(config_path, cli_overrides=overrides)
    except (ConfigLoadError, ConfigValidationError) as exc:
        raise CLIError(str(exc), exit_code=EXIT_USAGE) from exc


def _optional_input(
    paths: Mapping[str, str],
    key: str,
    explicit: set[str],
    loader: Any,
) -> Any:
    """Load ``paths[key]``; a configured-but-absent file is skipped unless passed as a flag."""

    raw = paths.get(key, "")
    if not raw:
        return None
    candidate = Path(raw)
    if not candidate.exists() and key not in explicit:
        get_logger(__name__).info("input_skipped", input=key, path=raw, reason="not found")
        return None
    return loader(candidate)


def _require_directory(path: Path) -> None:
    if not path.is_dir():
        raise CLIError(f"project root is not a directory: {path}", exit_code=EXIT_USAGE)


def _emit_report(report: Report, output_format: str, output: str) -> None:
    """Render to stdout, or to ``output`` when set. SARIF write failures propagate typed."""

    if output_format == "sarif":
        document = to_sarif(report)
        if output:
            save_sarif(document, output)
        else:
            sys.stdout.write(render_sarif(document))
        return

    rendered = format_json(report) if output_format == "json" else format_text(report)
    if not output:
        sys.stdout.write(rendered)
        return
    try:
        atomic_write(Path(output), rendered)
    except OSError as exc:
        raise CLIError(f"cannot write report to {output}: {exc}", exit_code=EXIT_OUTPUT) from exc


def _exit_code_for(report: Report, fail_on: str) -> int:
    if fail_on == "never":
        return EXIT_SUCCESS
    if report.has_errors():
        return EXIT_DRIFT
    if fail_on == "warning" and report.has_warnings():
        return EXIT_DRIFT
    return EXIT_SUCCESS


def _new_run_id() -> str:
    stamp = datetime.now(UTC).strftime("%Y%m%dT%H%M%SZ")
    return f"{stamp}-{uuid.uuid4().hex[:8]}"


__all__ = [
    "CLIError",
    "EXIT_DRIFT",
    "EXIT_OUTPUT",
    "EXIT_SUCCESS",
    "EXIT_USAGE",
    "build_parser",
    "run_cli",
]
