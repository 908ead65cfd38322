"""
specular-drift — unit tests for code drift detection

File: tests/unit/drift/test_code_drift.py

Purpose
- Validate the file-presence, API-conformance, and test-coverage passes and
  the order in which their findings are concatenated.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from specular_drift.domain.models import (
    ApiEndpoint,
    Feature,
    LockedFeature,
    ProductSpec,
    SpecLock,
)
from specular_drift.drift import code_drift
from specular_drift.drift.code_drift import (
    CodeDriftOptions,
    check_file_presence,
    check_test_coverage,
    collect_test_file_names,
    count_candidate_tests,
    detect_code_drift,
)
from specular_drift.drift.findings import FindingCode, Severity

_CONTRACT = """\
openapi: 3.0.3
info:
  title: Users
  version: "1.0"
paths:
  /users:
    get:
      responses: {}
"""


def _write(path: Path, text: str = "x") -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


@pytest.mark.unit
class TestCoverageHeuristic:
    def test_p0_feature_without_tests_is_error(self, tmp_path: Path) -> None:
        spec = ProductSpec(features=(Feature(id="feat-001", title="User Login", priority="P0"),))
        options = CodeDriftOptions(project_root=tmp_path)

        findings = detect_code_drift(spec, SpecLock(), options)

        assert len(findings) == 1
        assert findings[0].code == FindingCode.NO_TESTS
        assert findings[0].severity == Severity.ERROR
        assert findings[0].location == "feat-001"
        assert findings[0].message == "P0 feature 'User Login' has no associated tests"

    def test_p1_without_tests_is_warning_and_p2_is_ignored(self, tmp_path: Path) -> None:
        spec = ProductSpec(
            features=(
                Feature(id="feat-1", title="Search", priority="P1"),
                Feature(id="feat-2", title="Export", priority="P2"),
            )
        )

        findings = check_test_coverage(spec, CodeDriftOptions(project_root=tmp_path))

        assert [(item.feature_id, item.severity) for item in findings] == [
            ("feat-1", Severity.WARNING)
        ]

    def test_title_match_satisfies_coverage(self, tmp_path: Path) -> None:
        _write(tmp_path / "tests" / "test_user_login.py")
        spec = ProductSpec(features=(Feature(id="feat-001", title="User Login", priority="P0"),))

        assert check_test_coverage(spec, CodeDriftOptions(project_root=tmp_path)) == []

    def test_feature_id_match_satisfies_coverage(self, tmp_path: Path) -> None:
        _write(tmp_path / "feat-007_test.go")
        spec = ProductSpec(features=(Feature(id="feat-007", title="Billing", priority="P0"),))

        assert check_test_coverage(spec, CodeDriftOptions(project_root=tmp_path)) == []

    def test_nested_files_are_found_and_names_lowercased(self, tmp_path: Path) -> None:
        _write(tmp_path / "a" / "b" / "c" / "Test_Billing.py")
        spec = ProductSpec(features=(Feature(id="feat-9", title="Billing", priority="P0"),))

        assert collect_test_file_names(tmp_path) == ["test_billing.py"]
        assert check_test_coverage(spec, CodeDriftOptions(project_root=tmp_path)) == []

    def test_name_without_test_substring_does_not_count(self, tmp_path: Path) -> None:
        _write(tmp_path / "billing_spec.py")
        spec = ProductSpec(features=(Feature(id="feat-9", title="Billing", priority="P0"),))

        findings = check_test_coverage(spec, CodeDriftOptions(project_root=tmp_path))

        assert [item.code for item in findings] == [FindingCode.NO_TESTS]

    def test_no_project_root_means_no_candidates(self) -> None:
        spec = ProductSpec(features=(Feature(id="feat-1", title="Anything", priority="P0"),))

        assert collect_test_file_names(None) == []
        assert len(check_test_coverage(spec, CodeDriftOptions())) == 1

    def test_precollected_candidates_skip_walk(self) -> None:
        spec = ProductSpec(features=(Feature(id="feat-1", title="Search", priority="P0"),))

        findings = check_test_coverage(
            spec,
            CodeDriftOptions(project_root=Path("/does/not/exist")),
            candidate_names=["test_search.py"],
        )

        assert findings == []

    def test_count_candidate_tests_rules(self) -> None:
        feature = Feature(id="feat-1", title="User Login")
        names = ["test_user_login.py", "feat-1_test.py", "user_login.py", "readme_test.md"]

        assert count_candidate_tests(feature, names) == 2

    def test_empty_title_does_not_match_every_file(self) -> None:
        feature = Feature(id="feat-x", title="")

        assert count_candidate_tests(feature, ["test_anything.py"]) == 0


@pytest.mark.unit
class TestFilePresence:
    def test_missing_locked_test_path(self, tmp_path: Path) -> None:
        spec = ProductSpec(features=(Feature(id="feat-1", title="A"),))
        lock = SpecLock(
            features={"feat-1": LockedFeature(hash="h", test_paths=("tests/test_a.py",))}
        )

        findings = check_file_presence(spec, lock, CodeDriftOptions(project_root=tmp_path))

        assert len(findings) == 1
        assert findings[0].code == FindingCode.MISSING_TEST
        assert findings[0].severity == Severity.ERROR
        assert findings[0].location == "tests/test_a.py"
        assert findings[0].message == "Test file missing: tests/test_a.py"

    def test_present_files_are_clean(self, tmp_path: Path) -> None:
        _write(tmp_path / "tests" / "test_a.py")
        _write(tmp_path / "src" / "a.py")
        spec = ProductSpec(features=(Feature(id="feat-1", title="A", trace=("src/a.py",)),))
        lock = SpecLock(
            features={"feat-1": LockedFeature(hash="h", test_paths=("tests/test_a.py",))}
        )

        assert check_file_presence(spec, lock, CodeDriftOptions(project_root=tmp_path)) == []

    def test_missing_trace_and_ignore_globs(self, tmp_path: Path) -> None:
        spec = ProductSpec(
            features=(
                Feature(
                    id="feat-1",
                    title="A",
                    trace=("src/missing.py", "docs/notes.md", "build/gen.lock"),
                ),
            )
        )
        lock = SpecLock(features={"feat-1": LockedFeature(hash="h")})
        options = CodeDriftOptions(project_root=tmp_path, ignore_globs=("*.md", "*.lock"))

        findings = check_file_presence(spec, lock, options)

        assert [(item.code, item.location) for item in findings] == [
            (FindingCode.MISSING_TRACE, "src/missing.py")
        ]

    def test_ignore_globs_do_not_apply_to_locked_tests(self, tmp_path: Path) -> None:
        spec = ProductSpec(features=(Feature(id="feat-1", title="A"),))
        lock = SpecLock(features={"feat-1": LockedFeature(hash="h", test_paths=("t.md",))})
        options = CodeDriftOptions(project_root=tmp_path, ignore_globs=("*.md",))

        findings = check_file_presence(spec, lock, options)

        assert [item.code for item in findings] == [FindingCode.MISSING_TEST]

    def test_features_absent_from_lock_are_skipped(self, tmp_path: Path) -> None:
        spec = ProductSpec(features=(Feature(id="feat-1", title="A", trace=("nope.py",)),))

        assert check_file_presence(spec, SpecLock(), CodeDriftOptions(project_root=tmp_path)) == []

    def test_directory_as_test_path_is_hash_error(self, tmp_path: Path) -> None:
        (tmp_path / "tests").mkdir()
        spec = ProductSpec(features=(Feature(id="feat-1", title="A"),))
        lock = SpecLock(features={"feat-1": LockedFeature(hash="h", test_paths=("tests",))})

        findings = check_file_presence(spec, lock, CodeDriftOptions(project_root=tmp_path))

        assert [item.code for item in findings] == [FindingCode.HASH_ERROR]
        assert findings[0].severity == Severity.WARNING
        assert findings[0].message.startswith("Cannot hash file tests: ")

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="named pipes unavailable")
    def test_fifo_trace_is_trace_error_without_blocking(self, tmp_path: Path) -> None:
        os.mkfifo(tmp_path / "pipe.go")
        spec = ProductSpec(
            features=(
                Feature(
                    id="feat-1",
                    title="Users",
                    priority="P0",
                    api=(ApiEndpoint(method="GET", path="/users"),),
                    trace=("pipe.go",),
                ),
            )
        )
        lock = SpecLock(features={"feat-1": LockedFeature(hash="h")})
        options = CodeDriftOptions(project_root=tmp_path, api_spec_path="openapi.yaml")

        findings = detect_code_drift(spec, lock, options)

        trace_errors = [item for item in findings if item.code == FindingCode.TRACE_ERROR]
        assert [(item.location, item.severity) for item in trace_errors] == [
            ("pipe.go", Severity.WARNING)
        ]
        assert trace_errors[0].message == "Cannot access traced file pipe.go"
        assert [item.code for item in findings] == [
            FindingCode.TRACE_ERROR,
            FindingCode.MISSING_API_SPEC,
            FindingCode.NO_TESTS,
        ]

    def test_unreadable_trace_is_trace_error(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        _write(tmp_path / "src" / "users.py")
        _write(tmp_path / "src" / "orders.py")
        spec = ProductSpec(
            features=(
                Feature(id="feat-1", title="A", trace=("src/users.py", "src/orders.py")),
            )
        )
        lock = SpecLock(features={"feat-1": LockedFeature(hash="h")})
        real_access = os.access

        def _deny_users(path: object, mode: int, **kwargs: object) -> bool:
            if str(path).endswith("users.py"):
                return False
            return real_access(path, mode, **kwargs)

        monkeypatch.setattr(code_drift.os, "access", _deny_users)

        findings = check_file_presence(spec, lock, CodeDriftOptions(project_root=tmp_path))

        assert [(item.code, item.location, item.severity) for item in findings] == [
            (FindingCode.TRACE_ERROR, "src/users.py", Severity.WARNING)
        ]

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="named pipes unavailable")
    def test_fifo_test_path_is_hash_error_without_blocking(self, tmp_path: Path) -> None:
        os.mkfifo(tmp_path / "test_pipe.py")
        spec = ProductSpec(features=(Feature(id="feat-1", title="A"),))
        lock = SpecLock(
            features={"feat-1": LockedFeature(hash="h", test_paths=("test_pipe.py",))}
        )

        findings = check_file_presence(spec, lock, CodeDriftOptions(project_root=tmp_path))

        assert [(item.code, item.message) for item in findings] == [
            (FindingCode.HASH_ERROR, "Cannot hash file test_pipe.py: not a regular file")
        ]

    def test_traced_directory_is_accepted(self, tmp_path: Path) -> None:
        (tmp_path / "pkg").mkdir()
        spec = ProductSpec(features=(Feature(id="feat-1", title="A", trace=("pkg",)),))
        lock = SpecLock(features={"feat-1": LockedFeature(hash="h")})

        assert check_file_presence(spec, lock, CodeDriftOptions(project_root=tmp_path)) == []


@pytest.mark.unit
class TestApiPass:
    def _spec(self, *endpoints: ApiEndpoint) -> ProductSpec:
        return ProductSpec(features=(Feature(id="feat-1", title="Users", api=endpoints),))

    def test_skipped_without_contract_path(self, tmp_path: Path) -> None:
        spec = self._spec(ApiEndpoint(method="GET", path="/users"))

        assert detect_code_drift(spec, SpecLock(), CodeDriftOptions(project_root=tmp_path)) == []

    def test_missing_contract_file(self, tmp_path: Path) -> None:
        spec = self._spec(ApiEndpoint(method="GET", path="/users"))
        options = CodeDriftOptions(project_root=tmp_path, api_spec_path="api/openapi.yaml")

        findings = detect_code_drift(spec, SpecLock(), options)

        assert [(item.code, item.location) for item in findings] == [
            (FindingCode.MISSING_API_SPEC, "api/openapi.yaml")
        ]
        assert findings[0].feature_id == ""

    def test_endpoint_checks_against_contract(self, tmp_path: Path) -> None:
        _write(tmp_path / "openapi.yaml", _CONTRACT)
        spec = self._spec(
            ApiEndpoint(method="GET", path="/users"),
            ApiEndpoint(method="POST", path="/users"),
            ApiEndpoint(method="GET", path="/orders"),
        )
        options = CodeDriftOptions(project_root=tmp_path, api_spec_path="openapi.yaml")

        findings = detect_code_drift(spec, SpecLock(), options)

        assert [(item.code, item.location) for item in findings] == [
            (FindingCode.MISSING_API_METHOD, "openapi.yaml:/users"),
            (FindingCode.MISSING_API_PATH, "openapi.yaml:/orders"),
        ]

    def test_pass_order_is_presence_then_api_then_coverage(self, tmp_path: Path) -> None:
        spec = ProductSpec(
            features=(
                Feature(
                    id="feat-1",
                    title="Users",
                    priority="P0",
                    api=(ApiEndpoint(method="GET", path="/users"),),
                    trace=("src/users.py",),
                ),
            )
        )
        lock = SpecLock(features={"feat-1": LockedFeature(hash="h")})
        options = CodeDriftOptions(project_root=tmp_path, api_spec_path="openapi.yaml")

        findings = detect_code_drift(spec, lock, options)

        assert [item.code for item in findings] == [
            FindingCode.MISSING_TRACE,
            FindingCode.MISSING_API_SPEC,
            FindingCode.NO_TESTS,
        ]
