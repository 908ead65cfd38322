"""
specular-drift — unit tests for config loader

File: tests/unit/config/test_loader.py

Purpose
- Validate deterministic config loading from defaults, TOML, env overrides, and CLI overrides.

What this test file should cover
- Precedence: CLI > env > file > defaults.
- Env var path mapping and type coercion.
- Path normalization relative to the config file.
- Deterministic effective config dumping.
"""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from specular_drift.config.loader import (
    ConfigLoadError,
    dump_effective_config,
    load_config,
    normalize_paths,
)
from specular_drift.config.schema import ConfigValidationError


def _write_config(path: Path, text: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text, encoding="utf-8")
    return path


def test_loader_precedence_default_file_env_cli(tmp_path: Path) -> None:
    default_path = _write_config(tmp_path / "default.toml", "")
    config_path = _write_config(
        tmp_path / "specdrift.toml",
        """
[drift]
fail_on = "warning"
""".strip(),
    )

    default_loaded = load_config(default_path, environ={})
    file_loaded = load_config(config_path, environ={})
    env_loaded = load_config(config_path, environ={"SPECDRIFT_DRIFT_FAIL_ON": "never"})
    cli_loaded = load_config(
        config_path,
        environ={"SPECDRIFT_DRIFT_FAIL_ON": "never"},
        cli_overrides={"drift.fail_on": "error"},
    )

    assert default_loaded["drift"]["fail_on"] == "error"
    assert file_loaded["drift"]["fail_on"] == "warning"
    assert env_loaded["drift"]["fail_on"] == "never"
    assert cli_loaded["drift"]["fail_on"] == "error"


def test_env_coercion_for_bool_list_and_level(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "specdrift.toml", "")

    loaded = load_config(
        config_path,
        environ={
            "SPECDRIFT_OBSERVABILITY_LOG_TO_FILE": "yes",
            "SPECDRIFT_OBSERVABILITY_LOG_LEVEL": "debug",
            "SPECDRIFT_DRIFT_IGNORE_GLOBS": "*.md, *.lock,,",
            "SPECDRIFT_UNRELATED": "ignored",
        },
    )

    assert loaded["observability"]["log_to_file"] is True
    assert loaded["observability"]["log_level"] == "DEBUG"
    assert loaded["drift"]["ignore_globs"] == ["*.md", "*.lock"]


@pytest.mark.parametrize(
    ("env", "message"),
    [
        ({"SPECDRIFT_OBSERVABILITY_LOG_TO_FILE": "maybe"}, "must be a boolean"),
        ({"SPECDRIFT_META_SCHEMA_VERSION": "one"}, "must be an integer"),
    ],
)
def test_env_coercion_errors(tmp_path: Path, env: dict[str, str], message: str) -> None:
    config_path = _write_config(tmp_path / "specdrift.toml", "")

    with pytest.raises(ConfigLoadError, match=message):
        load_config(config_path, environ=env)


def test_invalid_env_value_fails_validation(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "specdrift.toml", "")

    with pytest.raises(ConfigValidationError, match="drift.format"):
        load_config(config_path, environ={"SPECDRIFT_DRIFT_FORMAT": "xml"})


def test_paths_are_normalized_relative_to_config_file(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path / "conf" / "specdrift.toml",
        """
[paths]
spec = "../specs/spec.yaml"
project_root = ".."
api_spec = "api/openapi.yaml"
""".strip(),
    )

    loaded = load_config(config_path, environ={})
    base = tmp_path.resolve()

    assert loaded["paths"]["spec"] == (base / "specs" / "spec.yaml").as_posix()
    assert loaded["paths"]["project_root"] == base.as_posix()
    assert loaded["paths"]["lock"] == (base / "conf" / ".specular" / "spec.lock.json").as_posix()
    assert loaded["paths"]["api_spec"] == "api/openapi.yaml"
    assert loaded["paths"]["output"] == ""


def test_normalize_paths_keeps_absolute_values(tmp_path: Path) -> None:
    absolute = (tmp_path / "abs.yaml").as_posix()
    config = {"paths": {"spec": absolute, "output": ""}}

    normalized = normalize_paths(config, base_dir=Path("/elsewhere"))

    assert normalized["paths"]["spec"] == absolute
    assert normalized["paths"]["output"] == ""


def test_missing_default_file_uses_defaults(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.chdir(tmp_path)

    loaded = load_config(environ={})

    assert loaded["drift"]["format"] == "text"
    assert loaded["paths"]["project_root"] == tmp_path.resolve().as_posix()


def test_missing_explicit_file_is_an_error(tmp_path: Path) -> None:
    with pytest.raises(ConfigLoadError, match="config file not found"):
        load_config(tmp_path / "absent.toml", environ={})


def test_invalid_toml_is_an_error(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "specdrift.toml", "[drift\nfail_on=")

    with pytest.raises(ConfigLoadError, match="invalid TOML"):
        load_config(config_path, environ={})


def test_unknown_file_keys_are_rejected(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "specdrift.toml", "[drift]\nstrict = true\n")

    with pytest.raises(ConfigValidationError) as excinfo:
        load_config(config_path, environ={})

    assert [(item.path, item.message) for item in excinfo.value.issues] == [
        ("drift.strict", "unknown field")
    ]


def test_cli_overrides_skip_none_and_replace_lists(tmp_path: Path) -> None:
    config_path = _write_config(
        tmp_path / "specdrift.toml", '[drift]\nignore_globs = ["*.md"]\n'
    )

    loaded = load_config(
        config_path,
        environ={},
        cli_overrides={"drift.ignore_globs": ["*.txt"], "drift.format": None},
    )

    assert loaded["drift"]["ignore_globs"] == ["*.txt"]
    assert loaded["drift"]["format"] == "text"


def test_dump_effective_config_is_deterministic(tmp_path: Path) -> None:
    config_path = _write_config(tmp_path / "specdrift.toml", "")

    first = dump_effective_config(load_config(config_path, environ={}))
    second = dump_effective_config(load_config(config_path, environ={}))

    assert first == second
    payload = json.loads(first)
    assert list(payload) == ["drift", "meta", "observability", "paths"]
    assert payload["meta"]["schema_version"] == 1
