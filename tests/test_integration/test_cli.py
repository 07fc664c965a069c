"""End-to-end tests for the specval command line.

Every test runs the real root app through Typer's CliRunner with config
isolated to a temporary directory, so the developer's own
``~/.config/specval`` and ``SPECVAL_*`` variables never leak in.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import pytest
from typer.testing import CliRunner

from specval import __version__
from specval.app import app
from specval.config import load_global_config

FIXTURES_DIR = Path(__file__).parent.parent / "fixtures"


@pytest.fixture(autouse=True)
def _isolate(isolated_config: Path) -> Path:
    return isolated_config


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


def _fixture(name: str) -> str:
    return str(FIXTURES_DIR / name)


def _write(tmp_dir: Path, raw: dict[str, Any], name: str = "api.json") -> str:
    path = tmp_dir / name
    path.write_text(json.dumps(raw), encoding="utf-8")
    return str(path)


def _first_json(output: str) -> Any:
    """Decode the JSON report at the start of *output*, ignoring trailing stderr lines."""
    value, _ = json.JSONDecoder().raw_decode(output)
    return value


@pytest.fixture
def orphan_doc(isolated_config: Path, petstore_30_raw: dict[str, Any], edit) -> str:
    raw = edit(petstore_30_raw, lambda d: d["components"]["schemas"].update(Orphan={"type": "string"}))
    return _write(isolated_config, raw)


# ---------------------------------------------------------------------------
# Root options
# ---------------------------------------------------------------------------


class TestRoot:
    def test_version(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--version"])
        assert result.exit_code == 0
        assert f"specval {__version__}" in result.output

    def test_no_args_shows_help(self, runner: CliRunner) -> None:
        result = runner.invoke(app, [])
        assert "validate" in result.output
        assert "inspect" in result.output


# ---------------------------------------------------------------------------
# validate
# ---------------------------------------------------------------------------


class TestValidate:
    @pytest.mark.parametrize(
        ("name", "dialect"),
        [("petstore_2.0.json", "2.0"), ("petstore_3.0.json", "3.0"), ("petstore_3.1.json", "3.1")],
    )
    def test_valid_fixture(self, runner: CliRunner, name: str, dialect: str) -> None:
        result = runner.invoke(app, ["validate", _fixture(name)])
        assert result.exit_code == 0, result.output
        assert f"is valid ({dialect})" in result.output

    def test_issues_exit_with_validation_code(self, runner: CliRunner, orphan_doc: str) -> None:
        result = runner.invoke(app, ["validate", orphan_doc])
        assert result.exit_code == 8
        assert "#/components/schemas/Orphan\tUnusedComponent" in result.output
        assert "1 issue(s) found" in result.output

    def test_ignore_switches_rule_off(self, runner: CliRunner, orphan_doc: str) -> None:
        result = runner.invoke(app, ["validate", orphan_doc, "--ignore", "ignore-unused-schemas"])
        assert result.exit_code == 0, result.output

    def test_ignore_accepts_presets_and_repeats(self, runner: CliRunner, orphan_doc: str) -> None:
        result = runner.invoke(
            app, ["validate", orphan_doc, "-i", "IGNORE_MISSING_TAGS", "-i", "ignore-unused"]
        )
        assert result.exit_code == 0, result.output

    def test_unknown_ignore_is_usage_error(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["validate", _fixture("petstore_3.0.json"), "--ignore", "ignore-all"])
        assert result.exit_code == 2
        assert "Unknown option 'ignore-all'" in result.output

    def test_unknown_dialect_is_usage_error(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["validate", _fixture("petstore_3.0.json"), "--dialect", "9.9"])
        assert result.exit_code == 2

    def test_forced_dialect_mismatch(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["validate", _fixture("petstore_3.0.json"), "--dialect", "3.1"])
        assert result.exit_code == 7
        assert "not dialect 3.1" in result.output

    def test_malformed_document(self, runner: CliRunner, isolated_config: Path) -> None:
        source = _write(isolated_config, {"openapi": "3.0.3", "paths": {}})
        result = runner.invoke(app, ["validate", source])
        assert result.exit_code == 7
        assert "'info'" in result.output

    def test_wrongly_typed_schema_keyword(
        self, runner: CliRunner, isolated_config: Path, petstore_30_raw: dict[str, Any], edit
    ) -> None:
        raw = edit(petstore_30_raw, lambda d: d["components"]["schemas"]["Pet"].update(title=5))
        result = runner.invoke(app, ["validate", _write(isolated_config, raw)])
        assert result.exit_code == 7
        assert "#/components/schemas/Pet/title" in result.output

    def test_inapplicable_option_warns(self, runner: CliRunner) -> None:
        result = runner.invoke(
            app, ["validate", _fixture("petstore_2.0.json"), "-i", "ignore-unused-server-variables"]
        )
        assert result.exit_code == 0
        assert "Options with no effect on 2.0" in result.output
        assert "ignore-unused-server-variables" in result.output

    def test_missing_file(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["validate", "does-not-exist.yaml"])
        assert result.exit_code == 7
        assert "not found" in result.output

    def test_stdin(self, runner: CliRunner, petstore_31_raw: dict[str, Any]) -> None:
        result = runner.invoke(app, ["validate", "-"], input=json.dumps(petstore_31_raw))
        assert result.exit_code == 0, result.output

    def test_json_report_for_valid_document(self, runner: CliRunner) -> None:
        source = _fixture("petstore_2.0.json")
        result = runner.invoke(app, ["--json", "--quiet", "validate", source])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {"source": source, "valid": True, "issues": []}

    def test_json_report_with_issues(self, runner: CliRunner, orphan_doc: str) -> None:
        result = runner.invoke(app, ["--json", "validate", orphan_doc])
        assert result.exit_code == 8
        report = _first_json(result.output)
        assert report["valid"] is False
        assert report["issues"] == [
            {
                "path": "#/components/schemas/Orphan",
                "kind": "UnusedComponent",
                "message": "schemas 'Orphan' is unused",
                "related": [],
            }
        ]

    def test_env_options(self, runner: CliRunner, orphan_doc: str, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SPECVAL_IGNORE", "ignore-unused-components")
        result = runner.invoke(app, ["validate", orphan_doc])
        assert result.exit_code == 0, result.output

    def test_project_config(self, runner: CliRunner, orphan_doc: str) -> None:
        Path("specval.json").write_text(json.dumps({"ignore": ["ignore-unused"]}), encoding="utf-8")
        result = runner.invoke(app, ["validate", orphan_doc])
        assert result.exit_code == 0, result.output

    def test_cli_ignore_replaces_config(self, runner: CliRunner, orphan_doc: str) -> None:
        Path("specval.json").write_text(json.dumps({"ignore": ["ignore-unused"]}), encoding="utf-8")
        result = runner.invoke(app, ["validate", orphan_doc, "--ignore", "ignore-missing-tags"])
        assert result.exit_code == 8

    def test_invalid_env_is_generic_failure(
        self, runner: CliRunner, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("SPECVAL_DIALECT", "4.0")
        result = runner.invoke(app, ["validate", _fixture("petstore_3.0.json")])
        assert result.exit_code == 1


# ---------------------------------------------------------------------------
# inspect and options
# ---------------------------------------------------------------------------


class TestInspect:
    def test_summary_table(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--json", "inspect", _fixture("petstore_3.1.json")])
        assert result.exit_code == 0, result.output
        rows = {row["Field"]: row["Value"] for row in json.loads(result.output)}
        assert rows["dialect"] == "3.1"
        assert rows["version"] == "3.1.0"
        assert rows["paths"] == "2"
        assert rows["webhooks"] == "1"
        assert rows["components.pathItems"] == "1"
        assert rows["tags"] == "pets"

    def test_swagger_summary(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--plain", "inspect", _fixture("petstore_2.0.json")])
        assert result.exit_code == 0, result.output
        assert "operations\t4" in result.output
        assert "components.schemas\t4" in result.output
        assert "webhooks" not in result.output

    def test_inspect_malformed(self, runner: CliRunner, isolated_config: Path) -> None:
        source = _write(isolated_config, {"swagger": "2.0", "openapi": "3.0.0"})
        result = runner.invoke(app, ["inspect", source])
        assert result.exit_code == 7


class TestOptions:
    def test_lists_flags_and_presets(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["--json", "options"])
        assert result.exit_code == 0, result.output
        rows = {row["Name"]: row for row in json.loads(result.output)}
        assert rows["ignore-missing-tags"]["Type"] == "flag"
        assert rows["ignore-missing-tags"]["Dialects"] == "2.0, 3.0, 3.1"
        assert rows["ignore-unused-path-items"]["Dialects"] == "3.1"
        assert rows["ignore-unused"]["Type"] == "preset"
        assert "ignore-unused-tags" in rows["ignore-unused"]["Expands to"]


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------


class TestConfigCommands:
    def test_set_and_show(self, runner: CliRunner) -> None:
        result = runner.invoke(app, ["config", "set", "ignore", "ignore-unused, ignore-missing-tags"])
        assert result.exit_code == 0, result.output
        result = runner.invoke(app, ["config", "set", "dialect", "3.0"])
        assert result.exit_code == 0, result.output

        cfg = load_global_config()
        assert cfg.ignore == ["ignore-unused", "ignore-missing-tags"]
        assert cfg.dialect == "3.0"

        result = runner.invoke(app, ["--json", "--quiet", "config", "show"])
        assert result.exit_code == 0, result.output
        assert json.loads(result.output) == {
            "ignore": ["ignore-unused", "ignore-missing-tags"],
            "dialect": "3.0",
        }

    def test_clear_dialect(self, runner: CliRunner) -> None:
        runner.invoke(app, ["config", "set", "dialect", "3.1"])
        result = runner.invoke(app, ["config", "set", "dialect", ""])
        assert result.exit_code == 0, result.output
        assert load_global_config().dialect is None

    @pytest.mark.parametrize(
        ("key", "value"),
        [("colour", "red"), ("ignore", "ignore-everything"), ("dialect", "1.0")],
    )
    def test_set_rejects_bad_values(self, runner: CliRunner, key: str, value: str) -> None:
        result = runner.invoke(app, ["config", "set", key, value])
        assert result.exit_code == 2
        assert load_global_config().ignore == []

    def test_reset_with_force(self, runner: CliRunner) -> None:
        runner.invoke(app, ["config", "set", "ignore", "ignore-unused"])
        result = runner.invoke(app, ["--force", "config", "reset"])
        assert result.exit_code == 0, result.output
        assert load_global_config().ignore == []

    def test_reset_cancelled(self, runner: CliRunner) -> None:
        runner.invoke(app, ["config", "set", "ignore", "ignore-unused"])
        result = runner.invoke(app, ["config", "reset"], input="n\n")
        assert result.exit_code == 0
        assert load_global_config().ignore == ["ignore-unused"]

    def test_global_config_applies_to_validate(self, runner: CliRunner, orphan_doc: str) -> None:
        runner.invoke(app, ["config", "set", "ignore", "ignore-unused-schemas"])
        result = runner.invoke(app, ["validate", orphan_doc])
        assert result.exit_code == 0, result.output
