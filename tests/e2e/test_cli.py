"""E2E tests for the gherkin-steps CLI commands."""

from __future__ import annotations

import json
from pathlib import Path

import pytest
from click.testing import CliRunner

from gherkin_steps.cli import cli

pytestmark = pytest.mark.e2e


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def in_project(steps_project: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(steps_project)
    return steps_project


@pytest.fixture
def in_tmp(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.chdir(tmp_path)
    return tmp_path


# ── init ────────────────────────────────────────────────────────────


def test_init_detects_language(runner: CliRunner, in_tmp: Path) -> None:
    (in_tmp / "steps.rb").write_text("")
    result = runner.invoke(cli, ["init"])
    assert result.exit_code == 0, result.output
    assert "Detected step language: ruby" in result.output
    assert "Initialized gherkin-steps project." in result.output
    data = json.loads((in_tmp / ".gherkin-steps" / "config.json").read_text())
    assert data["steps"] == ["**/step_definitions/**/*.rb"]
    assert data["sync_features"] is True


def test_init_with_explicit_globs(runner: CliRunner, in_tmp: Path) -> None:
    result = runner.invoke(cli, ["init", "--steps", "a/*.js", "--steps", "b/*.js", "--no-sync-features"])
    assert result.exit_code == 0, result.output
    data = json.loads((in_tmp / ".gherkin-steps" / "config.json").read_text())
    assert data["steps"] == ["a/*.js", "b/*.js"]
    assert data["sync_features"] is False


def test_init_twice_updates(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["init"])
    assert result.exit_code == 0, result.output
    assert "already initialized" in result.output
    assert "Configuration updated." in result.output
    data = json.loads((in_project / ".gherkin-steps" / "config.json").read_text())
    assert data["steps"] == ["features/steps/*.js"]


def test_commands_require_init(runner: CliRunner, in_tmp: Path) -> None:
    result = runner.invoke(cli, ["steps"])
    assert result.exit_code == 1
    assert "Not initialized" in result.output


def test_invalid_config_is_reported(runner: CliRunner, in_tmp: Path) -> None:
    config_dir = in_tmp / ".gherkin-steps"
    config_dir.mkdir()
    (config_dir / "config.json").write_text('{"steps": 1}')
    result = runner.invoke(cli, ["steps"])
    assert result.exit_code == 1
    assert "Invalid configuration" in result.output


# ── steps / usage ───────────────────────────────────────────────────


def test_steps_lists_definitions(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["steps"])
    assert result.exit_code == 0, result.output
    assert "When   I do something" in result.output
    assert "10 step definition(s)." in result.output


def test_steps_json(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["steps", "--json"])
    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert len(data) == 10
    assert data[0]["text"] == "I do something"


def test_usage_ranks_by_count(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["usage"])
    assert result.exit_code == 0, result.output
    first = result.output.splitlines()[0]
    assert first.split() == ["2", "I", "do", "something"]


# ── validate / definition / complete ────────────────────────────────


def test_validate_clean_feature(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["validate", "features/test.feature"])
    assert result.exit_code == 0, result.output
    assert "All steps are defined." in result.output


def test_validate_reports_undefined(runner: CliRunner, in_project: Path) -> None:
    (in_project / "features" / "bad.feature").write_text("Feature: x\n  Scenario: y\n    When I fly\n")
    result = runner.invoke(cli, ["validate", "features/test.feature", "features/bad.feature"])
    assert result.exit_code == 1
    assert 'features/bad.feature:3:5: Was unable to find step for "When I fly"' in result.output
    assert "1 undefined step(s)." in result.output


def test_definition(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["definition", "features/test.feature", "5"])
    assert result.exit_code == 0, result.output
    assert result.output.strip().endswith("test.steps.js:1:6")


def test_definition_not_found(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["definition", "features/test.feature", "1"])
    assert result.exit_code == 1
    assert "No definition found." in result.output


def test_definition_line_out_of_range(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["definition", "features/test.feature", "999"])
    assert result.exit_code == 1
    assert "has no line 999" in result.output


def test_complete(runner: CliRunner, in_project: Path) -> None:
    (in_project / "features" / "draft.feature").write_text("Feature: x\n  Scenario: y\n    When I do som\n")
    result = runner.invoke(cli, ["complete", "features/draft.feature", "3", "--json"])
    assert result.exit_code == 0, result.output
    items = json.loads(result.output)
    assert items[0]["label"] == "I do something"
    assert items[0]["insert_text"] == "ething"


def test_complete_with_column(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["complete", "features/test.feature", "5", "14"])
    assert result.exit_code == 0, result.output
    assert "I do another thing  ->  'another thing'" in result.output


# ── check-config / generate ─────────────────────────────────────────


def test_check_config_ok(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["check-config"])
    assert result.exit_code == 0, result.output
    assert "Configuration OK: 1 step file(s)." in result.output


def test_check_config_missing_steps(runner: CliRunner, in_tmp: Path) -> None:
    runner.invoke(cli, ["init", "--steps", "missing/*.js"])
    result = runner.invoke(cli, ["check-config"])
    assert result.exit_code == 1
    assert "config:3:5: No steps files found" in result.output


def test_generate(runner: CliRunner, in_project: Path) -> None:
    result = runner.invoke(cli, ["generate", "I have 3 apples", "--type", "then"])
    assert result.exit_code == 0, result.output
    assert result.output.startswith("Then('I have {int} apples', async ({page}, int1) => {")


def test_version(runner: CliRunner) -> None:
    result = runner.invoke(cli, ["--version"])
    assert result.exit_code == 0
    assert "0.1.0" in result.output
