"""Shared test fixtures for gherkin-steps."""

import json
from pathlib import Path

import pytest

from gherkin_steps.config import Settings
from gherkin_steps.workspace import StepWorkspace

STEPS_JS = """\
this.When(/^I do something$/, function (next) {
    next;
});

this.When(/^I do another thing$/, function (next) {
    next;
});

// this.When(/^I check one line comments are skipped$/, function (next) {next;});

/*
this.When(/^I check block comments are skipped$/, function (next) {
    next;
});
*/

this.When(/^I do something$/, function (next) {
    next;
});

this.When(/^I say (a|b)$/, function (next) {
    next;
});

this.When(
    /I do some multi-lines test/,
    function (next) {
        next;
    }
);

this.When(/^I test outline using "[0-9]*" variable$/, function (next) {
    next;
});

this.when(/I test lower case step definition/, function (next) {});

/**
 * Turns a feature flag on a number of times.
 * @param {string} name flag name
 */
this.When('I activate {string} for {int} times', function (name, times) {});

this.Given(/^I have (\\d+) cucumbers in my belly$/, function (count, next) {
    next;
});

this.Then(/^I should have {float} dollars$/, function (amount, next) {
    next;
});

this.When(/^I do [a-z]+ and \\w* thing$/, function (next) {
    next;
});
"""

FEATURE = """\
Feature: Doing things

  Scenario: Plain steps
    Given I have 3 cucumbers in my belly
    When I do something
    And I do another thing
    When I do something
    Then I should have 2.5 dollars

  Scenario Outline: Outline steps
    When I test outline using "<number>" variable
    When I test outline using <quoted> variable

    Examples:
      | number | quoted |
      | 1      | 2      |
"""

STRICT_FEATURE = """\
Feature: Strict keywords

  Scenario: Mixed keywords
    Given I have 3 cucumbers in my belly
    And I do something
    When I do something
    And I do something
    But I do another thing
    Then I should have 1.5 dollars
    And I do something
"""


def write_project(root: Path, config: dict, steps: str = STEPS_JS, feature: str = FEATURE) -> Path:
    steps_dir = root / "features" / "steps"
    steps_dir.mkdir(parents=True, exist_ok=True)
    (steps_dir / "test.steps.js").write_text(steps)
    (root / "features" / "test.feature").write_text(feature)
    config_dir = root / ".gherkin-steps"
    config_dir.mkdir(exist_ok=True)
    (config_dir / "config.json").write_text(json.dumps(config, indent=2))
    return root


@pytest.fixture
def steps_project(tmp_path: Path) -> Path:
    """A project with one JS steps file, one feature file and a config."""
    return write_project(
        tmp_path,
        {
            "steps": ["features/steps/*.js"],
            "sync_features": "features/**/*.feature",
        },
    )


@pytest.fixture
def workspace(steps_project: Path) -> StepWorkspace:
    return StepWorkspace.load(steps_project)


@pytest.fixture
def make_workspace(tmp_path: Path):
    """Build a workspace over a steps file with custom settings."""

    def _make(steps: str = STEPS_JS, feature: str = FEATURE, **settings) -> StepWorkspace:
        write_project(tmp_path, {})
        (tmp_path / "features" / "steps" / "test.steps.js").write_text(steps)
        (tmp_path / "features" / "test.feature").write_text(feature)
        settings.setdefault("steps", ["features/steps/*.js"])
        settings.setdefault("sync_features", "features/**/*.feature")
        config = Settings(**settings)
        ws = StepWorkspace(tmp_path, config)
        ws.refresh()
        return ws

    return _make


@pytest.fixture
def sample_feature() -> str:
    return FEATURE


@pytest.fixture
def strict_feature() -> str:
    return STRICT_FEATURE


@pytest.fixture
def steps_js() -> str:
    return STEPS_JS
