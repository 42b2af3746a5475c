"""Acceptance tests for the step index, matching and completion properties.

One class per property of the core: pattern compilation, partial-pattern
relaxation, idempotent population, de-duplication, alternation expansion,
completion and keyword-strict completion.
"""

import pytest

from gherkin_steps.compiler import PatternCompiler
from gherkin_steps.config import Settings
from gherkin_steps.index import StepIndex
from gherkin_steps.models import GherkinType, StepDefinition
from gherkin_steps.partial import REGEX_SYNTAX
from gherkin_steps.workspace import StepWorkspace

pytestmark = pytest.mark.acceptance

TWO_STEPS = """\
When('I do something', function () {});
When('I do another thing', function () {});
"""

TYPED_STEPS = """\
Given('I log in', function () {});
When('I log out', function () {});
"""


def _parameter_free(definitions: tuple[StepDefinition, ...]) -> list[StepDefinition]:
    return [d for d in definitions if not REGEX_SYNTAX & set(d.display_text)]


def _aligned_prefixes(text: str) -> list[str]:
    words = text.split(" ")
    prefixes = []
    for i in range(1, len(words)):
        head = " ".join(words[:i])
        prefixes += [head, head + " "]
    return prefixes


class TestFullPatternMatchesDisplayText:
    """A parameter-free definition's full pattern matches its own display text."""

    def test_every_plain_definition(self, workspace: StepWorkspace) -> None:
        plain = _parameter_free(workspace.definitions)
        assert len(plain) >= 4
        for definition in plain:
            assert definition.full_pattern.fullmatch(definition.display_text), definition.display_text


class TestPartialPatternRelaxation:
    """Every word-aligned proper prefix of a display text matches the partial pattern."""

    def test_every_aligned_prefix(self, workspace: StepWorkspace) -> None:
        for definition in _parameter_free(workspace.definitions):
            for prefix in _aligned_prefixes(definition.display_text):
                assert definition.partial_pattern.fullmatch(prefix), (definition.display_text, prefix)

    def test_prefixes_of_the_last_word(self, workspace: StepWorkspace) -> None:
        step = workspace.index.find_exact_match("I do something")
        assert step is not None
        for i in range(len("I do "), len("I do something")):
            assert step.partial_pattern.fullmatch("I do something"[:i])


class TestPopulateIsIdempotent:
    """Repeated population with the same input gives the same index."""

    def test_repeated_populate(self, workspace: StepWorkspace) -> None:
        first = sorted(d.display_text for d in workspace.definitions)
        for _ in range(3):
            workspace.populate()
            assert sorted(d.display_text for d in workspace.definitions) == first

    def test_order_independent(self, workspace: StepWorkspace) -> None:
        definitions = list(workspace.definitions)
        index = StepIndex(workspace.settings)
        index.populate(reversed(definitions))
        assert len(index) == len(definitions)
        assert {d.display_text for d in index.definitions} == {d.display_text for d in definitions}


class TestDuplicatePatternsAreMerged:
    """Two declarations normalizing to the same pattern text give one definition."""

    def test_same_pattern_twice(self, make_workspace) -> None:
        steps = "When(/^I do it$/, () => {});\nGiven('I do it', () => {});\n"
        ws = make_workspace(steps=steps)
        assert [d.display_text for d in ws.definitions] == ["I do it"]
        assert ws.definitions[0].location.line == 0


class TestCucumberExpressionCompilation:
    """``{int}`` compiles to a signed integer fragment."""

    def test_int_expression(self) -> None:
        [definition] = PatternCompiler(Settings()).compile_step("I have {int} items")
        assert definition.full_pattern.pattern == r"^I have -?\d+ items$"
        assert definition.full_pattern.fullmatch("I have 3 items")
        assert definition.full_pattern.fullmatch("I have -3 items")
        assert not definition.full_pattern.fullmatch("I have three items")


class TestAlternationExpansion:
    """With expansion on, each alternative becomes its own definition."""

    def test_three_variants(self) -> None:
        compiler = PatternCompiler(Settings(expand_alternations=True))
        definitions = compiler.compile_step("I (click|press|tap) the {element}")
        assert [d.display_text for d in definitions] == [
            "I click the {element}",
            "I press the {element}",
            "I tap the {element}",
        ]
        assert definitions[1].full_pattern.fullmatch("I press the OK button")

    def test_off_by_default(self) -> None:
        definitions = PatternCompiler(Settings()).compile_step("I (click|press|tap) the {element}")
        assert len(definitions) == 1


class TestCompletionNarrowsAsYouType:
    """Completion offers every continuation, then narrows to the one being typed."""

    def test_both_after_shared_words(self, make_workspace) -> None:
        ws = make_workspace(steps=TWO_STEPS, sync_features=False)
        items = ws.get_completion_items("    When I do", 13, "")
        assert {item.label for item in items} == {"I do something", "I do another thing"}

    def test_one_while_typing_a_word(self, make_workspace) -> None:
        ws = make_workspace(steps=TWO_STEPS, sync_features=False)
        line = "    When I do another th"
        [item] = ws.get_completion_items(line, len(line), "")
        assert item.label == "I do another thing"
        assert item.insert_text == "ing"


class TestStrictCompletion:
    """Strict completion leaves out definitions registered for another keyword."""

    def test_given_only_step_excluded_from_when(self, make_workspace) -> None:
        ws = make_workspace(steps=TYPED_STEPS, sync_features=False, strict_gherkin_completion=True)
        items = ws.get_completion_items("    When I log ", 15, "")
        assert [item.label for item in items] == ["I log out"]

    def test_continuation_resolves_type(self, make_workspace) -> None:
        ws = make_workspace(steps=TYPED_STEPS, sync_features=False, strict_gherkin_completion=True)
        document = "Feature: x\n  Scenario: y\n    When I log out\n    And I log "
        items = ws.get_completion_items("    And I log ", 14, document, 3)
        assert [item.label for item in items] == ["I log out"]

    def test_non_strict_offers_both(self, make_workspace) -> None:
        ws = make_workspace(steps=TYPED_STEPS, sync_features=False)
        items = ws.get_completion_items("    When I log ", 15, "")
        assert {item.label for item in items} == {"I log in", "I log out"}
        assert all(d.gherkin_type in (GherkinType.GIVEN, GherkinType.WHEN) for d in ws.definitions)


class TestUnrelatedLines:
    """A line that is not a Gherkin step yields no completions and no diagnostic."""

    def test_no_completion_no_diagnostic(self, workspace: StepWorkspace) -> None:
        assert workspace.get_completion_items("Unrelated text", 5, "") == []
        assert workspace.validate("Unrelated text", 0, "Unrelated text") is None
        assert workspace.get_definition("Unrelated text", "Unrelated text") is None
