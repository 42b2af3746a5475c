"""Unit tests for gherkin_steps.generator."""

from pathlib import Path

import pytest

from gherkin_steps.config import Settings
from gherkin_steps.generator import (
    StepDefinitionGenerator,
    normalize_keyword,
    step_definition_files,
    to_cucumber_expression,
)


class TestCucumberExpression:
    def test_parameters(self) -> None:
        pattern = to_cucumber_expression('I enter "bob" and 3 items costing 2.5')
        assert pattern.expression == "I enter {string} and {int} items costing {float}"
        assert pattern.parameters == [("str1", "string"), ("int1", "int"), ("float1", "float")]

    def test_numbering_per_kind(self) -> None:
        pattern = to_cucumber_expression("I move 'a' to 'b' in 2 steps")
        assert pattern.expression == "I move {string} to {string} in {int} steps"
        assert pattern.names == ["str1", "str2", "int1"]

    def test_digits_inside_words_are_kept(self) -> None:
        assert to_cucumber_expression("I open tab2 on v1.2").expression == "I open tab2 on v1.2"

    def test_negative_numbers(self) -> None:
        assert to_cucumber_expression("I add -4").expression == "I add {int}"


@pytest.mark.parametrize(
    "given, expected",
    [("given", "Given"), ("WHEN", "When"), ("Then", "Then"), ("And", "Given"), ("", "Given")],
)
def test_normalize_keyword(given: str, expected: str) -> None:
    assert normalize_keyword(given) == expected


class TestGenerate:
    def test_javascript_default(self) -> None:
        code = StepDefinitionGenerator(Settings()).generate("I have 3 apples", "When")
        assert code == (
            "When('I have {int} apples', async ({page}, int1) => {\n"
            "  // TODO: implement step\n"
            "  throw new Error('Step not implemented');\n"
            "});"
        )

    def test_quotes_are_escaped(self) -> None:
        code = StepDefinitionGenerator(Settings()).generate("it's 3")
        assert code.splitlines()[0] == "Given('it\\'s {int}', async ({page}, int1) => {"

    def test_ruby(self) -> None:
        generator = StepDefinitionGenerator(Settings(steps=["features/step_definitions/*.rb"]))
        assert generator.detect_language() == "ruby"
        assert generator.generate("I have 3 apples", "When") == (
            "when('I have {int} apples') do |int1|\n"
            "  # TODO: implement step\n"
            "  pending\n"
            "end"
        )

    def test_java(self) -> None:
        generator = StepDefinitionGenerator(Settings(steps=["src/test/java/*Steps.java"]))
        code = generator.generate('I see "x" 2 times', "Then")
        assert code.splitlines()[:2] == [
            '@Then("I see {string} {int} times")',
            "public void iSeeTimes(String str1, int int1) {",
        ]

    def test_python(self) -> None:
        generator = StepDefinitionGenerator(Settings(steps=["features/steps/*.py"]))
        assert generator.generate('I enter "bob" 3 times', "given") == (
            "@given('I enter \"{str1}\" {int1:d} times')\n"
            "def step_impl(context, str1, int1):\n"
            "    raise NotImplementedError('Step not implemented')"
        )

    def test_template(self) -> None:
        settings = Settings(step_template="{gherkinType}('{stepPattern}'{parameterList})")
        code = StepDefinitionGenerator(settings).generate("I have 3 apples")
        assert code == "Given('I have {int} apples', int1)"

    def test_unknown_extension_falls_back(self) -> None:
        generator = StepDefinitionGenerator(Settings(steps=["steps/**/*", "x.ts"]))
        assert generator.detect_language() == "typescript"


class TestStepDefinitionFiles:
    def test_labels_are_relative(self, steps_project: Path) -> None:
        files = step_definition_files(steps_project, ["features/steps/*.js"])
        assert [f["label"] for f in files] == [str(Path("features") / "steps" / "test.steps.js")]
        assert Path(files[0]["path"]).is_absolute()

    def test_no_files(self, tmp_path: Path) -> None:
        assert step_definition_files(tmp_path, ["*.js"]) == []
