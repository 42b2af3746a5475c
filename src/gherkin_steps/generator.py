"""Step-definition skeleton generation for unimplemented feature lines."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field
from pathlib import Path

from gherkin_steps.config import Settings
from gherkin_steps.sources import resolve_globs

_PARAMETER = re.compile(
    r'(?P<string>"[^"]*"|\'[^\']*\')'
    r'|(?P<float>(?<![\w.])-?\d+\.\d+(?![\w.]))'
    r'|(?P<int>(?<![\w.])-?\d+(?![\w.]))'
)

_LANGUAGE_BY_SUFFIX = {
    '.js': 'javascript',
    '.jsx': 'javascript',
    '.mjs': 'javascript',
    '.ts': 'typescript',
    '.tsx': 'typescript',
    '.rb': 'ruby',
    '.java': 'java',
    '.py': 'python',
}

_JAVA_TYPES = {'string': 'String', 'int': 'int', 'float': 'double'}
_NAME_PREFIX = {'string': 'str', 'int': 'int', 'float': 'float'}


@dataclass
class StepPattern:
    """A feature line turned into a Cucumber expression plus parameter names."""

    expression: str
    parameters: list[tuple[str, str]] = field(default_factory=list)

    @property
    def names(self) -> list[str]:
        return [name for name, _ in self.parameters]


def to_cucumber_expression(step_text: str) -> StepPattern:
    """Replace quoted strings, decimals and integers with parameter types."""
    counters = {'string': 0, 'int': 0, 'float': 0}
    parameters: list[tuple[str, str]] = []

    def convert(m: re.Match[str]) -> str:
        kind = m.lastgroup or 'string'
        counters[kind] += 1
        parameters.append((f'{_NAME_PREFIX[kind]}{counters[kind]}', kind))
        return '{' + kind + '}'

    return StepPattern(_PARAMETER.sub(convert, step_text.strip()), parameters)


def normalize_keyword(gherkin_type: str) -> str:
    keyword = gherkin_type.strip().capitalize()
    return keyword if keyword in ('Given', 'When', 'Then') else 'Given'


class StepDefinitionGenerator:
    """Generates a step definition skeleton in the project's step language."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings

    def detect_language(self) -> str:
        """Language of the first configured steps glob with a known extension."""
        for pattern in self.settings.steps:
            suffix = os.path.splitext(pattern)[1].lower()
            if suffix in _LANGUAGE_BY_SUFFIX:
                return _LANGUAGE_BY_SUFFIX[suffix]
        return 'javascript'

    def generate(self, step_text: str, gherkin_type: str = 'Given') -> str:
        pattern = to_cucumber_expression(step_text)
        keyword = normalize_keyword(gherkin_type)

        if self.settings.step_template:
            return self._from_template(self.settings.step_template, keyword, pattern)

        language = self.detect_language()
        if language == 'ruby':
            return self._ruby(keyword, pattern)
        if language == 'java':
            return self._java(keyword, pattern, step_text)
        if language == 'python':
            return self._python(keyword, pattern)
        return self._javascript(keyword, pattern)

    def _from_template(self, template: str, keyword: str, pattern: StepPattern) -> str:
        params = ''.join(f', {name}' for name in pattern.names)
        return (
            template.replace('{gherkinType}', keyword)
            .replace('{stepPattern}', _single_quoted(pattern.expression))
            .replace('{parameterList}', params)
        )

    def _javascript(self, keyword: str, pattern: StepPattern) -> str:
        params = ''.join(f', {name}' for name in pattern.names)
        lines = [
            f"{keyword}('{_single_quoted(pattern.expression)}', async ({{page}}{params}) => {{",
            '  // TODO: implement step',
            "  throw new Error('Step not implemented');",
            '});',
        ]
        return '\n'.join(lines)

    def _ruby(self, keyword: str, pattern: StepPattern) -> str:
        block = f' |{", ".join(pattern.names)}|' if pattern.parameters else ''
        lines = [
            f"{keyword.lower()}('{_single_quoted(pattern.expression)}') do{block}",
            '  # TODO: implement step',
            '  pending',
            'end',
        ]
        return '\n'.join(lines)

    def _java(self, keyword: str, pattern: StepPattern, step_text: str) -> str:
        params = ', '.join(f'{_JAVA_TYPES[kind]} {name}' for name, kind in pattern.parameters)
        expression = pattern.expression.replace('\\', '\\\\').replace('"', '\\"')
        lines = [
            f'@{keyword}("{expression}")',
            f'public void {_java_method_name(step_text)}({params}) {{',
            '    // TODO: implement step',
            '    throw new io.cucumber.java.PendingException();',
            '}',
        ]
        return '\n'.join(lines)

    def _python(self, keyword: str, pattern: StepPattern) -> str:
        # behave's parse syntax names every field
        fields = iter(pattern.parameters)
        kinds = {'string': '', 'int': ':d', 'float': ':f'}

        def named(m: re.Match[str]) -> str:
            name, kind = next(fields)
            field_text = '{' + name + kinds[kind] + '}'
            return f'"{field_text}"' if kind == 'string' else field_text

        expression = re.sub(r'\{(?:string|int|float)\}', named, pattern.expression)
        args = ''.join(f', {name}' for name in pattern.names)
        lines = [
            f"@{keyword.lower()}('{_single_quoted(expression)}')",
            f'def step_impl(context{args}):',
            "    raise NotImplementedError('Step not implemented')",
        ]
        return '\n'.join(lines)


def _single_quoted(text: str) -> str:
    return text.replace('\\', '\\\\').replace("'", "\\'")


def _java_method_name(step_text: str) -> str:
    words = re.findall(r'[A-Za-z]+', re.sub(r'"[^"]*"|\'[^\']*\'', ' ', step_text))
    if not words:
        return 'step'
    first, *rest = (w.lower() for w in words)
    return first + ''.join(w.capitalize() for w in rest)


def step_definition_files(root: str | Path, patterns: list[str]) -> list[dict[str, str]]:
    """Files matched by the steps globs, labelled relative to the project root."""
    root = Path(root).resolve()
    files = []
    for path in resolve_globs(root, patterns):
        try:
            label = str(Path(path).relative_to(root))
        except ValueError:
            label = path
        files.append({'label': label, 'path': path})
    return files
