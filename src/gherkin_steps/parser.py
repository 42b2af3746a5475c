"""Gherkin feature-line recognition.

Feature files are never parsed into a tree.  Every line is matched on its
own against the informal grammar::

    step_line  := INDENT KEYWORD SPACE+ TEXT
    examples   := 'Examples:' NEWLINE header_row NEWLINE value_row
    header_row := '|' (NAME '|')+

Scenario-outline placeholders (``<name>``) in TEXT are filled in from the
example table the line belongs to.
"""

from __future__ import annotations

import re
from collections.abc import Callable
from dataclasses import dataclass, replace

from gherkin_steps.models import GherkinLine, GherkinType
from gherkin_steps.sources import split_lines

_G, _W, _T = GherkinType.GIVEN, GherkinType.WHEN, GherkinType.THEN
_A, _B, _O = GherkinType.AND, GherkinType.BUT, GherkinType.OTHER

STEP_KEYWORDS: dict[str, GherkinType] = {
    # en
    "Given": _G, "When": _W, "Then": _T, "And": _A, "But": _B, "*": _O,
    # fr
    "Soit": _G, "Sachant que": _G, "Etant donné": _G, "Étant donné": _G,
    "Etant donnée": _G, "Étant donnée": _G, "Quand": _W, "Lorsque": _W,
    "Alors": _T, "Et": _A, "Mais": _B,
    # de
    "Angenommen": _G, "Gegeben sei": _G, "Wenn": _W, "Dann": _T,
    "Und": _A, "Aber": _B,
    # es
    "Dado": _G, "Dada": _G, "Cuando": _W, "Entonces": _T, "Y": _A, "Pero": _B,
    # nl
    "Gegeven": _G, "Stel": _G, "Als": _W, "Dan": _T, "En": _A, "Maar": _B,
    # ru
    "Дано": _G, "Допустим": _G, "Когда": _W, "Если": _W, "Тогда": _T,
    "То": _T, "И": _A, "К тому же": _A, "Но": _B, "А": _B,
}

SCENARIO_KEYWORDS = (
    "Feature", "Rule", "Background", "Scenario Outline", "Scenario Template",
    "Scenario", "Example", "Fonctionnalité", "Scénario", "Plan du scénario",
    "Funktionalität", "Szenario", "Szenariogrundriss", "Característica",
    "Escenario", "Functionaliteit", "Функция", "Сценарий",
)

EXAMPLES_KEYWORDS = ("Examples", "Scenarios", "Exemples", "Beispiele", "Ejemplos", "Voorbeelden", "Примеры")

# Longest first, so "Etant donnée" wins over "Etant donné"
_KEYWORD_ALTERNATION = "|".join(
    re.escape(k) for k in sorted(STEP_KEYWORDS, key=len, reverse=True)
)
_STEP_LINE = re.compile(rf"^(\s*)({_KEYWORD_ALTERNATION})(\s+)(.*)$")
_SCENARIO_LINE = re.compile(
    r"^\s*(?:" + "|".join(re.escape(k) for k in SCENARIO_KEYWORDS) + r")\s*:"
)
_EXAMPLES_LINE = re.compile(
    r"^\s*(?:" + "|".join(re.escape(k) for k in EXAMPLES_KEYWORDS) + r")\s*:"
)
_PLACEHOLDER = re.compile(r"<([^<>]+)>")

_LOWER_KEYWORDS = {k.lower(): t for k, t in STEP_KEYWORDS.items()}


def keyword_type(word: str) -> GherkinType:
    """Map a keyword (any case, any supported language) to its type."""
    return _LOWER_KEYWORDS.get(word.strip().lower(), GherkinType.OTHER)


def definition_keywords() -> list[str]:
    """Keywords usable in step-definition source, longest first.

    Single-letter localized keywords are left out because they collide with
    ordinary identifiers in source code.
    """
    words = [k for k in STEP_KEYWORDS if len(k) > 1 or k == "*"]
    return sorted(words, key=len, reverse=True)


def match_gherkin_line(line: str) -> GherkinLine | None:
    """Split a feature line into indent, keyword and step text, or None."""
    m = _STEP_LINE.match(line)
    if not m:
        return None
    indent, keyword, separator, text = m.groups()
    start = len(indent)
    return GherkinLine(
        indent=indent,
        keyword=keyword,
        keyword_span=(start, start + len(keyword)),
        separator=separator,
        text=text,
        gherkin_type=STEP_KEYWORDS[keyword],
    )


def is_continuation(line: GherkinLine) -> bool:
    return line.gherkin_type in (GherkinType.AND, GherkinType.BUT) or line.keyword == "*"


def resolve_effective_type(line: GherkinLine, lines: list[str], line_number: int) -> GherkinType:
    """Type a step line acts as: continuations inherit from the nearest concrete step above."""
    if not is_continuation(line):
        return line.gherkin_type
    for previous in reversed(lines[:line_number]):
        match = match_gherkin_line(previous)
        if match is not None and match.gherkin_type.is_concrete:
            return match.gherkin_type
    return GherkinType.OTHER


# ── Scenario outlines ───────────────────────────────────────────────


@dataclass(frozen=True)
class ExampleTable:
    """First value row of an ``Examples:`` table, keyed by header name."""

    line: int
    scenario_line: int
    values: dict[str, str]


def _table_cells(line: str) -> list[str] | None:
    stripped = line.strip()
    if not stripped.startswith("|"):
        return None
    return [cell.strip() for cell in stripped.strip("|").split("|")]


def example_tables(document: str | list[str]) -> list[ExampleTable]:
    lines = split_lines(document) if isinstance(document, str) else document
    tables: list[ExampleTable] = []
    scenario_line = 0
    for i, line in enumerate(lines):
        if _SCENARIO_LINE.match(line):
            scenario_line = i
            continue
        if not _EXAMPLES_LINE.match(line):
            continue
        rows: list[list[str]] = []
        for follow in lines[i + 1:]:
            if not follow.strip() or follow.strip().startswith("#"):
                continue
            cells = _table_cells(follow)
            if cells is None:
                break
            rows.append(cells)
            if len(rows) == 2:
                break
        if len(rows) == 2:
            header, values = rows
            tables.append(ExampleTable(i, scenario_line, dict(zip(header, values))))
    return tables


def outline_values(tables: list[ExampleTable], line_number: int | None = None) -> dict[str, str]:
    """Placeholder values visible from a line.

    The table owning the line wins; otherwise the nearest table above it.
    Without a line number every table is merged, later ones overriding.
    """
    if line_number is None:
        merged: dict[str, str] = {}
        for table in tables:
            merged.update(table.values)
        return merged
    for table in tables:
        if table.scenario_line <= line_number < table.line:
            return dict(table.values)
    preceding = [t for t in tables if t.line < line_number]
    return dict(preceding[-1].values) if preceding else {}


def substitute_placeholders(text: str, values: dict[str, str], quoted: bool = False) -> str:
    def fill(m: re.Match[str]) -> str:
        if m.group(1) not in values:
            return m.group(0)
        value = values[m.group(1)]
        return f'"{value}"' if quoted else value

    return _PLACEHOLDER.sub(fill, text)


def has_placeholders(text: str) -> bool:
    return _PLACEHOLDER.search(text) is not None


def resolve_step_line(
    line: str,
    tables: list[ExampleTable],
    line_number: int | None,
    is_known: Callable[[str], bool],
) -> GherkinLine | None:
    """Match a step line and fill in outline placeholders.

    Both raw and quote-wrapped substitutions are tried; the quoted one is kept
    when it names a known step.
    """
    gherkin = match_gherkin_line(line)
    if gherkin is None or not has_placeholders(gherkin.text):
        return gherkin
    values = outline_values(tables, line_number)
    if not values:
        return gherkin
    quoted = substitute_placeholders(gherkin.text, values, quoted=True)
    if is_known(quoted):
        return replace(gherkin, text=quoted)
    return replace(gherkin, text=substitute_placeholders(gherkin.text, values))
