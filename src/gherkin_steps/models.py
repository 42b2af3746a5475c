"""Core data models for gherkin-steps."""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum


class GherkinType(Enum):
    """Step keyword category a definition or feature line belongs to."""

    GIVEN = "Given"
    WHEN = "When"
    THEN = "Then"
    AND = "And"
    BUT = "But"
    OTHER = "Other"

    @property
    def is_concrete(self) -> bool:
        return self in (GherkinType.GIVEN, GherkinType.WHEN, GherkinType.THEN)


class ParameterType(Enum):
    """Built-in Cucumber parameter types and the regex fragment each expands to."""

    INT = ("{int}", r"-?\d+")
    FLOAT = ("{float}", r"-?\d*\.?\d+")
    STRING = ("{string}", "(\"[^\"]*\"|'[^']*')")
    STRING_IN_DOUBLE_QUOTES = ("{stringInDoubleQuotes}", r'"[^"]+"')
    WORD = ("{word}", r"[^\s]+")
    ANONYMOUS = ("{}", r".*")

    def __init__(self, token: str, fragment: str) -> None:
        self.token = token
        self.fragment = fragment


class DiagnosticSeverity(Enum):
    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


@dataclass(frozen=True)
class Position:
    """Zero-based line/character position in a document."""

    line: int
    character: int


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position


@dataclass(frozen=True)
class SourceLocation:
    """Where a step is declared: file path plus zero-based line and column."""

    path: str
    line: int
    character: int

    def to_dict(self) -> dict[str, object]:
        return {"path": self.path, "line": self.line, "character": self.character}


@dataclass(frozen=True)
class StepDefinition:
    """A compiled step declaration.

    ``full_pattern`` is anchored at both ends and decides whether a feature
    line is implemented; ``partial_pattern`` is anchored only at the start and
    is used while the line is still being typed.
    """

    id: str
    full_pattern: re.Pattern[str]
    partial_pattern: re.Pattern[str]
    display_text: str
    description: str
    location: SourceLocation
    gherkin_type: GherkinType = GherkinType.OTHER
    usage_count: int = 0
    documentation: str = ""

    def to_dict(self) -> dict[str, object]:
        return {
            "id": self.id,
            "text": self.display_text,
            "pattern": self.full_pattern.pattern,
            "description": self.description,
            "type": self.gherkin_type.value,
            "usage_count": self.usage_count,
            "documentation": self.documentation,
            "location": self.location.to_dict(),
        }


@dataclass(frozen=True)
class GherkinLine:
    """A feature-file line split around its step keyword."""

    indent: str
    keyword: str
    keyword_span: tuple[int, int]
    separator: str
    text: str
    gherkin_type: GherkinType

    @property
    def text_start(self) -> int:
        """Offset in the original line where the step text begins."""
        return self.keyword_span[1] + len(self.separator)


@dataclass(frozen=True)
class CompletionCandidate:
    """One completion suggestion for an in-progress step line."""

    label: str
    insert_text: str
    sort_text: str
    documentation: str = ""
    detail: str = ""
    step_id: str = ""
    is_snippet: bool = False
    # column up to which the line is replaced; None inserts at the cursor
    replace_end: int | None = None

    def to_dict(self) -> dict[str, object]:
        return {
            "label": self.label,
            "insert_text": self.insert_text,
            "sort_text": self.sort_text,
            "documentation": self.documentation,
            "detail": self.detail,
            "step_id": self.step_id,
            "is_snippet": self.is_snippet,
            "replace_end": self.replace_end,
        }


@dataclass(frozen=True)
class Diagnostic:
    """A problem report attached to a range of a document."""

    range: Range
    message: str
    severity: DiagnosticSeverity = DiagnosticSeverity.WARNING
    source: str = "gherkin-steps"

    def to_dict(self) -> dict[str, object]:
        return {
            "severity": self.severity.name.lower(),
            "message": self.message,
            "source": self.source,
            "start": {"line": self.range.start.line, "character": self.range.start.character},
            "end": {"line": self.range.end.line, "character": self.range.end.character},
        }
