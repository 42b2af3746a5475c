"""Completion of partially typed step lines.

Given a feature line and a cursor offset, proposes the step definitions that
could complete it, together with the text to insert at the cursor::

    When I activate "|          ->  '" for ${1:} times'
    When I do som|              ->  'ething'
"""

from __future__ import annotations

import itertools
import logging
import re
import threading
from collections.abc import Callable

from gherkin_steps.compiler import MalformedPatternError
from gherkin_steps.config import Settings
from gherkin_steps.index import StepIndex
from gherkin_steps.models import CompletionCandidate, GherkinType, StepDefinition
from gherkin_steps.parser import (
    example_tables,
    has_placeholders,
    is_continuation,
    match_gherkin_line,
    outline_values,
    resolve_effective_type,
    substitute_placeholders,
)
from gherkin_steps.partial import split_tokens
from gherkin_steps.sources import split_lines

logger = logging.getLogger(__name__)

MAX_SORT_COUNT = 99999

_QUOTED_PARAMETER = (
    r"\{string\}|\{stringInDoubleQuotes\}"
    r"|\"(?:\([^()]*\)|\[\^\"\][*+]|\.[*+])\""
    r"|'(?:\([^()]*\)|\[\^'\][*+]|\.[*+])'"
)
_CAPTURE = (
    r"#\{[^}]*\}"
    r"|(?<!\\)\{(?![\d,])[^{}]*\}"
    r"|\(?(?:\\.|\.|\[[^\]]+\])(?:\*|\+|\{[^}]+\})\)?"
)
_PLACEHOLDER = re.compile(f"(?P<quoted>{_QUOTED_PARAMETER})|(?P<capture>{_CAPTURE})")
_QUOTED_TOKEN = re.compile(_QUOTED_PARAMETER)


def sort_text(definition: StepDefinition) -> str:
    """Sort key: most used first, then alphabetical by display text."""
    rank = MAX_SORT_COUNT - min(definition.usage_count, MAX_SORT_COUNT)
    return f"{rank:05d}_{definition.display_text}"


def trim_open_quote(text: str) -> tuple[str, str]:
    """Drop a trailing quoted parameter the user has opened but not closed.

    Returns the remaining text and the quote character that was removed.
    """
    for quote in ('"', "'"):
        idx = text.rfind(quote)
        if idx == -1:
            continue
        if idx > 0 and text[idx - 1] != " ":
            continue
        if text[idx + 1:idx + 2] in (quote, "("):
            continue
        if quote == '"' and text.count('"') % 2 == 0:
            continue
        return text[:idx], quote
    return text, ""


def word_aligned(text: str) -> str:
    """Cut an unfinished last word, ignoring spaces inside quotes."""
    if not text or text.endswith(" "):
        return text
    boundary = -1
    quote = ""
    for i, ch in enumerate(text):
        if quote:
            if ch == quote:
                quote = ""
        elif ch == '"' or (ch == "'" and (i == 0 or text[i - 1] == " ")):
            quote = ch
        elif ch == " ":
            boundary = i
    return text[:boundary + 1]


def _locate(lines: list[str], line: str) -> int | None:
    for i, candidate in enumerate(lines):
        if candidate == line:
            return i
    return None


class CompletionEngine:
    """Builds completion candidates from the step index."""

    def __init__(self, index: StepIndex, settings: Settings) -> None:
        self.index = index
        self.settings = settings

    def get_completion_items(
        self,
        line: str,
        cursor: int,
        document: str,
        line_number: int | None = None,
    ) -> list[CompletionCandidate]:
        gherkin = match_gherkin_line(line)
        if gherkin is None:
            return []
        cursor = max(0, min(cursor, len(line)))
        if cursor < gherkin.text_start:
            return []

        lines = split_lines(document)
        if line_number is None:
            line_number = _locate(lines, line)

        typed = line[gherkin.text_start:cursor]
        if has_placeholders(typed):
            typed = self._fill_placeholders(typed, lines, line_number)

        if line_number is not None:
            gherkin_type = resolve_effective_type(gherkin, lines, line_number)
        elif is_continuation(gherkin):
            gherkin_type = GherkinType.OTHER
        else:
            gherkin_type = gherkin.gherkin_type

        typed, quote = trim_open_quote(typed)
        lookup = typed if quote else word_aligned(typed)
        candidates = self.index.find_candidates(
            lookup, gherkin_type, self.settings.strict_gherkin_completion
        )

        scored: list[tuple[StepDefinition, str]] = []
        for definition in candidates:
            try:
                insert = self.insertion_text(definition, typed, quote)
            except (re.error, MalformedPatternError) as e:
                logger.debug("Skipping completion for %r: %s", definition.display_text, e)
                continue
            if insert:
                scored.append((definition, insert))

        scored.sort(key=lambda pair: (-pair[0].usage_count, pair[0].display_text))
        # the rest of the step after the cursor is superseded by the completion
        replace_end = max(cursor, len(line.rstrip()))
        return [
            CompletionCandidate(
                label=definition.display_text,
                insert_text=insert,
                sort_text=sort_text(definition),
                documentation=definition.documentation,
                detail=definition.description,
                step_id=definition.id,
                is_snippet="${" in insert,
                replace_end=replace_end,
            )
            for definition, insert in scored[:self.settings.max_completion_items]
        ]

    def _fill_placeholders(self, typed: str, lines: list[str], line_number: int | None) -> str:
        values = outline_values(example_tables(lines), line_number)
        if not values:
            return typed
        quoted = substitute_placeholders(typed, values, quoted=True)
        if self.index.find_candidates(word_aligned(quoted)):
            return quoted
        return substitute_placeholders(typed, values)

    # ── Insertion text ──────────────────────────────────────────────

    def insertion_text(self, definition: StepDefinition, typed: str, quote: str = "") -> str:
        """Text to insert after ``typed`` to complete the step, or "" if it doesn't fit."""
        walked = self._walk(split_tokens(definition.display_text), typed)
        if walked is None:
            return ""
        head, rest = walked

        if quote:
            if head or not rest or not _QUOTED_TOKEN.fullmatch(rest[0]):
                return ""
            if rest[0][0] in "\"'" and rest[0][0] != quote:
                return ""
            head, rest = quote, rest[1:]

        body = " ".join(rest)
        if head == " ":
            text = " " + body if body else ""
        elif head:
            text = head + " " + body if body else head
        else:
            text = body
        return self._placeholders(text)

    def _walk(self, tokens: list[str], typed: str) -> tuple[str, list[str]] | None:
        """Consume display tokens against typed text.

        Returns what is left of the current token (" " when the typed text
        ends exactly on a finished token) and the untouched tokens, or None
        when the text diverges from the step.  A token may span several typed
        words; every space boundary is tried before giving up on it.
        """
        compiler = self.index.compiler
        n = len(typed)
        dead_ends: set[tuple[int, int]] = set()

        def walk(i: int, pos: int) -> tuple[str, list[str]] | None:
            if pos >= n:
                return "", tokens[i:]
            if i == len(tokens) or (i, pos) in dead_ends:
                return None
            token = tokens[i]
            pattern = compiler.token_pattern(token)
            ends = [j for j in range(pos, n) if typed[j] == " "] + [n]
            for end in ends:
                if not pattern.fullmatch(typed, pos, end):
                    continue
                if end == n:
                    return " ", tokens[i + 1:]
                if (walked := walk(i + 1, end + 1)) is not None:
                    return walked

            rest = self._rest_of_token(token, typed[pos:])
            if rest is None:
                dead_ends.add((i, pos))
                return None
            return rest, tokens[i + 1:]

        return walk(0, 0)

    def _rest_of_token(self, token: str, partial: str) -> str | None:
        """The untyped tail of a token whose literal start is being typed."""
        lead = self.index.compiler.literal_prefix(token)
        if " " in partial or len(partial) > len(lead):
            return None
        if not lead.lower().startswith(partial.lower()) or len(partial) == len(token):
            return None
        return token[len(partial):]

    def _placeholders(self, text: str) -> str:
        counter = itertools.count(1)
        smart = self.settings.smart_snippets

        def convert(m: re.Match[str]) -> str:
            if m.lastgroup == "quoted":
                return '""'
            if smart:
                return f"${{{next(counter)}:}}"
            capture = m.group(0)
            if capture.startswith("{"):
                return capture
            return "{int}" if "\\d" in capture else "{}"

        return _PLACEHOLDER.sub(convert, text)


class CompletionDebouncer:
    """Collapses bursts of completion requests so only the latest one runs."""

    def __init__(self, engine: CompletionEngine, delay_ms: int) -> None:
        self.engine = engine
        self.delay = delay_ms / 1000
        self._timer: threading.Timer | None = None
        self._lock = threading.Lock()

    def request(
        self,
        line: str,
        cursor: int,
        document: str,
        callback: Callable[[list[CompletionCandidate]], None],
        line_number: int | None = None,
    ) -> None:
        """Schedule a completion; a newer request cancels the pending one."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = threading.Timer(
                self.delay,
                self._fire,
                args=(line, cursor, document, callback, line_number),
            )
            self._timer.daemon = True
            self._timer.start()

    def _fire(
        self,
        line: str,
        cursor: int,
        document: str,
        callback: Callable[[list[CompletionCandidate]], None],
        line_number: int | None,
    ) -> None:
        callback(self.engine.get_completion_items(line, cursor, document, line_number))

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
