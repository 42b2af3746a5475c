"""Step-definition pattern compiler.

Scans source lines of any host language for step declarations such as::

    this.When(/^I do something$/, function () { ... })
    @Given("I have {int} cucumbers")
    Given /^I log in as "([^"]*)"$/ do |user|

and turns each declared pattern into a StepDefinition carrying a full and a
partial regex.  The host language is never parsed: a declaration is a
keyword followed by a delimited string on one line, or split over two.
"""

from __future__ import annotations

import logging
import os
import re
from collections import deque
from dataclasses import dataclass

from gherkin_steps.config import ConfigError, Settings
from gherkin_steps.models import GherkinType, ParameterType, SourceLocation, StepDefinition
from gherkin_steps.parser import definition_keywords, keyword_type
from gherkin_steps.partial import build_partial_pattern, escape_literal, literal_lead, strip_anchors
from gherkin_steps.sources import (
    HASH_COMMENT_SUFFIXES,
    clear_comments,
    collect_doc_comments,
    content_id,
    parse_doc_comment,
    split_lines,
)

logger = logging.getLogger(__name__)

MIN_PATTERN_LENGTH = 3
MAX_ALTERNATION_VARIANTS = 64
DEFINITION_ALIASES = ("defineStep", "StepDefinition", "Step")
# Sources whose string literals double every regex backslash
ESCAPED_STRING_SUFFIXES = {".java"}

_SPECIAL_PARAMETER = re.compile(
    r"#\{.*?\}|" + "|".join(re.escape(p.token) for p in ParameterType)
)
_FRAGMENTS = {p.token: p.fragment for p in ParameterType}
_OPTIONAL_TEXT = re.compile(r"\(([a-z]+)\)")
_ALTERNATIVE_TEXT = re.compile(r"[a-zA-Z]+(?:/[a-zA-Z]+)+")
_CUCUMBER_EXPRESSION = re.compile(r"(?<!\\)\{(?![\d,])(.*?)\}")
_NAMED_GROUP = re.compile(r"\(\?<(?![=!])")
_ESCAPED_DELIMITER = re.compile(r"\\([/'\"`])")
_ALTERNATION_GROUP = re.compile(r"\((?:\?:)?([^()|]*(?:\|[^()|]*)+)\)")
_JAVA_ESCAPE = re.compile(r"\\([\\'\"])")


class MalformedPatternError(Exception):
    """A declared step pattern does not compile as a Python regex."""


class RegexCache:
    """Memoizes compiled regexes for one generation of the step index."""

    def __init__(self, enabled: bool = True) -> None:
        self.enabled = enabled
        self._patterns: dict[tuple[str, int], re.Pattern[str]] = {}

    def compile(self, source: str, flags: int = 0) -> re.Pattern[str]:
        key = (source, flags)
        if self.enabled and (hit := self._patterns.get(key)) is not None:
            return hit
        pattern = re.compile(source, flags)
        if self.enabled:
            self._patterns[key] = pattern
        return pattern

    def clear(self) -> None:
        self._patterns.clear()

    def __len__(self) -> int:
        return len(self._patterns)


def _special_fragment(m: re.Match[str]) -> str:
    token = m.group(0)
    if token.startswith("#{"):
        return ".*"
    return _FRAGMENTS[token]


def expand_alternations(text: str, limit: int = MAX_ALTERNATION_VARIANTS) -> list[str]:
    """Expand every non-nested ``(a|b)`` group into separate variants.

    Returns ``[text]`` unchanged when the expansion would exceed ``limit``.
    """
    pending: deque[str] = deque([text])
    done: list[str] = []
    while pending:
        current = pending.popleft()
        m = _ALTERNATION_GROUP.search(current)
        if m is None:
            done.append(current)
            continue
        for alternative in m.group(1).split("|"):
            pending.append(current[:m.start()] + alternative + current[m.end():])
        if len(done) + len(pending) > limit:
            logger.warning(
                "Not expanding %r: more than %d alternatives", text, limit
            )
            return [text]
    return done


@dataclass(frozen=True)
class Declaration:
    """A step declaration found in source, before compilation."""

    step: str
    line: str
    line_number: int
    character: int
    keyword: str


class PatternCompiler:
    """Finds step declarations in source files and compiles their patterns."""

    def __init__(self, settings: Settings, cache: RegexCache | None = None) -> None:
        self.settings = settings
        self.cache = cache or RegexCache(settings.enable_regex_caching)
        self._declaration = self._declaration_regex()
        self._pure_splitter = self._pure_text_splitter()

    def _declaration_regex(self) -> re.Pattern[str]:
        if self.settings.gherkin_definition_part:
            keyword = self.settings.gherkin_definition_part
        else:
            words = [re.escape(w) for w in definition_keywords()]
            keyword = "|".join(words + list(DEFINITION_ALIASES))
        delimiter = self.settings.step_regex_symbol or r"/|'|\"|`"
        try:
            return re.compile(
                r"^(?P<before>(?:[^'\"/]*?[^\w])|.{0})"
                rf"(?P<keyword>{keyword})"
                r"[^/'\"`\w]*?"
                rf"(?P<delim>{delimiter})"
                r"(?P<body>(?:(?=(?:\\)*)\\.|.)*?)"
                r"(?P=delim)",
                re.IGNORECASE,
            )
        except re.error as e:
            raise ConfigError(f"Invalid step declaration settings: {e}") from e

    def _pure_text_splitter(self) -> re.Pattern[str]:
        values = sorted(
            {p.value for p in self.settings.custom_parameters if p.value},
            key=len,
            reverse=True,
        )
        source = f"(?P<special>{_SPECIAL_PARAMETER.pattern})"
        if values:
            source += "|(?P<custom>" + "|".join(re.escape(v) for v in values) + ")"
        return re.compile(source)

    # ── Declarations ────────────────────────────────────────────────

    def apply_custom_parameters(self, line: str) -> str:
        for parameter in self.settings.custom_parameters:
            line = parameter.apply(line)
        return line

    def match_declaration(self, line: str) -> re.Match[str] | None:
        m = self._declaration.search(line)
        if m and len(m.group("body").strip()) >= MIN_PATTERN_LENGTH:
            return m
        return None

    def find_declarations(self, content: str) -> list[Declaration]:
        """Find every declaration in (comment-free) source text."""
        lines = split_lines(content)
        found: list[Declaration] = []
        for i, raw in enumerate(lines):
            line = self.apply_custom_parameters(raw)
            m = self.match_declaration(line)
            if m is None and i + 1 < len(lines):
                following = self.apply_custom_parameters(lines[i + 1])
                joined = line + following
                if following.strip() and not self.match_declaration(following):
                    m = self.match_declaration(joined)
                    if m is not None:
                        line = joined
            if m is None:
                continue
            found.append(
                Declaration(
                    step=m.group("body"),
                    line=line,
                    line_number=i,
                    character=len(m.group("before")),
                    keyword=m.group("keyword"),
                )
            )
        return found

    def compile_file(self, path: str, content: str) -> list[StepDefinition]:
        """All step definitions declared in one source file, in order."""
        suffix = os.path.splitext(path)[1].lower()
        hash_comments = suffix in HASH_COMMENT_SUFFIXES
        comments = collect_doc_comments(content, hash_comments)
        cleared = clear_comments(content, hash_comments)
        definitions: list[StepDefinition] = []
        for decl in self.find_declarations(cleared):
            if (raw := comments.get(decl.line_number)) is not None:
                documentation = parse_doc_comment(raw)
            else:
                documentation = decl.line.strip()
            step = decl.step
            if suffix in ESCAPED_STRING_SUFFIXES:
                step = _JAVA_ESCAPE.sub(r"\1", step)
            definitions.extend(
                self.compile_step(
                    step,
                    description=_description(decl.line, decl.step),
                    location=SourceLocation(path, decl.line_number, decl.character),
                    gherkin_type=keyword_type(decl.keyword),
                    documentation=documentation,
                )
            )
        logger.debug("Found %d step definitions in %s", len(definitions), path)
        return definitions

    # ── Patterns ────────────────────────────────────────────────────

    def compile_step(
        self,
        step: str,
        *,
        description: str = "",
        location: SourceLocation | None = None,
        gherkin_type: GherkinType = GherkinType.OTHER,
        documentation: str = "",
    ) -> list[StepDefinition]:
        """Compile declared pattern text into one definition per variant."""
        location = location or SourceLocation("", 0, 0)
        if self.settings.expand_alternations and not self.settings.pure_text_steps:
            variants = expand_alternations(step)
        else:
            variants = [step]

        definitions: list[StepDefinition] = []
        for variant in variants:
            try:
                definitions.append(
                    self._build(variant, description, location, gherkin_type, documentation)
                )
            except MalformedPatternError as e:
                logger.debug(
                    "Dropping step %r at %s:%d: %s",
                    variant, location.path, location.line + 1, e,
                )
        return definitions

    def _build(
        self,
        step: str,
        description: str,
        location: SourceLocation,
        gherkin_type: GherkinType,
        documentation: str,
    ) -> StepDefinition:
        regex_text = self.regex_text(step)
        try:
            full = self.cache.compile(f"^{regex_text}$")
        except re.error as e:
            raise MalformedPatternError(str(e)) from e
        try:
            partial = self.cache.compile(build_partial_pattern(regex_text))
        except re.error:
            partial = full
        display = self.display_text(step)
        return StepDefinition(
            id="step" + content_id(display),
            full_pattern=full,
            partial_pattern=partial,
            display_text=display,
            description=description,
            location=location,
            gherkin_type=gherkin_type,
            documentation=documentation,
        )

    def regex_text(self, step: str) -> str:
        """Translate declared pattern text into unanchored Python regex source."""
        if self.settings.pure_text_steps:
            return self._pure_regex_text(step)
        text = strip_anchors(step)
        text = _SPECIAL_PARAMETER.sub(_special_fragment, text)
        text = _OPTIONAL_TEXT.sub(lambda m: f"({m.group(1)})?", text)
        text = _ALTERNATIVE_TEXT.sub(lambda m: "(" + m.group(0).replace("/", "|") + ")", text)
        text = _CUCUMBER_EXPRESSION.sub(lambda _m: ".*", text)
        return _NAMED_GROUP.sub("(?P<", text)

    def _pure_regex_text(self, step: str) -> str:
        parts: list[str] = []
        last = 0
        for m in self._pure_splitter.finditer(step):
            parts.append(escape_literal(step[last:m.start()]))
            if m.lastgroup == "special":
                parts.append(_special_fragment(m))
            else:
                parts.append(m.group(0))
            last = m.end()
        parts.append(escape_literal(step[last:]))
        return "".join(parts)

    def display_text(self, step: str) -> str:
        if self.settings.pure_text_steps:
            return step
        return _ESCAPED_DELIMITER.sub(lambda m: m.group(1), strip_anchors(step))

    def token_pattern(self, token: str) -> re.Pattern[str]:
        """Case-insensitive regex for one display-text token."""
        return self.cache.compile(self.regex_text(token), re.IGNORECASE)

    def literal_prefix(self, token: str) -> str:
        """Leading part of a display-text token that is plain text."""
        if self.settings.pure_text_steps:
            m = _SPECIAL_PARAMETER.search(token)
            return token[:m.start()] if m else token
        lead, _ = literal_lead(token)
        return lead if token.startswith(lead) else ""


def _description(line: str, step: str) -> str:
    """The declaration line without its body, cut at the first brace after the pattern."""
    end = line.find(step) + len(step)
    brace = line.find("{", end)
    if brace != -1:
        line = line[:brace]
    return line.strip()
