"""In-memory index of compiled step definitions.

The live state is one immutable snapshot.  ``populate`` and ``apply_usage``
build a new snapshot off to the side and swap it in with a single attribute
assignment, so readers never see a half-built index and never lock.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from gherkin_steps.compiler import PatternCompiler, RegexCache
from gherkin_steps.config import Settings
from gherkin_steps.models import GherkinType, StepDefinition
from gherkin_steps.partial import REGEX_SYNTAX

logger = logging.getLogger(__name__)

PREFIX_LENGTH = 3
# Prefixes containing these may match typed text that starts differently
_UNINDEXABLE = REGEX_SYNTAX | {"/"}


def type_matches(definition_type: GherkinType, wanted: GherkinType | None) -> bool:
    """Whether a definition may serve a line of the wanted type.

    Definitions declared with a non-concrete keyword (``defineStep``, ``And``)
    serve any type, and a non-concrete wanted type constrains nothing.
    """
    if wanted is None or not wanted.is_concrete:
        return True
    if not definition_type.is_concrete:
        return True
    return definition_type is wanted


def _prefix_key(text: str) -> str:
    return text[:PREFIX_LENGTH].lower()


def _definition_key(display_text: str) -> str | None:
    """Bucket key for a definition, or None when its start is not plain text.

    Every word that overlaps the key must be literal: in ``click/press it``
    the key ``cli`` would hide the ``press`` variant.
    """
    cut = display_text.find(" ", PREFIX_LENGTH)
    head = display_text if cut == -1 else display_text[:cut]
    key = _prefix_key(display_text)
    if len(key) < PREFIX_LENGTH or _UNINDEXABLE & set(head):
        return None
    return key


@dataclass(frozen=True)
class IndexSnapshot:
    compiler: PatternCompiler
    definitions: tuple[StepDefinition, ...] = ()
    by_id: dict[str, StepDefinition] = field(default_factory=dict)
    by_type: dict[GherkinType, tuple[StepDefinition, ...]] = field(default_factory=dict)
    by_prefix: dict[str, tuple[StepDefinition, ...]] = field(default_factory=dict)
    wildcard: tuple[StepDefinition, ...] = ()


class StepIndex:
    """Holds the current definitions plus the lookup structures built over them."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._usage_counts: dict[str, int] = {}
        self._state = IndexSnapshot(PatternCompiler(settings))

    # ── State ───────────────────────────────────────────────────────

    @property
    def definitions(self) -> tuple[StepDefinition, ...]:
        return self._state.definitions

    @property
    def compiler(self) -> PatternCompiler:
        return self._state.compiler

    @property
    def cache(self) -> RegexCache:
        return self.compiler.cache

    def __len__(self) -> int:
        return len(self._state.definitions)

    def get(self, step_id: str) -> StepDefinition | None:
        return self._state.by_id.get(step_id)

    def usage_count(self, step_id: str) -> int:
        return self._usage_counts.get(step_id, 0)

    def populate(
        self,
        definitions: Iterable[StepDefinition],
        compiler: PatternCompiler | None = None,
    ) -> int:
        """Replace the whole definition set. Returns the number kept.

        Duplicate ids keep the first definition.  The regex cache of the new
        generation starts out empty; known usage counts are reattached by id.
        """
        if compiler is None:
            compiler = PatternCompiler(self.settings)
        else:
            compiler.cache.clear()
        kept: list[StepDefinition] = []
        seen: set[str] = set()
        for definition in definitions:
            if definition.id in seen:
                logger.debug("Skipping duplicate step %r", definition.display_text)
                continue
            seen.add(definition.id)
            kept.append(replace(definition, usage_count=self._usage_counts.get(definition.id, 0)))
        self._state = self._build(kept, compiler)
        logger.info("Indexed %d step definitions", len(kept))
        return len(kept)

    def apply_usage(self, counts: dict[str, int]) -> None:
        """Attach freshly computed usage counts to the live definitions."""
        self._usage_counts = dict(counts)
        state = self._state
        updated = [replace(d, usage_count=counts.get(d.id, 0)) for d in state.definitions]
        self._state = self._build(updated, state.compiler)

    def _build(self, definitions: list[StepDefinition], compiler: PatternCompiler) -> IndexSnapshot:
        by_id = {d.id: d for d in definitions}
        if not self.settings.enable_step_indexing:
            return IndexSnapshot(compiler, tuple(definitions), by_id)

        by_type: dict[GherkinType, list[StepDefinition]] = {
            t: [] for t in GherkinType if t.is_concrete
        }
        keys = {_definition_key(d.display_text) for d in definitions} - {None}
        by_prefix: dict[str, list[StepDefinition]] = {k: [] for k in keys}
        wildcard: list[StepDefinition] = []

        for definition in definitions:
            for gherkin_type, bucket in by_type.items():
                if type_matches(definition.gherkin_type, gherkin_type):
                    bucket.append(definition)
            key = _definition_key(definition.display_text)
            if key is not None:
                by_prefix[key].append(definition)
            else:
                wildcard.append(definition)
                for bucket in by_prefix.values():
                    bucket.append(definition)

        return IndexSnapshot(
            compiler=compiler,
            definitions=tuple(definitions),
            by_id=by_id,
            by_type={t: tuple(b) for t, b in by_type.items()},
            by_prefix={k: tuple(b) for k, b in by_prefix.items()},
            wildcard=tuple(wildcard),
        )

    # ── Lookups ─────────────────────────────────────────────────────

    def find_exact_match(
        self, text: str, gherkin_type: GherkinType | None = None
    ) -> StepDefinition | None:
        """First definition in scan order whose full pattern matches the whole text."""
        text = text.rstrip()
        for definition in self._state.definitions:
            if not type_matches(definition.gherkin_type, gherkin_type):
                continue
            if definition.full_pattern.fullmatch(text):
                return definition
        return None

    def find_candidates(
        self,
        prefix_text: str,
        gherkin_type: GherkinType = GherkinType.OTHER,
        strict: bool = False,
    ) -> list[StepDefinition]:
        """Definitions whose partial pattern accepts the text typed so far."""
        state = self._state
        pool: Iterable[StepDefinition] = state.definitions
        if self.settings.enable_step_indexing:
            if strict and gherkin_type.is_concrete:
                pool = state.by_type.get(gherkin_type, ())
            else:
                key = _prefix_key(prefix_text.lstrip())
                if len(key) == PREFIX_LENGTH:
                    pool = state.by_prefix.get(key, state.wildcard)
        elif strict:
            pool = [d for d in pool if type_matches(d.gherkin_type, gherkin_type)]

        return [d for d in pool if d.partial_pattern.fullmatch(prefix_text)]
