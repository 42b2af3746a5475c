"""Counts how often each step definition is used across feature files."""

from __future__ import annotations

import logging
from collections import Counter
from pathlib import Path

from gherkin_steps.index import StepIndex
from gherkin_steps.parser import example_tables, resolve_step_line
from gherkin_steps.sources import read_text, resolve_glob, split_lines

logger = logging.getLogger(__name__)


class UsageTracker:
    """Recomputes usage counts from scratch on every sync."""

    def __init__(self, index: StepIndex) -> None:
        self.index = index
        self._counts: dict[str, int] = {}

    @property
    def counts(self) -> dict[str, int]:
        return dict(self._counts)

    def count(self, step_id: str) -> int:
        return self._counts.get(step_id, 0)

    def count_document(self, text: str, counts: Counter[str] | None = None) -> Counter[str]:
        """Add the step usages of one feature document to ``counts``."""
        counts = Counter() if counts is None else counts
        lines = split_lines(text)
        tables = example_tables(lines)

        def is_known(step_text: str) -> bool:
            return self.index.find_exact_match(step_text) is not None

        for number, line in enumerate(lines):
            gherkin = resolve_step_line(line, tables, number, is_known)
            if gherkin is None:
                continue
            if (step := self.index.find_exact_match(gherkin.text)) is not None:
                counts[step.id] += 1
        return counts

    def sync(self, root: str | Path, pattern: str) -> dict[str, int]:
        """Scan every feature file matched by ``pattern`` and publish the counts."""
        counts: Counter[str] = Counter()
        files = resolve_glob(root, pattern)
        for path in files:
            try:
                text = read_text(path)
            except OSError as e:
                logger.warning("Cannot read feature file %s: %s", path, e)
                continue
            self.count_document(text, counts)
        self._counts = dict(counts)
        self.index.apply_usage(self._counts)
        logger.info("Synced usage from %d feature files", len(files))
        return self.counts
