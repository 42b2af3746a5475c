"""One project's steps, features and settings behind a single object.

``StepWorkspace`` is what the CLI and the MCP server talk to.  It owns the
index, the usage tracker and the completion engine, and re-runs the scan
whenever ``populate`` is called.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from pathlib import Path

from gherkin_steps.compiler import PatternCompiler
from gherkin_steps.completion import CompletionDebouncer, CompletionEngine
from gherkin_steps.config import Settings, load_config, validate_configuration
from gherkin_steps.generator import StepDefinitionGenerator, step_definition_files
from gherkin_steps.index import StepIndex
from gherkin_steps.models import (
    CompletionCandidate,
    Diagnostic,
    DiagnosticSeverity,
    GherkinLine,
    GherkinType,
    Position,
    Range,
    SourceLocation,
    StepDefinition,
)
from gherkin_steps.parser import example_tables, resolve_effective_type, resolve_step_line
from gherkin_steps.sources import read_text, resolve_globs, split_lines
from gherkin_steps.usage import UsageTracker

logger = logging.getLogger(__name__)


class StepWorkspace:
    """Step definitions and feature usage for one project root."""

    def __init__(self, root: str | Path, settings: Settings | None = None) -> None:
        self.root = Path(root)
        self.settings = settings or Settings()
        self.index = StepIndex(self.settings)
        self.usage = UsageTracker(self.index)
        self.completion = CompletionEngine(self.index, self.settings)
        self.debouncer = CompletionDebouncer(self.completion, self.settings.debounce_delay_ms)
        self.generator = StepDefinitionGenerator(self.settings)

    @classmethod
    def load(cls, root: str | Path) -> StepWorkspace:
        """Load settings from the project's config and scan everything."""
        workspace = cls(root, load_config(Path(root)))
        workspace.refresh()
        return workspace

    def refresh(self) -> None:
        """Rescan step files, then recount usage when feature syncing is on."""
        self.populate()
        if (features := self.settings.features_glob) is not None:
            self.usage.sync(self.root, features)

    def populate(
        self, root: str | Path | None = None, patterns: list[str] | None = None
    ) -> int:
        """Compile every step file matched by the globs and swap in the result."""
        if root is not None:
            self.root = Path(root)
        if patterns is None:
            patterns = self.settings.steps
        compiler = PatternCompiler(self.settings)
        definitions: list[StepDefinition] = []
        for path in resolve_globs(self.root, patterns):
            try:
                content = read_text(path)
            except OSError as e:
                logger.warning("Cannot read steps file %s: %s", path, e)
                continue
            definitions.extend(compiler.compile_file(path, content))
        return self.index.populate(definitions, compiler)

    @property
    def definitions(self) -> tuple[StepDefinition, ...]:
        return self.index.definitions

    # ── Feature documents ───────────────────────────────────────────

    def _resolve(self, line: str, text: str, line_number: int | None) -> GherkinLine | None:
        return resolve_step_line(
            line,
            example_tables(text),
            line_number,
            lambda step: self.index.find_exact_match(step) is not None,
        )

    def validate(self, line: str, line_number: int, text: str) -> Diagnostic | None:
        """A diagnostic for a step line no definition implements, else None."""
        stripped = line.rstrip()
        gherkin = self._resolve(stripped, text, line_number)
        if gherkin is None:
            return None
        wanted: GherkinType | None = None
        if self.settings.strict_gherkin_validation:
            wanted = resolve_effective_type(gherkin, split_lines(text), line_number)
        if self.index.find_exact_match(gherkin.text, wanted) is not None:
            return None
        return Diagnostic(
            range=Range(
                Position(line_number, len(gherkin.indent)),
                Position(line_number, len(stripped)),
            ),
            message=f'Was unable to find step for "{stripped.lstrip()}"',
            severity=DiagnosticSeverity.WARNING,
        )

    def validate_document(self, text: str) -> list[Diagnostic]:
        diagnostics = []
        for number, line in enumerate(split_lines(text)):
            if line.lstrip().startswith("#"):
                continue
            if (diagnostic := self.validate(line, number, text)) is not None:
                diagnostics.append(diagnostic)
        return diagnostics

    def get_definition(
        self, line: str, text: str, line_number: int | None = None
    ) -> SourceLocation | None:
        gherkin = self._resolve(line.rstrip(), text, line_number)
        if gherkin is None:
            return None
        step = self.index.find_exact_match(gherkin.text)
        return step.location if step is not None else None

    def get_completion_items(
        self, line: str, cursor: int, text: str, line_number: int | None = None
    ) -> list[CompletionCandidate]:
        return self.completion.get_completion_items(line, cursor, text, line_number)

    def request_completion(
        self,
        line: str,
        cursor: int,
        text: str,
        callback: Callable[[list[CompletionCandidate]], None],
        line_number: int | None = None,
    ) -> None:
        """Debounced completion: only the latest request within
        ``debounce_delay_ms`` reaches ``callback``.
        """
        self.debouncer.request(line, cursor, text, callback, line_number)

    def cancel_completion(self) -> None:
        self.debouncer.cancel()

    def usage_count(self, step_id: str) -> int:
        return self.index.usage_count(step_id)

    # ── Configuration and generation ────────────────────────────────

    def validate_configuration(self) -> list[Diagnostic]:
        return validate_configuration(self.settings, self.root)

    def generate_step_definition(self, step_text: str, gherkin_type: str = "Given") -> str:
        return self.generator.generate(step_text, gherkin_type)

    def get_step_definition_files(self) -> list[dict[str, str]]:
        return step_definition_files(self.root, self.settings.steps)
