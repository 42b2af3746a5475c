"""Configuration management for gherkin-steps projects."""

from __future__ import annotations

import json
import re
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import yaml

from gherkin_steps.models import Diagnostic, DiagnosticSeverity, Position, Range
from gherkin_steps.sources import find_text_range, resolve_glob

CONFIG_DIR = ".gherkin-steps"
CONFIG_FILE = "config.json"
YAML_CONFIG_FILES = ("config.yaml", "config.yml")
DEFAULT_FEATURES_GLOB = "**/*.feature"

# Default step globs offered by ``init`` per detected language
DEFAULT_STEP_GLOBS: dict[str, list[str]] = {
    "typescript": ["**/*.steps.ts", "**/step_definitions/**/*.ts"],
    "javascript": ["**/*.steps.js", "**/step_definitions/**/*.js"],
    "python": ["**/steps/**/*.py"],
    "ruby": ["**/step_definitions/**/*.rb"],
    "java": ["**/src/test/**/*Steps.java"],
}


class ConfigError(Exception):
    """Raised when the project configuration cannot be loaded."""


class ParameterKind(Enum):
    LITERAL = "literal"
    PATTERN = "pattern"


@dataclass(frozen=True)
class CustomParameter:
    """A user-defined substitution applied to step source lines before compiling.

    A ``LITERAL`` parameter replaces every occurrence of the text; a
    ``PATTERN`` parameter replaces every regex match.  The value is always
    inserted verbatim.
    """

    kind: ParameterKind
    parameter: str
    value: str

    def apply(self, text: str) -> str:
        if self.kind is ParameterKind.LITERAL:
            return text.replace(self.parameter, self.value)
        return re.sub(self.parameter, lambda _m: self.value, text)

    def to_dict(self) -> dict[str, str]:
        key = "parameter" if self.kind is ParameterKind.LITERAL else "pattern"
        return {key: self.parameter, "value": self.value}

    @classmethod
    def from_dict(cls, data: Any) -> CustomParameter:
        if not isinstance(data, dict) or not isinstance(data.get("value"), str):
            raise ConfigError(f"Invalid custom parameter: {data!r}")
        if isinstance(data.get("pattern"), str):
            try:
                re.compile(data["pattern"])
            except re.error as e:
                raise ConfigError(f"Invalid custom parameter pattern {data['pattern']!r}: {e}") from e
            return cls(ParameterKind.PATTERN, data["pattern"], data["value"])
        if isinstance(data.get("parameter"), str):
            return cls(ParameterKind.LITERAL, data["parameter"], data["value"])
        raise ConfigError(f"Custom parameter needs 'parameter' or 'pattern': {data!r}")


@dataclass
class Settings:
    """Project settings, as stored in ``.gherkin-steps/config.json``."""

    steps: list[str] = field(default_factory=list)
    sync_features: bool | str = False
    custom_parameters: list[CustomParameter] = field(default_factory=list)
    step_regex_symbol: str | None = None
    gherkin_definition_part: str | None = None
    pure_text_steps: bool = False
    expand_alternations: bool = False
    strict_gherkin_validation: bool = False
    strict_gherkin_completion: bool = False
    smart_snippets: bool = True
    max_completion_items: int = 50
    enable_regex_caching: bool = True
    enable_step_indexing: bool = True
    debounce_delay_ms: int = 100
    step_template: str | None = None

    @property
    def features_glob(self) -> str | None:
        """Glob of feature files scanned for usage counts, if syncing is on."""
        if self.sync_features is True:
            return DEFAULT_FEATURES_GLOB
        if isinstance(self.sync_features, str) and self.sync_features:
            return self.sync_features
        return None


_BOOL_FIELDS = (
    "pure_text_steps",
    "expand_alternations",
    "strict_gherkin_validation",
    "strict_gherkin_completion",
    "smart_snippets",
    "enable_regex_caching",
    "enable_step_indexing",
)
_INT_FIELDS = ("max_completion_items", "debounce_delay_ms")
_OPTIONAL_STR_FIELDS = ("step_regex_symbol", "gherkin_definition_part", "step_template")


def settings_to_dict(settings: Settings) -> dict[str, Any]:
    data: dict[str, Any] = {
        "steps": list(settings.steps),
        "sync_features": settings.sync_features,
        "custom_parameters": [p.to_dict() for p in settings.custom_parameters],
    }
    for name in _OPTIONAL_STR_FIELDS:
        if (value := getattr(settings, name)) is not None:
            data[name] = value
    for name in _BOOL_FIELDS + _INT_FIELDS:
        data[name] = getattr(settings, name)
    return data


def settings_from_dict(data: Any) -> Settings:
    """Build Settings from parsed config data, rejecting wrongly typed values."""
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ConfigError("Configuration must be a mapping")

    steps = data.get("steps", [])
    if isinstance(steps, str):
        steps = [steps]
    if not isinstance(steps, list) or not all(isinstance(s, str) for s in steps):
        raise ConfigError("'steps' must be a glob or a list of globs")

    sync = data.get("sync_features", False)
    if not isinstance(sync, (bool, str)):
        raise ConfigError("'sync_features' must be a boolean or a glob")

    params = data.get("custom_parameters", [])
    if not isinstance(params, list):
        raise ConfigError("'custom_parameters' must be a list")

    kwargs: dict[str, Any] = {
        "steps": steps,
        "sync_features": sync,
        "custom_parameters": [CustomParameter.from_dict(p) for p in params],
    }
    for name in _BOOL_FIELDS:
        if name in data:
            if not isinstance(data[name], bool):
                raise ConfigError(f"'{name}' must be a boolean")
            kwargs[name] = data[name]
    for name in _INT_FIELDS:
        if name in data:
            value = data[name]
            if isinstance(value, bool) or not isinstance(value, int) or value < 0:
                raise ConfigError(f"'{name}' must be a non-negative integer")
            kwargs[name] = value
    for name in _OPTIONAL_STR_FIELDS:
        if data.get(name) is not None:
            if not isinstance(data[name], str):
                raise ConfigError(f"'{name}' must be a string")
            kwargs[name] = data[name]

    for name in ("step_regex_symbol", "gherkin_definition_part"):
        if kwargs.get(name):
            try:
                re.compile(kwargs[name])
            except re.error as e:
                raise ConfigError(f"'{name}' is not a valid regex: {e}") from e

    return Settings(**kwargs)


def config_path(project_root: Path) -> Path:
    """Path of the config file in use: JSON first, then YAML, else the JSON default."""
    config_dir = project_root / CONFIG_DIR
    json_path = config_dir / CONFIG_FILE
    if json_path.exists():
        return json_path
    for name in YAML_CONFIG_FILES:
        if (candidate := config_dir / name).exists():
            return candidate
    return json_path


def save_config(settings: Settings, project_root: Path) -> Path:
    """Save settings to .gherkin-steps/config.json. Returns the config path."""
    config_dir = project_root / CONFIG_DIR
    config_dir.mkdir(parents=True, exist_ok=True)
    path = config_dir / CONFIG_FILE
    path.write_text(json.dumps(settings_to_dict(settings), indent=2) + "\n")
    return path


def load_config(project_root: Path) -> Settings:
    """Load settings from .gherkin-steps/config.json (or config.yaml)."""
    path = config_path(project_root)
    if not path.exists():
        raise FileNotFoundError(f"No config found at {path}")
    text = path.read_text()
    try:
        if path.suffix == ".json":
            data = json.loads(text)
        else:
            data = yaml.safe_load(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot parse {path}: {e}") from e
    return settings_from_dict(data)


def detect_language(project_root: Path) -> str:
    """Guess the step-definition language from files in the project."""
    extensions = {
        ".ts": "typescript",
        ".js": "javascript",
        ".py": "python",
        ".rb": "ruby",
        ".java": "java",
    }
    counts: dict[str, int] = {}
    for path in project_root.rglob("*"):
        if path.is_file() and path.suffix in extensions:
            parts = path.relative_to(project_root).parts
            if any(p.startswith(".") or p in ("node_modules", "venv", ".venv") for p in parts):
                continue
            lang = extensions[path.suffix]
            counts[lang] = counts.get(lang, 0) + 1

    if (project_root / "tsconfig.json").exists():
        return "typescript"
    if not counts:
        return "javascript"
    return max(sorted(counts), key=lambda lang: counts[lang])


def validate_configuration(settings: Settings, project_root: Path) -> list[Diagnostic]:
    """Report every configured steps glob that matches no files."""
    path = config_path(project_root)
    diagnostics: list[Diagnostic] = []
    for pattern in settings.steps:
        if resolve_glob(project_root, pattern):
            continue
        span = find_text_range(path, f'"{pattern}"') or find_text_range(path, pattern)
        if span is None:
            span = Range(Position(0, 0), Position(0, 0))
        diagnostics.append(
            Diagnostic(
                range=span,
                message="No steps files found",
                severity=DiagnosticSeverity.WARNING,
            )
        )
    return diagnostics


def is_initialized(project_root: Path) -> bool:
    """Check if the project is initialized for gherkin-steps."""
    return config_path(project_root).exists()


def ensure_initialized(project_root: Path) -> Settings:
    """Ensure the project is initialized. Raises if not."""
    if not is_initialized(project_root):
        raise RuntimeError(
            "Project is not initialized. Run `gherkin-steps init` first."
        )
    return load_config(project_root)
