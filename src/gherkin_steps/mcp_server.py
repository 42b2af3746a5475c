"""FastMCP server exposing gherkin-steps tools to editors and assistants."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from fastmcp import FastMCP

from gherkin_steps.config import ConfigError
from gherkin_steps.sources import read_text, split_lines
from gherkin_steps.workspace import StepWorkspace

mcp = FastMCP("gherkin-steps")


# --- Helpers ---


def _open_workspace(project_root: str) -> StepWorkspace | dict[str, Any]:
    """Load the project, or return an error payload the tool can hand back."""
    try:
        return StepWorkspace.load(Path(project_root))
    except FileNotFoundError:
        return {"error": "Project is not initialized. Run `gherkin-steps init` first."}
    except ConfigError as e:
        return {"error": f"Invalid configuration: {e}"}


def _document(content: str | None, file_path: str | None) -> str | dict[str, Any]:
    if file_path:
        try:
            return read_text(file_path)
        except OSError as e:
            return {"error": f"Cannot read {file_path}: {e}"}
    if content is None:
        return {"error": "Provide either 'content' or 'file_path'"}
    return content


# --- Tool implementation functions (testable without MCP) ---


def _list_steps(project_root: str = ".") -> dict[str, Any]:
    workspace = _open_workspace(project_root)
    if isinstance(workspace, dict):
        return workspace
    return {
        "step_count": len(workspace.definitions),
        "steps": [d.to_dict() for d in workspace.definitions],
    }


def _validate_feature(
    content: str | None = None,
    file_path: str | None = None,
    project_root: str = ".",
) -> dict[str, Any]:
    text = _document(content, file_path)
    if isinstance(text, dict):
        return text
    workspace = _open_workspace(project_root)
    if isinstance(workspace, dict):
        return workspace
    diagnostics = workspace.validate_document(text)
    return {
        "is_valid": not diagnostics,
        "diagnostic_count": len(diagnostics),
        "diagnostics": [d.to_dict() for d in diagnostics],
    }


def _find_definition(
    line_number: int,
    content: str | None = None,
    file_path: str | None = None,
    project_root: str = ".",
) -> dict[str, Any]:
    text = _document(content, file_path)
    if isinstance(text, dict):
        return text
    lines = split_lines(text)
    if not 0 <= line_number < len(lines):
        return {"error": f"Line {line_number} is outside the document"}
    workspace = _open_workspace(project_root)
    if isinstance(workspace, dict):
        return workspace
    location = workspace.get_definition(lines[line_number], text, line_number)
    return {"found": location is not None, "location": location.to_dict() if location else None}


def _complete_step(
    line_number: int,
    character: int | None = None,
    content: str | None = None,
    file_path: str | None = None,
    project_root: str = ".",
) -> dict[str, Any]:
    text = _document(content, file_path)
    if isinstance(text, dict):
        return text
    lines = split_lines(text)
    if not 0 <= line_number < len(lines):
        return {"error": f"Line {line_number} is outside the document"}
    workspace = _open_workspace(project_root)
    if isinstance(workspace, dict):
        return workspace
    line = lines[line_number]
    cursor = len(line) if character is None else character
    items = workspace.get_completion_items(line, cursor, text, line_number)
    return {"item_count": len(items), "items": [item.to_dict() for item in items]}


def _check_configuration(project_root: str = ".") -> dict[str, Any]:
    workspace = _open_workspace(project_root)
    if isinstance(workspace, dict):
        return workspace
    diagnostics = workspace.validate_configuration()
    return {
        "is_valid": not diagnostics,
        "step_files": workspace.get_step_definition_files(),
        "diagnostics": [d.to_dict() for d in diagnostics],
    }


def _generate_step_definition(
    step_text: str, gherkin_type: str = "Given", project_root: str = "."
) -> dict[str, Any]:
    workspace = _open_workspace(project_root)
    if isinstance(workspace, dict):
        return workspace
    return {
        "language": workspace.generator.detect_language(),
        "code": workspace.generate_step_definition(step_text, gherkin_type),
    }


# --- MCP tool registration (thin wrappers) ---


@mcp.tool()
def list_steps(project_root: str = ".") -> dict:
    """List every step definition found by the configured step globs.

    Each step carries its display text, compiled pattern, keyword type,
    source location and usage count.
    """
    return _list_steps(project_root)


@mcp.tool()
def validate_feature(
    content: str | None = None,
    file_path: str | None = None,
    project_root: str = ".",
) -> dict:
    """Report feature-file steps that no step definition implements.

    Provide either `content` (feature text) or `file_path`.
    """
    return _validate_feature(content, file_path, project_root)


@mcp.tool()
def find_definition(
    line_number: int,
    content: str | None = None,
    file_path: str | None = None,
    project_root: str = ".",
) -> dict:
    """Find where the step on a zero-based feature line is defined."""
    return _find_definition(line_number, content, file_path, project_root)


@mcp.tool()
def complete_step(
    line_number: int,
    character: int | None = None,
    content: str | None = None,
    file_path: str | None = None,
    project_root: str = ".",
) -> dict:
    """Suggest step completions for a partially typed feature line.

    `character` is the zero-based cursor offset; it defaults to the end of the line.
    """
    return _complete_step(line_number, character, content, file_path, project_root)


@mcp.tool()
def check_configuration(project_root: str = ".") -> dict:
    """Check that every configured steps glob matches at least one file."""
    return _check_configuration(project_root)


@mcp.tool()
def generate_step_definition(
    step_text: str, gherkin_type: str = "Given", project_root: str = "."
) -> dict:
    """Generate a step definition skeleton for an unimplemented step.

    Quoted strings, decimals and integers become {string}, {float} and {int}.
    """
    return _generate_step_definition(step_text, gherkin_type, project_root)


def main() -> None:
    mcp.run()
