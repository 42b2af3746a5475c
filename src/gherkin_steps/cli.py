"""Click CLI entry point for gherkin-steps."""

from __future__ import annotations

import json
import logging
from pathlib import Path

import click

from gherkin_steps import __version__
from gherkin_steps.config import (
    DEFAULT_STEP_GLOBS,
    ConfigError,
    Settings,
    detect_language,
    is_initialized,
    load_config,
    save_config,
)
from gherkin_steps.sources import read_text, split_lines
from gherkin_steps.workspace import StepWorkspace


@click.group()
@click.version_option(version=__version__, prog_name="gherkin-steps")
@click.option("--verbose", "-v", is_flag=True, default=False, help="Log debug output")
@click.pass_context
def cli(ctx: click.Context, verbose: bool) -> None:
    """Gherkin steps: find, validate and complete Cucumber step definitions."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s",
    )
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


def _workspace(ctx: click.Context) -> StepWorkspace:
    project_root = Path.cwd()
    if not is_initialized(project_root):
        click.echo("Error: Not initialized. Run `gherkin-steps init` first.")
        ctx.exit(1)
    try:
        return StepWorkspace.load(project_root)
    except ConfigError as e:
        click.echo(f"Error: Invalid configuration: {e}")
        ctx.exit(1)


def _feature_line(ctx: click.Context, feature: str, line: int) -> tuple[str, list[str]]:
    text = read_text(feature)
    lines = split_lines(text)
    if not 1 <= line <= len(lines):
        click.echo(f"Error: {feature} has no line {line}.")
        ctx.exit(1)
    return text, lines


@cli.command()
@click.option("--steps", "step_globs", multiple=True, help="Glob of step definition files (repeatable)")
@click.option("--sync-features/--no-sync-features", default=True, help="Count step usage in feature files")
@click.pass_context
def init(ctx: click.Context, step_globs: tuple[str, ...], sync_features: bool) -> None:
    """Initialize a project for gherkin-steps."""
    project_root = Path.cwd()
    already = is_initialized(project_root)

    if already:
        click.echo("Warning: Project is already initialized. Updating configuration.")
        try:
            settings = load_config(project_root)
        except ConfigError as e:
            click.echo(f"Error: Invalid configuration: {e}")
            ctx.exit(1)
            return
    else:
        settings = Settings()

    if step_globs:
        settings.steps = list(step_globs)
    elif not settings.steps:
        language = detect_language(project_root)
        click.echo(f"Detected step language: {language}")
        settings.steps = list(DEFAULT_STEP_GLOBS[language])
    settings.sync_features = sync_features

    path = save_config(settings, project_root)
    if already:
        click.echo("Configuration updated.")
    else:
        click.echo("Initialized gherkin-steps project.")
    click.echo(f"  Config: {path}")
    for pattern in settings.steps:
        click.echo(f"  Steps:  {pattern}")


@cli.command()
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON")
@click.pass_context
def steps(ctx: click.Context, as_json: bool) -> None:
    """List the step definitions found in the project."""
    workspace = _workspace(ctx)
    definitions = workspace.definitions
    if as_json:
        click.echo(json.dumps([d.to_dict() for d in definitions], indent=2))
        return
    if not definitions:
        click.echo("No step definitions found.")
        return
    for d in definitions:
        click.echo(
            f"{d.gherkin_type.value:<6} {d.display_text}"
            f"  ({d.location.path}:{d.location.line + 1})"
        )
    click.echo(f"\n{len(definitions)} step definition(s).")


@cli.command()
@click.argument("features", nargs=-1, required=True, type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate(ctx: click.Context, features: tuple[str, ...]) -> None:
    """Report feature steps without a matching step definition."""
    workspace = _workspace(ctx)
    total = 0
    for feature in features:
        for diagnostic in workspace.validate_document(read_text(feature)):
            start = diagnostic.range.start
            click.echo(f"{feature}:{start.line + 1}:{start.character + 1}: {diagnostic.message}")
            total += 1
    if total:
        click.echo(f"\n{total} undefined step(s).")
        ctx.exit(1)
    click.echo("All steps are defined.")


@cli.command()
@click.argument("feature", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=int)
@click.pass_context
def definition(ctx: click.Context, feature: str, line: int) -> None:
    """Show where the step on LINE (1-based) of FEATURE is defined."""
    workspace = _workspace(ctx)
    text, lines = _feature_line(ctx, feature, line)
    location = workspace.get_definition(lines[line - 1], text, line - 1)
    if location is None:
        click.echo("No definition found.")
        ctx.exit(1)
        return
    click.echo(f"{location.path}:{location.line + 1}:{location.character + 1}")


@cli.command()
@click.argument("feature", type=click.Path(exists=True, dir_okay=False))
@click.argument("line", type=int)
@click.argument("column", type=int, required=False)
@click.option("--json", "as_json", is_flag=True, default=False, help="Output JSON")
@click.pass_context
def complete(ctx: click.Context, feature: str, line: int, column: int | None, as_json: bool) -> None:
    """Suggest completions for LINE (1-based) of FEATURE at COLUMN (0-based, default end)."""
    workspace = _workspace(ctx)
    text, lines = _feature_line(ctx, feature, line)
    current = lines[line - 1]
    cursor = len(current) if column is None else column
    items = workspace.get_completion_items(current, cursor, text, line - 1)
    if as_json:
        click.echo(json.dumps([item.to_dict() for item in items], indent=2))
        return
    if not items:
        click.echo("No completions.")
        return
    for item in items:
        click.echo(f"{item.label}  ->  {item.insert_text!r}")


@cli.command()
@click.pass_context
def usage(ctx: click.Context) -> None:
    """Show how often each step definition is used in feature files."""
    workspace = _workspace(ctx)
    if workspace.settings.features_glob is None:
        click.echo("Warning: sync_features is off; all counts are 0.")
    ranked = sorted(workspace.definitions, key=lambda d: (-d.usage_count, d.display_text))
    for d in ranked:
        click.echo(f"{d.usage_count:>5}  {d.display_text}")


@cli.command(name="check-config")
@click.pass_context
def check_config(ctx: click.Context) -> None:
    """Check that every steps glob matches at least one file."""
    workspace = _workspace(ctx)
    diagnostics = workspace.validate_configuration()
    for diagnostic in diagnostics:
        start = diagnostic.range.start
        click.echo(f"config:{start.line + 1}:{start.character + 1}: {diagnostic.message}")
    if diagnostics:
        ctx.exit(1)
    files = workspace.get_step_definition_files()
    click.echo(f"Configuration OK: {len(files)} step file(s).")


@cli.command()
@click.argument("step_text")
@click.option(
    "--type", "gherkin_type",
    type=click.Choice(["Given", "When", "Then"], case_sensitive=False),
    default="Given",
)
@click.pass_context
def generate(ctx: click.Context, step_text: str, gherkin_type: str) -> None:
    """Print a step definition skeleton for STEP_TEXT."""
    workspace = _workspace(ctx)
    click.echo(workspace.generate_step_definition(step_text, gherkin_type))


@cli.command()
def mcp() -> None:
    """Run the MCP server over stdio."""
    from gherkin_steps.mcp_server import main

    main()
