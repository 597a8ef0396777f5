"""Validate command: check a pattern file against the tree rules."""

from pathlib import Path

import typer

from pattern_probe.cli._app import app
from pattern_probe.cli._common import load_cli_settings, load_or_exit, setup_logging
from pattern_probe.cli._console import output_data, report_issues, report_pattern


@app.command("validate", help="Validate a pattern file (v1 patterns are converted first).")
def validate_cmd(
    ctx: typer.Context,
    pattern: Path = typer.Argument(..., help="Pattern file (YAML or JSON, v1 or v2)"),
):
    """Validate a pattern and report every error found."""
    setup_logging(verbose=ctx.obj["verbose"], quiet=ctx.obj["quiet"])
    settings = load_cli_settings(ctx.obj["config"])

    from pattern_probe.pattern import load_pattern_tree, validate_pattern

    tree = load_or_exit(load_pattern_tree, pattern)
    errors = validate_pattern(tree, settings.limits)

    if ctx.obj["json"]:
        output_data({
            "name": tree.name,
            "valid": not errors,
            "errors": [e.model_dump(mode="json") for e in errors],
        })
    elif errors:
        report_issues(
            errors,
            title=f"{tree.name}: {len(errors)} error(s)",
            summary=f"{pattern} is not a valid pattern",
        )
    elif not ctx.obj["quiet"]:
        report_pattern(tree)

    if errors:
        raise SystemExit(1)
