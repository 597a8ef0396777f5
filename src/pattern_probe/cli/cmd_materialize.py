"""Materialize command: build page data from a pattern and a record log."""

from pathlib import Path

import typer

from pattern_probe.cli._app import app
from pattern_probe.cli._common import load_cli_settings, load_or_exit, load_valid_tree, setup_logging
from pattern_probe.cli._console import output_data, report_record_warnings


@app.command("materialize", help="Materialize JSON Lines records into page data.")
def materialize_cmd(
    ctx: typer.Context,
    pattern: Path = typer.Argument(..., help="Pattern file (v1 patterns are converted)"),
    records: Path = typer.Argument(..., help="Extraction records (JSON Lines)"),
    absent_as_null: bool = typer.Option(
        False, "--absent-as-null", help="Emit null for absent fields instead of omitting them"
    ),
    task_id: str = typer.Option(None, "--task-id", help="Ignore records of other tasks"),
    output: Path = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
):
    """Print the materialized page data as JSON."""
    setup_logging(verbose=ctx.obj["verbose"], quiet=ctx.obj["quiet"])

    from pattern_probe.materialize import build_page_data
    from pattern_probe.pattern import load_records

    tree = load_valid_tree(pattern, load_cli_settings(ctx.obj["config"]))
    rows = load_or_exit(load_records, records)
    result = build_page_data(tree, rows, task_id=task_id)

    if not ctx.obj["quiet"]:
        report_record_warnings(result.warnings)

    data = result.to_jsonable(absent=None, drop_absent=not absent_as_null)
    if ctx.obj["json"]:
        data = {
            "data": data,
            "warnings": [w.model_dump(mode="json") for w in result.warnings],
        }
    output_data(data, output)
