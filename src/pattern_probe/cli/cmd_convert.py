"""Convert command: move a pattern between schema versions."""

from pathlib import Path

import typer

from pattern_probe.cli._app import app
from pattern_probe.cli._common import load_or_exit, setup_logging
from pattern_probe.cli._console import output_data, report, report_issues
from pattern_probe.schemas.pattern_tree import SchemaVersion


@app.command("convert", help="Convert a pattern to v1 (legacy) or v2 (tree).")
def convert_cmd(
    ctx: typer.Context,
    pattern: Path = typer.Argument(..., help="Pattern file (YAML or JSON, v1 or v2)"),
    to: SchemaVersion = typer.Option(..., "--to", help="Target schema version"),
    output: Path = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
    nested: bool = typer.Option(False, "--nested", help="v2 only: nested instead of flat node table"),
):
    """Convert between the legacy page pattern and the pattern tree."""
    setup_logging(verbose=ctx.obj["verbose"], quiet=ctx.obj["quiet"])

    from pattern_probe.pattern import convert_tree_to_legacy, load_pattern, to_v2
    from pattern_probe.schemas import DowngradeUnsupported, PagePattern

    source = load_or_exit(load_pattern, pattern)
    tree = to_v2(source) if isinstance(source, PagePattern) else source

    if to == SchemaVersion.V2:
        if nested:
            data = tree.to_nested()
        else:
            data = tree.model_dump(mode="json", exclude_none=True)
    else:
        legacy = source if isinstance(source, PagePattern) else convert_tree_to_legacy(tree)
        if isinstance(legacy, DowngradeUnsupported):
            if ctx.obj["json"]:
                output_data({"converted": False, **legacy.model_dump(mode="json")})
            else:
                report_issues(
                    legacy.reasons,
                    title="Unsupported in v1",
                    summary=f"{tree.name} cannot be expressed as a v1 pattern",
                )
            raise SystemExit(1)
        data = {"schema_version": SchemaVersion.V1.value, **legacy.model_dump(mode="json", exclude_none=True)}

    output_data(data, output)
    if output is not None and not ctx.obj["quiet"]:
        report(f"Wrote {to.value} pattern '{tree.name}' to {output}")
