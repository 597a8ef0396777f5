"""Overlay command: project materialized data onto preview rectangles."""

from pathlib import Path

import typer

from pattern_probe.cli._app import app
from pattern_probe.cli._common import load_cli_settings, load_or_exit, load_valid_tree, setup_logging
from pattern_probe.cli._console import output_data, output_table, report


@app.command("overlay", help="Project records and geometry hints onto overlay elements.")
def overlay_cmd(
    ctx: typer.Context,
    pattern: Path = typer.Argument(..., help="Pattern file (v1 patterns are converted)"),
    records: Path = typer.Argument(..., help="Extraction records (JSON Lines)"),
    hints: Path = typer.Argument(..., help="Geometry hints (JSON Lines)"),
    active: str = typer.Option(None, "--active", help="Node id to flag as active"),
    viewport: str = typer.Option(None, "--viewport", help="Clip to a preset: pc-normal, pc-wide, pc-small"),
    flat: bool = typer.Option(False, "--flat", help="Flat rectangle list instead of nested elements"),
    output: Path = typer.Option(None, "--output", "-o", help="Write here instead of stdout"),
):
    """Print overlay elements as JSON."""
    setup_logging(verbose=ctx.obj["verbose"], quiet=ctx.obj["quiet"])

    from pattern_probe.materialize import build_page_data
    from pattern_probe.overlay import flatten_page_elements, project_overlay
    from pattern_probe.pattern import load_geometry_hints, load_records
    from pattern_probe.schemas.page_element import VIEWPORT_PRESETS

    preset = None
    if viewport is not None:
        preset = VIEWPORT_PRESETS.get(viewport)
        if preset is None:
            report(f"Unknown viewport '{viewport}'. Valid presets: {', '.join(VIEWPORT_PRESETS)}", "error")
            raise SystemExit(1)

    tree = load_valid_tree(pattern, load_cli_settings(ctx.obj["config"]))
    data = build_page_data(tree, load_or_exit(load_records, records)).data
    elements = project_overlay(
        tree,
        data,
        load_or_exit(load_geometry_hints, hints),
        active_node_id=active,
        viewport=preset,
    )
    if flat:
        elements = flatten_page_elements(elements)

    if not ctx.obj["json"] and not ctx.obj["quiet"] and output is not None:
        output_table(
            [
                {"name": e.name, "type": e.type.value, "top": e.coordinates.top,
                 "left": e.coordinates.left, "active": e.active}
                for e in flatten_page_elements(elements)
            ],
            title=f"{tree.name}: overlay",
        )
    output_data([e.model_dump(mode="json") for e in elements], output)
