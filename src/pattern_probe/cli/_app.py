"""Root Typer application: output mode flags and the settings file."""

from pathlib import Path

import typer

app = typer.Typer(
    no_args_is_help=True,
    rich_markup_mode="rich",
    pretty_exceptions_enable=False,
    help=(
        "Check, convert and evaluate page extraction patterns.\n\n"
        "Patterns may be v1 page patterns or v2 trees (YAML or JSON); records "
        "and geometry hints are JSON Lines as written by the evaluator."
    ),
)


def _print_version(value: bool) -> None:
    if value:
        from pattern_probe import __version__

        typer.echo(f"pattern-probe {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug-level logging"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Warnings and errors only"),
    json_output: bool = typer.Option(
        False, "--json", help="Machine-readable results (validation report, page data with warnings)"
    ),
    config: Path = typer.Option(
        None,
        "--config",
        "-c",
        help="Settings YAML (limits, cache size); default PATTERN_PROBE_CONFIG or ./pattern_probe.yaml",
    ),
    version: bool = typer.Option(
        False, "--version", callback=_print_version, is_eager=True, help="Show version and exit"
    ),
):
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    ctx.obj["quiet"] = quiet
    ctx.obj["json"] = json_output
    ctx.obj["config"] = config
