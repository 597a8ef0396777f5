"""Shared CLI utilities."""

import logging
from pathlib import Path
from typing import Callable, Optional, TypeVar

from rich.logging import RichHandler

from pattern_probe.cli._console import console, report, report_issues
from pattern_probe.config import ProbeSettings, load_settings
from pattern_probe.pattern import PatternLoadError, load_pattern_tree, validate_pattern
from pattern_probe.schemas.pattern_tree import PatternTree

logger = logging.getLogger(__name__)

T = TypeVar("T")


def setup_logging(*, verbose: bool = False, quiet: bool = False) -> None:
    """Configure logging with Rich handler on stderr."""
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    handler = RichHandler(
        console=console,
        show_time=True,
        show_path=False,
        markup=False,
        rich_tracebacks=True,
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(level)


def load_cli_settings(config: Optional[Path] = None) -> ProbeSettings:
    """Load settings, exiting with an error message if they are invalid.

    An explicit ``--config`` file must exist; the implicit lookup falls back
    to defaults.
    """
    if config is not None and not Path(config).exists():
        report(f"Settings file not found: {config}", "error")
        raise SystemExit(1)
    try:
        return load_settings(config)
    except ValueError as e:
        report(f"Invalid settings: {e}", "error")
        raise SystemExit(1)


def load_or_exit(loader: Callable[[Path], T], path: Path) -> T:
    """Run a file loader, turning PatternLoadError into exit code 1."""
    try:
        return loader(path)
    except PatternLoadError as e:
        report(str(e), "error")
        raise SystemExit(1)


def load_valid_tree(path: Path, settings: ProbeSettings) -> PatternTree:
    """Load a pattern as a v2 tree, exiting with the error table if invalid."""
    tree = load_or_exit(load_pattern_tree, path)
    errors = validate_pattern(tree, settings.limits)
    if errors:
        report_issues(
            errors,
            title=f"{tree.name}: {len(errors)} error(s)",
            summary=f"{path} is not a valid pattern",
        )
        raise SystemExit(1)
    return tree
