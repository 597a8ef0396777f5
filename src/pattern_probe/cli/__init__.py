"""CLI package: Typer-based command-line interface.

Usage:
    pattern-probe --help
    python -m pattern_probe.cli validate pattern.yaml
"""

from pattern_probe.cli._app import app

# Register command modules (side-effect imports)
import pattern_probe.cli.cmd_validate  # noqa: F401
import pattern_probe.cli.cmd_convert  # noqa: F401
import pattern_probe.cli.cmd_materialize  # noqa: F401
import pattern_probe.cli.cmd_overlay  # noqa: F401

__all__ = ["app"]
