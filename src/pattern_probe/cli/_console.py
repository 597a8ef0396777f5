"""Stderr reporting for patterns, validation issues and record warnings.

Data (page data, converted patterns, overlays) goes to stdout or a file via
output_data; everything a human reads goes to the stderr console.
"""

import json
from collections import Counter
from pathlib import Path
from typing import Any, List, Optional, Sequence

import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from pattern_probe.schemas.pattern_tree import NodeType, PatternTree
from pattern_probe.schemas.results import RecordWarning

console = Console(stderr=True)

_MARKS = {
    "ok": "[green]✓[/green]",
    "error": "[red]✗[/red]",
    "warn": "[yellow]![/yellow]",
}


def report(msg: str, level: str = "ok") -> None:
    """Print one status line on stderr, marked by level (ok, error, warn)."""
    console.print(f"{_MARKS[level]} {escape(msg)}", highlight=False)


def report_pattern(tree: PatternTree) -> None:
    """One-line summary of a valid tree: node, list and depth counts."""
    walked = list(tree.iter_depth_first())
    lists = sum(1 for node, _ in walked if node.node_type == NodeType.LIST)
    depth = max((d for _, d in walked), default=0)
    report(f"{tree.name}: {len(tree.nodes)} nodes, {lists} list(s), depth {depth}, valid")


def issue_rows(issues: Sequence[Any]) -> List[dict]:
    """Table rows for validation errors or downgrade reasons."""
    rows = []
    for issue in issues:
        code = getattr(issue, "code", None)
        rows.append({
            "node": issue.node_id or "-",
            "code": code.value if code is not None else "DOWNGRADE_UNSUPPORTED",
            "message": getattr(issue, "message", None) or getattr(issue, "reason", ""),
        })
    return rows


def report_issues(issues: Sequence[Any], *, title: str, summary: str) -> None:
    """Table of validation errors or downgrade reasons, then an error line."""
    output_table(issue_rows(issues), title=title)
    report(summary, "error")


def report_record_warnings(warnings: Sequence[RecordWarning]) -> None:
    """Each ignored or reconciled record, then a per-code tally."""
    if not warnings:
        return
    for w in warnings:
        where = "/".join(str(i) for i in w.instance_path) or "root"
        report(f"{w.code.value} {w.pattern_node_id or '-'}@{where}: {w.message}", "warn")
    tally = Counter(w.code.value for w in warnings)
    counts = ", ".join(f"{code} x{n}" for code, n in sorted(tally.items()))
    console.print(f"[dim]{len(warnings)} record(s) ignored or reconciled ({counts})[/dim]")


def output_data(data: Any, output: Optional[Path] = None) -> None:
    """Write data as JSON to stdout, or to ``output``.

    Files ending in .yaml/.yml are written as YAML.
    """
    if output is None:
        typer.echo(json.dumps(data, indent=2, ensure_ascii=False, default=str))
        return
    output = Path(output)
    output.parent.mkdir(parents=True, exist_ok=True)
    with open(output, "w", encoding="utf-8") as f:
        if output.suffix.lower() in (".yaml", ".yml"):
            yaml.safe_dump(data, f, sort_keys=False, allow_unicode=True)
        else:
            json.dump(data, f, indent=2, ensure_ascii=False, default=str)
            f.write("\n")


def output_table(rows: list, *, title: str = "", columns: Optional[list] = None) -> None:
    """Print rows as a Rich table on stderr."""
    if not rows:
        console.print("[dim]No data[/dim]")
        return

    cols = columns or list(rows[0].keys())
    table = Table(title=title, show_lines=False)
    for col in cols:
        table.add_column(col)
    for row in rows:
        table.add_row(*[str(row.get(c, "")) for c in cols])
    console.print(table)
