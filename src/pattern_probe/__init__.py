"""
Pattern Probe - page extraction patterns, tasks and result materialization.

This package validates hierarchical extraction patterns, converts them to
and from the legacy flat page pattern, tracks extraction tasks, and turns
flat evaluator records back into nested page data and preview overlays.
"""

__version__ = "0.1.0"

from pattern_probe.materialize import build_page_data, materialize
from pattern_probe.overlay import project_overlay
from pattern_probe.pattern import (
    convert_legacy_to_tree,
    convert_tree_to_legacy,
    validate_pattern,
)
from pattern_probe.tasks import TaskManager

__all__ = [
    "TaskManager",
    "build_page_data",
    "convert_legacy_to_tree",
    "convert_tree_to_legacy",
    "materialize",
    "project_overlay",
    "validate_pattern",
]
