"""
Pattern tree validation, legacy conversion and loading.
"""

from pattern_probe.pattern.legacy import (
    convert_legacy_to_tree,
    convert_tree_to_legacy,
    to_v1,
    to_v2,
)
from pattern_probe.pattern.loader import (
    PatternLoadError,
    load_geometry_hints,
    load_pattern,
    load_pattern_tree,
    load_records,
    parse_pattern,
)
from pattern_probe.pattern.validator import is_valid_pattern, validate_pattern

__all__ = [
    "PatternLoadError",
    "convert_legacy_to_tree",
    "convert_tree_to_legacy",
    "is_valid_pattern",
    "load_geometry_hints",
    "load_pattern",
    "load_pattern_tree",
    "load_records",
    "parse_pattern",
    "to_v1",
    "to_v2",
    "validate_pattern",
]
