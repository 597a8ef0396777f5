"""Load pattern documents and evaluator record logs from disk.

Pattern files may be YAML or JSON (JSON is valid YAML) and may hold either
schema version:
1. v2 tree: ``{"name", "root_id", "nodes": [...]}`` or nested ``{"name", "root": {...}}``
2. v1 legacy page pattern: ``{"name", "fields", "lists", "pagination"}``
"""

import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError

from pattern_probe.pattern.legacy import convert_legacy_to_tree
from pattern_probe.schemas.legacy_pattern import PagePattern
from pattern_probe.schemas.page_element import GeometryHint
from pattern_probe.schemas.pattern_tree import PatternTree, SchemaVersion
from pattern_probe.schemas.task import ExtractionRecord

logger = logging.getLogger(__name__)


class PatternLoadError(ValueError):
    """A pattern or record file could not be read or parsed."""


def detect_schema_version(data: Dict[str, Any]) -> SchemaVersion:
    """Detect the schema version of a raw pattern document.

    An explicit ``schema_version`` wins; otherwise v2 documents are
    recognised by their ``nodes``/``root_id`` or nested ``root`` keys.
    """
    declared = data.get("schema_version")
    if declared:
        try:
            return SchemaVersion(declared)
        except ValueError:
            raise PatternLoadError(f"Unknown schema_version '{declared}'")
    if "nodes" in data or "root_id" in data or "root" in data:
        return SchemaVersion.V2
    return SchemaVersion.V1


def parse_pattern(data: Dict[str, Any]) -> Union[PagePattern, PatternTree]:
    """Parse a raw pattern document into its schema model."""
    if not isinstance(data, dict):
        raise PatternLoadError("Pattern document must be a mapping")

    version = detect_schema_version(data)
    try:
        if version == SchemaVersion.V1:
            body = {k: v for k, v in data.items() if k != "schema_version"}
            return PagePattern.model_validate(body)
        if "root" in data:
            return PatternTree.from_nested(data)
        return PatternTree.model_validate(data)
    except (ValidationError, ValueError, KeyError, TypeError, AttributeError) as e:
        raise PatternLoadError(f"Invalid {version.value} pattern: {e}")


def _decode(raw: bytes, path: Path) -> str:
    try:
        return raw.decode("utf-8")
    except UnicodeDecodeError as e:
        line_no = raw.count(b"\n", 0, e.start) + 1
        raise PatternLoadError(f"{path}:{line_no}: not valid UTF-8: {e.reason}")


def _read_document(path: Path) -> Any:
    if not path.exists():
        raise PatternLoadError(f"File not found: {path}")
    text = _decode(path.read_bytes(), path)
    try:
        return yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise PatternLoadError(f"Invalid YAML/JSON in {path}: {e}")


def load_pattern(path: Path) -> Union[PagePattern, PatternTree]:
    """
    Load a pattern file in whichever schema version it was written.

    Args:
        path: YAML or JSON pattern file

    Returns:
        PagePattern (v1) or PatternTree (v2)

    Raises:
        PatternLoadError: If the file is missing or malformed
    """
    data = _read_document(Path(path))
    try:
        pattern = parse_pattern(data)
    except PatternLoadError as e:
        raise PatternLoadError(f"{path}: {e}") from e
    logger.debug(f"Loaded {type(pattern).__name__} from {path}")
    return pattern


def load_pattern_tree(path: Path) -> PatternTree:
    """Load a pattern file as a v2 tree, converting legacy patterns."""
    pattern = load_pattern(path)
    if isinstance(pattern, PagePattern):
        logger.info(f"Converting legacy pattern '{pattern.name}' to v2")
        return convert_legacy_to_tree(pattern)
    return pattern


def _read_jsonl(path: Path) -> List[Dict[str, Any]]:
    path = Path(path)
    if not path.exists():
        raise PatternLoadError(f"File not found: {path}")
    rows = []
    with open(path, "rb") as f:
        for line_no, raw in enumerate(f, 1):
            try:
                line = raw.decode("utf-8").strip()
            except UnicodeDecodeError as e:
                raise PatternLoadError(f"{path}:{line_no}: not valid UTF-8: {e.reason}")
            if not line:
                continue
            try:
                rows.append(json.loads(line))
            except json.JSONDecodeError as e:
                raise PatternLoadError(f"{path}:{line_no}: invalid JSON: {e}")
    return rows


def load_records(path: Path) -> List[ExtractionRecord]:
    """Read extraction records from a JSON Lines file."""
    try:
        return [ExtractionRecord.model_validate(row) for row in _read_jsonl(path)]
    except ValidationError as e:
        raise PatternLoadError(f"Invalid record in {path}: {e}")


def load_geometry_hints(path: Path) -> List[GeometryHint]:
    """Read overlay geometry hints from a JSON Lines file."""
    try:
        return [GeometryHint.model_validate(row) for row in _read_jsonl(path)]
    except ValidationError as e:
        raise PatternLoadError(f"Invalid geometry hint in {path}: {e}")
