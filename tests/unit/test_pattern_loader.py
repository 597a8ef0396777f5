"""Tests for loading pattern, record and hint files."""

import json

import pytest
import yaml

from pattern_probe.pattern import (
    PatternLoadError,
    load_geometry_hints,
    load_pattern,
    load_pattern_tree,
    load_records,
    parse_pattern,
)
from pattern_probe.pattern.loader import detect_schema_version
from pattern_probe.schemas import PagePattern, PatternTree, SchemaVersion


class TestDetectSchemaVersion:
    """Tests for schema version detection."""

    def test_explicit_version_wins(self):
        """Test schema_version overrides shape detection."""
        assert detect_schema_version({"schema_version": "v1", "nodes": []}) == SchemaVersion.V1

    def test_shape_detection(self):
        """Test v2 keys and legacy fallback."""
        assert detect_schema_version({"root_id": "r"}) == SchemaVersion.V2
        assert detect_schema_version({"root": {}}) == SchemaVersion.V2
        assert detect_schema_version({"fields": []}) == SchemaVersion.V1

    def test_unknown_version(self):
        """Test unknown versions are refused."""
        with pytest.raises(PatternLoadError):
            detect_schema_version({"schema_version": "v9"})


class TestParsePattern:
    """Tests for parse_pattern."""

    def test_flat_v2(self, products_tree):
        """Test a flat node table parses to a tree."""
        parsed = parse_pattern(products_tree.model_dump(mode="json"))
        assert parsed == products_tree

    def test_nested_v2(self, products_tree):
        """Test a nested document parses to the same tree."""
        assert parse_pattern(products_tree.to_nested()) == products_tree

    def test_v1(self, legacy_pattern):
        """Test a legacy document with a schema_version tag."""
        data = {"schema_version": "v1", **legacy_pattern.model_dump(mode="json")}
        assert parse_pattern(data) == legacy_pattern

    def test_invalid_document(self):
        """Test schema errors are wrapped."""
        with pytest.raises(PatternLoadError):
            parse_pattern({"root_id": "r", "nodes": [{"id": "r"}]})
        with pytest.raises(PatternLoadError):
            parse_pattern(["not", "a", "mapping"])

    @pytest.mark.parametrize("root", [
        {"id": "r", "name": "r", "node_type": "list-item", "children": ["orphan"]},
        {"id": "r", "name": "r", "node_type": "list-item", "children": 5},
        [["id", "r"]],
        "r",
    ])
    def test_malformed_nested_document(self, root):
        """Test nested documents of the wrong shape are wrapped."""
        with pytest.raises(PatternLoadError):
            parse_pattern({"name": "broken", "root": root})


class TestLoadFiles:
    """Tests for file loaders."""

    def test_load_yaml_v1_as_tree(self, tmp_path, legacy_pattern):
        """Test legacy YAML files load and convert to v2."""
        path = tmp_path / "shop.yaml"
        path.write_text(yaml.safe_dump(legacy_pattern.model_dump(mode="json")))
        assert isinstance(load_pattern(path), PagePattern)
        tree = load_pattern_tree(path)
        assert isinstance(tree, PatternTree)
        assert tree.get_node("root.products[]") is not None

    def test_load_json_v2(self, tmp_path, products_tree):
        """Test JSON pattern files load as-is."""
        path = tmp_path / "products.json"
        path.write_text(products_tree.model_dump_json())
        assert load_pattern_tree(path) == products_tree

    def test_missing_file(self, tmp_path):
        """Test missing files raise PatternLoadError."""
        with pytest.raises(PatternLoadError):
            load_pattern(tmp_path / "nope.yaml")

    def test_bad_yaml(self, tmp_path):
        """Test unparseable files raise PatternLoadError."""
        path = tmp_path / "bad.yaml"
        path.write_text("name: [unclosed")
        with pytest.raises(PatternLoadError):
            load_pattern(path)

    def test_load_records(self, tmp_path):
        """Test JSON Lines records, skipping blank lines."""
        path = tmp_path / "records.jsonl"
        path.write_text(
            json.dumps({"task_id": "t", "pattern_node_id": "a", "instance_path": [0], "value": 1})
            + "\n\n"
            + json.dumps({"task_id": "t", "pattern_node_id": "b", "value": "x"})
            + "\n"
        )
        records = load_records(path)
        assert [r.pattern_node_id for r in records] == ["a", "b"]
        assert records[1].instance_path == []

    def test_bad_record_line(self, tmp_path):
        """Test malformed lines report their line number."""
        path = tmp_path / "records.jsonl"
        path.write_text('{"task_id": "t", "pattern_node_id": "a"}\n{oops\n')
        with pytest.raises(PatternLoadError, match=":2:"):
            load_records(path)

    def test_invalid_utf8_pattern(self, tmp_path):
        """Test undecodable pattern files report file and line."""
        path = tmp_path / "bad.yaml"
        path.write_bytes(b"name: shop\nfields:\n  - name: \xff\xfe\n")
        with pytest.raises(PatternLoadError, match=r"bad\.yaml:3: not valid UTF-8"):
            load_pattern(path)

    def test_nested_shape_error_names_file(self, tmp_path):
        """Test shape errors in nested files carry the path."""
        path = tmp_path / "nested.yaml"
        path.write_text(yaml.safe_dump({"name": "n", "root": {"id": "r", "children": ["x"]}}))
        with pytest.raises(PatternLoadError, match="nested.yaml"):
            load_pattern_tree(path)

    def test_invalid_utf8_record_line(self, tmp_path):
        """Test undecodable record lines report their line number."""
        path = tmp_path / "records.jsonl"
        path.write_bytes(b'{"task_id": "t", "pattern_node_id": "a"}\n{"value": "\xff"}\n')
        with pytest.raises(PatternLoadError, match=":2: not valid UTF-8"):
            load_records(path)

    def test_negative_index_rejected(self, tmp_path):
        """Test instance indices must be non-negative."""
        path = tmp_path / "records.jsonl"
        path.write_text(json.dumps({"task_id": "t", "pattern_node_id": "a", "instance_path": [-1]}))
        with pytest.raises(PatternLoadError):
            load_records(path)

    def test_load_geometry_hints(self, tmp_path):
        """Test hint files parse coordinates."""
        path = tmp_path / "hints.jsonl"
        path.write_text(json.dumps({
            "pattern_node_id": "items",
            "coordinates": {"top": 1, "left": 2, "width": 3, "height": 4},
        }))
        hints = load_geometry_hints(path)
        assert hints[0].coordinates.bottom == 5
        assert hints[0].instance_path == []
