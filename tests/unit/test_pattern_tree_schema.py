"""Tests for the pattern tree schema models."""

import pytest
from pydantic import ValidationError

from pattern_probe.schemas import NodeType, PatternNode, PatternTree, SchemaVersion, Selector


class TestPatternNode:
    """Tests for PatternNode."""

    def test_defaults(self):
        """Test optional attributes default to empty."""
        node = PatternNode(id="n", name="n", node_type="list-item")
        assert node.node_type == NodeType.LIST_ITEM
        assert node.selector is None
        assert node.children == []
        assert node.parent_id is None
        assert not node.has_default

    def test_extra_fields_rejected(self):
        """Test unknown keys are rejected."""
        with pytest.raises(ValidationError):
            PatternNode(id="n", name="n", node_type="field", colour="red")

    def test_empty_id_rejected(self):
        """Test ids must be non-empty."""
        with pytest.raises(ValidationError):
            PatternNode(id="", name="n", node_type="field")

    def test_unknown_node_type_rejected(self):
        """Test node_type is a closed set."""
        with pytest.raises(ValidationError):
            PatternNode(id="n", name="n", node_type="table")

    def test_false_default_counts_as_default(self):
        """Test falsy defaults other than null are real defaults."""
        node = PatternNode(id="n", name="n", node_type="field", default_value=False)
        assert node.has_default
        assert PatternNode(id="m", name="m", node_type="field", default_value=0).has_default

    def test_value_node_types(self):
        """Test which variants hold a scalar."""
        assert PatternNode(id="a", name="a", node_type="action").is_value_node
        assert PatternNode(id="c", name="c", node_type="content").is_value_node
        assert not PatternNode(id="l", name="l", node_type="list").is_value_node

    def test_selector_defaults(self):
        """Test selector defaults to relative css."""
        selector = Selector(selector_text=".a")
        assert selector.selector_type.value == "css"
        assert selector.is_absolute is False


class TestPatternTree:
    """Tests for PatternTree helpers."""

    def test_from_nested_assigns_parents(self, products_tree):
        """Test nesting is flattened into children ids and parent ids."""
        assert products_tree.root_id == "page"
        assert products_tree.schema_version == SchemaVersion.V2
        item = products_tree.get_node("items.item")
        assert item.parent_id == "items"
        assert item.children == ["items.item.title", "items.item.price"]
        assert products_tree.root.parent_id is None

    def test_from_nested_keeps_pre_order(self, products_tree):
        """Test the node table is in pre-order."""
        assert [n.id for n in products_tree.nodes] == [
            "page", "items", "items.item", "items.item.title", "items.item.price",
        ]

    def test_to_nested_round_trip(self, categories_tree):
        """Test to_nested is the inverse of from_nested."""
        rebuilt = PatternTree.from_nested(categories_tree.to_nested())
        assert rebuilt.model_dump() == categories_tree.model_dump()

    def test_node_map_first_occurrence_wins(self):
        """Test duplicate ids resolve to the first node."""
        tree = PatternTree(
            name="dup",
            root_id="r",
            nodes=[
                PatternNode(id="r", name="first", node_type="list-item"),
                PatternNode(id="r", name="second", node_type="list-item"),
            ],
        )
        assert tree.node_map()["r"].name == "first"

    def test_children_of_skips_missing(self):
        """Test dangling child ids are skipped."""
        tree = PatternTree(
            name="t",
            root_id="r",
            nodes=[PatternNode(id="r", name="r", node_type="list-item", children=["x"])],
        )
        assert tree.children_of("r") == []
        assert tree.children_of("unknown") == []

    def test_list_ancestor_count(self, categories_tree):
        """Test the expected instance path length per node."""
        assert categories_tree.list_ancestor_count("page") == 0
        assert categories_tree.list_ancestor_count("heading") == 0
        assert categories_tree.list_ancestor_count("categories") == 0
        assert categories_tree.list_ancestor_count("category.name") == 1
        assert categories_tree.list_ancestor_count("products") == 1
        assert categories_tree.list_ancestor_count("product.title") == 2

    def test_iter_depth_first(self, products_tree):
        """Test pre-order traversal with depths."""
        walked = [(n.id, d) for n, d in products_tree.iter_depth_first()]
        assert walked == [
            ("page", 0),
            ("items", 1),
            ("items.item", 2),
            ("items.item.title", 3),
            ("items.item.price", 3),
        ]

    def test_iter_depth_first_terminates_on_cycle(self):
        """Test a cyclic table does not loop forever."""
        tree = PatternTree(
            name="cyclic",
            root_id="a",
            nodes=[
                PatternNode(id="a", name="a", node_type="list-item", children=["b"]),
                PatternNode(id="b", name="b", node_type="list", children=["a"], parent_id="a"),
            ],
        )
        assert [n.id for n, _ in tree.iter_depth_first()] == ["a", "b"]
