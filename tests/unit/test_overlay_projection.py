"""Tests for overlay projection."""

import pytest

from pattern_probe.materialize import materialize
from pattern_probe.overlay import flatten_page_elements, index_hints, project_overlay
from pattern_probe.schemas import (
    ElementCoordinates,
    GeometryHint,
    PageElementType,
    PageViewPort,
)


def hint(node_id, path, top, left=0, width=100, height=20):
    return GeometryHint(
        pattern_node_id=node_id,
        instance_path=list(path),
        coordinates=ElementCoordinates(top=top, left=left, width=width, height=height),
    )


@pytest.fixture
def products_data(products_tree, make_record):
    records = []
    for i in range(2):
        records.append(make_record("items.item.title", [i], f"t{i}"))
        records.append(make_record("items.item.price", [i], f"p{i}"))
    return materialize(products_tree, records)


@pytest.fixture
def full_hints():
    hints = [hint("items", [], 0, height=400)]
    for i in range(2):
        hints.append(hint("items.item", [i], 100 * i, height=90))
        hints.append(hint("items.item.title", [i], 100 * i + 10))
        hints.append(hint("items.item.price", [i], 100 * i + 40))
    return hints


class TestProjection:
    """Tests for project_overlay."""

    def test_nested_elements(self, products_tree, products_data, full_hints):
        """Test list -> list-item -> field nesting mirrors the data."""
        elements = project_overlay(products_tree, products_data, full_hints)
        assert len(elements) == 1
        lst = elements[0]
        assert lst.type == PageElementType.LIST
        assert lst.name == "items"
        assert [e.type for e in lst.children] == [PageElementType.LIST_ITEM] * 2
        second = lst.children[1]
        assert [(c.name, c.type) for c in second.children] == [
            ("title", PageElementType.FIELD),
            ("price", PageElementType.FIELD),
        ]
        assert second.children[0].coordinates.top == 110

    def test_missing_hint_hoists_children(self, products_tree, products_data, full_hints):
        """Test items without a hint pass their fields up to the list."""
        hints = [h for h in full_hints if h.pattern_node_id != "items.item"]
        elements = project_overlay(products_tree, products_data, hints)
        lst = elements[0]
        assert [c.name for c in lst.children] == ["title", "price", "title", "price"]

    def test_no_list_hint_returns_items_at_top(self, products_tree, products_data, full_hints):
        """Test a list without a hint hoists its items to the page."""
        hints = [h for h in full_hints if h.pattern_node_id != "items"]
        elements = project_overlay(products_tree, products_data, hints)
        assert [e.type for e in elements] == [PageElementType.LIST_ITEM] * 2

    def test_absent_fields_not_projected(self, products_tree, make_record, full_hints):
        """Test fields with no value produce no rectangle."""
        data = materialize(products_tree, [make_record("items.item.title", [0], "only")])
        elements = project_overlay(products_tree, data, full_hints)
        item = elements[0].children[0]
        assert [c.name for c in item.children] == ["title"]
        assert len(elements[0].children) == 1

    def test_pagination_type(self, legacy_pattern, make_record):
        """Test action nodes project as pagination."""
        from pattern_probe.pattern import to_v2

        tree = to_v2(legacy_pattern)
        data = materialize(tree, [make_record("root.pagination", [], "a.next")])
        elements = project_overlay(tree, data, [hint("root.pagination", [], 700)])
        assert [(e.name, e.type) for e in elements] == [("pagination", PageElementType.PAGINATION)]

    def test_active_flag(self, products_tree, products_data, full_hints):
        """Test elements of the active node are flagged."""
        elements = project_overlay(
            products_tree, products_data, full_hints, active_node_id="items.item.price"
        )
        flat = flatten_page_elements(elements)
        active = [e.name for e in flat if e.active]
        assert active == ["price", "price"]

    def test_viewport_clipping(self, products_tree, products_data, full_hints):
        """Test rectangles fully outside the viewport are dropped."""
        elements = project_overlay(
            products_tree, products_data, full_hints, viewport=PageViewPort(width=1280, height=100)
        )
        flat = flatten_page_elements(elements)
        # Second item starts at y=100, its fields at 110 and 140
        assert [(e.name, e.coordinates.top) for e in flat] == [
            ("items", 0), ("item", 0), ("title", 10), ("price", 40),
        ]


class TestHelpers:
    """Tests for hint indexing and flattening."""

    def test_flatten_pre_order(self, products_tree, products_data, full_hints):
        """Test flattening visits parents before children."""
        flat = flatten_page_elements(project_overlay(products_tree, products_data, full_hints))
        assert [e.name for e in flat] == [
            "items", "item", "title", "price", "item", "title", "price",
        ]
        assert all(e.children == [] for e in flat)

    def test_duplicate_hints_pick_smallest(self):
        """Test duplicate hints resolve independent of order."""
        a = hint("x", [0], 50)
        b = hint("x", [0], 10)
        assert index_hints([a, b]) == index_hints([b, a])
        assert index_hints([a, b])[("x", (0,))].top == 10

    def test_sparse_indices_address_positions(self, products_tree, make_record):
        """Test hints follow materialized positions when instance indices have gaps."""
        data = materialize(products_tree, [
            make_record("items.item.title", [0], "first"),
            make_record("items.item.title", [5], "sixth"),
        ])
        assert [i["title"] for i in data["items"]] == ["first", "sixth"]
        hints = [
            hint("items", [], 0, height=400),
            hint("items.item.title", [1], 60),
            hint("items.item.title", [5], 999),
        ]
        elements = project_overlay(products_tree, data, hints)
        flat = flatten_page_elements(elements)
        assert [(e.name, e.coordinates.top) for e in flat] == [("items", 0), ("title", 60)]
