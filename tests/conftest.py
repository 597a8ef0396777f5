"""
Pytest fixtures shared by the pattern-probe test suite.
"""

import pytest

from pattern_probe.schemas import (
    ExtractionRecord,
    FieldRule,
    ItemPattern,
    ListRule,
    PagePattern,
    PaginationRule,
    PatternTree,
)
from pattern_probe.storage import InMemoryTaskStore
from pattern_probe.tasks import TaskManager


def _field(node_id, name, selector, **extra):
    data = {
        "id": node_id,
        "name": name,
        "node_type": "field",
        "selector": {"selector_text": selector},
        "extraction_type": "text",
    }
    data.update(extra)
    return data


@pytest.fixture
def products_tree():
    """page -> items (list) -> item (list-item) -> {title, price}."""
    return PatternTree.from_nested({
        "name": "products",
        "root": {
            "id": "page",
            "name": "page",
            "node_type": "list-item",
            "children": [
                {
                    "id": "items",
                    "name": "items",
                    "node_type": "list",
                    "selector": {"selector_text": ".products"},
                    "children": [
                        {
                            "id": "items.item",
                            "name": "item",
                            "node_type": "list-item",
                            "selector": {"selector_text": ".product"},
                            "children": [
                                _field("items.item.title", "title", ".title"),
                                _field("items.item.price", "price", ".price"),
                            ],
                        }
                    ],
                }
            ],
        },
    })


@pytest.fixture
def categories_tree():
    """page -> categories[] -> {name, products[] -> {title}}."""
    return PatternTree.from_nested({
        "name": "catalog",
        "root": {
            "id": "page",
            "name": "page",
            "node_type": "list-item",
            "children": [
                _field("heading", "heading", "h1"),
                {
                    "id": "categories",
                    "name": "categories",
                    "node_type": "list",
                    "selector": {"selector_text": ".categories"},
                    "children": [
                        {
                            "id": "category",
                            "name": "category",
                            "node_type": "list-item",
                            "selector": {"selector_text": ".category"},
                            "children": [
                                _field("category.name", "name", "h2"),
                                {
                                    "id": "products",
                                    "name": "products",
                                    "node_type": "list",
                                    "selector": {"selector_text": "ul"},
                                    "children": [
                                        {
                                            "id": "product",
                                            "name": "product",
                                            "node_type": "list-item",
                                            "selector": {"selector_text": "li"},
                                            "children": [
                                                _field("product.title", "title", ".title"),
                                            ],
                                        }
                                    ],
                                },
                            ],
                        }
                    ],
                },
            ],
        },
    })


@pytest.fixture
def legacy_pattern():
    """v1 pattern with 2 fields, 1 list and a pagination rule."""
    return PagePattern(
        name="shop",
        fields=[
            FieldRule(name="title", selector="h1"),
            FieldRule(
                name="logo",
                selector="img.logo",
                extraction_type="attribute",
                attribute_name="src",
            ),
        ],
        lists=[
            ListRule(
                name="products",
                list_selector=".products",
                item_selector=".product",
                item_pattern=ItemPattern(fields=[
                    FieldRule(name="name", selector=".name"),
                    FieldRule(name="price", selector=".price", default_value="n/a"),
                ]),
            )
        ],
        pagination=PaginationRule(selector="a.next"),
    )


@pytest.fixture
def make_record():
    """Factory for extraction records of task 't1' by default."""
    def _make(node_id, path, value, task_id="t1"):
        return ExtractionRecord(
            task_id=task_id,
            pattern_node_id=node_id,
            instance_path=list(path),
            value=value,
        )
    return _make


@pytest.fixture
def manager():
    """TaskManager over an in-memory store."""
    return TaskManager(store=InMemoryTaskStore())
