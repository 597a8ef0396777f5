"""Pydantic schemas for hierarchical extraction patterns (schema v2).

A pattern tree is stored as a flat node table (arena layout): every node
lists its children by id and carries a non-owning ``parent_id``. The table
is a list rather than a mapping so that malformed trees (e.g. duplicate ids)
can still be loaded and reported by the validator.
"""

from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field

# Scalar values produced by the evaluator
Scalar = Union[str, int, float, bool, None]


class SelectorType(str, Enum):
    """How a node locates content in the document."""

    CSS = "css"
    XPATH = "xpath"
    REGEX = "regex"


class ExtractionType(str, Enum):
    """How a matched element is read."""

    TEXT = "text"
    ATTRIBUTE = "attribute"
    HTML = "html"


class NodeType(str, Enum):
    """Pattern node variants."""

    FIELD = "field"
    LIST = "list"
    LIST_ITEM = "list-item"
    ACTION = "action"
    CONTENT = "content"


class SchemaVersion(str, Enum):
    """Pattern schema versions."""

    V1 = "v1"  # Legacy flat page pattern
    V2 = "v2"  # Hierarchical pattern tree


# Node types that produce a single scalar value
VALUE_NODE_TYPES = frozenset({NodeType.FIELD, NodeType.CONTENT, NodeType.ACTION})

# Node types that must carry an extraction type
EXTRACTING_NODE_TYPES = frozenset({NodeType.FIELD, NodeType.CONTENT})


class Selector(BaseModel):
    """Selector locating a node's content."""

    model_config = ConfigDict(extra="forbid")

    selector_type: SelectorType = Field(
        default=SelectorType.CSS, description="Selector language"
    )
    selector_text: str = Field(..., description="Selector expression")
    is_absolute: bool = Field(
        default=False,
        description=(
            "Evaluate against the whole document instead of the nearest "
            "enclosing list-item match"
        ),
    )


class PatternNode(BaseModel):
    """One node of a pattern tree."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., min_length=1, description="Node id, unique within the tree")
    name: str = Field(..., description="Key used for this node in materialized data")
    node_type: NodeType = Field(..., description="Node variant")
    selector: Optional[Selector] = None
    extraction_type: Optional[ExtractionType] = None
    attribute_name: Optional[str] = Field(
        default=None, description="Attribute to read when extraction_type=attribute"
    )
    default_value: Scalar = Field(
        default=None, description="Value emitted when no record matches"
    )
    children: List[str] = Field(
        default_factory=list, description="Ordered child node ids"
    )
    parent_id: Optional[str] = Field(
        default=None, description="Parent node id (lookup only, not ownership)"
    )

    @property
    def is_value_node(self) -> bool:
        return self.node_type in VALUE_NODE_TYPES

    @property
    def has_default(self) -> bool:
        return self.default_value is not None


class PatternTree(BaseModel):
    """A named, hierarchical extraction pattern."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Pattern name")
    schema_version: SchemaVersion = Field(default=SchemaVersion.V2)
    root_id: str = Field(..., description="Id of the root node")
    nodes: List[PatternNode] = Field(default_factory=list, description="Node table")

    def node_map(self) -> Dict[str, PatternNode]:
        """Map node ids to nodes. The first occurrence wins for duplicate ids."""
        mapping: Dict[str, PatternNode] = {}
        for node in self.nodes:
            mapping.setdefault(node.id, node)
        return mapping

    def get_node(self, node_id: str) -> Optional[PatternNode]:
        return self.node_map().get(node_id)

    @property
    def root(self) -> Optional[PatternNode]:
        return self.get_node(self.root_id)

    def children_of(self, node_id: str) -> List[PatternNode]:
        """Resolve a node's child ids, skipping ids missing from the table."""
        mapping = self.node_map()
        node = mapping.get(node_id)
        if node is None:
            return []
        return [mapping[child_id] for child_id in node.children if child_id in mapping]

    def list_ancestor_count(self, node_id: str) -> int:
        """Number of list nodes strictly above a node.

        This is the expected instance_path length for records on the node.
        """
        mapping = self.node_map()
        count = 0
        seen = {node_id}
        node = mapping.get(node_id)
        while node is not None and node.parent_id is not None:
            if node.parent_id in seen:
                break
            seen.add(node.parent_id)
            node = mapping.get(node.parent_id)
            if node is not None and node.node_type == NodeType.LIST:
                count += 1
        return count

    def iter_depth_first(self) -> Iterator[Tuple[PatternNode, int]]:
        """Yield (node, depth) pairs in pre-order from the root.

        Already-visited ids are skipped, so the walk terminates on cyclic input.
        """
        mapping = self.node_map()
        root = mapping.get(self.root_id)
        if root is None:
            return
        visited = set()
        stack: List[Tuple[PatternNode, int]] = [(root, 0)]
        while stack:
            node, depth = stack.pop()
            if node.id in visited:
                continue
            visited.add(node.id)
            yield node, depth
            for child_id in reversed(node.children):
                child = mapping.get(child_id)
                if child is not None:
                    stack.append((child, depth + 1))

    @classmethod
    def from_nested(cls, data: Dict[str, Any]) -> "PatternTree":
        """Build a tree from an authoring-friendly nested document.

        Expected shape::

            {"name": "products", "root": {"id": "page", "name": "page",
             "node_type": "list-item", "children": [{...}, ...]}}

        Child dicts are flattened into the node table and ``parent_id`` is
        assigned from the nesting.
        """
        root_data = data["root"]
        nodes: List[PatternNode] = []
        stack: List[Tuple[Dict[str, Any], Optional[str]]] = [(root_data, None)]
        while stack:
            raw, parent_id = stack.pop()
            raw = dict(raw)
            nested_children = raw.pop("children", []) or []
            raw.setdefault("parent_id", parent_id)
            raw["children"] = [child["id"] for child in nested_children]
            nodes.append(PatternNode.model_validate(raw))
            for child in reversed(nested_children):
                stack.append((child, raw["id"]))
        return cls(
            name=data.get("name") or root_data.get("name", ""),
            schema_version=data.get("schema_version", SchemaVersion.V2),
            root_id=root_data["id"],
            nodes=nodes,
        )

    def to_nested(self) -> Dict[str, Any]:
        """Inverse of :meth:`from_nested` for well-formed trees."""
        mapping = self.node_map()

        def render(node: PatternNode) -> Dict[str, Any]:
            data = node.model_dump(mode="json", exclude={"children", "parent_id"}, exclude_none=True)
            data["id"] = node.id
            data["name"] = node.name
            data["node_type"] = node.node_type.value
            children = [render(mapping[c]) for c in node.children if c in mapping]
            if children:
                data["children"] = children
            return data

        root = mapping.get(self.root_id)
        return {
            "name": self.name,
            "schema_version": self.schema_version.value,
            "root": render(root) if root is not None else None,
        }
