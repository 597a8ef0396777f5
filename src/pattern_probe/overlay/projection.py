"""Project materialized page data onto overlay rectangles for previews.

Geometry hints are addressed by position path: the index into each
materialized array on the way down to the node. Nodes without a hint emit
no rectangle and their projected children move up to the nearest emitted
ancestor. Value nodes whose materialized value is absent are skipped.
"""

import logging
from typing import Any, Dict, Iterable, List, Optional, Tuple

from pattern_probe.materialize.materializer import ABSENT
from pattern_probe.schemas.page_element import (
    ElementCoordinates,
    GeometryHint,
    PageElement,
    PageElementType,
    PageViewPort,
)
from pattern_probe.schemas.pattern_tree import NodeType, PatternNode, PatternTree

logger = logging.getLogger(__name__)

ELEMENT_TYPES = {
    NodeType.FIELD: PageElementType.FIELD,
    NodeType.CONTENT: PageElementType.FIELD,
    NodeType.ACTION: PageElementType.PAGINATION,
    NodeType.LIST: PageElementType.LIST,
    NodeType.LIST_ITEM: PageElementType.LIST_ITEM,
}

HintKey = Tuple[str, Tuple[int, ...]]


def _coords_key(c: ElementCoordinates) -> Tuple[float, float, float, float]:
    return c.top, c.left, c.width, c.height


def index_hints(hints: Iterable[GeometryHint]) -> Dict[HintKey, ElementCoordinates]:
    """Index hints by (node id, position path); the smallest box wins on duplicates."""
    index: Dict[HintKey, ElementCoordinates] = {}
    for hint in hints:
        key = (hint.pattern_node_id, tuple(hint.instance_path))
        current = index.get(key)
        if current is None or _coords_key(hint.coordinates) < _coords_key(current):
            index[key] = hint.coordinates
    return index


class _Projector:
    def __init__(
        self,
        tree: PatternTree,
        hints: Dict[HintKey, ElementCoordinates],
        active_node_id: Optional[str],
    ):
        self.mapping = tree.node_map()
        self.hints = hints
        self.active_node_id = active_node_id

    def element(
        self,
        node: PatternNode,
        coords: ElementCoordinates,
        children: Optional[List[PageElement]] = None,
    ) -> PageElement:
        return PageElement(
            name=node.name,
            type=ELEMENT_TYPES[node.node_type],
            coordinates=coords,
            children=children or [],
            active=node.id == self.active_node_id,
        )

    def project_object(self, node: PatternNode, value: Any, path: Tuple[int, ...]) -> List[PageElement]:
        obj = value if isinstance(value, dict) else {}
        elements: List[PageElement] = []
        for child_id in node.children:
            child = self.mapping.get(child_id)
            if child is not None:
                elements.extend(self.project_node(child, obj.get(child.name, ABSENT), path))
        return elements

    def project_node(self, node: PatternNode, value: Any, path: Tuple[int, ...]) -> List[PageElement]:
        coords = self.hints.get((node.id, path))

        if node.is_value_node:
            if value is ABSENT or coords is None:
                return []
            return [self.element(node, coords)]

        if node.node_type == NodeType.LIST:
            item = next(
                (self.mapping[c] for c in node.children
                 if c in self.mapping and self.mapping[c].node_type == NodeType.LIST_ITEM),
                None,
            )
            children: List[PageElement] = []
            if item is not None and isinstance(value, list):
                for i, item_value in enumerate(value):
                    item_path = path + (i,)
                    item_children = self.project_object(item, item_value, item_path)
                    item_coords = self.hints.get((item.id, item_path))
                    if item_coords is not None:
                        children.append(self.element(item, item_coords, item_children))
                    else:
                        children.extend(item_children)
            if coords is None:
                return children
            return [self.element(node, coords, children)]

        # Nested list-item outside a list is not produced by valid trees
        children = self.project_object(node, value, path)
        if coords is None:
            return children
        return [self.element(node, coords, children)]


def _outside(c: ElementCoordinates, viewport: PageViewPort) -> bool:
    return c.top >= viewport.height or c.left >= viewport.width or c.bottom <= 0 or c.right <= 0


def clip_to_viewport(elements: List[PageElement], viewport: PageViewPort) -> List[PageElement]:
    """Drop rectangles entirely outside the viewport, keeping visible descendants."""
    clipped: List[PageElement] = []
    for element in elements:
        children = clip_to_viewport(element.children, viewport)
        if _outside(element.coordinates, viewport):
            clipped.extend(children)
        else:
            clipped.append(element.model_copy(update={"children": children}))
    return clipped


def project_overlay(
    tree: PatternTree,
    materialized_data: Dict[str, Any],
    geometry_hints: Iterable[GeometryHint],
    active_node_id: Optional[str] = None,
    viewport: Optional[PageViewPort] = None,
) -> List[PageElement]:
    """
    Build overlay elements for a materialized page.

    Hints are matched by position in the materialized arrays, not by the
    evaluator's instance index. Sparse indices collapse during
    materialization (instances 0 and 5 become positions 0 and 1), so a
    hint reported under index 5 matches nothing and one under index 1
    lands on the second item. Callers holding evaluator indices must
    renumber them to positions first.

    Args:
        tree: Pattern tree the data was materialized from
        materialized_data: Output of materialize() for the same tree
        geometry_hints: Bounding boxes keyed by node id and position path
        active_node_id: Node whose elements are flagged active
        viewport: If given, rectangles entirely outside it are dropped

    Returns:
        Top-level page elements (nested list -> list-item -> field)
    """
    root = tree.get_node(tree.root_id)
    if root is None:
        return []
    projector = _Projector(tree, index_hints(geometry_hints), active_node_id)
    elements = projector.project_object(root, materialized_data, ())
    if viewport is not None:
        elements = clip_to_viewport(elements, viewport)
    logger.debug(f"Projected {len(flatten_page_elements(elements))} overlay element(s)")
    return elements


def flatten_page_elements(elements: Iterable[PageElement]) -> List[PageElement]:
    """Pre-order flat list of rectangles (children cleared)."""
    flat: List[PageElement] = []
    stack = list(reversed(list(elements)))
    while stack:
        element = stack.pop()
        flat.append(element.model_copy(update={"children": []}))
        stack.extend(reversed(element.children))
    return flat
