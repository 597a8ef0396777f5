"""Conversion between legacy (v1) page patterns and v2 pattern trees.

Forward conversion (v1 -> v2) is total and lossless:
- Each legacy field becomes a ``field`` node at the same nesting
- Each legacy list becomes a ``list`` node (container selector) with one
  synthetic ``list-item`` child (item selector) holding the item pattern
- The pagination rule becomes a single ``action`` node under the root

Backward conversion (v2 -> v1) fails closed: if anything in the tree cannot
be expressed in the legacy shape, a DowngradeUnsupported naming every
offending node is returned instead of a partial pattern.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pattern_probe.pattern.validator import validate_pattern
from pattern_probe.schemas.legacy_pattern import (
    FieldRule,
    ItemPattern,
    ListRule,
    PagePattern,
    PaginationRule,
)
from pattern_probe.schemas.pattern_tree import (
    NodeType,
    PatternNode,
    PatternTree,
    SchemaVersion,
    Selector,
)
from pattern_probe.schemas.results import DowngradeReason, DowngradeUnsupported

logger = logging.getLogger(__name__)

ROOT_ID = "root"
ITEM_SUFFIX = "[]"
ITEM_NAME = "item"


class _TreeBuilder:
    """Accumulates nodes for the forward conversion."""

    def __init__(self):
        self.nodes: Dict[str, PatternNode] = {}
        self.order: List[str] = []

    def unique_id(self, candidate: str) -> str:
        node_id = candidate
        n = 2
        while node_id in self.nodes:
            node_id = f"{candidate}~{n}"
            n += 1
        return node_id

    def add(self, parent_id: Optional[str], **kwargs: Any) -> PatternNode:
        node = PatternNode(parent_id=parent_id, **kwargs)
        self.nodes[node.id] = node
        self.order.append(node.id)
        if parent_id is not None:
            self.nodes[parent_id].children.append(node.id)
        return node

    def add_field(self, parent_id: str, rule: FieldRule) -> None:
        kwargs: Dict[str, Any] = {
            "id": self.unique_id(f"{parent_id}.{rule.name}"),
            "name": rule.name,
            "node_type": NodeType.FIELD,
            "selector": Selector(selector_type=rule.selector_type, selector_text=rule.selector),
            "extraction_type": rule.extraction_type,
        }
        if rule.attribute_name is not None:
            kwargs["attribute_name"] = rule.attribute_name
        if rule.default_value is not None:
            kwargs["default_value"] = rule.default_value
        self.add(parent_id, **kwargs)

    def add_list(self, parent_id: str, rule: ListRule) -> None:
        list_node = self.add(
            parent_id,
            id=self.unique_id(f"{parent_id}.{rule.name}"),
            name=rule.name,
            node_type=NodeType.LIST,
            selector=Selector(selector_type=rule.list_selector_type, selector_text=rule.list_selector),
        )
        item_node = self.add(
            list_node.id,
            id=self.unique_id(f"{list_node.id}{ITEM_SUFFIX}"),
            name=ITEM_NAME,
            node_type=NodeType.LIST_ITEM,
            selector=Selector(selector_type=rule.item_selector_type, selector_text=rule.item_selector),
        )
        self.add_item_pattern(item_node.id, rule.item_pattern)

    def add_item_pattern(self, parent_id: str, pattern: ItemPattern) -> None:
        for field_rule in pattern.fields:
            self.add_field(parent_id, field_rule)
        for list_rule in pattern.lists:
            self.add_list(parent_id, list_rule)


def convert_legacy_to_tree(pattern: PagePattern) -> PatternTree:
    """
    Convert a legacy v1 page pattern into a v2 pattern tree.

    Node ids are derived from the name path (``root.items[].title``), so
    converting the same pattern twice yields identical trees.

    Args:
        pattern: Legacy page pattern

    Returns:
        Equivalent v2 pattern tree
    """
    builder = _TreeBuilder()
    builder.add(None, id=ROOT_ID, name=pattern.name, node_type=NodeType.LIST_ITEM)
    builder.add_item_pattern(ROOT_ID, ItemPattern(fields=pattern.fields, lists=pattern.lists))

    if pattern.pagination is not None:
        rule = pattern.pagination
        builder.add(
            ROOT_ID,
            id=builder.unique_id(f"{ROOT_ID}.{rule.name}"),
            name=rule.name,
            node_type=NodeType.ACTION,
            selector=Selector(selector_type=rule.selector_type, selector_text=rule.selector),
        )

    tree = PatternTree(
        name=pattern.name,
        schema_version=SchemaVersion.V2,
        root_id=ROOT_ID,
        nodes=[builder.nodes[node_id] for node_id in builder.order],
    )
    logger.debug(f"Converted legacy pattern '{pattern.name}' to {len(tree.nodes)} nodes")
    return tree


def _has_selector(node: PatternNode) -> bool:
    return node.selector is not None and bool(node.selector.selector_text.strip())


def _downgrade_reasons(tree: PatternTree) -> List[DowngradeReason]:
    """Collect every node the legacy shape cannot express."""
    reasons: List[DowngradeReason] = []
    mapping = tree.node_map()
    root = mapping[tree.root_id]

    if root.selector is not None:
        reasons.append(DowngradeReason(
            node_id=root.id, reason="legacy patterns have no page-level selector"
        ))

    actions = [n for n, _ in tree.iter_depth_first() if n.node_type == NodeType.ACTION]
    if len(actions) > 1:
        for node in actions:
            reasons.append(DowngradeReason(
                node_id=node.id,
                reason=f"legacy patterns allow one pagination rule, found {len(actions)} action nodes",
            ))

    for node, _ in tree.iter_depth_first():
        if node.selector is not None and node.selector.is_absolute:
            reasons.append(DowngradeReason(
                node_id=node.id, reason="absolute selectors are not supported in legacy patterns"
            ))

        if node.node_type == NodeType.ACTION and node.parent_id != root.id:
            reasons.append(DowngradeReason(
                node_id=node.id, reason="action nodes are only supported as page-level pagination"
            ))
        elif node.node_type == NodeType.CONTENT and tree.list_ancestor_count(node.id) == 0:
            reasons.append(DowngradeReason(
                node_id=node.id, reason="content nodes outside a list cannot be expressed"
            ))
        elif node.node_type == NodeType.LIST:
            children = tree.children_of(node.id)
            if len(children) != 1 or children[0].node_type != NodeType.LIST_ITEM:
                reasons.append(DowngradeReason(
                    node_id=node.id, reason="list must have exactly one list-item child"
                ))
            elif not _has_selector(children[0]):
                reasons.append(DowngradeReason(
                    node_id=children[0].id, reason="list-item requires an item selector"
                ))
            if not _has_selector(node):
                reasons.append(DowngradeReason(
                    node_id=node.id, reason="list requires a container selector"
                ))
    return reasons


def _field_rule(node: PatternNode) -> FieldRule:
    kwargs: Dict[str, Any] = {
        "name": node.name,
        "selector_type": node.selector.selector_type,
        "selector": node.selector.selector_text,
        "extraction_type": node.extraction_type,
    }
    if node.attribute_name is not None:
        kwargs["attribute_name"] = node.attribute_name
    if node.has_default:
        kwargs["default_value"] = node.default_value
    return FieldRule(**kwargs)


def _item_pattern(tree: PatternTree, item_id: str) -> ItemPattern:
    fields: List[FieldRule] = []
    lists: List[ListRule] = []
    for child in tree.children_of(item_id):
        if child.node_type in (NodeType.FIELD, NodeType.CONTENT):
            fields.append(_field_rule(child))
        elif child.node_type == NodeType.LIST:
            lists.append(_list_rule(tree, child))
    return ItemPattern(fields=fields, lists=lists)


def _list_rule(tree: PatternTree, node: PatternNode) -> ListRule:
    item = tree.children_of(node.id)[0]
    return ListRule(
        name=node.name,
        list_selector_type=node.selector.selector_type,
        list_selector=node.selector.selector_text,
        item_selector_type=item.selector.selector_type,
        item_selector=item.selector.selector_text,
        item_pattern=_item_pattern(tree, item.id),
    )


def convert_tree_to_legacy(tree: PatternTree) -> Union[PagePattern, DowngradeUnsupported]:
    """
    Convert a v2 pattern tree back to the legacy v1 page pattern.

    Args:
        tree: Pattern tree (invalid trees are refused)

    Returns:
        PagePattern, or DowngradeUnsupported listing every offending node
    """
    errors = validate_pattern(tree)
    if errors:
        return DowngradeUnsupported(reasons=[
            DowngradeReason(node_id=e.node_id, reason=f"invalid pattern: {e.message}")
            for e in errors
        ])

    reasons = _downgrade_reasons(tree)
    if reasons:
        logger.info(
            f"Refusing to downgrade pattern '{tree.name}': "
            f"{len(reasons)} unsupported feature(s)"
        )
        return DowngradeUnsupported(reasons=reasons)

    page = _item_pattern(tree, tree.root_id)
    pagination: Optional[PaginationRule] = None
    for child in tree.children_of(tree.root_id):
        if child.node_type == NodeType.ACTION:
            pagination = PaginationRule(
                name=child.name,
                selector_type=child.selector.selector_type,
                selector=child.selector.selector_text,
            )

    kwargs: Dict[str, Any] = {"name": tree.name, "fields": page.fields, "lists": page.lists}
    if pagination is not None:
        kwargs["pagination"] = pagination
    return PagePattern(**kwargs)


# Short names used throughout the package
to_v2 = convert_legacy_to_tree
to_v1 = convert_tree_to_legacy

