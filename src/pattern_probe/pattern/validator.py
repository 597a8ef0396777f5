"""Structural and consistency checks for pattern trees.

Validation is pure: it never mutates the tree and reports every defect it
finds as a PatternValidationError tagged with the offending node id. An
empty list means the tree is well-formed enough to be evaluated.
"""

import logging
import re
from collections import defaultdict
from typing import Dict, Iterator, List, Optional

from pattern_probe.config.settings import ValidationLimits
from pattern_probe.schemas.pattern_tree import (
    EXTRACTING_NODE_TYPES,
    VALUE_NODE_TYPES,
    ExtractionType,
    NodeType,
    PatternNode,
    PatternTree,
    SelectorType,
)
from pattern_probe.schemas.results import PatternValidationError, ValidationErrorCode

logger = logging.getLogger(__name__)

# DFS colours for cycle detection
_IN_PROGRESS = 1
_DONE = 2


def _error(
    node_id: str,
    code: ValidationErrorCode,
    message: str,
    related: Optional[List[str]] = None,
) -> PatternValidationError:
    return PatternValidationError(
        node_id=node_id, code=code, message=message, related_node_ids=related or []
    )


def _check_duplicate_ids(tree: PatternTree) -> List[PatternValidationError]:
    positions: Dict[str, List[int]] = defaultdict(list)
    for pos, node in enumerate(tree.nodes):
        positions[node.id].append(pos)

    errors = []
    for node_id, found_at in positions.items():
        if len(found_at) < 2:
            continue
        names = ", ".join(f"'{tree.nodes[p].name}'" for p in found_at)
        where = ", ".join(str(p) for p in found_at)
        errors.append(_error(
            node_id,
            ValidationErrorCode.DUPLICATE_ID,
            f"Duplicate node id '{node_id}' used by {len(found_at)} nodes "
            f"(positions {where}; names {names})",
            related=[tree.nodes[p].id for p in found_at],
        ))
    return errors


def _check_selector(node: PatternNode) -> Iterator[PatternValidationError]:
    selector = node.selector
    if node.is_value_node:
        if selector is None or not selector.selector_text.strip():
            yield _error(
                node.id,
                ValidationErrorCode.MISSING_SELECTOR,
                f"{node.node_type.value} node '{node.name}' requires a selector",
            )
            return
    if selector is not None and selector.selector_type == SelectorType.REGEX:
        try:
            re.compile(selector.selector_text)
        except re.error as e:
            yield _error(
                node.id,
                ValidationErrorCode.INVALID_SELECTOR,
                f"Invalid regex selector '{selector.selector_text}': {e}",
            )


def _check_extraction(node: PatternNode) -> Iterator[PatternValidationError]:
    if node.node_type in EXTRACTING_NODE_TYPES:
        if node.extraction_type is None:
            yield _error(
                node.id,
                ValidationErrorCode.MISSING_EXTRACTION_TYPE,
                f"{node.node_type.value} node '{node.name}' requires an extraction_type",
            )
        elif node.extraction_type == ExtractionType.ATTRIBUTE and not node.attribute_name:
            yield _error(
                node.id,
                ValidationErrorCode.MISSING_ATTRIBUTE_NAME,
                f"Node '{node.name}' extracts an attribute but has no attribute_name",
            )
    elif node.extraction_type is not None:
        yield _error(
            node.id,
            ValidationErrorCode.UNEXPECTED_EXTRACTION_TYPE,
            f"{node.node_type.value} node '{node.name}' must not set an extraction_type",
        )


def _check_children(
    node: PatternNode, mapping: Dict[str, PatternNode]
) -> Iterator[PatternValidationError]:
    existing = []
    for child_id in node.children:
        child = mapping.get(child_id)
        if child is None:
            yield _error(
                node.id,
                ValidationErrorCode.MISSING_CHILD,
                f"Node '{node.name}' references missing child '{child_id}'",
                related=[child_id],
            )
        else:
            existing.append(child)

    if node.node_type in VALUE_NODE_TYPES:
        if node.children:
            yield _error(
                node.id,
                ValidationErrorCode.LEAF_HAS_CHILDREN,
                f"{node.node_type.value} node '{node.name}' cannot have children",
                related=list(node.children),
            )
        return

    if node.node_type == NodeType.LIST:
        items = [c for c in existing if c.node_type == NodeType.LIST_ITEM]
        if not items:
            yield _error(
                node.id,
                ValidationErrorCode.LIST_MISSING_ITEM,
                f"List node '{node.name}' has no list-item child",
            )
        elif len(items) > 1:
            yield _error(
                node.id,
                ValidationErrorCode.LIST_MULTIPLE_ITEMS,
                f"List node '{node.name}' has {len(items)} list-item children; exactly one is allowed",
                related=[c.id for c in items],
            )
        for child in existing:
            if child.node_type != NodeType.LIST_ITEM:
                yield _error(
                    child.id,
                    ValidationErrorCode.LIST_INVALID_CHILD,
                    f"List node '{node.name}' may only contain a list-item, "
                    f"found {child.node_type.value} '{child.name}'",
                    related=[node.id],
                )
        return

    # list-item: children become object keys
    seen: Dict[str, str] = {}
    for child in existing:
        if child.name in seen:
            yield _error(
                child.id,
                ValidationErrorCode.DUPLICATE_NAME,
                f"Sibling nodes share the name '{child.name}' under '{node.name}'",
                related=[seen[child.name]],
            )
        else:
            seen[child.name] = child.id


def _check_parents(
    tree: PatternTree, mapping: Dict[str, PatternNode]
) -> List[PatternValidationError]:
    errors: List[PatternValidationError] = []
    parents: Dict[str, List[str]] = defaultdict(list)
    for node in mapping.values():
        for child_id in node.children:
            if child_id in mapping and node.id not in parents[child_id]:
                parents[child_id].append(node.id)

    for node in mapping.values():
        structural = parents.get(node.id, [])
        if len(structural) > 1:
            errors.append(_error(
                node.id,
                ValidationErrorCode.MULTIPLE_PARENTS,
                f"Node '{node.name}' is listed as a child of {len(structural)} nodes",
                related=list(structural),
            ))

        if node.id == tree.root_id:
            continue

        if node.parent_id is None:
            if structural:
                errors.append(_error(
                    node.id,
                    ValidationErrorCode.PARENT_MISMATCH,
                    f"Node '{node.name}' has no parent_id but is a child of '{structural[0]}'",
                    related=list(structural),
                ))
        elif node.parent_id not in mapping:
            errors.append(_error(
                node.id,
                ValidationErrorCode.DANGLING_PARENT,
                f"Node '{node.name}' points to missing parent '{node.parent_id}'",
                related=[node.parent_id],
            ))
        elif node.parent_id not in structural:
            errors.append(_error(
                node.id,
                ValidationErrorCode.PARENT_MISMATCH,
                f"Node '{node.name}' names parent '{node.parent_id}' which does not list it as a child",
                related=[node.parent_id],
            ))

        if node.node_type == NodeType.LIST_ITEM:
            for parent_id in structural:
                if mapping[parent_id].node_type != NodeType.LIST:
                    errors.append(_error(
                        node.id,
                        ValidationErrorCode.LIST_ITEM_OUTSIDE_LIST,
                        f"list-item '{node.name}' must sit directly under a list node",
                        related=[parent_id],
                    ))
    return errors


def _walk(
    tree: PatternTree, mapping: Dict[str, PatternNode], limits: ValidationLimits
) -> List[PatternValidationError]:
    """Iterative DFS from the root: cycles, depth bound, reachability."""
    errors: List[PatternValidationError] = []
    state: Dict[str, int] = {tree.root_id: _IN_PROGRESS}
    stack = [(tree.root_id, 0, iter(mapping[tree.root_id].children))]

    while stack:
        node_id, depth, children = stack[-1]
        child_id = next(children, None)
        if child_id is None:
            state[node_id] = _DONE
            stack.pop()
            continue
        if child_id not in mapping:
            continue
        seen = state.get(child_id)
        if seen == _IN_PROGRESS:
            errors.append(_error(
                child_id,
                ValidationErrorCode.CYCLE,
                f"Node '{child_id}' is its own ancestor (via '{node_id}')",
                related=[node_id],
            ))
            continue
        if seen == _DONE:
            continue

        child_depth = depth + 1
        if child_depth == limits.max_depth + 1:
            errors.append(_error(
                child_id,
                ValidationErrorCode.MAX_DEPTH_EXCEEDED,
                f"Node '{child_id}' is at depth {child_depth}, limit is {limits.max_depth}",
            ))
        state[child_id] = _IN_PROGRESS
        stack.append((child_id, child_depth, iter(mapping[child_id].children)))

    for node_id in mapping:
        if node_id not in state:
            errors.append(_error(
                node_id,
                ValidationErrorCode.UNREACHABLE_NODE,
                f"Node '{node_id}' is not reachable from root '{tree.root_id}'",
            ))
    return errors


def validate_pattern(
    tree: PatternTree, limits: Optional[ValidationLimits] = None
) -> List[PatternValidationError]:
    """
    Validate a pattern tree.

    Checks duplicate ids, size and depth bounds, root shape, list/list-item
    structure, required selectors and extraction types, parent links,
    cycles and reachability.

    Args:
        tree: Pattern tree to check (not modified)
        limits: Size bounds (defaults: depth 32, 2000 nodes)

    Returns:
        List of validation errors (empty if the tree is valid)
    """
    limits = limits or ValidationLimits()

    if len(tree.nodes) > limits.max_nodes:
        # Bail out before any walk to cap work on oversized input
        return [_error(
            tree.root_id,
            ValidationErrorCode.MAX_NODES_EXCEEDED,
            f"Pattern has {len(tree.nodes)} nodes, limit is {limits.max_nodes}",
        )]

    errors = _check_duplicate_ids(tree)
    mapping = tree.node_map()

    root = mapping.get(tree.root_id)
    if root is None:
        errors.append(_error(
            tree.root_id,
            ValidationErrorCode.MISSING_ROOT,
            f"Root node '{tree.root_id}' is not in the node table",
        ))
        return errors

    if root.node_type != NodeType.LIST_ITEM:
        errors.append(_error(
            root.id,
            ValidationErrorCode.INVALID_ROOT,
            f"Root node must be a list-item, found {root.node_type.value}",
        ))
    if root.parent_id is not None:
        errors.append(_error(
            root.id,
            ValidationErrorCode.INVALID_ROOT,
            f"Root node must not have a parent (found '{root.parent_id}')",
            related=[root.parent_id],
        ))

    for node in tree.nodes:
        errors.extend(_check_selector(node))
        errors.extend(_check_extraction(node))
        errors.extend(_check_children(node, mapping))

    errors.extend(_check_parents(tree, mapping))
    errors.extend(_walk(tree, mapping, limits))

    if errors:
        logger.debug(f"Pattern '{tree.name}' has {len(errors)} validation errors")
    return errors


def is_valid_pattern(tree: PatternTree, limits: Optional[ValidationLimits] = None) -> bool:
    return not validate_pattern(tree, limits)
