"""Reconstruct nested page data from flat extraction records.

The materializer is a pure function of (tree, records):
- Records are indexed by pattern node and instance path
- The tree is walked from the root; list nodes expand into arrays ordered
  by ascending instance index, value nodes read the record at exactly the
  current path, falling back to the node default or ABSENT
- Records the tree cannot place are ignored and reported as warnings

Output never depends on record arrival order.
"""

import json
import logging
from collections import defaultdict
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from pattern_probe.schemas.pattern_tree import NodeType, PatternNode, PatternTree, Scalar
from pattern_probe.schemas.results import RecordWarning, RecordWarningCode
from pattern_probe.schemas.task import ExtractionRecord

logger = logging.getLogger(__name__)

Path = Tuple[int, ...]
PageData = Dict[str, Any]


class _Absent:
    """Marker for a value node with no record and no default."""

    _instance: Optional["_Absent"] = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "ABSENT"

    def __bool__(self) -> bool:
        return False

    def __reduce__(self):
        return (_Absent, ())

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self


ABSENT = _Absent()


@dataclass
class MaterializationResult:
    """Materialized page data plus the record warnings raised on the way."""

    data: PageData
    warnings: List[RecordWarning] = field(default_factory=list)

    def to_jsonable(self, absent: Any = None, drop_absent: bool = False) -> PageData:
        return to_jsonable(self.data, absent=absent, drop_absent=drop_absent)


def _value_key(value: Scalar) -> Tuple[int, str]:
    """Canonical ordering key: type rank, then JSON text."""
    if value is None:
        rank = 0
    elif isinstance(value, bool):
        rank = 1
    elif isinstance(value, (int, float)):
        rank = 2
    else:
        rank = 3
    return rank, json.dumps(value, sort_keys=True)


def _warning(
    code: RecordWarningCode, record: ExtractionRecord, message: str
) -> RecordWarning:
    return RecordWarning(
        code=code,
        task_id=record.task_id,
        pattern_node_id=record.pattern_node_id,
        instance_path=list(record.instance_path),
        message=message,
    )


def _list_chains(tree: PatternTree) -> Dict[str, Tuple[str, ...]]:
    """Map each reachable node id to the ids of its list ancestors, root first."""
    mapping = tree.node_map()
    chains: Dict[str, Tuple[str, ...]] = {}
    root = mapping.get(tree.root_id)
    if root is None:
        return chains
    stack: List[Tuple[PatternNode, Tuple[str, ...]]] = [(root, ())]
    while stack:
        node, chain = stack.pop()
        if node.id in chains:
            continue
        chains[node.id] = chain
        child_chain = chain + (node.id,) if node.node_type == NodeType.LIST else chain
        for child_id in node.children:
            child = mapping.get(child_id)
            if child is not None:
                stack.append((child, child_chain))
    return chains


class RecordIndex:
    """Records grouped by pattern node, then instance path.

    Also precomputes, for every list node, the distinct instance indices
    found beneath each path prefix.
    """

    def __init__(
        self,
        tree: PatternTree,
        records: Iterable[ExtractionRecord],
        task_id: Optional[str] = None,
    ):
        self.values: Dict[str, Dict[Path, Scalar]] = defaultdict(dict)
        self.list_indices: Dict[str, Dict[Path, Set[int]]] = defaultdict(lambda: defaultdict(set))
        self.warnings: List[RecordWarning] = []
        self._build(tree, records, task_id)

    def _build(
        self,
        tree: PatternTree,
        records: Iterable[ExtractionRecord],
        task_id: Optional[str],
    ) -> None:
        mapping = tree.node_map()
        chains = _list_chains(tree)
        candidates: Dict[Tuple[str, Path], Dict[Tuple[int, str], Scalar]] = defaultdict(dict)

        for record in records:
            node_id = record.pattern_node_id
            path = tuple(record.instance_path)

            if task_id is not None and record.task_id != task_id:
                self.warnings.append(_warning(
                    RecordWarningCode.FOREIGN_TASK, record,
                    f"Record belongs to task '{record.task_id}', expected '{task_id}'",
                ))
                continue
            if node_id not in chains:
                self.warnings.append(_warning(
                    RecordWarningCode.ORPHAN_RECORD, record,
                    f"Pattern node '{node_id}' is not in tree '{tree.name}'",
                ))
                continue

            chain = chains[node_id]
            if len(path) != len(chain):
                self.warnings.append(_warning(
                    RecordWarningCode.PATH_LENGTH_MISMATCH, record,
                    f"instance_path has {len(path)} indices, node '{node_id}' "
                    f"sits under {len(chain)} list(s)",
                ))
                continue

            node = mapping[node_id]
            if node.node_type == NodeType.LIST or node_id == tree.root_id:
                self.warnings.append(_warning(
                    RecordWarningCode.CONTAINER_RECORD, record,
                    f"{node.node_type.value} node '{node_id}' does not hold a value",
                ))
                continue

            for depth, list_id in enumerate(chain):
                self.list_indices[list_id][path[:depth]].add(path[depth])

            if node.is_value_node:
                candidates[(node_id, path)][_value_key(record.value)] = record.value

        for (node_id, path), values in candidates.items():
            keys = sorted(values)
            if len(keys) > 1:
                self.warnings.append(RecordWarning(
                    code=RecordWarningCode.CONFLICTING_RECORD,
                    task_id=task_id,
                    pattern_node_id=node_id,
                    instance_path=list(path),
                    message=f"{len(keys)} differing values for one occurrence; kept {values[keys[0]]!r}",
                ))
            self.values[node_id][path] = values[keys[0]]

        self.warnings.sort(key=lambda w: (
            w.code.value, w.pattern_node_id or "", w.instance_path, w.message
        ))

    def value_at(self, node_id: str, path: Path) -> Tuple[bool, Scalar]:
        by_path = self.values.get(node_id)
        if by_path is None or path not in by_path:
            return False, None
        return True, by_path[path]

    def indices_under(self, list_id: str, prefix: Path) -> List[int]:
        by_prefix = self.list_indices.get(list_id)
        if by_prefix is None:
            return []
        return sorted(by_prefix.get(prefix, ()))


class _Materializer:
    def __init__(self, tree: PatternTree, index: RecordIndex, absent: Any):
        self.mapping = tree.node_map()
        self.index = index
        self.absent = absent

    def children(self, node: PatternNode) -> List[PatternNode]:
        return [self.mapping[c] for c in node.children if c in self.mapping]

    def build_object(self, node: PatternNode, prefix: Path) -> PageData:
        return {child.name: self.build_value(child, prefix) for child in self.children(node)}

    def build_value(self, node: PatternNode, prefix: Path) -> Any:
        node_type = node.node_type
        if node_type in (NodeType.FIELD, NodeType.CONTENT, NodeType.ACTION):
            found, value = self.index.value_at(node.id, prefix)
            if found:
                return value
            if node.has_default:
                return node.default_value
            return self.absent
        if node_type == NodeType.LIST:
            items = [c for c in self.children(node) if c.node_type == NodeType.LIST_ITEM]
            if not items:
                return []
            item = items[0]
            return [
                self.build_object(item, prefix + (i,))
                for i in self.index.indices_under(node.id, prefix)
            ]
        if node_type == NodeType.LIST_ITEM:
            return self.build_object(node, prefix)
        raise ValueError(f"Unhandled node type: {node_type}")


def build_page_data(
    tree: PatternTree,
    records: Iterable[ExtractionRecord],
    task_id: Optional[str] = None,
    absent: Any = ABSENT,
) -> MaterializationResult:
    """
    Materialize records into nested page data shaped like the tree.

    Args:
        tree: Validated pattern tree
        records: Records of a single task (any order)
        task_id: If given, records of other tasks are ignored and flagged
        absent: Value emitted for value nodes with no record and no default

    Returns:
        MaterializationResult with data and record warnings
    """
    index = RecordIndex(tree, records, task_id=task_id)
    root = tree.get_node(tree.root_id)
    data = _Materializer(tree, index, absent).build_object(root, ()) if root else {}
    return MaterializationResult(data=data, warnings=index.warnings)


def materialize(
    tree: PatternTree,
    records: Iterable[ExtractionRecord],
    task_id: Optional[str] = None,
) -> PageData:
    """Materialize records into page data, logging any record warnings."""
    result = build_page_data(tree, records, task_id=task_id)
    if result.warnings:
        logger.warning(
            f"Materializing '{tree.name}': ignored or reconciled "
            f"{len(result.warnings)} record(s)"
        )
        for w in result.warnings:
            logger.debug(f"{w.code.value}: {w.message}")
    return result.data


def to_jsonable(data: Any, absent: Any = None, drop_absent: bool = False) -> Any:
    """Replace ABSENT markers so the data can be serialized.

    With ``drop_absent`` object keys holding ABSENT are omitted instead.
    """
    if data is ABSENT:
        return absent
    if isinstance(data, dict):
        return {
            k: to_jsonable(v, absent, drop_absent)
            for k, v in data.items()
            if not (drop_absent and v is ABSENT)
        }
    if isinstance(data, list):
        return [to_jsonable(v, absent, drop_absent) for v in data]
    return data
