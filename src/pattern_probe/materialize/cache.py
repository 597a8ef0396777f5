"""Input fingerprinting and an in-memory cache for materialization results."""

import copy
import hashlib
import json
import logging
import threading
from collections import OrderedDict
from typing import Callable, Iterable, Optional

from pattern_probe.materialize.materializer import MaterializationResult
from pattern_probe.schemas.pattern_tree import PatternTree
from pattern_probe.schemas.task import ExtractionRecord

logger = logging.getLogger(__name__)


def input_fingerprint(tree: PatternTree, records: Iterable[ExtractionRecord]) -> str:
    """
    Hash (tree, records) independently of record order.

    Args:
        tree: Pattern tree
        records: Record multiset

    Returns:
        SHA-256 hex digest
    """
    hasher = hashlib.sha256()
    hasher.update(tree.model_dump_json().encode("utf-8"))
    rendered = sorted(
        json.dumps(r.model_dump(mode="json"), sort_keys=True) for r in records
    )
    for line in rendered:
        hasher.update(b"\n")
        hasher.update(line.encode("utf-8"))
    return hasher.hexdigest()


class MaterializationCache:
    """Bounded LRU cache of materialization results, safe across threads.

    Entries are stored and handed out as deep copies, so a caller mutating
    its result never changes what later calls receive.
    """

    def __init__(self, max_entries: int = 128):
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, MaterializationResult]" = OrderedDict()
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str) -> Optional[MaterializationResult]:
        with self._lock:
            result = self._entries.get(key)
            if result is None:
                self.misses += 1
                return None
            self._entries.move_to_end(key)
            self.hits += 1
        return copy.deepcopy(result)

    def put(self, key: str, result: MaterializationResult) -> None:
        if self.max_entries <= 0:
            return
        stored = copy.deepcopy(result)
        with self._lock:
            self._entries[key] = stored
            self._entries.move_to_end(key)
            while len(self._entries) > self.max_entries:
                evicted, _ = self._entries.popitem(last=False)
                logger.debug(f"Evicted materialization {evicted[:12]}")

    def get_or_compute(
        self, key: str, compute: Callable[[], MaterializationResult]
    ) -> MaterializationResult:
        """Return the cached result or compute and store it.

        Computation runs outside the lock; concurrent misses on one key may
        both compute, producing identical results.
        """
        cached = self.get(key)
        if cached is not None:
            return cached
        result = compute()
        self.put(key, result)
        return result

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)
