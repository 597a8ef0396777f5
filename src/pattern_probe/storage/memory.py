"""In-memory TaskStore used by tests and short-lived processes."""

import threading
from typing import Dict, List, Optional, Sequence

from pattern_probe.schemas.pattern_tree import PatternTree
from pattern_probe.schemas.task import ExtractionRecord, ExtractionTask


class InMemoryTaskStore:
    """Dict-backed store. Models are copied on the way in and out."""

    def __init__(self):
        self._patterns: Dict[str, PatternTree] = {}
        self._tasks: Dict[str, ExtractionTask] = {}
        self._records: Dict[str, List[ExtractionRecord]] = {}
        self._lock = threading.Lock()

    def save_pattern(self, pattern_tree_id: str, tree: PatternTree) -> None:
        with self._lock:
            self._patterns[pattern_tree_id] = tree.model_copy(deep=True)

    def get_pattern(self, pattern_tree_id: str) -> Optional[PatternTree]:
        with self._lock:
            tree = self._patterns.get(pattern_tree_id)
        return tree.model_copy(deep=True) if tree is not None else None

    def list_pattern_ids(self) -> List[str]:
        with self._lock:
            return sorted(self._patterns)

    def save_task(self, task: ExtractionTask) -> None:
        with self._lock:
            self._tasks[task.id] = task.model_copy()

    def get_task(self, task_id: str) -> Optional[ExtractionTask]:
        with self._lock:
            task = self._tasks.get(task_id)
        return task.model_copy() if task is not None else None

    def list_tasks(self) -> List[ExtractionTask]:
        with self._lock:
            tasks = [t.model_copy() for t in self._tasks.values()]
        return sorted(tasks, key=lambda t: (t.created_at, t.id))

    def append_records(self, task_id: str, records: Sequence[ExtractionRecord]) -> None:
        with self._lock:
            self._records.setdefault(task_id, []).extend(records)

    def read_records(self, task_id: str, limit: Optional[int] = None) -> List[ExtractionRecord]:
        with self._lock:
            records = list(self._records.get(task_id, []))
        return records if limit is None else records[:limit]

    def count_records(self, task_id: str) -> int:
        with self._lock:
            return len(self._records.get(task_id, []))
