"""Storage protocol for pattern trees, tasks and extraction records.

Pattern trees, tasks and records are the only durable entities; everything
else (materialized data, overlay geometry) is derived and recomputable.
"""

from typing import List, Optional, Protocol, Sequence, runtime_checkable

from pattern_probe.schemas.pattern_tree import PatternTree
from pattern_probe.schemas.task import ExtractionRecord, ExtractionTask


@runtime_checkable
class TaskStore(Protocol):
    """Abstract storage interface keyed by id."""

    # -------------------------------------------------------------------------
    # Pattern trees
    # -------------------------------------------------------------------------

    def save_pattern(self, pattern_tree_id: str, tree: PatternTree) -> None:
        """Create or replace a pattern tree."""
        ...

    def get_pattern(self, pattern_tree_id: str) -> Optional[PatternTree]:
        """Get a pattern tree, or None if not stored."""
        ...

    def list_pattern_ids(self) -> List[str]:
        """List stored pattern tree ids (sorted)."""
        ...

    # -------------------------------------------------------------------------
    # Tasks
    # -------------------------------------------------------------------------

    def save_task(self, task: ExtractionTask) -> None:
        """Create or replace a task."""
        ...

    def get_task(self, task_id: str) -> Optional[ExtractionTask]:
        """Get a task, or None if not stored."""
        ...

    def list_tasks(self) -> List[ExtractionTask]:
        """List all tasks ordered by creation time."""
        ...

    # -------------------------------------------------------------------------
    # Records (append-only)
    # -------------------------------------------------------------------------

    def append_records(self, task_id: str, records: Sequence[ExtractionRecord]) -> None:
        """Append records to a task's log. Existing records are never rewritten."""
        ...

    def read_records(self, task_id: str, limit: Optional[int] = None) -> List[ExtractionRecord]:
        """Read a task's records in submission order.

        Args:
            task_id: Task identifier.
            limit: Read only the first ``limit`` records (snapshot prefix).
        """
        ...

    def count_records(self, task_id: str) -> int:
        """Number of records stored for a task."""
        ...
