"""Task manager: lifecycle, record submission and materialization per task.

The manager owns the pattern, task and record store it is given; there is
no module-level instance. Transitions on one task are serialized by a
per-task lock, so the first legal transition wins and later conflicting
requests become no-ops against the terminal state. A task's lock is dropped
once it is terminal. Pattern ids already used by tasks are frozen.
"""

import logging
import threading
import uuid
from typing import Dict, List, Optional, Sequence, Union

from pattern_probe.config.settings import ProbeSettings
from pattern_probe.materialize.cache import MaterializationCache, input_fingerprint
from pattern_probe.materialize.materializer import MaterializationResult, build_page_data
from pattern_probe.pattern.validator import validate_pattern
from pattern_probe.schemas.pattern_tree import PatternTree
from pattern_probe.schemas.results import (
    PatternInUseError,
    PatternNotFoundError,
    PatternValidationError,
    RecordWarning,
    RecordWarningCode,
    SubmitResult,
    TaskNotCompleted,
    TaskNotFoundError,
    TransitionResult,
)
from pattern_probe.schemas.task import (
    ExtractionRecord,
    ExtractionTask,
    TaskAction,
    TaskStatus,
    TaskStatusView,
)
from pattern_probe.storage import TaskStore, create_store
from pattern_probe.tasks.state_machine import apply_transition

logger = logging.getLogger(__name__)


def generate_task_id() -> str:
    """Generate a unique task ID."""
    return f"task_{uuid.uuid4().hex[:12]}"


class TaskManager:
    """Owns extraction tasks and their append-only record logs."""

    def __init__(
        self,
        store: Optional[TaskStore] = None,
        settings: Optional[ProbeSettings] = None,
    ):
        """
        Initialize the task manager.

        Args:
            store: Storage backend (default: from settings.storage_dir)
            settings: Validation limits and cache size
        """
        self.settings = settings or ProbeSettings()
        self.store = store if store is not None else create_store(self.settings.storage_dir)
        self.cache = MaterializationCache(self.settings.cache_size)
        self._locks: Dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()
        self._patterns_guard = threading.Lock()

    def _task_lock(self, task_id: str) -> threading.Lock:
        with self._locks_guard:
            lock = self._locks.get(task_id)
            if lock is None:
                lock = self._locks[task_id] = threading.Lock()
            return lock

    def _forget_lock(self, task_id: str) -> None:
        # Terminal tasks accept no further writes, so their lock can go
        with self._locks_guard:
            self._locks.pop(task_id, None)

    def _require_task(self, task_id: str) -> ExtractionTask:
        task = self.store.get_task(task_id)
        if task is None:
            self._forget_lock(task_id)
            raise TaskNotFoundError(task_id)
        return task

    # -------------------------------------------------------------------------
    # Pattern trees
    # -------------------------------------------------------------------------

    def register_pattern(
        self, pattern_tree_id: str, tree: PatternTree
    ) -> List[PatternValidationError]:
        """
        Validate and store a pattern tree.

        Re-registering an id with an identical tree is a no-op. A different
        tree may not replace one that tasks already reference, since their
        materialized output must not change after the fact.

        Args:
            pattern_tree_id: Id tasks will reference
            tree: Pattern tree

        Returns:
            Validation errors; the tree is stored only if the list is empty

        Raises:
            PatternInUseError: If tasks reference a different tree under this id
        """
        errors = validate_pattern(tree, self.settings.limits)
        if errors:
            logger.warning(
                f"Pattern '{pattern_tree_id}' rejected with {len(errors)} validation error(s)"
            )
            return errors
        with self._patterns_guard:
            current = self.store.get_pattern(pattern_tree_id)
            if current is not None and current != tree:
                users = [t.id for t in self.list_tasks(pattern_tree_id)]
                if users:
                    raise PatternInUseError(pattern_tree_id, users)
            self.store.save_pattern(pattern_tree_id, tree)
        logger.info(f"Registered pattern '{pattern_tree_id}' ({len(tree.nodes)} nodes)")
        return []

    def get_pattern(self, pattern_tree_id: str) -> PatternTree:
        tree = self.store.get_pattern(pattern_tree_id)
        if tree is None:
            raise PatternNotFoundError(pattern_tree_id)
        return tree

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def create_task(self, pattern_tree_id: str, target: str) -> str:
        """
        Create a pending task for a registered pattern.

        Args:
            pattern_tree_id: Registered pattern tree id
            target: URL or document reference

        Returns:
            New task id

        Raises:
            PatternNotFoundError: If the pattern is not registered
        """
        with self._patterns_guard:
            if self.store.get_pattern(pattern_tree_id) is None:
                raise PatternNotFoundError(pattern_tree_id)
            task = ExtractionTask(
                id=generate_task_id(),
                pattern_tree_id=pattern_tree_id,
                target=target,
            )
            self.store.save_task(task)
        logger.info(f"Created task {task.id} for pattern '{pattern_tree_id}' -> {target}")
        return task.id

    def _transition(
        self, task_id: str, action: TaskAction, error: Optional[str] = None
    ) -> TransitionResult:
        with self._task_lock(task_id):
            task = self._require_task(task_id)
            updated, result = apply_transition(task, action, error=error)

            if result.error is not None:
                logger.warning(f"Task {task_id}: {result.error.message}")
                return result
            if not result.changed:
                logger.debug(f"Task {task_id}: {action.value} ignored, status is {task.status.value}")
                if task.status.is_terminal:
                    self._forget_lock(task_id)
                return result

            if updated.status == TaskStatus.COMPLETED:
                updated = updated.model_copy(
                    update={"snapshot_record_count": self.store.count_records(task_id)}
                )
            self.store.save_task(updated)
            logger.info(f"Task {task_id}: {task.status.value} -> {updated.status.value}")
            if updated.status.is_terminal:
                self._forget_lock(task_id)
            return result

    def start_task(self, task_id: str) -> TransitionResult:
        return self._transition(task_id, TaskAction.START)

    def cancel_task(self, task_id: str) -> TransitionResult:
        return self._transition(task_id, TaskAction.CANCEL)

    def mark_completed(self, task_id: str) -> TransitionResult:
        """Complete a running task and freeze its visible record set."""
        return self._transition(task_id, TaskAction.SUCCEED)

    def mark_failed(self, task_id: str, error: str) -> TransitionResult:
        """Fail a running task, storing the evaluator error verbatim."""
        return self._transition(task_id, TaskAction.FAIL, error=error)

    def attach_snapshot(self, task_id: str, snapshot_ref: str) -> TransitionResult:
        """Record the raw document snapshot reference of a live task.

        Terminal tasks are immutable; the request is then a no-op.
        """
        with self._task_lock(task_id):
            task = self._require_task(task_id)
            if task.status.is_terminal:
                self._forget_lock(task_id)
                return TransitionResult(task_id=task_id, status=task.status, changed=False)
            self.store.save_task(task.model_copy(update={"snapshot_ref": snapshot_ref}))
            return TransitionResult(task_id=task_id, status=task.status, changed=True)

    def get_task(self, task_id: str) -> ExtractionTask:
        return self._require_task(task_id)

    def get_task_status(self, task_id: str) -> TaskStatusView:
        task = self._require_task(task_id)
        return TaskStatusView(task_id=task.id, status=task.status, error=task.error)

    def list_tasks(self, pattern_tree_id: Optional[str] = None) -> List[ExtractionTask]:
        tasks = self.store.list_tasks()
        if pattern_tree_id is not None:
            tasks = [t for t in tasks if t.pattern_tree_id == pattern_tree_id]
        return tasks

    # -------------------------------------------------------------------------
    # Records
    # -------------------------------------------------------------------------

    def submit_records(
        self, task_id: str, records: Sequence[ExtractionRecord]
    ) -> SubmitResult:
        """
        Append records to a running task.

        Records for other tasks, and every record submitted while the task is
        not running, are rejected and reported as warnings.

        Args:
            task_id: Task identifier
            records: Batch of evaluator records

        Returns:
            SubmitResult with the accepted count and warnings
        """
        warnings: List[RecordWarning] = []
        with self._task_lock(task_id):
            task = self._require_task(task_id)

            if task.status != TaskStatus.RUNNING:
                code = (
                    RecordWarningCode.LATE_RECORD
                    if task.status.is_terminal
                    else RecordWarningCode.TASK_NOT_RUNNING
                )
                for record in records:
                    warnings.append(RecordWarning(
                        code=code,
                        task_id=task_id,
                        pattern_node_id=record.pattern_node_id,
                        instance_path=list(record.instance_path),
                        message=f"Task is {task.status.value}; record ignored",
                    ))
                if task.status.is_terminal:
                    self._forget_lock(task_id)
                if records:
                    logger.warning(
                        f"Task {task_id}: ignored {len(records)} record(s) submitted while {task.status.value}"
                    )
                return SubmitResult(task_id=task_id, accepted=0, warnings=warnings)

            accepted: List[ExtractionRecord] = []
            for record in records:
                if record.task_id != task_id:
                    warnings.append(RecordWarning(
                        code=RecordWarningCode.FOREIGN_TASK,
                        task_id=record.task_id,
                        pattern_node_id=record.pattern_node_id,
                        instance_path=list(record.instance_path),
                        message=f"Record for task '{record.task_id}' submitted to '{task_id}'",
                    ))
                else:
                    accepted.append(record)

            self.store.append_records(task_id, accepted)

        logger.debug(f"Task {task_id}: accepted {len(accepted)} record(s)")
        return SubmitResult(task_id=task_id, accepted=len(accepted), warnings=warnings)

    def get_records(self, task_id: str) -> List[ExtractionRecord]:
        """Records visible to materialization (the completion snapshot, if any)."""
        task = self._require_task(task_id)
        return self.store.read_records(task_id, limit=task.snapshot_record_count)

    # -------------------------------------------------------------------------
    # Materialization
    # -------------------------------------------------------------------------

    def _materialize_records(
        self, task: ExtractionTask, records: List[ExtractionRecord]
    ) -> MaterializationResult:
        tree = self.get_pattern(task.pattern_tree_id)
        key = f"{task.id}:{input_fingerprint(tree, records)}"
        return self.cache.get_or_compute(
            key, lambda: build_page_data(tree, records, task_id=task.id)
        )

    def materialize(self, task_id: str) -> Union[MaterializationResult, TaskNotCompleted]:
        """
        Materialize a completed task's record snapshot.

        Repeated calls return equal results even if records were appended
        after completion.

        Returns:
            MaterializationResult, or TaskNotCompleted for any other status
        """
        task = self._require_task(task_id)
        if task.status != TaskStatus.COMPLETED:
            return TaskNotCompleted(task_id=task_id, status=task.status)
        records = self.store.read_records(task_id, limit=task.snapshot_record_count)
        return self._materialize_records(task, records)

    def materialize_partial(
        self, task_id: str
    ) -> Union[MaterializationResult, TaskNotCompleted]:
        """
        Best-effort materialization of a failed or cancelled task's records.

        Intended for debugging; completed tasks should use materialize().

        Returns:
            MaterializationResult, or TaskNotCompleted for pending/running tasks
        """
        task = self._require_task(task_id)
        if task.status not in (TaskStatus.FAILED, TaskStatus.CANCELLED):
            return TaskNotCompleted(
                task_id=task_id,
                status=task.status,
                message="partial materialization requires a failed or cancelled task",
            )
        logger.info(f"Best-effort materialization of {task.status.value} task {task_id}")
        return self._materialize_records(task, self.store.read_records(task_id))
