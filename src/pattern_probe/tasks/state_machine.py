"""Extraction task lifecycle.

Legal edges:
    pending  --start-->   running
    running  --succeed--> completed
    running  --fail-->    failed
    pending  --cancel-->  cancelled
    running  --cancel-->  cancelled

Requests against a terminal state are no-ops (no error), so a cancellation
racing a completion simply loses. A repeated start on a running task is
also a no-op. Every other request is rejected with a StateTransitionError
and leaves the task unchanged.
"""

from datetime import datetime
from typing import Any, Dict, Optional, Tuple

from pattern_probe.schemas.results import StateTransitionError, TransitionResult
from pattern_probe.schemas.task import ExtractionTask, TaskAction, TaskStatus

TRANSITIONS: Dict[Tuple[TaskStatus, TaskAction], TaskStatus] = {
    (TaskStatus.PENDING, TaskAction.START): TaskStatus.RUNNING,
    (TaskStatus.RUNNING, TaskAction.SUCCEED): TaskStatus.COMPLETED,
    (TaskStatus.RUNNING, TaskAction.FAIL): TaskStatus.FAILED,
    (TaskStatus.PENDING, TaskAction.CANCEL): TaskStatus.CANCELLED,
    (TaskStatus.RUNNING, TaskAction.CANCEL): TaskStatus.CANCELLED,
}


def next_status(status: TaskStatus, action: TaskAction) -> Optional[TaskStatus]:
    """Target status of a legal edge, or None."""
    return TRANSITIONS.get((status, action))


def apply_transition(
    task: ExtractionTask,
    action: TaskAction,
    error: Optional[str] = None,
    now: Optional[datetime] = None,
) -> Tuple[ExtractionTask, TransitionResult]:
    """
    Apply a transition request to a task.

    The input task is not modified; an updated copy is returned when the
    status changes, otherwise the same task object.

    Args:
        task: Current task
        action: Requested transition
        error: Evaluator error text (stored verbatim for FAIL)
        now: Timestamp for started_at/finished_at (defaults to utcnow)

    Returns:
        (task after the request, transition result)
    """
    status = task.status

    if status.is_terminal:
        return task, TransitionResult(task_id=task.id, status=status, changed=False)

    if action == TaskAction.START and status == TaskStatus.RUNNING:
        return task, TransitionResult(task_id=task.id, status=status, changed=False)

    target = next_status(status, action)
    if target is None:
        return task, TransitionResult(
            task_id=task.id,
            status=status,
            changed=False,
            error=StateTransitionError(
                task_id=task.id,
                from_status=status,
                action=action,
                message=f"Cannot {action.value} a task that is {status.value}",
            ),
        )

    now = now or datetime.utcnow()
    update: Dict[str, Any] = {"status": target}
    if target == TaskStatus.RUNNING:
        update["started_at"] = now
    if target.is_terminal:
        update["finished_at"] = now
    if target == TaskStatus.FAILED:
        update["error"] = error
    return task.model_copy(update=update), TransitionResult(
        task_id=task.id, status=target, changed=True
    )
