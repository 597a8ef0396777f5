"""Tests for the extraction task state machine."""

import itertools
from datetime import datetime

import pytest

from pattern_probe.schemas import ExtractionTask, TaskAction, TaskStatus
from pattern_probe.tasks import TRANSITIONS, apply_transition, next_status


@pytest.fixture
def task():
    return ExtractionTask(id="task_1", pattern_tree_id="p", target="https://example.com")


def run(task, *actions):
    results = []
    for action in actions:
        task, result = apply_transition(task, action)
        results.append(result)
    return task, results


class TestLegalEdges:
    """Tests for the allowed transitions."""

    def test_start(self, task):
        """Test pending -> running sets started_at."""
        now = datetime(2024, 1, 1, 12, 0)
        updated, result = apply_transition(task, TaskAction.START, now=now)
        assert result.changed and result.ok
        assert updated.status == TaskStatus.RUNNING
        assert updated.started_at == now
        assert updated.finished_at is None

    def test_complete(self, task):
        """Test running -> completed sets finished_at."""
        updated, results = run(task, TaskAction.START, TaskAction.SUCCEED)
        assert updated.status == TaskStatus.COMPLETED
        assert updated.finished_at is not None
        assert all(r.changed for r in results)

    def test_fail_stores_error_verbatim(self, task):
        """Test the evaluator error is kept as given."""
        running, _ = apply_transition(task, TaskAction.START)
        failed, result = apply_transition(running, TaskAction.FAIL, error="  Timeout: 30s\n")
        assert failed.status == TaskStatus.FAILED
        assert failed.error == "  Timeout: 30s\n"
        assert result.changed

    def test_cancel_from_pending_and_running(self, task):
        """Test both live states can be cancelled."""
        cancelled, _ = apply_transition(task, TaskAction.CANCEL)
        assert cancelled.status == TaskStatus.CANCELLED
        running, _ = apply_transition(task, TaskAction.START)
        cancelled, _ = apply_transition(running, TaskAction.CANCEL)
        assert cancelled.status == TaskStatus.CANCELLED

    def test_input_not_modified(self, task):
        """Test the original task object is left alone."""
        apply_transition(task, TaskAction.START)
        assert task.status == TaskStatus.PENDING


class TestNoOps:
    """Tests for idempotent requests."""

    def test_cancel_completed_is_noop(self, task):
        """Test cancelling a completed task keeps it completed, without error."""
        completed, _ = run(task, TaskAction.START, TaskAction.SUCCEED)
        after, result = apply_transition(completed, TaskAction.CANCEL)
        assert after.status == TaskStatus.COMPLETED
        assert result.changed is False
        assert result.error is None

    def test_repeated_start_is_noop(self, task):
        """Test start on a running task changes nothing."""
        running, _ = apply_transition(task, TaskAction.START)
        again, result = apply_transition(running, TaskAction.START)
        assert again is running
        assert result.ok and not result.changed

    @pytest.mark.parametrize("terminal_actions", [
        (TaskAction.START, TaskAction.SUCCEED),
        (TaskAction.START, TaskAction.FAIL),
        (TaskAction.CANCEL,),
    ])
    def test_terminal_states_absorb_everything(self, task, terminal_actions):
        """Test no request moves a task out of a terminal state."""
        terminal, _ = run(task, *terminal_actions)
        for action in TaskAction:
            after, result = apply_transition(terminal, action)
            assert after.status == terminal.status
            assert result.ok and not result.changed


class TestIllegalEdges:
    """Tests for rejected requests."""

    @pytest.mark.parametrize("action", [TaskAction.SUCCEED, TaskAction.FAIL])
    def test_finish_pending_rejected(self, task, action):
        """Test a pending task cannot complete or fail directly."""
        after, result = apply_transition(task, action)
        assert after.status == TaskStatus.PENDING
        assert not result.ok
        assert result.error.from_status == TaskStatus.PENDING
        assert result.error.action == action


class TestSoundness:
    """Tests over all short request sequences."""

    def test_every_sequence_follows_legal_edges(self, task):
        """Test observed status changes are always legal edges."""
        legal = {(src, dst) for (src, _), dst in TRANSITIONS.items()}
        for seq in itertools.product(list(TaskAction), repeat=4):
            current = task
            for action in seq:
                after, result = apply_transition(current, action)
                if after.status != current.status:
                    assert (current.status, after.status) in legal
                    assert result.changed
                    assert next_status(current.status, action) == after.status
                if current.status.is_terminal:
                    assert after.status == current.status
                current = after
