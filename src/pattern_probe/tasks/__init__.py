"""Extraction task lifecycle and management."""

from pattern_probe.tasks.manager import TaskManager, generate_task_id
from pattern_probe.tasks.state_machine import TRANSITIONS, apply_transition, next_status

__all__ = [
    "TRANSITIONS",
    "TaskManager",
    "apply_transition",
    "generate_task_id",
    "next_status",
]
