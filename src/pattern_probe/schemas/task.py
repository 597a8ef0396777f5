"""Pydantic schemas for extraction tasks and the records they produce."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt

from pattern_probe.schemas.pattern_tree import Scalar


class TaskStatus(str, Enum):
    """Extraction task execution status."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset(
    {TaskStatus.COMPLETED, TaskStatus.FAILED, TaskStatus.CANCELLED}
)


class TaskAction(str, Enum):
    """Transition requests accepted by the task state machine."""

    START = "start"
    SUCCEED = "succeed"
    FAIL = "fail"
    CANCEL = "cancel"


class ExtractionTask(BaseModel):
    """One execution of a pattern tree against one target."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(..., description="Task identifier")
    pattern_tree_id: str = Field(..., description="Pattern tree executed by this task")
    target: str = Field(..., description="URL or document reference")
    status: TaskStatus = Field(default=TaskStatus.PENDING)
    error: Optional[str] = Field(
        default=None, description="Evaluator error, stored verbatim on failure"
    )
    snapshot_ref: Optional[str] = Field(
        default=None, description="Reference to the raw document snapshot"
    )
    created_at: datetime = Field(default_factory=datetime.utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    snapshot_record_count: Optional[int] = Field(
        default=None,
        description="Number of records visible when the task completed",
    )


class ExtractionRecord(BaseModel):
    """One (pattern node, repetition) -> value fact produced by the evaluator."""

    model_config = ConfigDict(extra="forbid", frozen=True)

    task_id: str
    pattern_node_id: str
    instance_path: List[NonNegativeInt] = Field(
        default_factory=list,
        description="One index per list ancestor, root to node",
    )
    value: Scalar = None


class TaskStatusView(BaseModel):
    """Status snapshot returned to callers."""

    model_config = ConfigDict(extra="forbid")

    task_id: str
    status: TaskStatus
    error: Optional[str] = None
