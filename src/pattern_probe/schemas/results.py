"""Result values for pattern validation, task lifecycle and record handling.

Domain conditions are returned as data so callers can tell "the pattern
needs fixing" from "the run failed" from "evaluator and pattern drifted".
Only unknown-id lookups are raised, as KeyError subclasses.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from pattern_probe.schemas.task import TaskAction, TaskStatus


class ValidationErrorCode(str, Enum):
    """Stable codes for pattern tree defects."""

    # Identity and structure
    DUPLICATE_ID = "DUPLICATE_ID"
    DUPLICATE_NAME = "DUPLICATE_NAME"  # Sibling names collide as object keys
    MISSING_ROOT = "MISSING_ROOT"
    INVALID_ROOT = "INVALID_ROOT"
    MISSING_CHILD = "MISSING_CHILD"
    DANGLING_PARENT = "DANGLING_PARENT"
    PARENT_MISMATCH = "PARENT_MISMATCH"
    MULTIPLE_PARENTS = "MULTIPLE_PARENTS"
    CYCLE = "CYCLE"
    UNREACHABLE_NODE = "UNREACHABLE_NODE"

    # Size bounds
    MAX_DEPTH_EXCEEDED = "MAX_DEPTH_EXCEEDED"
    MAX_NODES_EXCEEDED = "MAX_NODES_EXCEEDED"

    # Node type rules
    LIST_MISSING_ITEM = "LIST_MISSING_ITEM"
    LIST_MULTIPLE_ITEMS = "LIST_MULTIPLE_ITEMS"
    LIST_INVALID_CHILD = "LIST_INVALID_CHILD"
    LIST_ITEM_OUTSIDE_LIST = "LIST_ITEM_OUTSIDE_LIST"
    LEAF_HAS_CHILDREN = "LEAF_HAS_CHILDREN"

    # Selector and extraction rules
    MISSING_SELECTOR = "MISSING_SELECTOR"
    INVALID_SELECTOR = "INVALID_SELECTOR"
    MISSING_EXTRACTION_TYPE = "MISSING_EXTRACTION_TYPE"
    UNEXPECTED_EXTRACTION_TYPE = "UNEXPECTED_EXTRACTION_TYPE"
    MISSING_ATTRIBUTE_NAME = "MISSING_ATTRIBUTE_NAME"


class PatternValidationError(BaseModel):
    """A single author-fixable defect in a pattern tree."""

    model_config = ConfigDict(extra="forbid")

    node_id: str = Field(..., description="Offending node id")
    code: ValidationErrorCode
    message: str
    related_node_ids: List[str] = Field(
        default_factory=list, description="Other nodes involved in the defect"
    )


class StateTransitionError(BaseModel):
    """An illegal lifecycle edge was requested; status is unchanged."""

    model_config = ConfigDict(extra="forbid")

    task_id: str
    from_status: TaskStatus
    action: TaskAction
    message: str


class TransitionResult(BaseModel):
    """Outcome of a transition request."""

    model_config = ConfigDict(extra="forbid")

    task_id: str
    status: TaskStatus = Field(..., description="Status after the request")
    changed: bool = Field(default=False, description="True if the status moved")
    error: Optional[StateTransitionError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DowngradeReason(BaseModel):
    """Why a v2 node cannot be expressed in the legacy v1 shape."""

    model_config = ConfigDict(extra="forbid")

    node_id: str
    reason: str


class DowngradeUnsupported(BaseModel):
    """Refusal to convert a v2 tree to v1, naming every offending node."""

    model_config = ConfigDict(extra="forbid")

    reasons: List[DowngradeReason] = Field(default_factory=list)

    @property
    def node_ids(self) -> List[str]:
        return sorted({r.node_id for r in self.reasons})


class RecordWarningCode(str, Enum):
    """Non-fatal conditions raised while accepting or materializing records."""

    ORPHAN_RECORD = "ORPHAN_RECORD"  # Node id not in the pattern tree
    PATH_LENGTH_MISMATCH = "PATH_LENGTH_MISMATCH"  # instance_path vs list depth
    CONFLICTING_RECORD = "CONFLICTING_RECORD"  # Differing values at one address
    CONTAINER_RECORD = "CONTAINER_RECORD"  # Record addressed to a list or the root
    FOREIGN_TASK = "FOREIGN_TASK"  # Record belongs to another task
    TASK_NOT_RUNNING = "TASK_NOT_RUNNING"  # Submitted before the task started
    LATE_RECORD = "LATE_RECORD"  # Submitted after the task finished


class RecordWarning(BaseModel):
    """A record that was ignored or reconciled, with the reason."""

    model_config = ConfigDict(extra="forbid")

    code: RecordWarningCode
    task_id: Optional[str] = None
    pattern_node_id: Optional[str] = None
    instance_path: List[int] = Field(default_factory=list)
    message: str


class SubmitResult(BaseModel):
    """Outcome of a record submission batch."""

    model_config = ConfigDict(extra="forbid")

    task_id: str
    accepted: int = 0
    warnings: List[RecordWarning] = Field(default_factory=list)


class TaskNotCompleted(BaseModel):
    """Materialization was requested for a task that has not completed."""

    model_config = ConfigDict(extra="forbid")

    task_id: str
    status: TaskStatus
    message: str = "task not completed"


class TaskNotFoundError(KeyError):
    """No task with the given id exists."""


class PatternNotFoundError(KeyError):
    """No pattern tree with the given id is registered."""


class PatternInUseError(ValueError):
    """A pattern id already referenced by tasks was re-registered with a different tree."""

    def __init__(self, pattern_tree_id: str, task_ids: List[str]):
        self.pattern_tree_id = pattern_tree_id
        self.task_ids = task_ids
        super().__init__(
            f"Pattern '{pattern_tree_id}' is referenced by {len(task_ids)} task(s) "
            f"and cannot be replaced"
        )
