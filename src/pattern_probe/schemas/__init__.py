"""Pydantic schemas for patterns, tasks, records and overlay geometry."""

from pattern_probe.schemas.legacy_pattern import (
    FieldRule,
    ItemPattern,
    ListRule,
    PagePattern,
    PaginationRule,
)
from pattern_probe.schemas.page_element import (
    ElementCoordinates,
    GeometryHint,
    PageElement,
    PageElementType,
    PageViewPort,
)
from pattern_probe.schemas.pattern_tree import (
    ExtractionType,
    NodeType,
    PatternNode,
    PatternTree,
    SchemaVersion,
    Selector,
    SelectorType,
)
from pattern_probe.schemas.results import (
    DowngradeReason,
    DowngradeUnsupported,
    PatternInUseError,
    PatternNotFoundError,
    PatternValidationError,
    RecordWarning,
    RecordWarningCode,
    StateTransitionError,
    SubmitResult,
    TaskNotCompleted,
    TaskNotFoundError,
    TransitionResult,
    ValidationErrorCode,
)
from pattern_probe.schemas.task import (
    ExtractionRecord,
    ExtractionTask,
    TaskAction,
    TaskStatus,
    TaskStatusView,
)

__all__ = [
    "DowngradeReason",
    "DowngradeUnsupported",
    "ElementCoordinates",
    "ExtractionRecord",
    "ExtractionTask",
    "ExtractionType",
    "FieldRule",
    "GeometryHint",
    "ItemPattern",
    "ListRule",
    "NodeType",
    "PageElement",
    "PageElementType",
    "PagePattern",
    "PageViewPort",
    "PaginationRule",
    "PatternNode",
    "PatternInUseError",
    "PatternNotFoundError",
    "PatternTree",
    "PatternValidationError",
    "RecordWarning",
    "RecordWarningCode",
    "SchemaVersion",
    "Selector",
    "SelectorType",
    "StateTransitionError",
    "SubmitResult",
    "TaskAction",
    "TaskNotCompleted",
    "TaskNotFoundError",
    "TaskStatus",
    "TaskStatusView",
    "TransitionResult",
    "ValidationErrorCode",
]
