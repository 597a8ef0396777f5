"""Pydantic schemas for overlay geometry used by preview renderers."""

from enum import Enum
from typing import List

from pydantic import BaseModel, ConfigDict, Field, NonNegativeInt


class PageElementType(str, Enum):
    """Overlay element kinds."""

    LIST = "list"
    LIST_ITEM = "list-item"
    FIELD = "field"
    PAGINATION = "pagination"


class ElementCoordinates(BaseModel):
    """Bounding box in page pixels."""

    model_config = ConfigDict(extra="forbid")

    top: float
    left: float
    width: float = Field(..., ge=0)
    height: float = Field(..., ge=0)

    @property
    def bottom(self) -> float:
        return self.top + self.height

    @property
    def right(self) -> float:
        return self.left + self.width


class PageViewPort(BaseModel):
    """Browser viewport used for previews."""

    model_config = ConfigDict(extra="forbid")

    width: int = Field(default=1280, gt=0)
    height: int = Field(default=800, gt=0)


# Named viewport presets offered to preview callers
VIEWPORT_PRESETS = {
    "pc-normal": PageViewPort(width=1280, height=800),
    "pc-wide": PageViewPort(width=1920, height=1080),
    "pc-small": PageViewPort(width=1024, height=768),
}


class GeometryHint(BaseModel):
    """Bounding box reported for one node occurrence.

    ``instance_path`` is the position path into the materialized arrays,
    which differs from the evaluator's instance index when indices are sparse.
    """

    model_config = ConfigDict(extra="forbid")

    pattern_node_id: str
    instance_path: List[NonNegativeInt] = Field(default_factory=list)
    coordinates: ElementCoordinates


class PageElement(BaseModel):
    """Overlay rectangle for preview. Derived data, never authoritative."""

    model_config = ConfigDict(extra="forbid")

    name: str
    type: PageElementType
    coordinates: ElementCoordinates
    children: List["PageElement"] = Field(default_factory=list)
    active: bool = False


PageElement.model_rebuild()
