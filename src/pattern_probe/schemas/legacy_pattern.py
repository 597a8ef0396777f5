"""Pydantic schemas for legacy (v1) flat page patterns.

Schema version: v1
- A page holds top-level fields, lists and an optional pagination rule
- Lists carry a container selector, an item selector and an item pattern
- Anything accepted here converts to a v2 tree that validates cleanly
"""

import re
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from pattern_probe.schemas.pattern_tree import ExtractionType, Scalar, SelectorType


def _check_selector(selector_type: SelectorType, text: str, what: str) -> None:
    if not text.strip():
        raise ValueError(f"{what} must not be blank")
    if selector_type == SelectorType.REGEX:
        try:
            re.compile(text)
        except re.error as e:
            raise ValueError(f"{what} is not a valid regex: {e}")


def _check_unique_names(names: List[str], scope: str) -> None:
    seen = set()
    for name in names:
        if name in seen:
            raise ValueError(f"Duplicate name '{name}' in {scope}")
        seen.add(name)


class FieldRule(BaseModel):
    """Rule for extracting a single field."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Field name")
    selector_type: SelectorType = Field(default=SelectorType.CSS)
    selector: str = Field(..., min_length=1, description="Selector expression")
    extraction_type: ExtractionType = Field(default=ExtractionType.TEXT)
    attribute_name: Optional[str] = None
    default_value: Scalar = None

    @model_validator(mode="after")
    def validate_extraction(self):
        """Attribute extraction needs an attribute name; selectors must be usable."""
        _check_selector(self.selector_type, self.selector, f"selector of field '{self.name}'")
        if self.extraction_type == ExtractionType.ATTRIBUTE and not self.attribute_name:
            raise ValueError(f"attribute_name is required when field '{self.name}' extracts an attribute")
        return self


class PaginationRule(BaseModel):
    """Selector for the next-page control."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(default="pagination")
    selector_type: SelectorType = Field(default=SelectorType.CSS)
    selector: str = Field(..., min_length=1, description="Selector expression")

    @model_validator(mode="after")
    def validate_selector(self):
        _check_selector(self.selector_type, self.selector, "pagination selector")
        return self


class ItemPattern(BaseModel):
    """Schema of one repetition of a list."""

    model_config = ConfigDict(extra="forbid")

    fields: List[FieldRule] = Field(default_factory=list)
    lists: List["ListRule"] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_names(self):
        """Field and list names become keys of one object."""
        _check_unique_names([r.name for r in self.fields] + [r.name for r in self.lists], "item pattern")
        return self


class ListRule(BaseModel):
    """Rule for extracting a repeated group of items."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="List name")
    list_selector_type: SelectorType = Field(default=SelectorType.CSS)
    list_selector: str = Field(..., min_length=1, description="Selector for the list container")
    item_selector_type: SelectorType = Field(default=SelectorType.CSS)
    item_selector: str = Field(..., min_length=1, description="Selector for each item")
    item_pattern: ItemPattern = Field(default_factory=ItemPattern)

    @model_validator(mode="after")
    def validate_selectors(self):
        _check_selector(self.list_selector_type, self.list_selector, f"list selector of '{self.name}'")
        _check_selector(self.item_selector_type, self.item_selector, f"item selector of '{self.name}'")
        return self


class PagePattern(BaseModel):
    """Legacy flat page pattern."""

    model_config = ConfigDict(extra="forbid")

    name: str = Field(..., description="Pattern name")
    fields: List[FieldRule] = Field(default_factory=list)
    lists: List[ListRule] = Field(default_factory=list)
    pagination: Optional[PaginationRule] = None

    @model_validator(mode="after")
    def validate_names(self):
        """Page-level fields, lists and pagination share one namespace."""
        names = [r.name for r in self.fields] + [r.name for r in self.lists]
        if self.pagination is not None:
            names.append(self.pagination.name)
        _check_unique_names(names, f"page pattern '{self.name}'")
        return self


ItemPattern.model_rebuild()
