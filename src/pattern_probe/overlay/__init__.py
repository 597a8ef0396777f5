"""Overlay geometry for preview renderers."""

from pattern_probe.overlay.projection import (
    clip_to_viewport,
    flatten_page_elements,
    index_hints,
    project_overlay,
)

__all__ = ["clip_to_viewport", "flatten_page_elements", "index_hints", "project_overlay"]
