"""Materialization of flat extraction records into nested page data."""

from pattern_probe.materialize.cache import MaterializationCache, input_fingerprint
from pattern_probe.materialize.materializer import (
    ABSENT,
    MaterializationResult,
    PageData,
    RecordIndex,
    build_page_data,
    materialize,
    to_jsonable,
)

__all__ = [
    "ABSENT",
    "MaterializationCache",
    "MaterializationResult",
    "PageData",
    "RecordIndex",
    "build_page_data",
    "input_fingerprint",
    "materialize",
    "to_jsonable",
]
