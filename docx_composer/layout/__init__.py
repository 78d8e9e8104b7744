"""
Layout: measurement contracts and the pagination engine.
"""

from .measurement import (
    ROOT_ELEMENT_ID,
    BreakApplier,
    DocumentBreakApplier,
    DocumentMeasurementProvider,
    MeasuredBox,
    MeasurementProvider,
    StaticMeasurementProvider,
)
from .pagination import (
    PageAssignment,
    PageLayout,
    Paginator,
    PassPlan,
    assign_pages,
    layout_pages,
    plan_pass,
)

__all__ = [
    "ROOT_ELEMENT_ID",
    "BreakApplier",
    "DocumentBreakApplier",
    "DocumentMeasurementProvider",
    "MeasuredBox",
    "MeasurementProvider",
    "StaticMeasurementProvider",
    "PageAssignment",
    "PageLayout",
    "Paginator",
    "PassPlan",
    "assign_pages",
    "layout_pages",
    "plan_pass",
]
