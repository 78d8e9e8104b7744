"""
Pagination engine.

Turns a flowing sequence of measured top-level boxes into fixed-capacity
pages. A pass walks the boxes accumulating height and, at the first box that
overflows the page, asks for one break marker to be inserted before it.
Passes repeat until none inserts anything, because every insertion changes the
geometry downstream of it.

The layout functions (``plan_pass``, ``assign_pages``, ``layout_pages``) are
pure; ``Paginator`` drives them against a measurement provider and applies the
result through a break applier.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence

from ..config import PageSetup, PaginationOptions
from ..utils.units import round_half_up
from .measurement import BreakApplier, MeasuredBox, MeasurementProvider

logger = logging.getLogger(__name__)

@dataclass(slots=True)
class PassPlan:
    """Result of one reflow pass."""

    insert_before: Optional[str] = None
    leading_space_px: float = 0.0

    @property
    def inserted(self) -> bool:
        return self.insert_before is not None


@dataclass(frozen=True, slots=True)
class PageAssignment:
    element_id: str
    page_index: int
    leading_offset_px: float


@dataclass(slots=True)
class PageLayout:
    number: int
    element_ids: List[str] = field(default_factory=list)
    used_height_px: float = 0.0


def _box_height(box: MeasuredBox) -> int:
    return max(0, round_half_up(box.height_px))


def plan_pass(boxes: Sequence[MeasuredBox], available_height: float) -> PassPlan:
    """
    Compute a single reflow pass.

    Break markers reset the accumulated height and are themselves weightless:
    their leading offset is taken as zero and never counts toward a page.
    Only the marker this pass inserts carries the space left on the page it
    closes. A box that overflows right after a marker is oversized; it is
    accepted as the page's only content instead of being pushed forward
    again.
    """
    plan = PassPlan()
    consumed = 0
    previous: Optional[MeasuredBox] = None

    for box in boxes:
        if box.is_break_marker:
            consumed = 0
            previous = box
            continue

        height = _box_height(box)
        if consumed + height > available_height:
            if previous is not None and previous.is_break_marker:
                consumed = height
                previous = box
                continue
            plan.insert_before = box.element_id
            plan.leading_space_px = max(0.0, available_height - consumed)
            return plan

        consumed += height
        previous = box

    return plan


def assign_pages(boxes: Sequence[MeasuredBox], available_height: float) -> List[PageAssignment]:
    """
    Assign every content box to exactly one page.

    Markers start a new page and belong to none. Overflow that has not been
    resolved by a marker yet also starts a new page, so the assignment is
    total even before pagination has converged.
    """
    assignments: List[PageAssignment] = []
    page_index = 0
    consumed = 0

    for box in boxes:
        if box.is_break_marker:
            page_index += 1
            consumed = 0
            continue
        height = _box_height(box)
        if consumed > 0 and consumed + height > available_height:
            page_index += 1
            consumed = 0
        assignments.append(PageAssignment(box.element_id, page_index, float(consumed)))
        consumed += height

    return assignments


def layout_pages(boxes: Sequence[MeasuredBox], available_height: float) -> List[PageLayout]:
    """Group boxes into the page list shown by the editor's page view (at least one page)."""
    heights = {box.element_id: _box_height(box) for box in boxes}
    assignments = assign_pages(boxes, available_height)
    page_count = 1 + sum(1 for box in boxes if box.is_break_marker)
    if assignments:
        page_count = max(page_count, assignments[-1].page_index + 1)

    pages = [PageLayout(number=index + 1) for index in range(page_count)]
    for assignment in assignments:
        page = pages[assignment.page_index]
        page.element_ids.append(assignment.element_id)
        page.used_height_px += heights[assignment.element_id]
    return pages


class Paginator:
    """
    Drives reflow passes against a live document.

    A single in-flight flag guards the mutation step: a pass requested while a
    previous pass is still applying its change is dropped, and the next
    scheduled pass catches up.
    """

    def __init__(self, provider: MeasurementProvider, applier: BreakApplier,
                 page_setup: Optional[PageSetup] = None,
                 options: Optional[PaginationOptions] = None):
        self.provider = provider
        self.applier = applier
        self.page_setup = page_setup or PageSetup()
        self.options = options or PaginationOptions()
        self._in_flight = False
        self._pending: Optional[asyncio.TimerHandle] = None
        self.breaks_inserted = 0

    @property
    def available_height(self) -> float:
        return self.page_setup.available_height_px

    @property
    def in_flight(self) -> bool:
        return self._in_flight

    def measure(self) -> List[MeasuredBox]:
        root_id = self.provider.get_root_element_id()
        if root_id is None:
            return []
        return list(self.provider.list_rendered_boxes(root_id))

    def run_pass(self) -> bool:
        """Run one reflow pass. Returns True if a break marker was inserted."""
        if self._in_flight:
            logger.debug("Pagination pass dropped: previous mutation still in flight")
            return False

        try:
            boxes = self.measure()
        except Exception as e:
            logger.warning(f"Failed to read rendered boxes: {e}")
            return False
        if not boxes:
            return False

        plan = plan_pass(boxes, self.available_height)
        if not plan.inserted:
            return False

        self._in_flight = True
        try:
            if not self.applier.insert_break_before(plan.insert_before, plan.leading_space_px):
                logger.warning(f"Could not insert page break before element {plan.insert_before}")
                return False
        except Exception as e:
            logger.error(f"Failed to apply pagination pass: {e}")
            return False
        finally:
            self._in_flight = False

        self.breaks_inserted += 1
        logger.debug(
            f"Inserted page break before {plan.insert_before} "
            f"(leading space {plan.leading_space_px:.0f}px)"
        )
        return True

    def run(self) -> bool:
        """Repeat passes until one inserts nothing or the safety limit is hit."""
        changed = False
        for _ in range(max(1, self.options.safety_limit)):
            if not self.run_pass():
                break
            changed = True
        else:
            logger.debug(f"Pagination stopped after {self.options.safety_limit} passes")
        return changed

    def schedule(self) -> asyncio.TimerHandle:
        """
        Schedule a fixed-point run once layout has settled.

        Must be called from a running event loop. Requests arriving while one
        is already pending are folded into it.
        """
        if self._pending is not None and not self._pending.cancelled():
            return self._pending
        loop = asyncio.get_running_loop()
        self._pending = loop.call_later(self.options.settle_delay, self._run_scheduled)
        return self._pending

    def _run_scheduled(self) -> None:
        self._pending = None
        self.run()

    def cancel(self) -> None:
        if self._pending is not None:
            self._pending.cancel()
            self._pending = None

    def page_assignments(self) -> List[PageAssignment]:
        return assign_pages(self.measure(), self.available_height)

    def pages(self) -> List[PageLayout]:
        return layout_pages(self.measure(), self.available_height)
