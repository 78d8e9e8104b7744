"""
Tests for the pagination engine.
"""

import asyncio
import math

import pytest

from docx_composer.config import Margins, PageSetup, PaginationOptions
from docx_composer.layout import (
    DocumentBreakApplier,
    DocumentMeasurementProvider,
    MeasuredBox,
    Paginator,
    StaticMeasurementProvider,
    assign_pages,
    layout_pages,
    plan_pass,
)
from docx_composer.models import RichDocument
from tests.builders import paragraph, state, text

CAPACITY = 1000


def _page_setup(capacity: float = CAPACITY) -> PageSetup:
    return PageSetup(width_px=816, height_px=capacity, margins=Margins.preset("none"))


def _document(count: int) -> RichDocument:
    return RichDocument.from_dict(state(*(
        paragraph(text(f"Block {index}"), key=f"b{index}") for index in range(count)
    )))


def _paginator(document: RichDocument, height: float, **options) -> Paginator:
    heights = {node.key: height for node in document}
    return Paginator(
        DocumentMeasurementProvider(document, heights),
        DocumentBreakApplier(document),
        page_setup=_page_setup(),
        options=PaginationOptions(**options),
    )


def _converge(paginator: Paginator) -> int:
    passes = 0
    while paginator.run_pass():
        passes += 1
        assert passes < 1000
    return passes


class TestPlanPass:
    """The pure single-pass planner."""

    def test_no_overflow(self):
        boxes = [MeasuredBox(f"b{i}", 200) for i in range(4)]
        plan = plan_pass(boxes, CAPACITY)
        assert not plan.inserted
        assert plan.leading_space_px == 0

    def test_first_overflow_gets_a_marker(self):
        boxes = [MeasuredBox(f"b{i}", 300) for i in range(5)]
        plan = plan_pass(boxes, CAPACITY)
        assert plan.insert_before == "b3"
        assert plan.leading_space_px == 100

    def test_marker_resets_accumulated_height(self):
        boxes = [
            MeasuredBox("b0", 600),
            MeasuredBox("m0", 0, is_break_marker=True, leading_space_px=400),
            MeasuredBox("b1", 600),
        ]
        assert not plan_pass(boxes, CAPACITY).inserted

    def test_oversized_box_after_marker_is_accepted(self):
        boxes = [
            MeasuredBox("m0", 0, is_break_marker=True, leading_space_px=1000),
            MeasuredBox("big", 2500),
        ]
        assert not plan_pass(boxes, CAPACITY).inserted

    def test_marker_leading_space_is_weightless(self):
        boxes = [
            MeasuredBox("b0", 700),
            MeasuredBox("m0", 0, is_break_marker=True, leading_space_px=900),
            MeasuredBox("b1", 100),
            MeasuredBox("b2", 900),
        ]
        plan = plan_pass(boxes, CAPACITY)
        assert not plan.inserted
        assert plan.leading_space_px == 0

    def test_empty_input(self):
        assert not plan_pass([], CAPACITY).inserted


class TestFixedPoint:
    """Repeated passes converge on the expected number of markers."""

    @pytest.mark.parametrize("count, height", [(10, 300), (7, 300), (3, 450), (5, 150)])
    def test_marker_count(self, count, height):
        document = _document(count)
        paginator = _paginator(document, height)

        _converge(paginator)

        assert len(document.page_breaks()) == math.floor(count * height / CAPACITY)
        assert paginator.breaks_inserted == len(document.page_breaks())

    def test_oversized_boxes_each_get_their_own_page(self):
        document = _document(3)
        paginator = _paginator(document, 1200)

        _converge(paginator)

        types = [node.type for node in document]
        assert types == ["page-break", "paragraph"] * 3
        pages = paginator.pages()
        assert [page.element_ids for page in pages if page.element_ids] == [["b0"], ["b1"], ["b2"]]

    def test_idempotent_once_converged(self):
        document = _document(10)
        paginator = _paginator(document, 300)
        _converge(paginator)
        before = document.to_dict()

        assert paginator.run_pass() is False
        assert document.to_dict() == before

    def test_run_reports_change_and_respects_safety_limit(self):
        document = _document(10)
        paginator = _paginator(document, 300, safety_limit=2)

        assert paginator.run() is True
        assert len(document.page_breaks()) == 2
        assert paginator.run() is True
        assert paginator.run() is False
        assert len(document.page_breaks()) == 3

    def test_inserted_marker_carries_leftover_space(self):
        document = _document(4)
        paginator = _paginator(document, 300)
        _converge(paginator)

        (marker,) = document.page_breaks()
        assert marker.get("leadingSpacePx") == 100
        assert document.index_of(marker.key) == 3

    def test_pass_inserting_nothing_leaves_tree_unchanged(self):
        document = _document(4)
        paginator = _paginator(document, 300)
        _converge(paginator)
        before = document.to_dict()

        paginator.provider.heights["b0"] = 100

        assert paginator.run_pass() is False
        assert document.to_dict() == before
        (marker,) = document.page_breaks()
        assert marker.get("leadingSpacePx") == 100


class TestPaginatorGuards:

    def test_empty_content_is_noop(self):
        paginator = Paginator(StaticMeasurementProvider([]), DocumentBreakApplier(RichDocument()))
        assert paginator.run_pass() is False

    def test_missing_root_is_noop(self):
        provider = StaticMeasurementProvider([MeasuredBox("b0", 5000)], root_id=None)
        paginator = Paginator(provider, DocumentBreakApplier(RichDocument()))
        assert paginator.run_pass() is False
        assert paginator.measure() == []

    def test_reentrant_pass_is_dropped(self):
        document = _document(5)
        results = []

        class ReentrantApplier(DocumentBreakApplier):
            def insert_break_before(self, element_id, leading_space_px):
                results.append(paginator.in_flight)
                results.append(paginator.run_pass())
                return super().insert_break_before(element_id, leading_space_px)

        heights = {node.key: 300 for node in document}
        paginator = Paginator(
            DocumentMeasurementProvider(document, heights),
            ReentrantApplier(document),
            page_setup=_page_setup(),
        )

        assert paginator.run_pass() is True
        assert results == [True, False]
        assert len(document.page_breaks()) == 1
        assert paginator.in_flight is False

    def test_provider_failure_is_logged_not_raised(self, caplog):
        class BrokenProvider:
            def get_root_element_id(self):
                return "root"

            def list_rendered_boxes(self, root_id):
                raise RuntimeError("surface detached")

        paginator = Paginator(BrokenProvider(), DocumentBreakApplier(RichDocument()))
        assert paginator.run_pass() is False
        assert "surface detached" in caplog.text

    def test_failed_insertion_reports_no_change(self):
        class RefusingApplier:
            def insert_break_before(self, element_id, leading_space_px):
                return False

        provider = StaticMeasurementProvider([MeasuredBox("b0", 800), MeasuredBox("b1", 800)])
        paginator = Paginator(provider, RefusingApplier(), page_setup=_page_setup())
        assert paginator.run_pass() is False
        assert paginator.breaks_inserted == 0

    def test_negative_measurement_is_logged_not_raised(self, caplog):
        document = _document(2)
        provider = DocumentMeasurementProvider(document, {"b0": 100, "b1": -5})
        paginator = Paginator(provider, DocumentBreakApplier(document), page_setup=_page_setup())

        assert paginator.run_pass() is False
        assert "Negative height measured for node b1" in caplog.text


class TestScheduling:

    @pytest.mark.asyncio
    async def test_scheduled_run_converges(self):
        document = _document(10)
        paginator = _paginator(document, 300, settle_delay=0.01)

        first = paginator.schedule()
        second = paginator.schedule()
        assert first is second

        await asyncio.sleep(0.1)
        assert len(document.page_breaks()) == 3

    @pytest.mark.asyncio
    async def test_cancel(self):
        document = _document(10)
        paginator = _paginator(document, 300, settle_delay=0.01)

        paginator.schedule()
        paginator.cancel()

        await asyncio.sleep(0.05)
        assert document.page_breaks() == []


class TestPageAssignment:

    def test_assignments_follow_markers(self):
        boxes = [
            MeasuredBox("b0", 400),
            MeasuredBox("b1", 400),
            MeasuredBox("m0", 0, is_break_marker=True),
            MeasuredBox("b2", 100),
        ]
        assignments = assign_pages(boxes, CAPACITY)
        assert [(a.element_id, a.page_index, a.leading_offset_px) for a in assignments] == [
            ("b0", 0, 0.0),
            ("b1", 0, 400.0),
            ("b2", 1, 0.0),
        ]

    def test_unresolved_overflow_still_starts_a_page(self):
        boxes = [MeasuredBox("b0", 700), MeasuredBox("b1", 700)]
        assert [a.page_index for a in assign_pages(boxes, CAPACITY)] == [0, 1]

    def test_layout_pages_has_at_least_one_page(self):
        pages = layout_pages([], CAPACITY)
        assert len(pages) == 1
        assert pages[0].number == 1
        assert pages[0].element_ids == []

    def test_layout_pages_used_height(self):
        boxes = [MeasuredBox("b0", 250), MeasuredBox("b1", 250.4)]
        (page,) = layout_pages(boxes, CAPACITY)
        assert page.used_height_px == 500

