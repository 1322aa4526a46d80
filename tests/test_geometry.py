"""
Unit Tests for field geometry

Tests for:
- Fraction -> PDF point conversion (top-left UI origin -> bottom-left PDF origin)
- Containment of in-bounds rects
- Clamping helper
- Flip back into PyMuPDF's top-left system
"""

import pytest
from hypothesis import given, strategies as st

from app.services.geometry import DocumentBox, NormalizedRect, to_document_box, to_fitz_point

fractions = st.floats(min_value=0.0, max_value=1.0, allow_nan=False)
page_dims = st.floats(min_value=1.0, max_value=5000.0, allow_nan=False)


@st.composite
def in_bounds_rects(draw):
    width = draw(fractions)
    height = draw(fractions)
    left = draw(st.floats(min_value=0.0, max_value=1.0 - width, allow_nan=False))
    top = draw(st.floats(min_value=0.0, max_value=1.0 - height, allow_nan=False))
    return NormalizedRect(page_index=0, left_frac=left, top_frac=top, width_frac=width, height_frac=height)


class TestToDocumentBox:

    def test_full_page_rect_maps_to_whole_page(self):
        rect = NormalizedRect(page_index=0, left_frac=0, top_frac=0, width_frac=1, height_frac=1)

        box = to_document_box(rect, 612, 792)

        assert box == DocumentBox(x=0, y_bottom=0, width=612, height=792)

    def test_letter_page_example(self):
        rect = NormalizedRect(page_index=0, left_frac=0.1, top_frac=0.1, width_frac=0.3, height_frac=0.05)

        box = to_document_box(rect, 612, 792)

        assert box.x == pytest.approx(61.2)
        assert box.width == pytest.approx(183.6)
        assert box.height == pytest.approx(39.6)
        assert box.y_bottom == pytest.approx(792 - (79.2 + 39.6))
        assert box.y_bottom == pytest.approx(673.2)

    def test_top_of_page_lands_at_top_in_pdf_space(self):
        """A field touching the visual top edge touches the PDF top edge"""
        rect = NormalizedRect(page_index=0, left_frac=0, top_frac=0, width_frac=0.5, height_frac=0.25)

        box = to_document_box(rect, 400, 800)

        assert box.top == pytest.approx(800)
        assert box.y_bottom == pytest.approx(600)

    def test_overflowing_rect_is_not_clamped(self):
        rect = NormalizedRect(page_index=0, left_frac=0.9, top_frac=0.9, width_frac=0.2, height_frac=0.2)

        box = to_document_box(rect, 100, 100)

        assert box.right == pytest.approx(110)
        assert box.y_bottom == pytest.approx(-10)

    @given(rect=in_bounds_rects(), width=page_dims, height=page_dims)
    def test_in_bounds_rect_stays_on_page(self, rect, width, height):
        box = to_document_box(rect, width, height)

        tolerance = 1e-9 * max(width, height)
        assert box.x >= -tolerance
        assert box.y_bottom >= -tolerance
        assert box.right <= width + tolerance
        assert box.top <= height + tolerance
        assert box.width >= 0
        assert box.height >= 0

    @given(rect=in_bounds_rects(), width=page_dims, height=page_dims)
    def test_conversion_is_deterministic(self, rect, width, height):
        assert to_document_box(rect, width, height) == to_document_box(rect, width, height)


class TestNormalizedRect:

    def test_within_bounds(self):
        assert NormalizedRect(0, 0.1, 0.1, 0.3, 0.05).within_bounds()
        assert not NormalizedRect(0, 0.8, 0.1, 0.3, 0.05).within_bounds()
        assert not NormalizedRect(0, -0.1, 0.1, 0.3, 0.05).within_bounds()

    def test_clamped_pulls_rect_back_inside(self):
        rect = NormalizedRect(page_index=2, left_frac=0.9, top_frac=-0.1, width_frac=0.2, height_frac=0.3)

        clamped = rect.clamped()

        assert clamped.page_index == 2
        assert clamped.width_frac == pytest.approx(0.2)
        assert clamped.left_frac == pytest.approx(0.8)
        assert clamped.top_frac == 0.0
        assert clamped.within_bounds()

    @given(
        left=st.floats(min_value=-2, max_value=2, allow_nan=False),
        top=st.floats(min_value=-2, max_value=2, allow_nan=False),
        width=st.floats(min_value=-2, max_value=2, allow_nan=False),
        height=st.floats(min_value=-2, max_value=2, allow_nan=False),
    )
    def test_clamped_always_within_bounds(self, left, top, width, height):
        clamped = NormalizedRect(0, left, top, width, height).clamped()

        assert clamped.left_frac >= 0
        assert clamped.top_frac >= 0
        assert clamped.left_frac + clamped.width_frac <= 1.0 + 1e-12
        assert clamped.top_frac + clamped.height_frac <= 1.0 + 1e-12


class TestFitzConversion:

    def test_to_fitz_rect_flips_vertical_axis(self):
        box = DocumentBox(x=61.2, y_bottom=673.2, width=183.6, height=39.6)

        rect = box.to_fitz_rect(792)

        assert rect.x0 == pytest.approx(61.2)
        assert rect.y0 == pytest.approx(79.2)
        assert rect.x1 == pytest.approx(244.8)
        assert rect.y1 == pytest.approx(118.8)

    def test_to_fitz_point(self):
        point = to_fitz_point(10, 700, 792)

        assert point.x == 10
        assert point.y == pytest.approx(92)

    def test_inset(self):
        box = DocumentBox(x=10, y_bottom=20, width=100, height=50).inset(5)

        assert box == DocumentBox(x=15, y_bottom=25, width=90, height=40)
