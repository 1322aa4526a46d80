"""
Field Geometry

Maps a field rectangle expressed as page-relative fractions (what the
editor overlay produces, independent of zoom level or device pixel ratio)
onto a page measured in document units (PDF points).

Coordinate Systems:
- NormalizedRect: fractions of the page, origin at the TOP-left
  (the on-screen convention used by the editor)
- DocumentBox: PDF points, origin at the BOTTOM-left (PDF convention)
- Conversion: y_bottom = page_height - (top_frac * page_height + height)

PyMuPDF draws in a top-left system, so DocumentBox.to_fitz_rect() and
to_fitz_point() flip back when a box is handed to the drawing layer.
"""

from dataclasses import dataclass
from typing import Tuple

import fitz  # PyMuPDF


@dataclass(frozen=True)
class NormalizedRect:
    """
    Field rectangle as fractions of the page (0-1), top-left origin.

    The editor clamps `left + width <= 1` and `top + height <= 1` before
    submitting. Nothing here enforces it: a rect that overflows after
    rounding is converted as-is and may poke slightly off the page.
    """
    page_index: int
    left_frac: float
    top_frac: float
    width_frac: float
    height_frac: float

    def within_bounds(self) -> bool:
        return (
            self.left_frac >= 0.0
            and self.top_frac >= 0.0
            and self.width_frac >= 0.0
            and self.height_frac >= 0.0
            and self.left_frac + self.width_frac <= 1.0
            and self.top_frac + self.height_frac <= 1.0
        )

    def clamped(self) -> "NormalizedRect":
        """Copy of this rect pulled back inside the page (size kept when possible)"""
        width = min(max(self.width_frac, 0.0), 1.0)
        height = min(max(self.height_frac, 0.0), 1.0)
        return NormalizedRect(
            page_index=self.page_index,
            left_frac=min(max(self.left_frac, 0.0), 1.0 - width),
            top_frac=min(max(self.top_frac, 0.0), 1.0 - height),
            width_frac=width,
            height_frac=height,
        )


@dataclass(frozen=True)
class DocumentBox:
    """Absolute box in PDF points, bottom-left origin."""
    x: float
    y_bottom: float
    width: float
    height: float

    @property
    def top(self) -> float:
        return self.y_bottom + self.height

    @property
    def right(self) -> float:
        return self.x + self.width

    @property
    def center(self) -> Tuple[float, float]:
        return (self.x + self.width / 2, self.y_bottom + self.height / 2)

    def inset(self, padding: float) -> "DocumentBox":
        """Box shrunk by `padding` on every side (size may go negative)"""
        return DocumentBox(
            x=self.x + padding,
            y_bottom=self.y_bottom + padding,
            width=self.width - 2 * padding,
            height=self.height - 2 * padding,
        )

    def to_fitz_rect(self, page_height: float) -> fitz.Rect:
        """Same box in PyMuPDF's top-left system"""
        y0 = page_height - self.top
        return fitz.Rect(self.x, y0, self.right, y0 + self.height)


def to_fitz_point(x: float, y_bottom: float, page_height: float) -> fitz.Point:
    """Bottom-left origin point -> PyMuPDF top-left origin point"""
    return fitz.Point(x, page_height - y_bottom)


def to_document_box(rect: NormalizedRect, page_width: float, page_height: float) -> DocumentBox:
    """
    Convert a normalized rect into document coordinates.

    Pure function. For a rect within bounds the result lies inside
    [0, page_width] x [0, page_height].

    Example:
        # US Letter, field at 10% / 10%, 30% wide, 5% tall
        box = to_document_box(NormalizedRect(0, 0.1, 0.1, 0.3, 0.05), 612, 792)
        # DocumentBox(x=61.2, y_bottom=673.2, width=183.6, height=39.6)
    """
    width = rect.width_frac * page_width
    height = rect.height_frac * page_height
    x = rect.left_frac * page_width
    top_y = rect.top_frac * page_height
    y_bottom = page_height - (top_y + height)
    return DocumentBox(x=x, y_bottom=y_bottom, width=width, height=height)
