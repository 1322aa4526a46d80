"""
Field Renderer

Draws one field into its resolved DocumentBox on a PyMuPDF page.

Layout rules per type:
- signature / image: decode the payload (PNG first, then JPEG), inset the
  box by the field padding and "contain"-fit the image, centered on both axes
- text / date: single line, left aligned at the padding inset, vertically
  centered with a baseline offset of font_size / 3; the font shrinks in
  fixed steps until the text fits the padded width or the floor is reached
- radio: outlined circle at the left padding, vertically centered, filled
  with a smaller concentric disc when selected; optional label to the right
  using the same shrink-to-fit sizing as text

Recoverable problems (bad image payload, box too small) raise
FieldRenderError inside the per-type handlers; render_field() turns them
into a logged, recorded skip so one bad field never aborts a job.
"""
import base64
import binascii
import io
from dataclasses import dataclass, field as dc_field
from datetime import date
from typing import Callable, Dict, List, Optional

import fitz  # PyMuPDF
from PIL import Image, UnidentifiedImageError

from app.config import settings
from app.services.errors import FieldRenderError
from app.services.fields import (
    DateField,
    FieldKind,
    FormField,
    RadioField,
    SkippedField,
)
from app.services.geometry import DocumentBox, to_fitz_point
from app.utils.logging import get_logger

logger = get_logger(__name__)

BLACK = (0, 0, 0)
IMAGE_FORMATS = ("PNG", "JPEG")


@dataclass(frozen=True)
class LayoutConstants:
    """
    Named layout constants, all in document units (PDF points).

    padding mirrors the editor's own inner padding so burned-in content
    lines up with what the user saw inside the field border.
    """
    padding: float = 6.0
    default_font_size: float = 10.0
    font_height_ratio: float = 0.6
    min_font_size: float = 6.0
    font_size_step: float = 0.5
    radio_radius_ratio: float = 0.3
    radio_min_radius: float = 6.0
    radio_max_radius: float = 12.0
    radio_fill_ratio: float = 0.55
    radio_label_gap: float = 4.0

    @classmethod
    def from_settings(cls) -> "LayoutConstants":
        return cls(
            padding=settings.field_padding,
            default_font_size=settings.default_font_size,
            font_height_ratio=settings.font_height_ratio,
            min_font_size=settings.min_font_size,
            font_size_step=settings.font_size_step,
            radio_radius_ratio=settings.radio_radius_ratio,
            radio_min_radius=settings.radio_min_radius,
            radio_max_radius=settings.radio_max_radius,
            radio_fill_ratio=settings.radio_fill_ratio,
            radio_label_gap=settings.radio_label_gap,
        )


@dataclass
class CompositionReport:
    """What happened to each field of one composition."""
    rendered: List[str] = dc_field(default_factory=list)
    skipped: List[SkippedField] = dc_field(default_factory=list)

    def skip(self, field_id: Optional[str], reason: str) -> None:
        logger.warning(f"Skipping field {field_id or '<no id>'}: {reason}")
        self.skipped.append(SkippedField(field_id=field_id, reason=reason))


class FontHandle:
    """
    The one font shared by every text-bearing field of a job.

    Base-14 fonts ("helv", "tiro", ...) need no embedding. A font file is
    read once; PyMuPDF reuses the embedded font object for every page the
    buffer is inserted on.
    """

    def __init__(self, fontname: str = "helv", fontfile: Optional[str] = None):
        self._buffer: Optional[bytes] = None
        if fontfile:
            with open(fontfile, "rb") as f:
                self._buffer = f.read()
            self.name = "Ffield"
            self.font = fitz.Font(fontbuffer=self._buffer)
        else:
            self.name = fontname
            self.font = fitz.Font(fontname)
        self._pages_ready: set = set()

    def text_width(self, text: str, fontsize: float) -> float:
        return self.font.text_length(text, fontsize=fontsize)

    def prepare(self, page: fitz.Page) -> None:
        if self._buffer is None or page.number in self._pages_ready:
            return
        page.insert_font(fontname=self.name, fontbuffer=self._buffer)
        self._pages_ready.add(page.number)


@dataclass(frozen=True)
class ContainFit:
    scale: float
    draw_width: float
    draw_height: float
    offset_x: float
    offset_y: float


def contain_fit(image_width: float, image_height: float, available_width: float, available_height: float) -> ContainFit:
    """Aspect-preserving fit of an image inside an area, centered on both axes"""
    scale = min(available_width / image_width, available_height / image_height)
    draw_width = image_width * scale
    draw_height = image_height * scale
    return ContainFit(
        scale=scale,
        draw_width=draw_width,
        draw_height=draw_height,
        offset_x=(available_width - draw_width) / 2,
        offset_y=(available_height - draw_height) / 2,
    )


def fit_font_size(
    measure: Callable[[float], float],
    available_width: float,
    start_size: float,
    min_size: float,
    step: float,
) -> float:
    """
    Largest size on the `start_size - k*step` grid whose measured width fits.

    Stops at `min_size`; the text may still overflow at the floor.
    """
    size = start_size
    while measure(size) > available_width and size > min_size:
        size = max(size - step, min_size)
    return size


def strip_data_uri(payload: str) -> str:
    """Drop a `data:<mime>;base64,` prefix (anything up to the first comma)"""
    payload = payload.strip()
    if payload.startswith("data:") and "," in payload:
        return payload.split(",", 1)[1]
    return payload


@dataclass(frozen=True)
class DecodedImage:
    data: bytes
    width: int
    height: int
    format: str


def decode_image_payload(payload: str) -> DecodedImage:
    """
    Base64 payload -> raster bytes, probing PNG first and JPEG second.

    Raises:
        FieldRenderError: empty payload, bad base64, or neither PNG nor JPEG
    """
    encoded = "".join(strip_data_uri(payload or "").split())
    if not encoded:
        raise FieldRenderError("empty image payload")
    # tolerate missing base64 padding
    encoded += "=" * (-len(encoded) % 4)
    try:
        data = base64.b64decode(encoded, validate=False)
    except (binascii.Error, ValueError) as e:
        raise FieldRenderError(f"image payload is not valid base64: {e}")

    for fmt in IMAGE_FORMATS:
        try:
            with Image.open(io.BytesIO(data), formats=[fmt]) as img:
                img.load()
                width, height = img.size
        except (UnidentifiedImageError, OSError, SyntaxError):
            continue
        if width <= 0 or height <= 0:
            break
        return DecodedImage(data=data, width=width, height=height, format=fmt)
    raise FieldRenderError("image payload is neither PNG nor JPEG")


class FieldRenderer:
    """
    Draws fields onto pages. Stateless apart from its layout constants, so
    one instance can serve concurrent jobs.
    """

    def __init__(
        self,
        constants: Optional[LayoutConstants] = None,
        today: Callable[[], date] = date.today,
    ):
        self.constants = constants or LayoutConstants()
        self.today = today
        self._handlers: Dict[FieldKind, Callable[..., None]] = {
            FieldKind.signature: self._render_image,
            FieldKind.image: self._render_image,
            FieldKind.text: self._render_text,
            FieldKind.date: self._render_text,
            FieldKind.radio: self._render_radio,
        }

    def render_field(
        self,
        page: fitz.Page,
        box: DocumentBox,
        field: FormField,
        font: FontHandle,
        report: Optional[CompositionReport] = None,
    ) -> None:
        """Draw `field` into `box` on `page`; recoverable failures are recorded as skips"""
        report = report if report is not None else CompositionReport()
        handler = self._handlers.get(field.kind) if field.kind is not None else None
        if handler is None:
            report.skip(field.id, f"unknown field type '{getattr(field, 'type_name', field.kind)}'")
            return
        try:
            handler(page, box, field, font)
        except FieldRenderError as e:
            report.skip(field.id, e.message)
            return
        report.rendered.append(field.id)

    # Text sizing

    def initial_font_size(self, box_height: float) -> float:
        return min(self.constants.default_font_size, box_height * self.constants.font_height_ratio)

    def fit_text(self, text: str, font: FontHandle, available_width: float, box_height: float) -> float:
        return fit_font_size(
            lambda size: font.text_width(text, size),
            available_width,
            self.initial_font_size(box_height),
            self.constants.min_font_size,
            self.constants.font_size_step,
        )

    def resolve_text(self, field: FormField) -> str:
        text = " ".join(field.text.split())
        if isinstance(field, DateField) and not text:
            return self.today().strftime("%Y-%m-%d")
        return text

    def radio_radius(self, box_height: float) -> float:
        c = self.constants
        return min(max(box_height * c.radio_radius_ratio, c.radio_min_radius), c.radio_max_radius)

    # Per-type handlers

    def _render_image(self, page: fitz.Page, box: DocumentBox, field: FormField, font: FontHandle) -> None:
        image = decode_image_payload(field.image_data)
        area = box.inset(self.constants.padding)
        if area.width <= 0 or area.height <= 0:
            raise FieldRenderError(f"field box {box.width:.1f}x{box.height:.1f} leaves no room inside the padding")

        fit = contain_fit(image.width, image.height, area.width, area.height)
        target = DocumentBox(
            x=area.x + fit.offset_x,
            y_bottom=area.y_bottom + fit.offset_y,
            width=fit.draw_width,
            height=fit.draw_height,
        )
        try:
            page.insert_image(target.to_fitz_rect(page.rect.height), stream=image.data, keep_proportion=False)
        except (RuntimeError, ValueError) as e:
            raise FieldRenderError(f"could not embed {image.format} image: {e}")

    def _render_text(self, page: fitz.Page, box: DocumentBox, field: FormField, font: FontHandle) -> None:
        text = self.resolve_text(field)
        if not text:
            return
        padding = self.constants.padding
        size = self.fit_text(text, font, box.width - 2 * padding, box.height)
        _, center_y = box.center
        self._draw_text(page, box.x + padding, center_y - size / 3, text, size, font)

    def _render_radio(self, page: fitz.Page, box: DocumentBox, field: RadioField, font: FontHandle) -> None:
        c = self.constants
        page_height = page.rect.height
        radius = self.radio_radius(box.height)
        center_x = box.x + c.padding + radius
        _, center_y = box.center
        center = to_fitz_point(center_x, center_y, page_height)

        page.draw_circle(center, radius, color=BLACK, width=1)
        if field.selected:
            page.draw_circle(center, radius * c.radio_fill_ratio, color=BLACK, fill=BLACK)

        label = " ".join((field.label or "").split())
        if not label:
            return
        label_x = center_x + radius + c.radio_label_gap
        available = box.right - c.padding - label_x
        size = self.fit_text(label, font, available, box.height)
        self._draw_text(page, label_x, center_y - size / 3, label, size, font)

    def _draw_text(self, page: fitz.Page, x: float, baseline_y: float, text: str, size: float, font: FontHandle) -> None:
        font.prepare(page)
        page.insert_text(
            to_fitz_point(x, baseline_y, page.rect.height),
            text,
            fontsize=size,
            fontname=font.name,
            color=BLACK,
        )
