from dataclasses import dataclass, field as dc_field
from typing import List, Optional, Sequence, Tuple

import fitz  # PyMuPDF

from app.services.errors import DocumentParseError, SerializeError
from app.services.field_renderer import CompositionReport, FieldRenderer, FontHandle, LayoutConstants
from app.services.fields import FormField, SkippedField
from app.services.geometry import to_document_box
from app.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class CompositionResult:
    pdf_bytes: bytes
    page_count: int
    rendered: List[str] = dc_field(default_factory=list)
    skipped: List[SkippedField] = dc_field(default_factory=list)


def open_document(pdf_bytes: bytes) -> fitz.Document:
    """
    Parse PDF bytes into a PyMuPDF document.

    Raises:
        DocumentParseError: empty, unparseable, encrypted or page-less input
    """
    if not pdf_bytes:
        raise DocumentParseError("Document is empty")
    try:
        doc = fitz.open(stream=pdf_bytes, filetype="pdf")
    except Exception as e:
        raise DocumentParseError(f"Not a valid PDF document: {e}") from e
    if doc.needs_pass:
        doc.close()
        raise DocumentParseError("Document is password protected")
    if doc.page_count == 0:
        doc.close()
        raise DocumentParseError("Document has no pages")
    return doc


def page_sizes(doc: fitz.Document) -> List[Tuple[float, float]]:
    """(width, height) of every page as displayed, i.e. with /Rotate applied"""
    return [(page.rect.width, page.rect.height) for page in doc]


class PDFComposer:
    """
    Burns a list of fields into a PDF.

    Each call works on its own in-memory document, so one composer can be
    shared across threads. Fields are drawn in list order: a later field
    overlays an earlier one where their boxes intersect.
    """

    def __init__(
        self,
        renderer: Optional[FieldRenderer] = None,
        fontname: str = "helv",
        fontfile: Optional[str] = None,
        clamp_rects: bool = False,
    ):
        self.renderer = renderer or FieldRenderer()
        self.fontname = fontname
        self.fontfile = fontfile
        self.clamp_rects = clamp_rects

    @classmethod
    def from_settings(cls) -> "PDFComposer":
        from app.config import settings
        return cls(
            renderer=FieldRenderer(LayoutConstants.from_settings()),
            fontname=settings.font_name,
            fontfile=settings.font_file,
        )

    def compose(self, source_bytes: bytes, fields: Sequence[FormField]) -> bytes:
        """Compose and return only the resulting PDF bytes"""
        return self.compose_with_report(source_bytes, fields).pdf_bytes

    def compose_with_report(self, source_bytes: bytes, fields: Sequence[FormField]) -> CompositionResult:
        """
        Compose a signed PDF by drawing every field onto its page.

        Args:
            source_bytes: Original PDF
            fields: Parsed fields, in drawing order

        Returns:
            CompositionResult with the new PDF bytes and per-field outcome

        Raises:
            DocumentParseError: source bytes are not a usable PDF
            SerializeError: the mutated document could not be written
        """
        doc = open_document(source_bytes)
        try:
            sizes = page_sizes(doc)
            font = FontHandle(fontname=self.fontname, fontfile=self.fontfile)
            report = CompositionReport()
            derotated = set()

            for field in fields:
                page_index = field.rect.page_index
                if not 0 <= page_index < len(sizes):
                    report.skip(field.id, f"page index {page_index} out of range (document has {len(sizes)} pages)")
                    continue

                try:
                    page = doc[page_index]
                    if page_index not in derotated:
                        # Fractions were measured on the displayed page
                        if page.rotation:
                            page.remove_rotation()
                        derotated.add(page_index)

                    page_width, page_height = sizes[page_index]
                    rect = field.rect.clamped() if self.clamp_rects else field.rect
                    box = to_document_box(rect, page_width, page_height)
                    self.renderer.render_field(page, box, field, font, report)
                except Exception as e:
                    logger.exception(f"Unexpected error drawing field {field.id}")
                    report.skip(field.id, f"render failed: {e}")

            pdf_bytes = self._serialize(doc)
            logger.info(
                f"Composed {len(report.rendered)} field(s), skipped {len(report.skipped)} "
                f"on a {len(sizes)}-page document"
            )
            return CompositionResult(
                pdf_bytes=pdf_bytes,
                page_count=len(sizes),
                rendered=report.rendered,
                skipped=report.skipped,
            )
        finally:
            doc.close()

    def compose_file(self, original_pdf_path: str, output_pdf_path: str, fields: Sequence[FormField]) -> CompositionResult:
        """Path-based convenience wrapper used by scripts"""
        with open(original_pdf_path, "rb") as f:
            source_bytes = f.read()
        result = self.compose_with_report(source_bytes, fields)
        with open(output_pdf_path, "wb") as f:
            f.write(result.pdf_bytes)
        return result

    @staticmethod
    def _serialize(doc: fitz.Document) -> bytes:
        try:
            return doc.tobytes(garbage=3, deflate=True)
        except Exception as e:
            raise SerializeError(f"Failed to serialize composed PDF: {e}") from e
