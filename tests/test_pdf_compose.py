"""
Unit Tests for PDFComposer

Tests for:
- End-to-end composition on a US Letter page
- Draw order (later fields overlay earlier ones)
- Out-of-range pages and bad fields are skipped, not fatal
- Composing with no fields leaves the document visually unchanged
- Parse failures are fatal
- Rotated pages
"""
from datetime import date

import fitz
import pytest

from app.services.errors import DocumentParseError
from app.services.field_renderer import FieldRenderer
from app.services.fields import parse_fields
from app.services.pdf_compose import PDFComposer, open_document, page_sizes
from tests.factories import make_image_b64, make_pdf


def field(**overrides):
    raw = {
        "id": "f",
        "type": "text",
        "pageIndex": 0,
        "leftPct": 0.1,
        "topPct": 0.1,
        "widthPct": 0.3,
        "heightPct": 0.05,
        "value": "Jane Doe",
    }
    raw.update(overrides)
    return raw


def fields_of(*raw):
    parsed, rejected = parse_fields(list(raw))
    assert rejected == []
    return parsed


class RecordingRenderer(FieldRenderer):
    def __init__(self):
        super().__init__()
        self.calls = []

    def render_field(self, page, box, field, font, report=None):
        self.calls.append((field.id, page.number, box))
        super().render_field(page, box, field, font, report)


class TestCompose:

    def test_letter_text_field_end_to_end(self, letter_pdf):
        renderer = RecordingRenderer()
        composer = PDFComposer(renderer=renderer)

        result = composer.compose_with_report(letter_pdf, fields_of(field(id="name")))

        assert result.rendered == ["name"]
        assert result.skipped == []
        [(field_id, page_number, box)] = renderer.calls
        assert box.x == pytest.approx(61.2)
        assert box.y_bottom == pytest.approx(673.2)
        assert box.width == pytest.approx(183.6)
        assert box.height == pytest.approx(39.6)

        with fitz.open(stream=result.pdf_bytes, filetype="pdf") as doc:
            [word] = [w for w in doc[0].get_text("words") if w[4] == "Jane"]
            assert word[0] == pytest.approx(67.2, abs=0.5)
            spans = [s for b in doc[0].get_text("dict")["blocks"] for l in b.get("lines", []) for s in l["spans"]]
            assert all(s["size"] <= 10 for s in spans)

    def test_compose_returns_bytes(self, letter_pdf):
        pdf_bytes = PDFComposer().compose(letter_pdf, fields_of(field()))

        assert pdf_bytes.startswith(b"%PDF")

    def test_fields_drawn_in_input_order(self):
        renderer = RecordingRenderer()
        source = make_pdf((200, 200))
        full = {"pageIndex": 0, "leftPct": 0, "topPct": 0, "widthPct": 1, "heightPct": 1}
        fields = fields_of(
            {"id": "A", "type": "image", "value": make_image_b64(color=(0, 0, 255)), **full},
            {"id": "B", "type": "image", "value": make_image_b64(color=(255, 0, 0)), **full},
        )

        result = PDFComposer(renderer=renderer).compose_with_report(source, fields)

        assert [c[0] for c in renderer.calls] == ["A", "B"]
        assert renderer.calls[0][2] == renderer.calls[1][2]
        with fitz.open(stream=result.pdf_bytes, filetype="pdf") as doc:
            pix = doc[0].get_pixmap()
            # B (red) was drawn last and covers A (blue)
            assert pix.pixel(100, 100) == (255, 0, 0)

    def test_out_of_range_page_is_skipped(self):
        source = make_pdf((612, 792), (612, 792))
        renderer = RecordingRenderer()

        result = PDFComposer(renderer=renderer).compose_with_report(
            source,
            fields_of(field(id="ok1"), field(id="far", pageIndex=99), field(id="neg", pageIndex=-1),
                      field(id="ok2", pageIndex=1)),
        )

        assert [c[0] for c in renderer.calls] == ["ok1", "ok2"]
        assert result.rendered == ["ok1", "ok2"]
        assert [s.field_id for s in result.skipped] == ["far", "neg"]
        assert result.page_count == 2

    def test_bad_field_does_not_abort_job(self, letter_pdf):
        result = PDFComposer().compose_with_report(
            letter_pdf,
            fields_of(
                field(id="sig", type="signature", value="bm90IGFuIGltYWdl"),
                field(id="odd", type="checkbox"),
                field(id="name"),
            ),
        )

        assert result.rendered == ["name"]
        assert {s.field_id for s in result.skipped} == {"sig", "odd"}

    def test_unexpected_renderer_error_is_contained(self, letter_pdf):
        class ExplodingRenderer(FieldRenderer):
            def render_field(self, page, box, field, font, report=None):
                if field.id == "boom":
                    raise RuntimeError("kaboom")
                super().render_field(page, box, field, font, report)

        result = PDFComposer(renderer=ExplodingRenderer()).compose_with_report(
            letter_pdf, fields_of(field(id="boom"), field(id="fine"))
        )

        assert result.rendered == ["fine"]
        assert result.skipped[0].field_id == "boom"
        assert "kaboom" in result.skipped[0].reason

    def test_empty_field_list_is_visually_identical(self):
        source = make_pdf((612, 792), (300, 400), text="Original content")

        result = PDFComposer().compose_with_report(source, [])

        assert result.rendered == [] and result.skipped == []
        with fitz.open(stream=source, filetype="pdf") as before, \
                fitz.open(stream=result.pdf_bytes, filetype="pdf") as after:
            assert before.page_count == after.page_count
            for page_before, page_after in zip(before, after):
                assert page_before.rect == page_after.rect
                assert page_before.get_text() == page_after.get_text()
                assert page_before.get_pixmap().samples == page_after.get_pixmap().samples

    def test_composition_is_repeatable(self, letter_pdf):
        composer = PDFComposer(renderer=FieldRenderer(today=lambda: date(2026, 10, 19)))
        fields = fields_of(
            field(id="name"),
            field(id="d", type="date", value="", topPct=0.3),
            field(id="r", type="radio", selected=True, label="Yes", topPct=0.5),
            field(id="s", type="signature", value=make_image_b64(60, 20), topPct=0.7),
        )

        first = composer.compose(letter_pdf, fields)
        second = composer.compose(letter_pdf, fields)

        with fitz.open(stream=first, filetype="pdf") as a, fitz.open(stream=second, filetype="pdf") as b:
            assert a[0].get_text() == b[0].get_text()
            assert a[0].get_pixmap().samples == b[0].get_pixmap().samples
            assert "2026-10-19" in a[0].get_text()

    def test_clamp_rects_option(self, letter_pdf):
        renderer = RecordingRenderer()
        composer = PDFComposer(renderer=renderer, clamp_rects=True)

        composer.compose(letter_pdf, fields_of(field(leftPct=0.9, widthPct=0.3)))

        box = renderer.calls[0][2]
        assert box.x + box.width == pytest.approx(612)

    def test_rotated_page_uses_displayed_orientation(self):
        # 612x792 portrait page shown rotated -> displayed as 792x612 landscape
        source = make_pdf((612, 792), rotation=90)
        renderer = RecordingRenderer()

        result = PDFComposer(renderer=renderer).compose_with_report(
            source, fields_of(field(leftPct=0, topPct=0, widthPct=0.5, heightPct=0.1))
        )

        box = renderer.calls[0][2]
        assert box.width == pytest.approx(396)
        with fitz.open(stream=result.pdf_bytes, filetype="pdf") as doc:
            page = doc[0]
            assert page.rotation == 0
            assert page.rect.width == pytest.approx(792)
            [word] = [w for w in page.get_text("words") if w[4] == "Jane"]
            assert word[0] == pytest.approx(6, abs=0.5)
            assert word[3] <= 61.2


class TestOpenDocument:

    @pytest.mark.parametrize("data", [b"", b"definitely not a pdf"])
    def test_invalid_bytes_raise_parse_error(self, data):
        with pytest.raises(DocumentParseError):
            PDFComposer().compose(data, [])

    def test_page_sizes_cached_per_page(self):
        doc = open_document(make_pdf((612, 792), (100, 200)))
        try:
            assert page_sizes(doc) == [(612, 792), (100, 200)]
        finally:
            doc.close()
