#!/usr/bin/env python3
"""
Compose a PDF locally, without the API, storage or database.

fields.json holds either a list of fields or {"fields": [...]}, in the same
shape the editor posts to /api/v1/sign.
"""
import json
import sys
import os

sys.path.insert(0, os.path.dirname(os.path.dirname(__file__)))

from app.services.fields import parse_fields
from app.services.pdf_compose import PDFComposer
from app.utils.hashing import compute_file_hash


def compose_local(pdf_path: str, fields_path: str, output_path: str):
    """Compose fields from a JSON file onto a PDF"""
    for path in (pdf_path, fields_path):
        if not os.path.exists(path):
            print(f"Error: File not found: {path}")
            sys.exit(1)

    with open(fields_path, "r", encoding="utf-8") as f:
        payload = json.load(f)
    raw_fields = payload.get("fields", []) if isinstance(payload, dict) else payload

    fields, rejected = parse_fields(raw_fields)
    print(f"Composing {len(fields)} field(s) onto: {pdf_path}")

    composer = PDFComposer.from_settings()
    result = composer.compose_file(pdf_path, output_path, fields)

    print(f"\nResults:")
    print(f"  Pages: {result.page_count}")
    print(f"  Rendered: {len(result.rendered)}")
    print(f"  Source sha256: {compute_file_hash(pdf_path)}")
    print(f"  Result sha256: {compute_file_hash(output_path)}")

    skipped = rejected + result.skipped
    if skipped:
        print(f"\nSkipped fields:")
        for s in skipped:
            print(f"  - {s.field_id or '<no id>'}: {s.reason}")


if __name__ == "__main__":
    if len(sys.argv) < 4:
        print("Usage: python scripts/compose_local.py <input.pdf> <fields.json> <output.pdf>")
        sys.exit(1)

    compose_local(sys.argv[1], sys.argv[2], sys.argv[3])
