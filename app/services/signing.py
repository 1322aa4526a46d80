"""
Signing Service

Runs one composition request end to end:
1. read the source PDF from the blob store
2. compose the fields into it on a worker thread (CPU-bound)
3. store the signed PDF as a new document
4. record the audit entry (best effort)

All collaborators are passed in; nothing is shared between requests, so
requests can run fully in parallel.
"""
from dataclasses import dataclass, field as dc_field
from typing import List

from fastapi.concurrency import run_in_threadpool

from app.models.document import DocumentKind
from app.services.audit import AuditRecorder
from app.services.blob_store import BlobStore
from app.services.fields import CompositionJob, SkippedField
from app.services.pdf_compose import CompositionResult, PDFComposer
from app.utils.hashing import compute_bytes_hash
from app.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class SigningResult:
    result_document_id: str
    pdf_bytes: bytes
    source_digest: str
    result_digest: str
    skipped: List[SkippedField] = dc_field(default_factory=list)


@dataclass
class InlineResult:
    pdf_bytes: bytes
    source_digest: str
    result_digest: str
    skipped: List[SkippedField] = dc_field(default_factory=list)


class SigningService:
    def __init__(self, blob_store: BlobStore, composer: PDFComposer, recorder: AuditRecorder):
        self.blob_store = blob_store
        self.composer = composer
        self.recorder = recorder

    async def sign(self, job: CompositionJob) -> SigningResult:
        document = await self.blob_store.resolve(job.source_document_id)
        # audit lookups compare against the canonical str(UUID)
        source_id = str(document.id)
        logger.info(f"Signing document {source_id} with {len(job.fields)} field(s)")

        source_bytes = await self.blob_store.read(document)
        result: CompositionResult = await run_in_threadpool(
            self.composer.compose_with_report, source_bytes, job.fields
        )

        result_id = await self.blob_store.put(
            f"signed_{source_id}.pdf",
            result.pdf_bytes,
            kind=DocumentKind.signed,
            source_document_id=source_id,
            page_count=result.page_count,
        )
        record = await run_in_threadpool(
            self.recorder.record_composition,
            source_bytes, result.pdf_bytes, source_id, result_id, job.fields
        )

        logger.info(f"Signed document {source_id} -> {result_id}")
        return SigningResult(
            result_document_id=result_id,
            pdf_bytes=result.pdf_bytes,
            source_digest=record.source_digest,
            result_digest=record.result_digest,
            skipped=job.rejected + result.skipped,
        )


async def compose_inline(composer: PDFComposer, source_bytes: bytes, job: CompositionJob) -> InlineResult:
    """Compose without touching storage or the audit trail"""
    result = await run_in_threadpool(composer.compose_with_report, source_bytes, job.fields)
    return InlineResult(
        pdf_bytes=result.pdf_bytes,
        source_digest=compute_bytes_hash(source_bytes),
        result_digest=compute_bytes_hash(result.pdf_bytes),
        skipped=job.rejected + result.skipped,
    )
