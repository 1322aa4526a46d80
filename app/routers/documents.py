from fastapi import APIRouter, Depends, UploadFile, File, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from typing import List
from uuid import UUID

from app.config import settings
from app.database import get_db
from app.dependencies import get_blob_store
from app.models.document import DocumentKind
from app.schemas.common import ErrorResponse
from app.schemas.document import (
    AuditRecordDTO,
    AuditTrailResponse,
    DocumentDetailResponse,
    DocumentSummary,
    PageInfo,
    UploadResponse
)
from app.services.audit import list_audit_records
from app.services.blob_store import BlobStore, PDF_CONTENT_TYPE
from app.services.errors import DocumentParseError, InvalidJobInput
from app.services.pdf_compose import open_document, page_sizes
from app.utils.hashing import compute_bytes_hash
from app.utils.logging import get_logger

router = APIRouter(
    prefix="/api/v1/documents",
    tags=["documents"],
    responses={
        400: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
        502: {"model": ErrorResponse},
    }
)
logger = get_logger(__name__)


def read_pages(pdf_bytes: bytes) -> List[PageInfo]:
    """Page sizes in PDF points; the editor lays its overlay out from these"""
    doc = open_document(pdf_bytes)
    try:
        return [
            PageInfo(index=i, width=width, height=height)
            for i, (width, height) in enumerate(page_sizes(doc))
        ]
    finally:
        doc.close()


@router.post("/upload", response_model=UploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    blob_store: BlobStore = Depends(get_blob_store)
):
    """
    Upload a PDF and register it as an original document.
    """
    logger.info(f"Uploading file: {file.filename}")
    content = await file.read()

    if len(content) > settings.max_upload_bytes:
        raise InvalidJobInput(
            f"File exceeds {settings.max_upload_bytes} bytes",
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE
        )

    # Validate file type
    if file.content_type != PDF_CONTENT_TYPE and not content.startswith(b"%PDF"):
        raise InvalidJobInput("Only PDF files are supported")

    try:
        pages = await run_in_threadpool(read_pages, content)
    except DocumentParseError as e:
        raise DocumentParseError(e.message, status_code=status.HTTP_400_BAD_REQUEST) from e

    file_name = file.filename or "document.pdf"
    document_id = await blob_store.put(
        file_name,
        content,
        kind=DocumentKind.original,
        page_count=len(pages)
    )

    logger.info(f"Document created: {document_id}")

    return UploadResponse(
        documentId=document_id,
        fileName=file_name,
        sha256=compute_bytes_hash(content),
        pageCount=len(pages),
        pages=pages
    )


@router.get("/{document_id}", response_model=DocumentDetailResponse)
async def get_document(
    document_id: UUID,
    blob_store: BlobStore = Depends(get_blob_store)
):
    """
    Get document details including page sizes.
    """
    document = await blob_store.resolve(str(document_id))
    content = await blob_store.read(document)

    return DocumentDetailResponse(
        document=DocumentSummary.model_validate(document),
        pages=await run_in_threadpool(read_pages, content)
    )


@router.get("/{document_id}/file")
async def download_document(
    document_id: UUID,
    blob_store: BlobStore = Depends(get_blob_store)
):
    """
    Stream the stored PDF back as an attachment.
    """
    document = await blob_store.resolve(str(document_id))
    content = await blob_store.read(document)
    file_name = document.file_name.encode("ascii", "ignore").decode().replace('"', "") or "document.pdf"

    return Response(
        content=content,
        media_type=PDF_CONTENT_TYPE,
        headers={"Content-Disposition": f'attachment; filename="{file_name}"'}
    )


@router.get("/{document_id}/audit", response_model=AuditTrailResponse)
async def get_audit_trail(
    document_id: UUID,
    db: Session = Depends(get_db),
    blob_store: BlobStore = Depends(get_blob_store)
):
    """
    Audit records in which the document is the source or the signed result.
    """
    document = await blob_store.resolve(str(document_id))
    records = await run_in_threadpool(list_audit_records, db, str(document.id))

    return AuditTrailResponse(
        documentId=document.id,
        records=[AuditRecordDTO.model_validate(record) for record in records]
    )
