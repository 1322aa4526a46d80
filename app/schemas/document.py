from pydantic import BaseModel, Field
from typing import Any, Dict, List, Optional
from datetime import datetime
from uuid import UUID
from app.models.document import DocumentKind


class PageInfo(BaseModel):
    index: int
    width: float
    height: float


class DocumentSummary(BaseModel):
    id: UUID
    fileName: str = Field(validation_alias="file_name")
    mimeType: str = Field(validation_alias="mime_type")
    kind: DocumentKind
    sha256: str
    sizeBytes: int = Field(validation_alias="size_bytes")
    pageCount: Optional[int] = Field(None, validation_alias="page_count")
    sourceDocumentId: Optional[UUID] = Field(None, validation_alias="source_document_id")
    createdAt: datetime = Field(validation_alias="created_at")
    
    class Config:
        from_attributes = True
        populate_by_name = True


class DocumentDetailResponse(BaseModel):
    document: DocumentSummary
    pages: List[PageInfo]


class UploadResponse(BaseModel):
    documentId: UUID
    fileName: str
    sha256: str
    pageCount: int
    pages: List[PageInfo]


class AuditRecordDTO(BaseModel):
    id: UUID
    sourceDocumentId: str = Field(validation_alias="source_document_id")
    resultDocumentId: str = Field(validation_alias="result_document_id")
    sourceDigest: str = Field(validation_alias="source_digest")
    resultDigest: str = Field(validation_alias="result_digest")
    fieldsSummary: List[Dict[str, Any]] = Field(validation_alias="fields_summary")
    timestamp: datetime = Field(validation_alias="created_at")
    
    class Config:
        from_attributes = True
        populate_by_name = True


class AuditTrailResponse(BaseModel):
    documentId: UUID
    records: List[AuditRecordDTO]
