from sqlalchemy import Column, String, Integer, DateTime, Enum as SQLEnum, Uuid
from datetime import datetime, timezone
import uuid
import enum
from app.database import Base


class DocumentKind(str, enum.Enum):
    original = "original"
    signed = "signed"


class Document(Base):
    """Registry row for every PDF held in blob storage."""
    __tablename__ = "documents"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    file_name = Column(String, nullable=False)
    mime_type = Column(String, nullable=False, default="application/pdf")
    storage_key = Column(String, nullable=False, unique=True)
    sha256 = Column(String(64), nullable=False, index=True)
    size_bytes = Column(Integer, nullable=False)
    page_count = Column(Integer, nullable=True)
    kind = Column(SQLEnum(DocumentKind), default=DocumentKind.original, nullable=False, index=True)
    source_document_id = Column(Uuid(as_uuid=True), nullable=True, index=True)  # set on signed outputs
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False)
