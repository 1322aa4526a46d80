from sqlalchemy import Column, String, DateTime, JSON, Uuid
from datetime import datetime, timezone
import uuid
from app.database import Base


class AuditRecordRow(Base):
    """Append-only provenance record, one per successful composition."""
    __tablename__ = "audit_records"
    
    id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid.uuid4)
    source_document_id = Column(String, nullable=False, index=True)
    result_document_id = Column(String, nullable=False, index=True)
    source_digest = Column(String(64), nullable=False)
    result_digest = Column(String(64), nullable=False)
    fields_summary = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), nullable=False, index=True)
