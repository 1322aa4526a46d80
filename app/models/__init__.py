from app.models.document import Document, DocumentKind
from app.models.audit import AuditRecordRow

__all__ = ["Document", "DocumentKind", "AuditRecordRow"]
