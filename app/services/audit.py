"""
Integrity & audit trail for compositions.

Every successful composition yields one AuditRecord holding SHA-256 digests
of the source and result documents plus a summary of the fields that were
submitted. Persisting the record is best effort: the signed document is
already stored when the record is written, so a sink failure is logged and
the request still succeeds.
"""
from dataclasses import asdict, dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional, Protocol, Sequence, Tuple

from sqlalchemy.orm import Session

from app.models.audit import AuditRecordRow
from app.services.errors import AuditPersistError
from app.services.fields import FormField
from app.utils.hashing import compute_bytes_hash
from app.utils.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class FieldSummary:
    id: str
    type: str
    page_index: int


@dataclass(frozen=True)
class AuditRecord:
    source_document_id: str
    result_document_id: str
    source_digest: str
    result_digest: str
    fields_summary: Tuple[FieldSummary, ...]
    timestamp: datetime

    def fields_summary_json(self) -> List[dict]:
        return [asdict(summary) for summary in self.fields_summary]


def summarize_fields(fields: Sequence[FormField]) -> Tuple[FieldSummary, ...]:
    return tuple(
        FieldSummary(
            id=field.id,
            type=field.kind.value if field.kind is not None else getattr(field, "type_name", "unknown"),
            page_index=field.rect.page_index,
        )
        for field in fields
    )


class AuditSink(Protocol):
    def insert(self, record: AuditRecord) -> None:
        """Persist one audit record"""
        ...


class SqlAuditSink:
    """Stores audit records in the `audit_records` table."""

    def __init__(self, db: Session):
        self.db = db

    def insert(self, record: AuditRecord) -> None:
        row = AuditRecordRow(
            source_document_id=record.source_document_id,
            result_document_id=record.result_document_id,
            source_digest=record.source_digest,
            result_digest=record.result_digest,
            fields_summary=record.fields_summary_json(),
            created_at=record.timestamp,
        )
        try:
            self.db.add(row)
            self.db.commit()
        except Exception as e:
            self.db.rollback()
            raise AuditPersistError(f"Failed to store audit record: {e}") from e


def list_audit_records(db: Session, document_id: str) -> List[AuditRecordRow]:
    """Records where the document is either the source or the result, newest first"""
    return (
        db.query(AuditRecordRow)
        .filter(
            (AuditRecordRow.source_document_id == document_id)
            | (AuditRecordRow.result_document_id == document_id)
        )
        .order_by(AuditRecordRow.created_at.desc())
        .all()
    )


class AuditRecorder:
    def __init__(self, sink: AuditSink, clock: Optional[Callable[[], datetime]] = None):
        self.sink = sink
        self.clock = clock or (lambda: datetime.now(timezone.utc))

    def record_composition(
        self,
        source_bytes: bytes,
        result_bytes: bytes,
        source_id: str,
        result_id: str,
        fields: Sequence[FormField],
    ) -> AuditRecord:
        """
        Build the audit record for one composition and hand it to the sink.

        The record is returned even when the sink fails.
        """
        record = AuditRecord(
            source_document_id=source_id,
            result_document_id=result_id,
            source_digest=compute_bytes_hash(source_bytes),
            result_digest=compute_bytes_hash(result_bytes),
            fields_summary=summarize_fields(fields),
            timestamp=self.clock(),
        )
        try:
            self.sink.insert(record)
        except Exception as e:
            logger.error(f"Audit record for {source_id} -> {result_id} not persisted: {e}")
        else:
            logger.info(f"Audit record stored for {source_id} -> {result_id}")
        return record
