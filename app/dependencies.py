"""
Per-request collaborators.

Everything a request needs is built here and injected with FastAPI's
Depends, so tests can swap any piece through app.dependency_overrides.
"""
from functools import lru_cache

from fastapi import Depends
from sqlalchemy.orm import Session

from app.database import get_db
from app.services.audit import AuditRecorder, SqlAuditSink
from app.services.blob_store import BlobStore
from app.services.pdf_compose import PDFComposer
from app.services.signing import SigningService
from app.services.storage import StorageService, get_storage_service


def get_storage() -> StorageService:
    return get_storage_service()


@lru_cache()
def get_composer() -> PDFComposer:
    return PDFComposer.from_settings()


def get_blob_store(
    db: Session = Depends(get_db),
    storage: StorageService = Depends(get_storage)
) -> BlobStore:
    return BlobStore(db, storage)


def get_audit_recorder(db: Session = Depends(get_db)) -> AuditRecorder:
    return AuditRecorder(SqlAuditSink(db))


def get_signing_service(
    blob_store: BlobStore = Depends(get_blob_store),
    composer: PDFComposer = Depends(get_composer),
    recorder: AuditRecorder = Depends(get_audit_recorder)
) -> SigningService:
    return SigningService(blob_store, composer, recorder)
