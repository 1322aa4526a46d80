"""
Blob Store

ID-addressable storage of PDF documents. Bytes live in the configured
storage backend; the `documents` table maps an opaque document id to the
storage key plus digest, size and provenance.

SQLAlchemy sessions are synchronous, so every query and commit runs on a
worker thread; the event loop only awaits.
"""
import uuid
from typing import Optional

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session

from app.models.document import Document, DocumentKind
from app.services.errors import DocumentStoreError, SourceNotFound, SourceReadError
from app.services.storage import StorageObjectNotFound, StorageService
from app.utils.hashing import compute_bytes_hash
from app.utils.logging import get_logger

logger = get_logger(__name__)

PDF_CONTENT_TYPE = "application/pdf"


def _parse_id(document_id: str) -> Optional[uuid.UUID]:
    try:
        return uuid.UUID(str(document_id))
    except ValueError:
        return None


class BlobStore:
    def __init__(self, db: Session, storage: StorageService):
        self.db = db
        self.storage = storage

    def find(self, document_id: str) -> Optional[Document]:
        parsed = _parse_id(document_id)
        if parsed is None:
            return None
        return self.db.query(Document).filter(Document.id == parsed).first()

    async def resolve(self, document_id: str) -> Document:
        """
        Registry row for an id in any form uuid.UUID accepts.

        `str(document.id)` is the canonical spelling of the id.

        Raises:
            SourceNotFound: unknown or malformed id
        """
        document = await run_in_threadpool(self.find, document_id)
        if document is None:
            raise SourceNotFound(f"Document not found: {document_id}")
        return document

    async def read(self, document: Document) -> bytes:
        """
        Read a registered document to completion.

        Raises:
            SourceNotFound: object missing in storage
            SourceReadError: the storage backend failed
        """
        try:
            return await self.storage.get_bytes(key=document.storage_key)
        except StorageObjectNotFound as e:
            logger.error(f"Document {document.id} registered but missing from storage ({document.storage_key})")
            raise SourceNotFound(f"Document not found: {document.id}") from e
        except Exception as e:
            logger.error(f"Failed to read document {document.id}: {e}")
            raise SourceReadError(f"Failed to read document {document.id}") from e

    async def get(self, document_id: str) -> bytes:
        """Resolve an id and read the document to completion"""
        return await self.read(await self.resolve(document_id))

    async def put(
        self,
        name: str,
        data: bytes,
        *,
        kind: DocumentKind = DocumentKind.original,
        source_document_id: Optional[str] = None,
        page_count: Optional[int] = None,
    ) -> str:
        """
        Store a new document and return its fresh id.

        Raises:
            DocumentStoreError: the object or its registry row could not be written
        """
        document_id = uuid.uuid4()
        storage_key = f"documents/{document_id}.pdf"
        try:
            await self.storage.put_bytes(key=storage_key, data=data, content_type=PDF_CONTENT_TYPE)
        except Exception as e:
            logger.error(f"Failed to write {storage_key}: {e}")
            raise DocumentStoreError(f"Failed to store document {name}") from e

        document = Document(
            id=document_id,
            file_name=name,
            mime_type=PDF_CONTENT_TYPE,
            storage_key=storage_key,
            sha256=compute_bytes_hash(data),
            size_bytes=len(data),
            page_count=page_count,
            kind=kind,
            source_document_id=_parse_id(source_document_id) if source_document_id else None,
        )
        try:
            await run_in_threadpool(self._insert, document)
        except Exception as e:
            logger.error(f"Failed to register {storage_key}: {e}")
            await self._discard(storage_key)
            raise DocumentStoreError(f"Failed to store document {name}") from e

        logger.info(f"Stored {kind.value} document {document_id} ({len(data)} bytes)")
        return str(document_id)

    def _insert(self, document: Document) -> None:
        try:
            self.db.add(document)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

    async def _discard(self, storage_key: str) -> None:
        """Remove an object whose registry row was never written"""
        try:
            await self.storage.delete_bytes(key=storage_key)
        except Exception as e:
            logger.warning(f"Orphaned object left in storage: {storage_key} ({e})")
