"""
Unit Tests for BlobStore

Tests for:
- put/get by opaque id
- Unknown, malformed and dangling ids
- Storage backend failures
"""
import asyncio
import hashlib
import os
import threading
import uuid

import pytest

from app.models.document import Document, DocumentKind
from app.services.blob_store import BlobStore
from app.services.errors import DocumentStoreError, SourceNotFound, SourceReadError


class FailingStorage:
    async def put_bytes(self, *, key, data, content_type):
        return key

    async def get_bytes(self, *, key):
        raise ConnectionError("bucket unreachable")


def test_put_then_get_returns_same_bytes(db_session, storage, letter_pdf):
    store = BlobStore(db_session, storage)

    document_id = asyncio.run(store.put("contract.pdf", letter_pdf, page_count=1))

    assert asyncio.run(store.get(document_id)) == letter_pdf
    document = store.find(document_id)
    assert document.file_name == "contract.pdf"
    assert document.sha256 == hashlib.sha256(letter_pdf).hexdigest()
    assert document.size_bytes == len(letter_pdf)
    assert document.kind == DocumentKind.original
    assert document.storage_key == f"documents/{document_id}.pdf"


def test_put_assigns_fresh_ids_and_provenance(db_session, storage, letter_pdf):
    store = BlobStore(db_session, storage)

    source_id = asyncio.run(store.put("a.pdf", letter_pdf))
    signed_id = asyncio.run(store.put("signed_a.pdf", letter_pdf, kind=DocumentKind.signed, source_document_id=source_id))

    assert source_id != signed_id
    signed = store.find(signed_id)
    assert signed.kind == DocumentKind.signed
    assert str(signed.source_document_id) == source_id
    assert db_session.query(Document).count() == 2


@pytest.mark.parametrize("document_id", [str(uuid.uuid4()), "not-a-uuid", ""])
def test_unknown_id_raises_not_found(db_session, storage, document_id):
    store = BlobStore(db_session, storage)

    with pytest.raises(SourceNotFound):
        asyncio.run(store.get(document_id))


def test_registered_but_missing_object_is_not_found(db_session, storage, letter_pdf):
    store = BlobStore(db_session, storage)
    document_id = asyncio.run(store.put("gone.pdf", letter_pdf))
    os.remove(os.path.join(storage.root_dir, store.find(document_id).storage_key))

    with pytest.raises(SourceNotFound):
        asyncio.run(store.get(document_id))


def test_backend_failure_is_read_error(db_session, letter_pdf):
    store = BlobStore(db_session, FailingStorage())
    document_id = asyncio.run(store.put("x.pdf", letter_pdf))

    with pytest.raises(SourceReadError) as exc_info:
        asyncio.run(store.get(document_id))

    assert exc_info.value.status_code == 502


class RefusingStorage:
    async def put_bytes(self, *, key, data, content_type):
        raise ConnectionError("bucket unreachable")

    async def get_bytes(self, *, key):
        raise AssertionError("not reached")

    async def delete_bytes(self, *, key):
        pass


def test_resolve_accepts_any_uuid_spelling(db_session, storage, letter_pdf):
    store = BlobStore(db_session, storage)
    document_id = asyncio.run(store.put("a.pdf", letter_pdf))

    for spelling in (document_id.upper(), "{" + document_id + "}", "urn:uuid:" + document_id):
        assert str(asyncio.run(store.resolve(spelling)).id) == document_id


def test_commit_failure_rolls_back_and_removes_object(db_session, storage, letter_pdf, monkeypatch):
    store = BlobStore(db_session, storage)

    def fail():
        raise RuntimeError("database is locked")

    monkeypatch.setattr(db_session, "commit", fail)

    with pytest.raises(DocumentStoreError) as exc_info:
        asyncio.run(store.put("a.pdf", letter_pdf))

    assert exc_info.value.status_code == 500
    monkeypatch.undo()
    assert db_session.query(Document).count() == 0
    stored = [name for _, _, names in os.walk(storage.root_dir) for name in names]
    assert stored == []
    # session is usable again
    assert asyncio.run(store.put("b.pdf", letter_pdf))


def test_storage_write_failure_is_store_error(db_session, letter_pdf):
    store = BlobStore(db_session, RefusingStorage())

    with pytest.raises(DocumentStoreError):
        asyncio.run(store.put("a.pdf", letter_pdf))

    assert db_session.query(Document).count() == 0


def test_registry_queries_run_off_the_event_loop_thread(db_session, storage, letter_pdf, monkeypatch):
    store = BlobStore(db_session, storage)
    document_id = asyncio.run(store.put("a.pdf", letter_pdf))
    threads = []
    original_find = store.find

    def recording_find(document_id):
        threads.append(threading.current_thread())
        return original_find(document_id)

    monkeypatch.setattr(store, "find", recording_find)

    asyncio.run(store.get(document_id))

    assert threads and threading.main_thread() not in threads
