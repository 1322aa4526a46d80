from typing import Protocol
import os
from fastapi.concurrency import run_in_threadpool
from app.config import settings


class StorageObjectNotFound(Exception):
    """Raised by get_bytes() when no object exists under the key"""


class StorageService(Protocol):
    async def put_bytes(self, *, key: str, data: bytes, content_type: str) -> str:
        """Store bytes under key and return the storage URL"""
        ...

    async def get_bytes(self, *, key: str) -> bytes:
        """Read the whole object stored under key"""
        ...

    async def delete_bytes(self, *, key: str) -> None:
        """Remove the object under key; a missing key is not an error"""
        ...


class LocalStorageService:
    """Filesystem-backed storage for development and tests"""

    def __init__(self, root_dir: str = None):
        self.root_dir = os.path.abspath(root_dir or settings.local_storage_dir)
        os.makedirs(self.root_dir, exist_ok=True)

    def _path(self, key: str) -> str:
        path = os.path.abspath(os.path.join(self.root_dir, key))
        if os.path.commonpath([path, self.root_dir]) != self.root_dir:
            raise ValueError(f"Storage key escapes storage root: {key}")
        return path

    @staticmethod
    def _write(path: str, data: bytes) -> None:
        os.makedirs(os.path.dirname(path), exist_ok=True)
        with open(path, 'wb') as f:
            f.write(data)

    @staticmethod
    def _read(path: str) -> bytes:
        with open(path, 'rb') as f:
            return f.read()

    async def put_bytes(self, *, key: str, data: bytes, content_type: str) -> str:
        path = self._path(key)
        await run_in_threadpool(self._write, path, data)
        return f"file://{path}"

    async def get_bytes(self, *, key: str) -> bytes:
        path = self._path(key)
        if not os.path.exists(path):
            raise StorageObjectNotFound(key)
        return await run_in_threadpool(self._read, path)

    async def delete_bytes(self, *, key: str) -> None:
        path = self._path(key)
        if os.path.exists(path):
            os.remove(path)


class GCSStorageService:
    """Google Cloud Storage; the client is blocking, so calls run on worker threads"""

    def __init__(self):
        from google.cloud import storage
        self.client = storage.Client(project=settings.gcs_project_id or None)
        self.bucket = self.client.bucket(settings.gcs_bucket_name)

    async def put_bytes(self, *, key: str, data: bytes, content_type: str) -> str:
        blob = self.bucket.blob(key)
        await run_in_threadpool(blob.upload_from_string, data, content_type=content_type)
        return f"gs://{settings.gcs_bucket_name}/{key}"

    async def get_bytes(self, *, key: str) -> bytes:
        from google.api_core.exceptions import NotFound
        blob = self.bucket.blob(key)
        try:
            return await run_in_threadpool(blob.download_as_bytes)
        except NotFound as e:
            raise StorageObjectNotFound(key) from e

    async def delete_bytes(self, *, key: str) -> None:
        from google.api_core.exceptions import NotFound
        try:
            await run_in_threadpool(self.bucket.blob(key).delete)
        except NotFound:
            pass


class S3StorageService:
    """S3-compatible storage through boto3 (blocking, run on worker threads)"""

    def __init__(self):
        import boto3
        self.client = boto3.client(
            's3',
            endpoint_url=settings.s3_endpoint_url or None,
            aws_access_key_id=settings.s3_access_key_id or None,
            aws_secret_access_key=settings.s3_secret_access_key or None
        )
        self.bucket_name = settings.s3_bucket_name

    async def put_bytes(self, *, key: str, data: bytes, content_type: str) -> str:
        await run_in_threadpool(
            self.client.put_object,
            Bucket=self.bucket_name,
            Key=key,
            Body=data,
            ContentType=content_type
        )
        return f"s3://{self.bucket_name}/{key}"

    def _download(self, key: str) -> bytes:
        response = self.client.get_object(Bucket=self.bucket_name, Key=key)
        return response['Body'].read()

    async def get_bytes(self, *, key: str) -> bytes:
        try:
            return await run_in_threadpool(self._download, key)
        except self.client.exceptions.NoSuchKey as e:
            raise StorageObjectNotFound(key) from e

    async def delete_bytes(self, *, key: str) -> None:
        await run_in_threadpool(self.client.delete_object, Bucket=self.bucket_name, Key=key)


def get_storage_service() -> StorageService:
    if settings.storage_backend == "local":
        return LocalStorageService()
    elif settings.storage_backend == "gcs":
        return GCSStorageService()
    elif settings.storage_backend == "s3":
        return S3StorageService()
    elif settings.storage_backend == "supabase":
        from app.services.supabase_storage import SupabaseStorageService
        return SupabaseStorageService()
    else:
        raise ValueError(f"Unknown storage backend: {settings.storage_backend}")
