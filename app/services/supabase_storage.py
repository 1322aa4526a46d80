"""
Supabase Storage backend

Talks to the Supabase Storage REST API with httpx. Objects live under
/storage/v1/object/<bucket>/<key>; uploads use x-upsert so a retried
request overwrites instead of failing.
"""
from typing import Optional

import httpx
from app.config import settings
from app.services.storage import StorageObjectNotFound
from app.utils.logging import get_logger

logger = get_logger(__name__)


class SupabaseStorageService:
    """
    Requires environment variables:
    - SUPABASE_URL
    - SUPABASE_SERVICE_ROLE_KEY
    - SUPABASE_BUCKET_NAME
    """

    def __init__(
        self,
        url: Optional[str] = None,
        service_role_key: Optional[str] = None,
        bucket: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        timeout: float = 300.0
    ):
        key = service_role_key or settings.supabase_service_role_key
        self.base_url = f"{(url or settings.supabase_url).rstrip('/')}/storage/v1"
        self.bucket = bucket or settings.supabase_bucket_name
        self.headers = {
            "Authorization": f"Bearer {key}",
            "apikey": key
        }
        self.transport = transport
        self.timeout = timeout

    def _object_url(self, key: str) -> str:
        return f"{self.base_url}/object/{self.bucket}/{key}"

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(timeout=self.timeout, transport=self.transport)

    async def put_bytes(self, *, key: str, data: bytes, content_type: str) -> str:
        async with self._client() as client:
            response = await client.post(
                self._object_url(key),
                content=data,
                headers={
                    **self.headers,
                    "Content-Type": content_type,
                    "x-upsert": "true"
                }
            )
        if response.status_code >= 400:
            logger.error(f"Supabase upload of {key} failed: {response.status_code} - {response.text}")
        response.raise_for_status()

        logger.info(f"Uploaded {len(data)} bytes to Supabase: {key}")
        return self._object_url(key)

    async def get_bytes(self, *, key: str) -> bytes:
        async with self._client() as client:
            response = await client.get(self._object_url(key), headers=self.headers)
        if response.status_code == 404:
            raise StorageObjectNotFound(key)
        if response.status_code >= 400:
            logger.error(f"Supabase download of {key} failed: {response.status_code} - {response.text}")
        response.raise_for_status()

        logger.info(f"Downloaded {len(response.content)} bytes from Supabase: {key}")
        return response.content

    async def delete_bytes(self, *, key: str) -> None:
        async with self._client() as client:
            response = await client.delete(self._object_url(key), headers=self.headers)
        if response.status_code == 404:
            return
        response.raise_for_status()
        logger.info(f"Deleted object from Supabase: {key}")
