"""Object storage adapter for remark attachments."""

from __future__ import annotations

import logging
import uuid
from typing import Protocol
from urllib.parse import quote

import httpx

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when the storage backend rejects or fails an upload."""

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ObjectStorage(Protocol):
    async def put(self, path: str, content: bytes, content_type: str) -> str:
        ...


def attachment_path(ticket_id: str, filename: str) -> str:
    """Build ``{ticket_id}/{uuid}.{ext}``, keeping the original extension if there is one."""

    _, dot, extension = filename.rpartition(".")
    suffix = f".{extension.lower()}" if dot and extension else ""
    return f"{ticket_id}/{uuid.uuid4()}{suffix}"


class HttpObjectStorage:
    """Bucket storage reached over ``POST {base_url}/object/{bucket}/{path}``."""

    def __init__(
        self,
        *,
        base_url: str,
        bucket: str,
        api_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._bucket = bucket
        self._api_key = api_key
        self._client = client or httpx.AsyncClient(base_url=base_url.rstrip("/"), timeout=timeout)
        self._owns_client = client is None

    @property
    def bucket(self) -> str:
        return self._bucket

    async def put(self, path: str, content: bytes, content_type: str) -> str:
        headers = {"Content-Type": content_type, "x-upsert": "false"}
        if self._api_key:
            headers["Authorization"] = f"Bearer {self._api_key}"
        url = f"/object/{quote(self._bucket)}/{quote(path)}"
        try:
            response = await self._client.post(url, content=content, headers=headers)
        except httpx.HTTPError as exc:
            raise StorageError(f"Upload of {path} failed: {exc}") from exc
        if response.status_code >= 400:
            raise StorageError(
                f"Upload of {path} rejected: {response.text or response.reason_phrase}",
                status_code=response.status_code,
            )
        logger.debug("Stored %d bytes at %s/%s", len(content), self._bucket, path)
        return path

    async def close(self) -> None:
        if self._owns_client:
            await self._client.aclose()
