"""Blob uploader: raw bytes in, stable content URL out."""

from __future__ import annotations

from typing import Optional, Protocol

import httpx

from tomekeeper.config import Settings, get_settings
from tomekeeper.utils.logging_config import get_logger

logger = get_logger("tomekeeper.uploader")


class Uploader(Protocol):
    async def upload(self, data: bytes, filename: str, content_type: str) -> str:
        ...


class HttpBlobUploader:
    """Posts a multipart ``file`` field to the blob service.

    The service replies with ``{"file_url": ...}`` (``{"url": ...}`` is
    accepted too). Network errors and non-2xx replies propagate so the retry
    wrapper can try again.
    """

    def __init__(self, settings: Optional[Settings] = None, client: Optional[httpx.AsyncClient] = None):
        self._settings = settings or get_settings()
        self._client = client

    async def upload(self, data: bytes, filename: str, content_type: str = "application/pdf") -> str:
        files = {"file": (filename, data, content_type)}
        if self._client is not None:
            response = await self._client.post(self._settings.blob_upload_url, files=files)
        else:
            async with httpx.AsyncClient(timeout=self._settings.upload_timeout_seconds) as client:
                response = await client.post(self._settings.blob_upload_url, files=files)
        response.raise_for_status()

        body = response.json()
        url = (body.get("file_url") or body.get("url")) if isinstance(body, dict) else None
        if not url:
            raise ValueError(f"Blob service reply for {filename} has no file_url")

        logger.info("Uploaded %s (%d bytes) -> %s", filename, len(data), url)
        return url
