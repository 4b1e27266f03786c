"""Evidence file upload to the blob store.

Files are uploaded one at a time as block blobs under a per-audit folder.
Each file is tracked by an ``UploadItem``; every status or progress change
produces a new item and is reported through the ``on_update`` callback.
"""

from __future__ import annotations

import asyncio
import mimetypes
import time
import uuid
from pathlib import Path
from typing import AsyncIterator, Callable, Iterable, Optional
from urllib.parse import quote

import httpx

from ..core.config import get_secret
from ..exceptions import UploadError
from ..models.upload import UploadItem, UploadStatus
from ..utils.sanitize import sanitize_error

DEFAULT_FOLDER = "general"

UpdateCallback = Callable[[UploadItem], None]


def prepare_uploads(paths: Iterable[Path]) -> list[UploadItem]:
    """Build pending upload items for local files."""
    items: list[UploadItem] = []
    for path in paths:
        content_type, _ = mimetypes.guess_type(path.name)
        items.append(UploadItem(
            id=uuid.uuid4().hex,
            path=str(path),
            name=path.name,
            size=path.stat().st_size,
            content_type=content_type or "application/octet-stream",
        ))
    return items


class EvidenceUploader:
    def __init__(
        self,
        config: dict,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config.get("blob_store", {})
        self.timeout = config.get("http", {}).get("timeout_seconds", 30)
        self.chunk_size = int(self.config.get("chunk_size", 262144))
        self.transport = transport
        self.clock = clock

    def _sas_token(self) -> Optional[str]:
        token = get_secret(self.config, "sas_token_env")
        return token.lstrip("?") if token else None

    def is_configured(self) -> bool:
        return bool(self.config.get("account_name")) and self._sas_token() is not None

    def blob_name(self, audit_id: Optional[str], file_name: str) -> str:
        stamp = int(self.clock() * 1000)
        return f"{audit_id or DEFAULT_FOLDER}/{stamp}-{file_name}"

    def blob_url(self, blob_name: str) -> str:
        """Public URL of a blob, without the SAS query string."""
        account = self.config.get("account_name", "")
        container = self.config.get("container", "audit-evidence")
        return f"https://{account}.blob.core.windows.net/{container}/{quote(blob_name, safe='/')}"

    async def _stream(self, item: UploadItem, on_update: UpdateCallback) -> AsyncIterator[bytes]:
        sent = 0
        fh = await asyncio.to_thread(open, item.path, "rb")
        try:
            while True:
                chunk = await asyncio.to_thread(fh.read, self.chunk_size)
                if not chunk:
                    break
                sent += len(chunk)
                yield chunk
                if item.size:
                    on_update(item.model_copy(update={"progress": min(99, round(sent / item.size * 100))}))
        finally:
            fh.close()

    async def upload_one(
        self,
        item: UploadItem,
        audit_id: Optional[str],
        on_update: UpdateCallback,
    ) -> str:
        """Upload a single file and return its blob URL. Raises UploadError."""
        sas = self._sas_token()
        if not self.config.get("account_name") or sas is None:
            raise UploadError("Blob storage is not configured")

        url = self.blob_url(self.blob_name(audit_id, item.name))
        headers = {
            "x-ms-blob-type": "BlockBlob",
            "x-ms-version": self.config.get("api_version", "2021-08-06"),
            "x-ms-blob-content-type": item.content_type,
            "Content-Type": item.content_type,
            "Content-Length": str(item.size),
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.put(
                    f"{url}?{sas}", content=self._stream(item, on_update), headers=headers
                )
                response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise UploadError(
                sanitize_error(f"{e.response.status_code} | {e.response.text}")
            ) from e
        except (httpx.HTTPError, OSError) as e:
            raise UploadError(sanitize_error(str(e))) from e
        return url

    async def upload_all(
        self,
        items: list[UploadItem],
        audit_id: Optional[str],
        on_update: Optional[UpdateCallback] = None,
    ) -> list[UploadItem]:
        """Upload every pending item in order. One failure does not stop the batch."""
        notify = on_update or (lambda _item: None)
        results: list[UploadItem] = []

        for item in items:
            if item.status != UploadStatus.PENDING:
                results.append(item)
                continue

            current = item.model_copy(update={"status": UploadStatus.UPLOADING})
            notify(current)
            try:
                url = await self.upload_one(current, audit_id, notify)
            except UploadError as e:
                current = current.model_copy(update={
                    "status": UploadStatus.ERROR,
                    "error_message": str(e),
                })
            else:
                current = current.model_copy(update={
                    "status": UploadStatus.SUCCESS,
                    "progress": 100,
                    "uploaded_url": url,
                })
            notify(current)
            results.append(current)

        return results
