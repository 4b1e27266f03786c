"""Document store client for audit results.

Lists every document of the audit container through the REST API and feeds
them through the normalization pipeline. Request signing is out of scope:
the ``Authorization`` header is a pre-issued token read from the environment.
"""

from __future__ import annotations

from email.utils import formatdate
from enum import Enum
from typing import Optional
from urllib.parse import quote

import httpx
from pydantic import BaseModel

from ..core.config import get_secret
from ..core.normalize import normalize_audit
from ..exceptions import DocumentStoreError, MissingIdentityError
from ..models.audit import NormalizedAudit
from ..utils.sanitize import sanitize_error

CONTINUATION_HEADER = "x-ms-continuation"


class LoadState(str, Enum):
    LOADED = "loaded"
    EMPTY = "empty"
    ERROR = "error"


class AuditLoadResult(BaseModel):
    state: LoadState
    audits: list[NormalizedAudit] = []
    error: Optional[str] = None
    skipped: int = 0


class DocumentStoreClient:
    """Read-only client for one document container."""

    def __init__(self, config: dict, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.config = config.get("document_store", {})
        self.timeout = config.get("http", {}).get("timeout_seconds", 30)
        self.transport = transport

    @property
    def resource_link(self) -> str:
        return f"dbs/{self.config.get('database', '')}/colls/{self.config.get('container', '')}"

    @property
    def docs_url(self) -> str:
        endpoint = self.config.get("endpoint", "")
        return f"{endpoint.rstrip('/')}/{self.resource_link}/docs"

    def _auth_token(self) -> Optional[str]:
        return get_secret(self.config, "auth_token_env")

    def is_configured(self) -> bool:
        return bool(self.config.get("endpoint")) and self._auth_token() is not None

    def _headers(self, token: str, continuation: Optional[str]) -> dict:
        headers = {
            # Tokens arrive either raw or already URL-encoded
            "Authorization": token if "%3D" in token else quote(token, safe=""),
            "x-ms-date": formatdate(usegmt=True),
            "x-ms-version": self.config.get("api_version", "2018-12-31"),
            "x-ms-documentdb-query-enablecrosspartition": "true",
            "Content-Type": "application/json",
        }
        if continuation:
            headers[CONTINUATION_HEADER] = continuation
        return headers

    async def fetch_documents(self) -> list[dict]:
        """Return all raw documents in the container, following pagination.

        Returns an empty list when no token is configured.
        """
        token = self._auth_token()
        if token is None:
            return []

        documents: list[dict] = []
        continuation: Optional[str] = None
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                while True:
                    response = await client.get(self.docs_url, headers=self._headers(token, continuation))
                    response.raise_for_status()
                    data = response.json()
                    if not isinstance(data, dict):
                        raise DocumentStoreError("Document store returned a non-object response body")
                    page = data.get("Documents") or data.get("_embedded") or []
                    if not isinstance(page, list):
                        raise DocumentStoreError("Document store returned a malformed document list")
                    documents.extend(d for d in page if isinstance(d, dict))
                    continuation = response.headers.get(CONTINUATION_HEADER)
                    if not continuation:
                        break
        except httpx.HTTPStatusError as e:
            raise DocumentStoreError(
                sanitize_error(f"Document store request failed: {e.response.status_code} | {e.response.text}"),
                status_code=e.response.status_code,
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise DocumentStoreError(sanitize_error(f"Document store request failed: {e}")) from e

        return documents


async def load_audits(client: DocumentStoreClient) -> AuditLoadResult:
    """Fetch and normalize all audits, separating "no data" from "error"."""
    try:
        documents = await client.fetch_documents()
    except DocumentStoreError as e:
        return AuditLoadResult(state=LoadState.ERROR, error=str(e))

    audits: list[NormalizedAudit] = []
    skipped = 0
    for doc in documents:
        try:
            audits.append(normalize_audit(doc))
        except MissingIdentityError:
            skipped += 1

    state = LoadState.LOADED if audits else LoadState.EMPTY
    return AuditLoadResult(state=state, audits=audits, skipped=skipped)
