"""Retrieval-augmented answers over audit evidence.

Documents are retrieved from the search index, the top few are packed into
the system prompt, and the chat-completion deployment answers the question
with ``[Source N]`` citations.
"""

from __future__ import annotations

import time
from typing import Optional

import httpx

from ..core.config import get_secret
from ..exceptions import RagServiceError
from ..models.audit import NormalizedAudit
from ..models.rag import RagAnswer, RagConfigStatus, RagSource
from ..utils.sanitize import sanitize_error

SYSTEM_PROMPT = (
    "You are an audit verification assistant. Answer only from the evidence "
    "documents below, cite them as [Source N], and say so when the evidence "
    "does not cover the question."
)
NO_DOCUMENTS = "No relevant documents found in the search index."
DEPLOYMENTS_MARKER = "/openai/deployments/"
PREVIEW_CHARS = 150


def _first_text(doc: dict, keys: tuple[str, ...]) -> str:
    for key in keys:
        value = doc.get(key)
        if isinstance(value, str) and value:
            return value
    return ""


def _doc_name(doc: dict, idx: int) -> str:
    return _first_text(doc, ("document_title", "documentName", "title")) or f"Document {idx + 1}"


def _doc_content(doc: dict) -> str:
    return _first_text(doc, ("content_text", "content", "text"))


def build_context(docs: list[dict], max_docs: int = 3, max_chars: int = 2000) -> str:
    """Render retrieved documents as numbered sources."""
    if not docs:
        return NO_DOCUMENTS

    blocks: list[str] = []
    for idx, doc in enumerate(docs[:max_docs]):
        content = _doc_content(doc)
        if len(content) > max_chars:
            content = content[:max_chars] + "... [truncated]"
        blocks.append(f"[Source {idx + 1}: {_doc_name(doc, idx)}]\n{content}")
    return "\n\n---\n\n".join(blocks)


def build_audit_summary(audit: Optional[NormalizedAudit]) -> str:
    if audit is None:
        return ""
    return (
        "Current Audit Context:\n"
        f"- Audit ID: {audit.audit_id or audit.id}\n"
        f"- Partner: {audit.display_name}\n"
        f"- Overall Score: {audit.overall_score}%\n"
        f"- Status: {audit.status.value}\n"
    )


def extract_sources(docs: list[dict]) -> list[RagSource]:
    sources: list[RagSource] = []
    for idx, doc in enumerate(docs):
        score = doc.get("@search.score")
        doc_id = doc.get("image_document_id") or doc.get("id")
        sources.append(RagSource(
            source_number=idx + 1,
            document_name=_doc_name(doc, idx),
            document_id=str(doc_id) if doc_id is not None else None,
            relevance_score=float(score) if isinstance(score, (int, float)) and not isinstance(score, bool) else None,
            content_preview=_doc_content(doc)[:PREVIEW_CHARS] + "...",
        ))
    return sources


class RagClient:
    def __init__(self, config: dict, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.search_config = config.get("search", {})
        self.openai_config = config.get("openai", {})
        self.timeout = config.get("http", {}).get("timeout_seconds", 30)
        self.transport = transport

    def _search_key(self) -> Optional[str]:
        return get_secret(self.search_config, "api_key_env")

    def _openai_key(self) -> Optional[str]:
        return get_secret(self.openai_config, "api_key_env")

    def check_configuration(self) -> RagConfigStatus:
        return RagConfigStatus(
            search_configured=bool(self.search_config.get("endpoint")) and self._search_key() is not None,
            openai_configured=bool(self.openai_config.get("endpoint")) and self._openai_key() is not None,
            search_endpoint=self.search_config.get("endpoint", ""),
            search_index=self.search_config.get("index", ""),
            openai_deployment=self.openai_config.get("deployment", ""),
        )

    def completions_url(self) -> str:
        endpoint = self.openai_config.get("endpoint", "")
        # A full deployment URL may be configured; only its base is used
        if DEPLOYMENTS_MARKER in endpoint:
            endpoint = endpoint.split(DEPLOYMENTS_MARKER)[0]
        deployment = self.openai_config.get("deployment", "gpt-4o")
        api_version = self.openai_config.get("api_version", "2024-02-15-preview")
        return (
            f"{endpoint.rstrip('/')}/openai/deployments/{deployment}"
            f"/chat/completions?api-version={api_version}"
        )

    def search_url(self) -> str:
        endpoint = self.search_config.get("endpoint", "")
        index = self.search_config.get("index", "audit-evidence-index")
        api_version = self.search_config.get("api_version", "2023-11-01")
        return f"{endpoint.rstrip('/')}/indexes/{index}/docs/search?api-version={api_version}"

    async def _post(self, url: str, api_key: str, body: dict) -> dict:
        headers = {
            "api-key": api_key,
            "Content-Type": "application/json",
        }
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=body, headers=headers)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise RagServiceError(
                sanitize_error(f"{e.response.status_code} | {e.response.text}")
            ) from e
        except (httpx.HTTPError, ValueError) as e:
            raise RagServiceError(sanitize_error(str(e))) from e
        if not isinstance(data, dict):
            raise RagServiceError("Service returned a non-object response body")
        return data

    async def search_evidence(self, query: str, top_k: Optional[int] = None) -> list[dict]:
        """Return matching documents, or [] when search is not configured."""
        api_key = self._search_key()
        if not self.search_config.get("endpoint") or api_key is None:
            return []

        body = {
            "search": query,
            "queryType": "simple",
            "top": top_k or self.search_config.get("top_k", 3),
        }
        data = await self._post(self.search_url(), api_key, body)
        hits = data.get("value")
        if not isinstance(hits, list):
            return []
        return [d for d in hits if isinstance(d, dict)]

    async def generate_answer(
        self,
        prompt: str,
        docs: list[dict],
        audit: Optional[NormalizedAudit] = None,
    ) -> RagAnswer:
        api_key = self._openai_key()
        if not self.openai_config.get("endpoint") or api_key is None:
            return RagAnswer(
                content="Azure OpenAI is not configured.",
                error=True,
                error_message="openai endpoint or key missing",
            )

        context = build_context(
            docs,
            max_docs=self.openai_config.get("max_context_docs", 3),
            max_chars=self.openai_config.get("max_doc_chars", 2000),
        )
        system = f"{SYSTEM_PROMPT}\n\n{build_audit_summary(audit)}\nRetrieved Evidence Documents:\n{context}"

        body = {
            "messages": [
                {"role": "system", "content": system},
                {"role": "user", "content": prompt},
            ],
            "max_tokens": self.openai_config.get("max_tokens", 800),
            "temperature": self.openai_config.get("temperature", 0.3),
            "top_p": self.openai_config.get("top_p", 0.95),
        }
        data = await self._post(self.completions_url(), api_key, body)

        try:
            content = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError):
            content = ""
        if not isinstance(content, str):
            content = ""

        usage = data.get("usage")

        return RagAnswer(
            content=content or "No response generated.",
            sources=extract_sources(docs),
            usage=usage if isinstance(usage, dict) else None,
        )

    async def query(self, prompt: str, audit: Optional[NormalizedAudit] = None) -> RagAnswer:
        """Search then generate. Failures become an error answer."""
        start = time.monotonic()
        try:
            docs = await self.search_evidence(prompt)
            answer = await self.generate_answer(prompt, docs, audit)
        except RagServiceError as e:
            return RagAnswer(
                content=f"Error processing query: {e}",
                error=True,
                error_message=str(e),
                processing_time_ms=int((time.monotonic() - start) * 1000),
            )
        return answer.model_copy(update={
            "retrieval_count": len(docs),
            "processing_time_ms": int((time.monotonic() - start) * 1000),
        })
