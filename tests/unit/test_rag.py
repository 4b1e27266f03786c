"""Tests for services/rag.py."""

from __future__ import annotations

import json

import httpx
import pytest

from auditx.core.config import get_effective_config
from auditx.core.normalize import normalize_audit
from auditx.services.rag import NO_DOCUMENTS, RagClient, build_context, extract_sources

SEARCH_ENV = "AUDITX_TEST_SEARCH_KEY"
OPENAI_ENV = "AUDITX_TEST_OPENAI_KEY"

SEARCH_HITS = [
    {"document_title": "Runbook.pdf", "content_text": "Deployment steps", "@search.score": 3.2, "id": "d1"},
    {"title": "Diagram", "content": "Landing zone", "@search.score": 1.1},
]

COMPLETION = {
    "choices": [{"message": {"content": "Deployment is documented [Source 1]."}}],
    "usage": {"prompt_tokens": 120, "completion_tokens": 12},
}


@pytest.fixture
def config(monkeypatch) -> dict:
    monkeypatch.setenv(SEARCH_ENV, "search-key")
    monkeypatch.setenv(OPENAI_ENV, "openai-key")
    return get_effective_config(cli_overrides={
        "search": {"endpoint": "https://search.example.test", "api_key_env": SEARCH_ENV},
        "openai": {"endpoint": "https://oai.example.test/", "api_key_env": OPENAI_ENV},
    })


def _router(requests: list):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        if "/indexes/" in request.url.path:
            return httpx.Response(200, json={"value": SEARCH_HITS})
        return httpx.Response(200, json=COMPLETION)
    return handler


class TestBuildContext:
    def test_no_documents(self):
        assert build_context([]) == NO_DOCUMENTS

    def test_field_fallbacks_and_numbering(self):
        context = build_context(SEARCH_HITS)
        assert "[Source 1: Runbook.pdf]\nDeployment steps" in context
        assert "[Source 2: Diagram]\nLanding zone" in context

    def test_truncates_and_limits(self):
        docs = [{"content_text": "x" * 50} for _ in range(5)]
        context = build_context(docs, max_docs=3, max_chars=10)
        assert context.count("[Source") == 3
        assert "x" * 10 + "... [truncated]" in context
        assert "[Source 1: Document 1]" in context

    def test_non_string_fields_skipped(self):
        docs = [{"content": {"nested": True}, "text": "fallback", "document_title": None, "title": "T"}]
        assert build_context(docs) == "[Source 1: T]\nfallback"
        assert extract_sources(docs)[0].content_preview == "fallback..."

    def test_sources(self):
        sources = extract_sources(SEARCH_HITS)
        assert sources[0].document_name == "Runbook.pdf"
        assert sources[0].document_id == "d1"
        assert sources[0].relevance_score == 3.2
        assert sources[1].source_number == 2
        assert sources[1].document_id is None


class TestRagClient:
    def test_configuration(self, config: dict, monkeypatch):
        assert RagClient(config).check_configuration().is_ready
        monkeypatch.delenv(OPENAI_ENV)
        status = RagClient(config).check_configuration()
        assert status.search_configured
        assert not status.openai_configured
        assert not status.is_ready

    def test_completions_url_from_full_deployment_url(self, config: dict):
        config["openai"]["endpoint"] = (
            "https://oai.example.test/openai/deployments/old/chat/completions?api-version=x"
        )
        url = RagClient(config).completions_url()
        assert url == (
            "https://oai.example.test/openai/deployments/gpt-4o/chat/completions"
            "?api-version=2024-02-15-preview"
        )

    @pytest.mark.asyncio
    async def test_query(self, config: dict, sample_document: dict):
        requests: list[httpx.Request] = []
        client = RagClient(config, transport=httpx.MockTransport(_router(requests)))
        audit = normalize_audit(sample_document)

        answer = await client.query("Is deployment documented?", audit)

        assert not answer.error
        assert answer.content == "Deployment is documented [Source 1]."
        assert answer.retrieval_count == 2
        assert len(answer.sources) == 2
        assert answer.usage["prompt_tokens"] == 120

        search, completion = requests
        assert search.headers["api-key"] == "search-key"
        assert json.loads(search.content) == {
            "search": "Is deployment documented?",
            "queryType": "simple",
            "top": 3,
        }
        body = json.loads(completion.content)
        assert completion.headers["api-key"] == "openai-key"
        assert body["messages"][1] == {"role": "user", "content": "Is deployment documented?"}
        assert "Audit 0042" in body["messages"][0]["content"]
        assert "[Source 1: Runbook.pdf]" in body["messages"][0]["content"]
        assert body["max_tokens"] == 800

    @pytest.mark.asyncio
    async def test_search_unconfigured_returns_empty(self, config: dict, monkeypatch):
        monkeypatch.delenv(SEARCH_ENV)
        client = RagClient(config, transport=httpx.MockTransport(_router([])))
        assert await client.search_evidence("anything") == []

    @pytest.mark.asyncio
    async def test_openai_unconfigured_is_error_answer(self, config: dict, monkeypatch):
        monkeypatch.delenv(OPENAI_ENV)
        client = RagClient(config, transport=httpx.MockTransport(_router([])))
        answer = await client.query("q")
        assert answer.error
        assert "not configured" in answer.content

    @pytest.mark.asyncio
    async def test_http_failure_becomes_error_answer(self, config: dict):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, text="Too Many Requests")

        client = RagClient(config, transport=httpx.MockTransport(handler))
        answer = await client.query("q")
        assert answer.error
        assert "429" in answer.error_message
        assert answer.content.startswith("Error processing query")

    @pytest.mark.asyncio
    async def test_empty_completion(self, config: dict):
        def handler(request: httpx.Request) -> httpx.Response:
            if "/indexes/" in request.url.path:
                return httpx.Response(200, json={"value": []})
            return httpx.Response(200, json={"choices": []})

        client = RagClient(config, transport=httpx.MockTransport(handler))
        answer = await client.query("q")
        assert answer.content == "No response generated."
        assert answer.retrieval_count == 0

    @pytest.mark.asyncio
    @pytest.mark.parametrize("body", [[1, 2], "text", 3.5])
    async def test_non_object_body_becomes_error_answer(self, config: dict, body):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json=body)

        client = RagClient(config, transport=httpx.MockTransport(handler))
        answer = await client.query("q")
        assert answer.error
        assert "non-object" in answer.error_message

    @pytest.mark.asyncio
    async def test_malformed_fields_degrade(self, config: dict):
        def handler(request: httpx.Request) -> httpx.Response:
            if "/indexes/" in request.url.path:
                return httpx.Response(200, json={"value": [{"content": ["a", "b"], "title": 5, "id": 9}]})
            return httpx.Response(200, json={"choices": [{"message": {"content": 12}}], "usage": "n/a"})

        client = RagClient(config, transport=httpx.MockTransport(handler))
        answer = await client.query("q")
        assert not answer.error
        assert answer.content == "No response generated."
        assert answer.usage is None
        assert answer.sources[0].document_name == "Document 1"
        assert answer.sources[0].document_id == "9"
        assert answer.sources[0].content_preview == "..."
