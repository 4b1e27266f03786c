"""Retrieval-augmented answer data models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel


class RagSource(BaseModel):
    source_number: int
    document_name: str
    document_id: Optional[str] = None
    relevance_score: Optional[float] = None
    content_preview: str = ""


class RagAnswer(BaseModel):
    content: str
    sources: list[RagSource] = []
    usage: Optional[dict] = None
    error: bool = False
    error_message: Optional[str] = None
    retrieval_count: int = 0
    processing_time_ms: int = 0


class RagConfigStatus(BaseModel):
    search_configured: bool
    openai_configured: bool
    search_endpoint: str = ""
    search_index: str = ""
    openai_deployment: str = ""

    @property
    def is_ready(self) -> bool:
        return self.search_configured and self.openai_configured
