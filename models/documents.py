from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import List, Optional
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class Audience(str, Enum):
    """Reading level a summary or chat answer is tailored to."""

    ELEMENTARY = "elementary"
    HIGH_SCHOOL = "high_school"
    UNDERGRADUATE = "undergraduate"
    GRADUATE = "graduate"
    EXPERT = "expert"


class MessageRole(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"


class PageText(BaseModel):
    """Extracted text of a single PDF page (1-based page number)."""

    text: str
    page_number: int = Field(ge=1)


class Chunk(BaseModel):
    """A sentence-aligned segment of one document's text.

    Chunks are produced by the chunker and never mutated afterwards.
    """

    content: str
    chunk_index: int = Field(ge=0)
    token_count: int = Field(gt=0)
    page_number: Optional[int] = None

    model_config = ConfigDict(frozen=True)


class StoredChunk(Chunk):
    """A persisted chunk together with its owning document and embedding."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    document_id: str
    embedding: List[float]


class RetrievedChunk(BaseModel):
    """Projection of a stored chunk scored against a single query."""

    id: str
    document_id: str
    content: str
    chunk_index: int
    page_number: Optional[int] = None
    similarity: float


class SourceCitation(BaseModel):
    """Per-turn citation surfaced to the caller; similarity is a rounded percentage."""

    chunk_index: int
    page_number: Optional[int] = None
    similarity: int

    @classmethod
    def from_retrieved(cls, chunk: RetrievedChunk) -> "SourceCitation":
        return cls(
            chunk_index=chunk.chunk_index,
            page_number=chunk.page_number,
            similarity=round(chunk.similarity * 100),
        )


class ChunkingStats(BaseModel):
    total_chunks: int = 0
    avg_tokens_per_chunk: int = 0
    min_tokens: int = 0
    max_tokens: int = 0
    total_tokens: int = 0


class RetrievalStats(BaseModel):
    total_chunks: int = 0
    avg_similarity: float = 0.0
    min_similarity: float = 0.0
    max_similarity: float = 0.0
    pages_covered: List[int] = Field(default_factory=list)


class EmbeddingResult(BaseModel):
    embedding: List[float]
    tokens: int = 0


class BatchEmbeddingResult(BaseModel):
    embeddings: List[List[float]] = Field(default_factory=list)
    total_tokens: int = 0


class CompletionResult(BaseModel):
    content: str
    tokens_used: int = 0
    model: str


class ChatSession(BaseModel):
    """A conversation bound to exactly one document and audience."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    document_id: str
    audience: Audience


class ChatMessage(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    session_id: str
    role: MessageRole
    content: str
    tokens_used: int = 0
    context_chunks: List[str] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class SummaryRecord(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid4()))
    document_id: str
    audience: Audience
    summary_text: str
    tokens_used: int = 0
    model_used: Optional[str] = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


__all__ = [
    "Audience",
    "MessageRole",
    "PageText",
    "Chunk",
    "StoredChunk",
    "RetrievedChunk",
    "SourceCitation",
    "ChunkingStats",
    "RetrievalStats",
    "EmbeddingResult",
    "BatchEmbeddingResult",
    "CompletionResult",
    "ChatSession",
    "ChatMessage",
    "SummaryRecord",
]
