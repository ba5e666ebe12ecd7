from .documents import (
    Audience,
    BatchEmbeddingResult,
    ChatMessage,
    ChatSession,
    Chunk,
    ChunkingStats,
    CompletionResult,
    EmbeddingResult,
    MessageRole,
    PageText,
    RetrievalStats,
    RetrievedChunk,
    SourceCitation,
    StoredChunk,
    SummaryRecord,
)

__all__ = [
    "Audience",
    "BatchEmbeddingResult",
    "ChatMessage",
    "ChatSession",
    "Chunk",
    "ChunkingStats",
    "CompletionResult",
    "EmbeddingResult",
    "MessageRole",
    "PageText",
    "RetrievalStats",
    "RetrievedChunk",
    "SourceCitation",
    "StoredChunk",
    "SummaryRecord",
]
