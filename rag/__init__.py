"""
RAG (Retrieval-Augmented Generation) building blocks for PaperLens

This package contains the ingestion-side components of the pipeline:
- DocumentChunker: sentence-aligned token chunking with overlap
- is_valid_chunk / get_chunking_stats: chunk quality filter and statistics
- EmbeddingGenerator: batched embedding generation through a hosted model
- cosine_similarity / is_valid_embedding: vector helpers
"""

from models.documents import Chunk

from .chunking import (
    DocumentChunker,
    estimate_tokens,
    filter_valid_chunks,
    get_chunking_stats,
    is_valid_chunk,
    normalize_text,
    split_into_sentences,
)
from .embeddings import (
    EmbeddingGenerator,
    cosine_similarity,
    estimate_embedding_cost,
    is_valid_embedding,
)

__all__ = [
    "Chunk",
    "DocumentChunker",
    "EmbeddingGenerator",
    "cosine_similarity",
    "estimate_embedding_cost",
    "estimate_tokens",
    "filter_valid_chunks",
    "get_chunking_stats",
    "is_valid_chunk",
    "is_valid_embedding",
    "normalize_text",
    "split_into_sentences",
]
