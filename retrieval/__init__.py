"""Retrieval module for document-scoped vector search.

This module provides:
- ChunkStore / InMemoryChunkStore: append-once chunk storage with cosine search
- ChunkRetriever: query embedding + scoped nearest-neighbour retrieval
- build_context: token-budgeted prompt context with page/section provenance
"""

from retrieval.context_builder import build_context, format_context_block
from retrieval.retriever import ChunkRetriever, format_chunk_sources, get_retrieval_stats
from retrieval.vector_store import ChunkStore, InMemoryChunkStore

__all__ = [
    "ChunkRetriever",
    "ChunkStore",
    "InMemoryChunkStore",
    "build_context",
    "format_chunk_sources",
    "format_context_block",
    "get_retrieval_stats",
]
