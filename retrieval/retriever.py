"""Vector similarity retrieval scoped to a single document.

ChunkRetriever embeds the user query with the shared EmbeddingGenerator and
asks the chunk store for the closest chunks of one document. An empty result
(no chunks stored, or none above the threshold) is a normal outcome and is
returned as ``[]``; embedding or store failures raise instead.

Usage:
    retriever = ChunkRetriever(embedder, store, match_threshold=0.1, match_count=5)
    chunks = await retriever.retrieve("What did the authors measure?", document_id)
"""

from __future__ import annotations

import time
from typing import List, Optional

from loguru import logger

from models.documents import RetrievalStats, RetrievedChunk
from rag.embeddings import EmbeddingGenerator
from retrieval.vector_store import ChunkStore
from services.exceptions import ValidationError


class ChunkRetriever:
    """Query embedding followed by document-scoped nearest-neighbour search.

    Attributes:
        embedder: Generator used for query embeddings.
        store: Chunk store holding the document's vectors.
        match_threshold: Default minimum cosine similarity (0-1).
        match_count: Default maximum number of chunks returned.
    """

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        store: ChunkStore,
        match_threshold: float = 0.5,
        match_count: int = 5,
    ):
        self._validate_params(match_threshold, match_count)
        self.embedder = embedder
        self.store = store
        self.match_threshold = match_threshold
        self.match_count = match_count

        logger.info(
            f"ChunkRetriever initialized: threshold={match_threshold}, count={match_count}"
        )

    @staticmethod
    def _validate_params(threshold: float, count: int) -> None:
        if not 0.0 <= threshold <= 1.0:
            raise ValidationError(
                f"threshold must be within [0, 1], got {threshold}", field="threshold"
            )
        if count <= 0:
            raise ValidationError(f"count must be positive, got {count}", field="count")

    async def retrieve(
        self,
        query: str,
        document_id: str,
        threshold: Optional[float] = None,
        count: Optional[int] = None,
    ) -> List[RetrievedChunk]:
        """Retrieve the chunks of `document_id` most similar to `query`.

        Args:
            query: The user's question or search query.
            document_id: The only document searched.
            threshold: Minimum similarity; defaults to ``match_threshold``.
            count: Maximum results; defaults to ``match_count``.

        Returns:
            Chunks sorted by descending similarity, possibly empty.
        """
        threshold = self.match_threshold if threshold is None else threshold
        count = self.match_count if count is None else count
        self._validate_params(threshold, count)

        if not query or not query.strip():
            raise ValidationError("Query must not be empty", field="query")

        start = time.perf_counter()
        query_embedding = await self.embedder.embed(query)
        chunks = self.store.match_chunks(
            query_embedding.embedding, document_id, threshold=threshold, limit=count
        )

        logger.info(
            "[RAG] Query: {!r} | Chunks found: {} | {:.3f}s",
            query,
            len(chunks),
            time.perf_counter() - start,
        )
        if chunks:
            logger.debug(
                "[RAG] Similarities: {}", ", ".join(f"{c.similarity:.3f}" for c in chunks)
            )
        return chunks


def format_chunk_sources(chunks: List[RetrievedChunk]) -> List[str]:
    """Format retrieved chunks as numbered, human-readable source lines."""
    sources = []
    for index, chunk in enumerate(chunks, start=1):
        page = f"Page {chunk.page_number}" if chunk.page_number else "Unknown page"
        similarity = round(chunk.similarity * 100)
        sources.append(f"[{index}] {page} ({similarity}% relevant)")
    return sources


def get_retrieval_stats(chunks: List[RetrievedChunk]) -> RetrievalStats:
    if not chunks:
        return RetrievalStats()

    similarities = [c.similarity for c in chunks]
    pages = sorted({c.page_number for c in chunks if c.page_number is not None})
    return RetrievalStats(
        total_chunks=len(chunks),
        avg_similarity=round(sum(similarities) / len(similarities), 2),
        min_similarity=min(similarities),
        max_similarity=max(similarities),
        pages_covered=pages,
    )
