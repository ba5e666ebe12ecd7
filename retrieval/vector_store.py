"""Persisted chunk store with document-scoped cosine similarity search.

The production deployment delegates nearest-neighbour search to a
vector-capable database. ``ChunkStore`` is the narrow interface the core
consumes; ``InMemoryChunkStore`` implements it with a numpy matrix per
document and an exact linear scan, which gives the same ordering and
threshold semantics as the managed store.

Writes are append-once per document: chunks and vectors are written in one
call at ingestion time and never updated in place.

Usage:
    store = InMemoryChunkStore(embedding_dim=1536)
    store.add_chunks("doc-1", chunks, embeddings)
    rows = store.match_chunks(query_vector, "doc-1", threshold=0.1, limit=5)
"""

from __future__ import annotations

from typing import Dict, List, Protocol, Sequence

import numpy as np
from loguru import logger

from models.documents import Chunk, RetrievedChunk, StoredChunk
from rag.embeddings import DEFAULT_EMBEDDING_DIM, is_valid_embedding
from services.exceptions import ValidationError


class ChunkStore(Protocol):
    """Interface of the external chunk/vector store."""

    def add_chunks(
        self, document_id: str, chunks: Sequence[Chunk], embeddings: Sequence[Sequence[float]]
    ) -> List[StoredChunk]:
        ...

    def count_chunks(self, document_id: str) -> int:
        ...

    def has_chunks(self, document_id: str) -> bool:
        ...

    def match_chunks(
        self,
        query_embedding: Sequence[float],
        document_id: str,
        threshold: float,
        limit: int,
    ) -> List[RetrievedChunk]:
        ...

    def delete_document(self, document_id: str) -> int:
        ...


class InMemoryChunkStore:
    """Exact cosine search over per-document numpy matrices.

    Attributes:
        embedding_dim: Dimension every stored and query vector must have.
    """

    def __init__(self, embedding_dim: int = DEFAULT_EMBEDDING_DIM):
        self.embedding_dim = embedding_dim
        self._rows: Dict[str, List[StoredChunk]] = {}
        # Row-normalized vectors, aligned with self._rows[document_id]
        self._matrices: Dict[str, np.ndarray] = {}

        logger.info(f"InMemoryChunkStore initialized: embed_dim={embedding_dim}")

    def add_chunks(
        self, document_id: str, chunks: Sequence[Chunk], embeddings: Sequence[Sequence[float]]
    ) -> List[StoredChunk]:
        """Persist a document's chunks and vectors in one append-once write.

        Raises:
            ValidationError: If the document already has chunks, the inputs
                are misaligned, or any vector has the wrong dimension or
                non-finite values. Nothing is written in that case.
        """
        if self.has_chunks(document_id):
            raise ValidationError(
                f"Chunks for document {document_id} were already stored", field="document_id"
            )
        if len(chunks) != len(embeddings):
            raise ValidationError(
                f"Got {len(chunks)} chunks but {len(embeddings)} embeddings", field="embeddings"
            )
        if not chunks:
            return []

        for i, embedding in enumerate(embeddings):
            if not is_valid_embedding(embedding, self.embedding_dim):
                raise ValidationError(
                    f"Embedding {i} is not a finite {self.embedding_dim}-dim vector",
                    field="embeddings",
                )

        rows = [
            StoredChunk(
                document_id=document_id,
                content=chunk.content,
                chunk_index=chunk.chunk_index,
                token_count=chunk.token_count,
                page_number=chunk.page_number,
                embedding=[float(v) for v in embedding],
            )
            for chunk, embedding in zip(chunks, embeddings)
        ]

        matrix = np.asarray([row.embedding for row in rows], dtype=np.float64)
        norms = np.linalg.norm(matrix, axis=1, keepdims=True)
        # Zero vectors stay zero so their similarity is 0 rather than NaN
        normalized = np.divide(matrix, norms, out=np.zeros_like(matrix), where=norms > 0)

        self._rows[document_id] = rows
        self._matrices[document_id] = normalized

        logger.info("Stored {} chunks for document {}", len(rows), document_id)
        return list(rows)

    def count_chunks(self, document_id: str) -> int:
        return len(self._rows.get(document_id, []))

    def has_chunks(self, document_id: str) -> bool:
        return self.count_chunks(document_id) > 0

    def get_chunks(self, document_id: str) -> List[StoredChunk]:
        return list(self._rows.get(document_id, []))

    def match_chunks(
        self,
        query_embedding: Sequence[float],
        document_id: str,
        threshold: float,
        limit: int,
    ) -> List[RetrievedChunk]:
        """Return at most `limit` chunks of `document_id` with similarity >= `threshold`.

        Results are sorted by descending similarity, ties broken by chunk index.
        """
        if not is_valid_embedding(query_embedding, self.embedding_dim):
            raise ValidationError(
                f"Query embedding is not a finite {self.embedding_dim}-dim vector",
                field="query_embedding",
            )

        rows = self._rows.get(document_id)
        if not rows:
            return []

        query = np.asarray(query_embedding, dtype=np.float64)
        query_norm = np.linalg.norm(query)
        if query_norm == 0:
            scores = np.zeros(len(rows))
        else:
            scores = self._matrices[document_id] @ (query / query_norm)
        scores = np.clip(scores, -1.0, 1.0)

        candidates = [
            (float(score), row) for score, row in zip(scores, rows) if score >= threshold
        ]
        candidates.sort(key=lambda pair: (-pair[0], pair[1].chunk_index))

        return [
            RetrievedChunk(
                id=row.id,
                document_id=row.document_id,
                content=row.content,
                chunk_index=row.chunk_index,
                page_number=row.page_number,
                similarity=score,
            )
            for score, row in candidates[:limit]
        ]

    def delete_document(self, document_id: str) -> int:
        """Drop every chunk of a document; called when the owning document is deleted."""
        removed = self._rows.pop(document_id, [])
        self._matrices.pop(document_id, None)
        if removed:
            logger.info("Deleted {} chunks for document {}", len(removed), document_id)
        return len(removed)
