"""Ingestion service: chunk, embed and persist a document for chat.

Stages:
1. Idempotency check (chunks already stored => no-op success)
2. Chunking & quality filtering
3. Embedding (sequential sub-batches)
4. Persistence (single append-once write)
"""

import time
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from loguru import logger

from config.config import Settings, get_settings
from models.documents import ChunkingStats, PageText
from rag.chunking import DocumentChunker, filter_valid_chunks, get_chunking_stats
from rag.embeddings import EmbeddingGenerator, estimate_embedding_cost
from retrieval.vector_store import ChunkStore
from services.exceptions import NoUsableContentError


@dataclass
class IngestionResult:
    """Result of ingesting one document."""

    document_id: str
    already_processed: bool
    total_chunks: int
    stats: ChunkingStats = field(default_factory=ChunkingStats)
    embedding_tokens: int = 0
    estimated_cost: float = 0.0
    timing_breakdown: Dict[str, float] = field(default_factory=dict)


class IngestionService:
    """Service that turns extracted document text into stored chunk vectors."""

    def __init__(
        self,
        embedder: EmbeddingGenerator,
        store: ChunkStore,
        chunker: Optional[DocumentChunker] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the ingestion service.

        Args:
            embedder: Embedding generator for chunk texts.
            store: Chunk store receiving the (chunk, vector) rows.
            chunker: Chunker to use; built from settings when omitted.
            settings: Application settings.
        """
        self.settings = settings or get_settings()
        self.embedder = embedder
        self.store = store
        self.chunker = chunker or DocumentChunker(
            chunk_size=self.settings.CHUNK_SIZE,
            chunk_overlap=self.settings.CHUNK_OVERLAP,
        )

    async def ingest(
        self,
        document_id: str,
        text: Optional[str] = None,
        pages: Optional[List[PageText]] = None,
    ) -> IngestionResult:
        """Chunk, embed and persist a document.

        Per-page text is preferred when given so chunks carry page numbers.
        Re-ingesting a document that already has chunks returns immediately
        with ``already_processed=True``.

        Raises:
            NoUsableContentError: If no chunk survives the quality filter.
            EmbeddingServiceError: If embedding fails; nothing is persisted.
        """
        timing_breakdown: Dict[str, float] = {}

        if self.store.has_chunks(document_id):
            total = self.store.count_chunks(document_id)
            logger.info("Document {} already processed ({} chunks)", document_id, total)
            return IngestionResult(
                document_id=document_id,
                already_processed=True,
                total_chunks=total,
            )

        # Stage 2: Chunking
        stage_start = time.perf_counter()
        if pages:
            chunks = self.chunker.chunk_pages(pages)
        else:
            chunks = self.chunker.chunk(text or "")

        valid_chunks = filter_valid_chunks(chunks)
        timing_breakdown["chunking"] = time.perf_counter() - stage_start

        if not valid_chunks:
            logger.warning(
                "No usable content in document {} ({} raw chunks)", document_id, len(chunks)
            )
            raise NoUsableContentError()

        stats = get_chunking_stats(valid_chunks)
        logger.info(
            "Chunked document {} into {} chunks (avg {} tokens) in {:.3f}s",
            document_id,
            stats.total_chunks,
            stats.avg_tokens_per_chunk,
            timing_breakdown["chunking"],
        )

        # Stage 3: Embedding - all vectors must exist before anything is stored
        stage_start = time.perf_counter()
        embedded = await self.embedder.embed_large_batch([c.content for c in valid_chunks])
        timing_breakdown["embedding"] = time.perf_counter() - stage_start

        # Stage 4: Persistence
        stage_start = time.perf_counter()
        self.store.add_chunks(document_id, valid_chunks, embedded.embeddings)
        timing_breakdown["persistence"] = time.perf_counter() - stage_start

        result = IngestionResult(
            document_id=document_id,
            already_processed=False,
            total_chunks=stats.total_chunks,
            stats=stats,
            embedding_tokens=embedded.total_tokens,
            estimated_cost=estimate_embedding_cost(embedded.total_tokens),
            timing_breakdown=timing_breakdown,
        )
        logger.info(
            "Ingested document {}: {} chunks, {} embedding tokens (~${:.6f})",
            document_id,
            result.total_chunks,
            result.embedding_tokens,
            result.estimated_cost,
        )
        return result
