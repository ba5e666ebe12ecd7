"""
Embedding Generation Module for PaperLens RAG System

Converts chunk texts and user queries into fixed-dimension vectors through a
hosted embedding model. The model client is injected, so tests run against
fakes and production code passes an ``LLMClient``.

Batches are capped (2048 inputs per request for text-embedding-3-small).
Larger inputs go through ``embed_large_batch`` which issues sequential
sub-batches with a short pause between them. A failure anywhere fails the
whole batch; there are no partial results.
"""

import asyncio
import math
import time
from typing import Any, List, Optional, Sequence

import numpy as np
from loguru import logger

from config.config import Settings, get_settings
from models.documents import BatchEmbeddingResult, EmbeddingResult
from services.exceptions import EmbeddingServiceError, ServiceError, ValidationError
from utils.llm_client import EmbeddingClientProtocol

DEFAULT_EMBEDDING_MODEL = "text-embedding-3-small"
DEFAULT_EMBEDDING_DIM = 1536
MAX_BATCH_SIZE = 2048
COST_PER_1M_TOKENS = 0.02


def is_valid_embedding(embedding: Any, dimension: int = DEFAULT_EMBEDDING_DIM) -> bool:
    """Return True if `embedding` is a flat numeric vector of `dimension` finite values."""
    if not isinstance(embedding, (list, tuple, np.ndarray)):
        return False

    if len(embedding) != dimension:
        return False

    for value in embedding:
        if isinstance(value, bool) or not isinstance(value, (int, float, np.number)):
            return False
        if not math.isfinite(value):
            return False
    return True


def estimate_embedding_cost(token_count: int) -> float:
    """Estimate embedding cost in USD (text-embedding-3-small: $0.02 per 1M tokens)."""
    return (token_count / 1_000_000) * COST_PER_1M_TOKENS


def cosine_similarity(a: Sequence[float], b: Sequence[float]) -> float:
    """Cosine similarity between two vectors, in [-1, 1].

    Returns 0.0 when either vector has zero magnitude.

    Raises:
        ValidationError: If the vectors have different dimensions.
    """
    vec_a = np.asarray(a, dtype=np.float64)
    vec_b = np.asarray(b, dtype=np.float64)
    if vec_a.shape != vec_b.shape:
        raise ValidationError(
            f"Embeddings must have the same dimensions ({vec_a.shape} vs {vec_b.shape})"
        )

    norm_a = np.linalg.norm(vec_a)
    norm_b = np.linalg.norm(vec_b)
    if norm_a == 0 or norm_b == 0:
        return 0.0

    return float(np.dot(vec_a, vec_b) / (norm_a * norm_b))


class EmbeddingGenerator:
    """
    Batch embedding generator backed by a hosted embedding model.

    Every returned vector is validated against the configured dimension so a
    corpus never mixes vectors from different models.
    """

    def __init__(
        self,
        client: EmbeddingClientProtocol,
        model: str = DEFAULT_EMBEDDING_MODEL,
        embedding_dim: int = DEFAULT_EMBEDDING_DIM,
        max_batch_size: int = MAX_BATCH_SIZE,
        batch_size: int = 100,
        batch_delay: float = 0.1,
    ):
        """
        Args:
            client: Hosted embedding client (see ``utils.llm_client.LLMClient``)
            model: Embedding model identifier
            embedding_dim: Expected vector length (1536 for text-embedding-3-small)
            max_batch_size: Hard cap on inputs per request (default: 2048)
            batch_size: Sub-batch size used by ``embed_large_batch`` (default: 100)
            batch_delay: Pause in seconds between sub-batches (default: 0.1)
        """
        if batch_size <= 0 or batch_size > max_batch_size:
            raise ValidationError(
                f"batch_size must be between 1 and {max_batch_size}, got {batch_size}",
                field="batch_size",
            )

        self.client = client
        self.model = model
        self.embedding_dim = embedding_dim
        self.max_batch_size = max_batch_size
        self.batch_size = batch_size
        self.batch_delay = batch_delay

        logger.info(
            f"EmbeddingGenerator initialized: model={model}, dim={embedding_dim}, "
            f"max_batch={max_batch_size}, batch_size={batch_size}"
        )

    @classmethod
    def from_settings(
        cls, client: EmbeddingClientProtocol, settings: Optional[Settings] = None
    ) -> "EmbeddingGenerator":
        """Build a generator from the EMBEDDING_* settings."""
        settings = settings or get_settings()
        return cls(
            client,
            model=settings.EMBEDDING_MODEL,
            embedding_dim=settings.EMBEDDING_DIMENSION,
            max_batch_size=settings.EMBEDDING_MAX_BATCH,
            batch_size=settings.EMBEDDING_BATCH_SIZE,
            batch_delay=settings.EMBEDDING_BATCH_DELAY,
        )

    async def embed(self, text: str) -> EmbeddingResult:
        """Generate the embedding for a single text (chunk or query)."""
        result = await self.embed_batch([text])
        return EmbeddingResult(embedding=result.embeddings[0], tokens=result.total_tokens)

    async def embed_batch(
        self, texts: List[str], max_batch: Optional[int] = None
    ) -> BatchEmbeddingResult:
        """Generate embeddings for up to `max_batch` texts in a single request.

        Raises:
            ValidationError: If the batch exceeds the cap; no request is made.
            EmbeddingServiceError: If the request fails or returns invalid vectors.
        """
        if not texts:
            return BatchEmbeddingResult()

        limit = self.max_batch_size if max_batch is None else min(max_batch, self.max_batch_size)
        if len(texts) > limit:
            raise ValidationError(
                f"Batch size exceeds maximum of {limit} texts (got {len(texts)})",
                field="texts",
            )

        try:
            vectors, total_tokens = await self.client.create_embeddings(self.model, list(texts))
        except ServiceError:
            raise
        except Exception as e:
            logger.exception("Embedding request failed for {} texts", len(texts))
            raise EmbeddingServiceError(f"Failed to generate embeddings: {e}") from e

        if len(vectors) != len(texts):
            raise EmbeddingServiceError(
                f"Embedding count mismatch: sent {len(texts)} texts, got {len(vectors)} vectors"
            )

        embeddings: List[List[float]] = []
        for i, vector in enumerate(vectors):
            if not is_valid_embedding(vector, self.embedding_dim):
                raise EmbeddingServiceError(
                    f"Invalid embedding at position {i}: expected {self.embedding_dim} finite values"
                )
            embeddings.append([float(v) for v in vector])

        return BatchEmbeddingResult(embeddings=embeddings, total_tokens=total_tokens)

    async def embed_large_batch(
        self, texts: List[str], batch_size: Optional[int] = None
    ) -> BatchEmbeddingResult:
        """Embed any number of texts as sequential sub-batches.

        Sub-batches run one after another with ``batch_delay`` seconds between
        them. The first failing sub-batch aborts the whole call.
        """
        size = self.batch_size if batch_size is None else batch_size
        if size <= 0 or size > self.max_batch_size:
            raise ValidationError(
                f"batch_size must be between 1 and {self.max_batch_size}, got {size}",
                field="batch_size",
            )

        total = len(texts)
        if total == 0:
            return BatchEmbeddingResult()

        num_batches = math.ceil(total / size)
        all_embeddings: List[List[float]] = []
        total_tokens = 0
        stage_start = time.perf_counter()

        for b in range(num_batches):
            start = b * size
            batch = texts[start : start + size]
            result = await self.embed_batch(batch)
            all_embeddings.extend(result.embeddings)
            total_tokens += result.total_tokens

            logger.debug("Embedding batch {}/{} done ({} texts)", b + 1, num_batches, len(batch))

            if b + 1 < num_batches and self.batch_delay > 0:
                await asyncio.sleep(self.batch_delay)

        logger.info(
            "EMBEDDING_STAGE: {} texts in {} batches, {} tokens, {:.3f}s",
            total,
            num_batches,
            total_tokens,
            time.perf_counter() - stage_start,
        )
        return BatchEmbeddingResult(embeddings=all_embeddings, total_tokens=total_tokens)
