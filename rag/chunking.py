"""
Document Chunking Module for PaperLens RAG System

Splits extracted paper text into overlapping, sentence-aligned chunks sized for
embedding and for the chat context window.

Key Features:
- Text normalization (line trimming, space and blank-line collapsing)
- Regex-based sentence boundary detection
- Greedy token-budgeted accumulation with sentence-level overlap
- Page-aware chunking when the extractor provides per-page text
- Chunk quality validation and statistics

Token counts everywhere in the package use the same ``ceil(len / 4)``
approximation so chunking, context budgeting and cost estimates agree.
"""

import math
import re
from typing import List, Optional

from loguru import logger

from models.documents import Chunk, ChunkingStats, PageText
from services.exceptions import ValidationError

SENTENCE_BOUNDARY = re.compile(r"([.!?])\s+(?=[A-Z])")
_SENTENCE_MARKER = "\x00"

# Chunk quality thresholds
MIN_CHUNK_CHARS = 50
MIN_CHUNK_WORDS = 10
MIN_MEANINGFUL_CHARS = 30


def estimate_tokens(text: str) -> int:
    """Estimate token count (rough approximation: 1 token ~ 4 characters)."""
    return math.ceil(len(text) / 4)


def normalize_text(text: str) -> str:
    """Clean raw extracted text before sentence splitting.

    Collapses runs of spaces, collapses 3+ newlines to a blank line and trims
    every line. Applying it twice gives the same result as applying it once.
    """
    text = text.replace("\r\n", "\n")
    text = re.sub(r" +", " ", text)
    lines = [line.strip() for line in text.split("\n")]
    text = "\n".join(lines)
    text = re.sub(r"\n{3,}", "\n\n", text)
    return text.strip()


def split_into_sentences(text: str) -> List[str]:
    """Split text after ``.``, ``!`` or ``?`` followed by whitespace and a capital letter.

    Abbreviations are not special-cased: "Dr. Smith" splits after "Dr." and
    "e.g. the" does not split at all.
    """
    marked = SENTENCE_BOUNDARY.sub(r"\1" + _SENTENCE_MARKER, text)
    return [s.strip() for s in marked.split(_SENTENCE_MARKER) if s.strip()]


class DocumentChunker:
    """
    Sentence-aligned token chunker for research papers.

    Sentences are accumulated greedily until the next one would push the chunk
    over the target size. When a chunk closes, its trailing sentences that fit
    in the overlap budget seed the next chunk.
    """

    def __init__(self, chunk_size: int = 1000, chunk_overlap: int = 200):
        """
        Args:
            chunk_size: Target chunk size in estimated tokens (default: 1000)
            chunk_overlap: Overlap budget between consecutive chunks in tokens (default: 200)
        """
        self._validate_sizes(chunk_size, chunk_overlap)
        self.chunk_size = chunk_size
        self.chunk_overlap = chunk_overlap

        logger.info(
            f"DocumentChunker initialized: chunk_size={chunk_size}, overlap={chunk_overlap}"
        )

    @staticmethod
    def _validate_sizes(chunk_size: int, chunk_overlap: int) -> None:
        if chunk_size <= 0:
            raise ValidationError(
                f"chunk_size must be positive, got {chunk_size}", field="chunk_size"
            )
        if chunk_overlap < 0:
            raise ValidationError(
                f"chunk_overlap must not be negative, got {chunk_overlap}",
                field="chunk_overlap",
            )
        if chunk_overlap >= chunk_size:
            raise ValidationError(
                f"chunk_overlap ({chunk_overlap}) must be smaller than chunk_size ({chunk_size})",
                field="chunk_overlap",
            )

    def chunk(
        self,
        text: str,
        target_tokens: Optional[int] = None,
        overlap_tokens: Optional[int] = None,
    ) -> List[Chunk]:
        """Chunk text into overlapping segments.

        Args:
            text: Full document text.
            target_tokens: Per-call override of ``chunk_size``.
            overlap_tokens: Per-call override of ``chunk_overlap``.

        Returns:
            Chunks with contiguous ``chunk_index`` values starting at 0. Empty
            or whitespace-only text yields an empty list.
        """
        target = self.chunk_size if target_tokens is None else target_tokens
        overlap = self.chunk_overlap if overlap_tokens is None else overlap_tokens
        self._validate_sizes(target, overlap)

        if not text or not text.strip():
            return []

        sentences = split_into_sentences(normalize_text(text))

        chunks: List[Chunk] = []
        current: List[str] = []
        current_tokens = 0

        for sentence in sentences:
            sentence_tokens = estimate_tokens(sentence)

            if current and current_tokens + sentence_tokens > target:
                chunks.append(self._make_chunk(current, len(chunks)))
                current = self._overlap_tail(current, overlap)
                current_tokens = sum(estimate_tokens(s) for s in current)

            current.append(sentence)
            current_tokens += sentence_tokens

        if current:
            chunks.append(self._make_chunk(current, len(chunks)))

        logger.debug(
            "Chunked {} sentences into {} chunks (target={}, overlap={})",
            len(sentences),
            len(chunks),
            target,
            overlap,
        )
        return chunks

    def chunk_pages(
        self,
        pages: List[PageText],
        target_tokens: Optional[int] = None,
        overlap_tokens: Optional[int] = None,
    ) -> List[Chunk]:
        """Chunk each page separately, keeping page numbers and a global chunk index."""
        chunks: List[Chunk] = []
        for page in pages:
            for page_chunk in self.chunk(page.text, target_tokens, overlap_tokens):
                chunks.append(
                    page_chunk.model_copy(
                        update={
                            "chunk_index": len(chunks),
                            "page_number": page.page_number,
                        }
                    )
                )
        return chunks

    @staticmethod
    def _overlap_tail(sentences: List[str], overlap: int) -> List[str]:
        """Return the longest run of trailing sentences fitting in the overlap budget."""
        tail: List[str] = []
        tail_tokens = 0
        for sentence in reversed(sentences):
            tokens = estimate_tokens(sentence)
            if tail_tokens + tokens > overlap:
                break
            tail.insert(0, sentence)
            tail_tokens += tokens
        return tail

    @staticmethod
    def _make_chunk(sentences: List[str], chunk_index: int) -> Chunk:
        content = " ".join(sentences)
        return Chunk(
            content=content,
            chunk_index=chunk_index,
            token_count=estimate_tokens(content),
        )


def is_valid_chunk(chunk: Chunk) -> bool:
    """Return True if the chunk carries enough real text to be worth embedding."""
    if len(chunk.content) < MIN_CHUNK_CHARS:
        return False

    if len(chunk.content.split()) < MIN_CHUNK_WORDS:
        return False

    meaningful = re.sub(r"[\s\W]", "", chunk.content)
    if len(meaningful) < MIN_MEANINGFUL_CHARS:
        return False

    return True


def filter_valid_chunks(chunks: List[Chunk]) -> List[Chunk]:
    valid = [chunk for chunk in chunks if is_valid_chunk(chunk)]
    if len(valid) != len(chunks):
        logger.warning(
            "Chunk validation: {}/{} chunks valid", len(valid), len(chunks)
        )
    return valid


def get_chunking_stats(chunks: List[Chunk]) -> ChunkingStats:
    if not chunks:
        return ChunkingStats()

    token_counts = [c.token_count for c in chunks]
    total_tokens = sum(token_counts)
    return ChunkingStats(
        total_chunks=len(chunks),
        avg_tokens_per_chunk=round(total_tokens / len(chunks)),
        min_tokens=min(token_counts),
        max_tokens=max(token_counts),
        total_tokens=total_tokens,
    )
