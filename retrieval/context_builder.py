"""Token-budgeted prompt context assembled from retrieved chunks."""

from typing import List

from models.documents import RetrievedChunk
from rag.chunking import estimate_tokens


def format_context_block(chunk: RetrievedChunk) -> str:
    """Render one chunk with its page and section provenance."""
    page = chunk.page_number if chunk.page_number else "unknown"
    return f"[Page {page}, Section {chunk.chunk_index}]\n{chunk.content}\n\n"


def build_context(chunks: List[RetrievedChunk], max_tokens: int = 5000) -> str:
    """Build the RAG context from chunks in the order given.

    Blocks are added while the running token estimate stays within
    `max_tokens`. The first block that would overflow stops the loop: later
    chunks are never considered, even small ones, so the output is always a
    prefix of the input ordering.
    """
    if not chunks:
        return ""

    parts: List[str] = []
    current_tokens = 0

    for chunk in chunks:
        block = format_context_block(chunk)
        tokens = estimate_tokens(block)

        if current_tokens + tokens > max_tokens:
            break

        parts.append(block)
        current_tokens += tokens

    return "".join(parts).rstrip()
