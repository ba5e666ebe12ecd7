import pytest

from models.documents import PageText
from rag.embeddings import EmbeddingGenerator
from retrieval.vector_store import InMemoryChunkStore
from services.exceptions import EmbeddingServiceError, NoUsableContentError
from services.ingestion_service import IngestionService

pytestmark = [pytest.mark.integration]


def build_service(client, settings):
    store = InMemoryChunkStore(embedding_dim=settings.EMBEDDING_DIMENSION)
    embedder = EmbeddingGenerator(
        client,
        model=settings.EMBEDDING_MODEL,
        embedding_dim=settings.EMBEDDING_DIMENSION,
        batch_size=2,
        batch_delay=0.0,
    )
    return IngestionService(embedder, store, settings=settings), store


@pytest.mark.asyncio
async def test_ingest_text(embedding_client, settings, paper_text):
    service, store = build_service(embedding_client, settings)

    result = await service.ingest("paper-1", text=paper_text)

    assert not result.already_processed
    assert result.total_chunks == 3
    assert result.stats.total_chunks == 3
    assert result.embedding_tokens > 0
    assert result.estimated_cost == pytest.approx(result.embedding_tokens / 1_000_000 * 0.02)
    assert set(result.timing_breakdown) == {"chunking", "embedding", "persistence"}

    stored = store.get_chunks("paper-1")
    assert [c.chunk_index for c in stored] == [0, 1, 2]
    assert stored[0].content.startswith("Photosynthesis converts light energy")
    # Two texts per sub-batch
    assert [len(call) for call in embedding_client.calls] == [2, 1]


@pytest.mark.asyncio
async def test_second_ingest_is_a_no_op(embedding_client, settings, paper_text):
    service, store = build_service(embedding_client, settings)
    await service.ingest("paper-1", text=paper_text)
    calls_before = len(embedding_client.calls)

    result = await service.ingest("paper-1", text=paper_text)

    assert result.already_processed
    assert result.total_chunks == 3
    assert len(embedding_client.calls) == calls_before
    assert store.count_chunks("paper-1") == 3


@pytest.mark.asyncio
async def test_ingest_pages_keeps_page_numbers(embedding_client, settings, paper_text):
    service, store = build_service(embedding_client, settings)
    sentences = paper_text.split(". ")
    pages = [
        PageText(text=". ".join(sentences[:3]) + ".", page_number=1),
        PageText(text=". ".join(sentences[3:]), page_number=2),
    ]

    result = await service.ingest("paper-2", pages=pages)

    stored = store.get_chunks("paper-2")
    assert result.total_chunks == len(stored) == 4
    assert [c.page_number for c in stored] == [1, 1, 2, 2]
    assert [c.chunk_index for c in stored] == [0, 1, 2, 3]


@pytest.mark.asyncio
@pytest.mark.parametrize("text", ["", "ab", "Too short. Not enough words here!"])
async def test_unusable_text_raises(embedding_client, settings, text):
    service, store = build_service(embedding_client, settings)

    with pytest.raises(NoUsableContentError):
        await service.ingest("paper-3", text=text)
    assert not store.has_chunks("paper-3")
    assert embedding_client.calls == []


@pytest.mark.asyncio
async def test_embedding_failure_persists_nothing(failing_embedding_client, settings, paper_text):
    service, store = build_service(failing_embedding_client, settings)

    with pytest.raises(EmbeddingServiceError):
        await service.ingest("paper-4", text=paper_text)
    assert not store.has_chunks("paper-4")
