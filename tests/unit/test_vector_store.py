import pytest

from models.documents import Chunk
from retrieval.vector_store import InMemoryChunkStore
from services.exceptions import ValidationError

pytestmark = [pytest.mark.unit]


def make_chunks(n, page_number=None):
    return [
        Chunk(
            content=f"Chunk number {i} content",
            chunk_index=i,
            token_count=6,
            page_number=page_number,
        )
        for i in range(n)
    ]


@pytest.fixture
def store():
    s = InMemoryChunkStore(embedding_dim=3)
    s.add_chunks(
        "doc-1",
        make_chunks(4, page_number=2),
        [[1.0, 0.0, 0.0], [0.8, 0.6, 0.0], [0.0, 1.0, 0.0], [1.0, 0.0, 0.0]],
    )
    return s


def test_add_chunks_returns_stored_rows():
    s = InMemoryChunkStore(embedding_dim=3)
    rows = s.add_chunks("doc-1", make_chunks(2), [[1, 0, 0], [0, 1, 0]])

    assert [r.chunk_index for r in rows] == [0, 1]
    assert all(r.document_id == "doc-1" for r in rows)
    assert rows[0].embedding == [1.0, 0.0, 0.0]
    assert len({r.id for r in rows}) == 2
    assert s.count_chunks("doc-1") == 2
    assert s.has_chunks("doc-1")
    assert not s.has_chunks("doc-2")


def test_match_orders_by_similarity_then_index(store):
    results = store.match_chunks([1.0, 0.0, 0.0], "doc-1", threshold=0.0, limit=10)

    assert [r.chunk_index for r in results] == [0, 3, 1, 2]
    assert results[0].similarity == pytest.approx(1.0)
    assert results[2].similarity == pytest.approx(0.8)
    assert results[3].similarity == pytest.approx(0.0)
    assert all(r.page_number == 2 for r in results)


def test_match_applies_threshold_and_limit(store):
    above = store.match_chunks([1.0, 0.0, 0.0], "doc-1", threshold=0.5, limit=10)
    assert [r.chunk_index for r in above] == [0, 3, 1]

    limited = store.match_chunks([1.0, 0.0, 0.0], "doc-1", threshold=0.5, limit=2)
    assert [r.chunk_index for r in limited] == [0, 3]


def test_match_is_scoped_to_document(store):
    store.add_chunks("doc-2", make_chunks(1), [[1.0, 0.0, 0.0]])

    results = store.match_chunks([1.0, 0.0, 0.0], "doc-2", threshold=0.0, limit=10)
    assert [r.document_id for r in results] == ["doc-2"]


def test_unknown_document_returns_empty(store):
    assert store.match_chunks([1.0, 0.0, 0.0], "missing", threshold=0.0, limit=5) == []


def test_zero_query_vector_matches_nothing_above_threshold(store):
    assert store.match_chunks([0.0, 0.0, 0.0], "doc-1", threshold=0.1, limit=5) == []


def test_query_dimension_mismatch_raises(store):
    with pytest.raises(ValidationError):
        store.match_chunks([1.0, 0.0], "doc-1", threshold=0.1, limit=5)


def test_second_write_for_document_rejected(store):
    with pytest.raises(ValidationError, match="already stored"):
        store.add_chunks("doc-1", make_chunks(1), [[0.0, 0.0, 1.0]])
    assert store.count_chunks("doc-1") == 4


@pytest.mark.parametrize(
    "embeddings",
    [
        [[1.0, 0.0, 0.0]],
        [[1.0, 0.0, 0.0], [1.0, 0.0]],
        [[1.0, 0.0, 0.0], [float("nan"), 0.0, 0.0]],
    ],
)
def test_invalid_embeddings_rejected_without_writing(embeddings):
    s = InMemoryChunkStore(embedding_dim=3)
    with pytest.raises(ValidationError):
        s.add_chunks("doc-1", make_chunks(2), embeddings)
    assert not s.has_chunks("doc-1")


def test_delete_document(store):
    assert store.delete_document("doc-1") == 4
    assert not store.has_chunks("doc-1")
    assert store.match_chunks([1.0, 0.0, 0.0], "doc-1", threshold=0.0, limit=5) == []
    assert store.delete_document("doc-1") == 0
