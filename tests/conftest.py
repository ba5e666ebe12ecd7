"""
Pytest configuration and fixtures.

Hosted model calls are replaced by deterministic fakes: embeddings are
bag-of-words vectors over a per-client vocabulary, so texts sharing words
are similar and texts sharing none are orthogonal.
"""

# Keep a developer's .env out of the test session
import os

os.environ.setdefault("SKIP_DOTENV_LOADER", "1")

import re
from typing import Dict, List, Optional, Tuple

import pytest
from loguru import logger

from config.config import Settings
from models.documents import CompletionResult
from services.exceptions import EmbeddingServiceError

TEST_EMBEDDING_DIM = 256


class FakeEmbeddingClient:
    """Bag-of-words embedding client; records every request."""

    def __init__(self, dim: int = TEST_EMBEDDING_DIM, error: Optional[Exception] = None):
        self.dim = dim
        self.error = error
        self.vocab: Dict[str, int] = {}
        self.calls: List[List[str]] = []

    def vectorize(self, text: str) -> List[float]:
        vector = [0.0] * self.dim
        for word in re.findall(r"[a-z]+", text.lower()):
            index = self.vocab.setdefault(word, len(self.vocab))
            if index >= self.dim:
                raise AssertionError("FakeEmbeddingClient vocabulary exhausted")
            vector[index] += 1.0
        return vector

    async def create_embeddings(self, model: str, inputs: List[str]) -> Tuple[List[List[float]], int]:
        self.calls.append(list(inputs))
        if self.error is not None:
            raise self.error
        tokens = sum(len(text.split()) for text in inputs)
        return [self.vectorize(text) for text in inputs], tokens


class FakeCompletionClient:
    """Completion client returning a canned reply; records every request."""

    def __init__(self, reply: str = "This is a generated answer.", tokens_used: int = 42):
        self.reply = reply
        self.tokens_used = tokens_used
        self.calls: List[dict] = []

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult:
        self.calls.append(
            {
                "messages": messages,
                "model": model,
                "max_tokens": max_tokens,
                "temperature": temperature,
            }
        )
        return CompletionResult(content=self.reply, tokens_used=self.tokens_used, model=model)


@pytest.fixture
def caplog(caplog):
    """Route loguru records into pytest's caplog."""
    handler_id = logger.add(caplog.handler, format="{message}")
    yield caplog
    logger.remove(handler_id)


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        EMBEDDING_DIMENSION=TEST_EMBEDDING_DIM,
        EMBEDDING_BATCH_DELAY=0.0,
        CHUNK_SIZE=60,
        CHUNK_OVERLAP=10,
    )


@pytest.fixture
def embedding_client():
    return FakeEmbeddingClient()


@pytest.fixture
def failing_embedding_client():
    return FakeEmbeddingClient(error=EmbeddingServiceError("upstream down"))


@pytest.fixture
def completion_client():
    return FakeCompletionClient()


@pytest.fixture
def paper_text():
    return (
        "Photosynthesis converts light energy into chemical energy inside the leaves of green plants. "
        "Chlorophyll molecules absorb mostly blue and red light while reflecting green wavelengths back. "
        "The resulting glucose fuels plant growth and is stored as starch for later periods of darkness. "
        "Researchers measured oxygen release from spinach leaves under twelve different lamp intensities. "
        "Oxygen output rose steadily with intensity until the enzymes reached a clear saturation plateau. "
        "The authors conclude that engineered crops could capture more sunlight during cloudy seasons."
    )
