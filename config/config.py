"""
Configuration management for PaperLens.

Loads environment variables and exposes a validated Settings object with the
model names and RAG tunables used by the ingestion, summary and chat services.
"""

import os
import time
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Load environment variables from .env file (if present).
# During tests we may set SKIP_DOTENV_LOADER=1 to avoid loading a repo .env
# which would interfere with tests that expect missing keys.
if os.getenv("SKIP_DOTENV_LOADER", "").lower() not in ("1", "true", "yes"):
    load_dotenv()


class Settings(BaseSettings):
    """Application settings loaded from the environment / .env file."""

    # ========================================================================
    # Hosted model credentials
    # ========================================================================
    OPENAI_API_KEY: Optional[str] = None

    # ========================================================================
    # Embedding model
    # ========================================================================
    EMBEDDING_MODEL: str = "text-embedding-3-small"
    EMBEDDING_DIMENSION: int = Field(default=1536, gt=0)
    EMBEDDING_MAX_BATCH: int = Field(default=2048, gt=0)
    EMBEDDING_BATCH_SIZE: int = Field(default=100, gt=0)
    EMBEDDING_BATCH_DELAY: float = Field(default=0.1, ge=0.0)

    # ========================================================================
    # Chat completion model
    # ========================================================================
    CHAT_MODEL: str = "gpt-4o-mini"
    SUMMARY_MAX_TOKENS: int = 1500
    CHAT_MAX_TOKENS: int = 500
    TEMPERATURE: float = 0.7

    # ========================================================================
    # RAG configuration
    # ========================================================================
    CHUNK_SIZE: int = 1000
    CHUNK_OVERLAP: int = 200
    MATCH_THRESHOLD: float = Field(default=0.1, ge=0.0, le=1.0)
    MATCH_COUNT: int = Field(default=5, gt=0)
    CONTEXT_MAX_TOKENS: int = 5000
    SUMMARY_MAX_CHARS: int = 12000
    HISTORY_LIMIT: int = 10
    MAX_MESSAGE_CHARS: int = 500

    # ========================================================================
    # Application settings
    # ========================================================================
    LOG_LEVEL: str = "INFO"
    TIMEOUT: int = 60  # hosted model timeout in seconds

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def validate_keys(self) -> None:
        """Log a warning for every hosted-model credential that is missing."""
        start = time.perf_counter()

        if not self.OPENAI_API_KEY:
            logger.warning(
                "OPENAI_API_KEY is not set - embedding and chat calls will fail. "
                "Create a .env file in the project root with this variable."
            )
        else:
            logger.debug("  OPENAI_API_KEY: {}", _mask_key(self.OPENAI_API_KEY))

        logger.info("  Embedding model: {} ({} dims)", self.EMBEDDING_MODEL, self.EMBEDDING_DIMENSION)
        logger.info("  Chat model: {}", self.CHAT_MODEL)
        logger.info("  Timeout: {}s", self.TIMEOUT)

        elapsed_ms = (time.perf_counter() - start) * 1000.0
        logger.debug("Configuration validation took {:.2f}ms", elapsed_ms)


def _mask_key(value: Optional[str]) -> str:
    """Return a masked representation of an API key for safe debug logging."""
    if not value:
        return "<missing>"
    if len(value) <= 8:
        return value[0:1] + "*" * (len(value) - 1)
    return value[0:4] + "*" * (len(value) - 8) + value[-4:]


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide Settings instance (cached)."""
    return Settings()
