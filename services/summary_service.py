"""Summary service: audience-tailored paper summaries with a per-audience cache.

A summary is generated at most once per (document_id, audience) pair. Repeat
requests return the stored record without calling the language model, no
matter what text is passed in.
"""

import time
from dataclasses import dataclass
from typing import Callable, Optional

from loguru import logger

from config.config import Settings, get_settings
from config.prompts import SUMMARY_SYSTEM_PROMPT, build_summary_prompt
from models.documents import Audience, SummaryRecord
from rag.chunking import estimate_tokens
from services.exceptions import CompletionServiceError, InsufficientTextError
from services.stores import SummaryStore
from utils.llm_client import CompletionClientProtocol
from utils.pdf_extractor import clean_pdf_text, truncate_text

MIN_SUMMARY_INPUT_CHARS = 100


def is_text_within_limits(text: str, max_input_tokens: int = 12000) -> bool:
    """Check whether `text` fits the model's input budget (estimated tokens)."""
    return estimate_tokens(text) <= max_input_tokens


@dataclass
class SummaryResult:
    summary: SummaryRecord
    cached: bool


class SummaryService:
    """Service generating and caching audience-specific summaries."""

    def __init__(
        self,
        llm_client: CompletionClientProtocol,
        store: SummaryStore,
        settings: Optional[Settings] = None,
        usage_check: Optional[Callable[[str], None]] = None,
    ):
        """Initialize the summary service.

        Args:
            llm_client: Chat-completion client.
            store: Summary store used as the (document, audience) cache.
            settings: Application settings.
            usage_check: Optional capability check owned by the caller (e.g. a
                daily quota). Called with the document id before a new summary
                is generated; it raises to refuse. Cached summaries skip it.
        """
        self.settings = settings or get_settings()
        self.llm_client = llm_client
        self.store = store
        self.usage_check = usage_check

    async def summarize(self, document_id: str, audience: Audience, text: str) -> SummaryResult:
        """Return the summary of a document for an audience, generating it if needed.

        Raises:
            InsufficientTextError: If fewer than 100 characters remain after cleaning.
            CompletionServiceError: If the model call fails or returns nothing.
        """
        audience = Audience(audience)

        existing = self.store.get_summary(document_id, audience)
        if existing is not None:
            logger.info("Returning cached {} summary for document {}", audience.value, document_id)
            return SummaryResult(summary=existing, cached=True)

        if self.usage_check is not None:
            self.usage_check(document_id)

        prepared = truncate_text(clean_pdf_text(text or ""), self.settings.SUMMARY_MAX_CHARS)
        if len(prepared) < MIN_SUMMARY_INPUT_CHARS:
            raise InsufficientTextError()

        messages = [
            {"role": "system", "content": SUMMARY_SYSTEM_PROMPT},
            {"role": "user", "content": build_summary_prompt(prepared, audience)},
        ]

        stage_start = time.perf_counter()
        completion = await self.llm_client.complete(
            messages,
            model=self.settings.CHAT_MODEL,
            max_tokens=self.settings.SUMMARY_MAX_TOKENS,
            temperature=self.settings.TEMPERATURE,
        )
        if not completion.content:
            raise CompletionServiceError("No summary generated from the language model")

        logger.info(
            "Generated {} summary for document {} in {:.3f}s ({} tokens)",
            audience.value,
            document_id,
            time.perf_counter() - stage_start,
            completion.tokens_used,
        )

        record = self.store.save_summary(
            SummaryRecord(
                document_id=document_id,
                audience=audience,
                summary_text=completion.content,
                tokens_used=completion.tokens_used,
                model_used=completion.model,
            )
        )
        return SummaryResult(summary=record, cached=False)
