"""In-memory summary and chat-history stores.

The production system keeps summaries and chat messages in a managed
database. The services only depend on the two small protocols below; the
in-memory implementations back local runs and tests.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Protocol, Tuple

from loguru import logger

from models.documents import Audience, ChatMessage, SummaryRecord


class SummaryStore(Protocol):
    def get_summary(self, document_id: str, audience: Audience) -> Optional[SummaryRecord]:
        ...

    def save_summary(self, record: SummaryRecord) -> SummaryRecord:
        ...


class ChatHistoryStore(Protocol):
    def add_message(self, message: ChatMessage) -> ChatMessage:
        ...

    def list_messages(self, session_id: str) -> List[ChatMessage]:
        ...


class InMemorySummaryStore:
    """Summary cache keyed by (document_id, audience).

    Usage:
        store = InMemorySummaryStore()
        store.save_summary(record)
        cached = store.get_summary("doc-1", Audience.EXPERT)
    """

    def __init__(self) -> None:
        self.summaries: Dict[Tuple[str, Audience], SummaryRecord] = {}

    def get_summary(self, document_id: str, audience: Audience) -> Optional[SummaryRecord]:
        return self.summaries.get((document_id, Audience(audience)))

    def save_summary(self, record: SummaryRecord) -> SummaryRecord:
        """Store a summary; the first record for a (document, audience) pair wins."""
        key = (record.document_id, record.audience)
        existing = self.summaries.get(key)
        if existing is not None:
            logger.warning(
                "Summary for document {} / {} already stored, keeping the existing one",
                record.document_id,
                record.audience.value,
            )
            return existing
        self.summaries[key] = record
        logger.info(f"📋 Stored {record.audience.value} summary for document {record.document_id}")
        return record


class InMemoryChatHistoryStore:
    """Append-only chat message log per session, kept in insertion order."""

    def __init__(self) -> None:
        self.messages: Dict[str, List[ChatMessage]] = {}

    def add_message(self, message: ChatMessage) -> ChatMessage:
        self.messages.setdefault(message.session_id, []).append(message)
        return message

    def list_messages(self, session_id: str) -> List[ChatMessage]:
        """Return the session's messages oldest first."""
        return list(self.messages.get(session_id, []))


__all__ = [
    "SummaryStore",
    "ChatHistoryStore",
    "InMemorySummaryStore",
    "InMemoryChatHistoryStore",
]
