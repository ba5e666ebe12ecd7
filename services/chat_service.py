"""Chat service: grounded question answering over a single processed document.

Per message:
1. Validation & optional usage check
2. Persist the user message
3. Retrieval (new message only, scoped to the session's document)
4. Context building & prompt assembly (audience + context + recent history)
5. Completion & persistence of the assistant message with its context chunk ids

Empty retrieval is not an error: the result status says whether the document
was never processed or simply had nothing relevant, and no model call is made.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from loguru import logger

from config.config import Settings, get_settings
from config.prompts import build_chat_system_prompt
from models.documents import ChatMessage, ChatSession, MessageRole, SourceCitation
from retrieval.context_builder import build_context
from retrieval.retriever import ChunkRetriever
from services.exceptions import CompletionServiceError, ValidationError
from services.stores import ChatHistoryStore
from utils.llm_client import CompletionClientProtocol

NOT_PROCESSED_MESSAGE = (
    "This document hasn't been processed for chat yet. "
    "Please click 'Process for Chat' first."
)
NO_MATCH_MESSAGE = (
    "No relevant content found. Try asking about specific topics from the paper, "
    "or try rephrasing your question."
)


class ChatStatus(str, Enum):
    ANSWERED = "answered"
    NOT_PROCESSED = "not_processed"
    NO_MATCH = "no_match"


@dataclass
class ChatResult:
    """Outcome of one chat turn."""

    status: ChatStatus
    message: Optional[ChatMessage] = None
    sources: List[SourceCitation] = field(default_factory=list)
    error: Optional[str] = None
    tokens_used: int = 0
    timing_breakdown: Dict[str, float] = field(default_factory=dict)

    @property
    def answer(self) -> Optional[str]:
        return self.message.content if self.message else None


class ChatService:
    """Service answering user messages from retrieved document context."""

    def __init__(
        self,
        retriever: ChunkRetriever,
        llm_client: CompletionClientProtocol,
        history: ChatHistoryStore,
        settings: Optional[Settings] = None,
        usage_check: Optional[Callable[[ChatSession], None]] = None,
    ):
        """Initialize the chat service.

        Args:
            retriever: Retriever bound to the chunk store of processed documents.
            llm_client: Chat-completion client.
            history: Store for the session's user and assistant messages.
            settings: Application settings.
            usage_check: Optional caller-owned capability check (e.g. a per-user
                message quota). It raises to refuse the message.
        """
        self.settings = settings or get_settings()
        self.retriever = retriever
        self.llm_client = llm_client
        self.history = history
        self.usage_check = usage_check

    def _validate_message(self, message: str) -> str:
        if message is None or not message.strip():
            raise ValidationError("Message must not be empty", field="message")
        if len(message) > self.settings.MAX_MESSAGE_CHARS:
            raise ValidationError(
                f"Message must be at most {self.settings.MAX_MESSAGE_CHARS} characters",
                field="message",
            )
        return message

    def _recent_history(self, session_id: str, exclude_id: str) -> List[Dict[str, str]]:
        prior = [m for m in self.history.list_messages(session_id) if m.id != exclude_id]
        recent = prior[-self.settings.HISTORY_LIMIT :] if self.settings.HISTORY_LIMIT > 0 else []
        return [{"role": m.role.value, "content": m.content} for m in recent]

    async def send_message(self, session: ChatSession, message: str) -> ChatResult:
        """Answer `message` within `session`.

        Raises:
            ValidationError: If the message is empty or too long.
            EmbeddingServiceError: If the query cannot be embedded.
            CompletionServiceError: If the model call fails or returns nothing.
        """
        timing_breakdown: Dict[str, float] = {}
        message = self._validate_message(message)

        if self.usage_check is not None:
            self.usage_check(session)

        user_message = self.history.add_message(
            ChatMessage(session_id=session.id, role=MessageRole.USER, content=message)
        )

        # Stage 3: Retrieval
        stage_start = time.perf_counter()
        chunks = await self.retriever.retrieve(
            message,
            session.document_id,
            threshold=self.settings.MATCH_THRESHOLD,
            count=self.settings.MATCH_COUNT,
        )
        timing_breakdown["retrieval"] = time.perf_counter() - stage_start

        if not chunks:
            if self.retriever.store.has_chunks(session.document_id):
                logger.info("No chunks matched in document {}", session.document_id)
                return ChatResult(
                    status=ChatStatus.NO_MATCH,
                    error=NO_MATCH_MESSAGE,
                    timing_breakdown=timing_breakdown,
                )
            logger.warning("Document {} has no chunks, chat unavailable", session.document_id)
            return ChatResult(
                status=ChatStatus.NOT_PROCESSED,
                error=NOT_PROCESSED_MESSAGE,
                timing_breakdown=timing_breakdown,
            )

        # Stage 4: Prompt assembly
        context = build_context(chunks, max_tokens=self.settings.CONTEXT_MAX_TOKENS)
        messages = [
            {"role": "system", "content": build_chat_system_prompt(context, session.audience)},
            *self._recent_history(session.id, exclude_id=user_message.id),
            {"role": "user", "content": message},
        ]

        # Stage 5: Completion
        stage_start = time.perf_counter()
        completion = await self.llm_client.complete(
            messages,
            model=self.settings.CHAT_MODEL,
            max_tokens=self.settings.CHAT_MAX_TOKENS,
            temperature=self.settings.TEMPERATURE,
        )
        timing_breakdown["completion"] = time.perf_counter() - stage_start

        if not completion.content:
            raise CompletionServiceError("No response generated from the language model")

        assistant_message = self.history.add_message(
            ChatMessage(
                session_id=session.id,
                role=MessageRole.ASSISTANT,
                content=completion.content,
                tokens_used=completion.tokens_used,
                context_chunks=[c.id for c in chunks],
            )
        )

        logger.info(
            "Answered message in session {} from {} chunks ({} tokens)",
            session.id,
            len(chunks),
            completion.tokens_used,
        )
        return ChatResult(
            status=ChatStatus.ANSWERED,
            message=assistant_message,
            sources=[SourceCitation.from_retrieved(c) for c in chunks],
            tokens_used=completion.tokens_used,
            timing_breakdown=timing_breakdown,
        )

    def get_messages(self, session_id: str) -> List[ChatMessage]:
        """Return the conversation of a session, oldest first."""
        return self.history.list_messages(session_id)
