"""LiteLLM client for the hosted embedding and chat-completion models.

LLMClient wraps ``litellm.aembedding`` and ``litellm.acompletion`` and turns
provider failures into categorized service errors (auth, rate limit, input
too long, generic) so callers can decide between retrying and surfacing the
message to the user. It performs no retries of its own.

The client is constructed explicitly and passed into the embedding generator
and the services; there is no module-level singleton.

Usage example:
    client = LLMClient(api_key=settings.OPENAI_API_KEY)
    vectors, tokens = await client.create_embeddings("text-embedding-3-small", ["hello"])
    result = await client.complete([{"role": "user", "content": "Hi"}], model="gpt-4o-mini")
"""

import json
import time
from typing import Dict, List, Optional, Protocol, Tuple, Type

import litellm
from litellm.exceptions import (
    AuthenticationError,
    ContextWindowExceededError,
    RateLimitError,
)
from loguru import logger

from config.config import Settings, get_settings
from models.documents import CompletionResult
from services.exceptions import (
    CompletionServiceError,
    EmbeddingServiceError,
    ServiceError,
)

USER_MESSAGES = {
    ServiceError.AUTH: "Invalid or missing OpenAI API key",
    ServiceError.RATE_LIMIT: "OpenAI rate limit exceeded. Please try again later.",
    ServiceError.TOO_LONG: "Text is too long for the model. Please use a shorter document or message.",
    ServiceError.GENERIC: "The language model request failed. Please try again.",
}


class EmbeddingClientProtocol(Protocol):
    async def create_embeddings(
        self, model: str, inputs: List[str]
    ) -> Tuple[List[List[float]], int]:
        """Return one vector per input (same order) and the total token usage."""
        ...


class CompletionClientProtocol(Protocol):
    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult:
        """Return the first choice's content and the total token usage."""
        ...


def classify_exception(exc: Exception) -> str:
    """Map a provider exception to a service error category."""
    if isinstance(exc, ServiceError):
        return exc.category
    if isinstance(exc, AuthenticationError):
        return ServiceError.AUTH
    if isinstance(exc, RateLimitError):
        return ServiceError.RATE_LIMIT
    if isinstance(exc, ContextWindowExceededError):
        return ServiceError.TOO_LONG

    # Some providers only surface the cause in the message text
    message = str(exc).lower()
    if "api key" in message or "unauthorized" in message:
        return ServiceError.AUTH
    if "rate limit" in message or "quota" in message:
        return ServiceError.RATE_LIMIT
    if "context length" in message or "maximum context" in message or "too long" in message:
        return ServiceError.TOO_LONG
    return ServiceError.GENERIC


def _wrap(exc: Exception, error_cls: Type[ServiceError], action: str) -> ServiceError:
    category = classify_exception(exc)
    return error_cls(f"{USER_MESSAGES[category]} ({action}: {exc})", category=category)


def _field(item, name: str):
    """Read a field from a LiteLLM response item, which may be a dict or an object."""
    if isinstance(item, dict):
        return item.get(name)
    return getattr(item, name, None)


class LLMClient:
    """Async client for hosted embedding and chat-completion models via LiteLLM."""

    def __init__(self, api_key: Optional[str] = None, timeout: int = 60) -> None:
        self._api_key = api_key
        self.timeout = timeout

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "LLMClient":
        settings = settings or get_settings()
        return cls(api_key=settings.OPENAI_API_KEY, timeout=settings.TIMEOUT)

    async def create_embeddings(
        self, model: str, inputs: List[str]
    ) -> Tuple[List[List[float]], int]:
        """Embed `inputs` in one request.

        Raises:
            EmbeddingServiceError: If the provider call fails or returns no data.
        """
        logger.info(
            json.dumps(
                {"event": "embedding_call_start", "model": model, "inputs": len(inputs)}
            )
        )
        start_time = time.perf_counter()
        try:
            response = await litellm.aembedding(
                model=model,
                input=inputs,
                api_key=self._api_key,
                timeout=self.timeout,
                encoding_format="float",
            )
        except Exception as e:
            error = _wrap(e, EmbeddingServiceError, "embedding")
            logger.error(
                json.dumps(
                    {
                        "event": "embedding_call_failure",
                        "model": model,
                        "category": error.category,
                        "error": str(e),
                    }
                )
            )
            raise error from e

        data = list(_field(response, "data") or [])
        if not data:
            raise EmbeddingServiceError("No embedding data returned from the embedding model")

        # Providers return items in input order, but honour explicit indices when present
        if all(_field(item, "index") is not None for item in data):
            data.sort(key=lambda item: _field(item, "index"))
        vectors = [list(_field(item, "embedding")) for item in data]

        usage = _field(response, "usage")
        total_tokens = (_field(usage, "total_tokens") or 0) if usage is not None else 0

        logger.info(
            json.dumps(
                {
                    "event": "embedding_call_success",
                    "model": model,
                    "vectors": len(vectors),
                    "total_tokens": total_tokens,
                    "execution_time": round(time.perf_counter() - start_time, 3),
                }
            )
        )
        return vectors, total_tokens

    async def complete(
        self,
        messages: List[Dict[str, str]],
        model: str,
        max_tokens: int,
        temperature: float,
    ) -> CompletionResult:
        """Run a single chat completion.

        Raises:
            CompletionServiceError: If the provider call fails or the response
                has no usable structure.
        """
        logger.info(
            json.dumps(
                {"event": "llm_call_start", "model": model, "messages": len(messages)}
            )
        )
        start_time = time.perf_counter()
        try:
            response = await litellm.acompletion(
                model=model,
                messages=messages,
                max_tokens=max_tokens,
                temperature=temperature,
                api_key=self._api_key,
                timeout=self.timeout,
                num_retries=0,
            )
        except Exception as e:
            error = _wrap(e, CompletionServiceError, "completion")
            logger.error(
                json.dumps(
                    {
                        "event": "llm_call_failure",
                        "model": model,
                        "category": error.category,
                        "error": str(e),
                    }
                )
            )
            raise error from e

        try:
            content = response.choices[0].message.content or ""
        except (AttributeError, IndexError) as e:
            logger.exception("Unexpected response structure from LLM")
            raise CompletionServiceError(f"Unexpected response structure from LLM: {e}") from e

        usage = getattr(response, "usage", None)
        tokens_used = getattr(usage, "total_tokens", 0) or 0

        logger.info(
            json.dumps(
                {
                    "event": "llm_call_success",
                    "model": model,
                    "tokens_used": tokens_used,
                    "execution_time": round(time.perf_counter() - start_time, 3),
                }
            )
        )
        return CompletionResult(content=content.strip(), tokens_used=tokens_used, model=model)


__all__ = [
    "LLMClient",
    "EmbeddingClientProtocol",
    "CompletionClientProtocol",
    "classify_exception",
    "USER_MESSAGES",
]
