"""Retry policy for the layer that calls the RAG services.

The core never retries hosted model calls. Callers that want retries wrap
their call sites with ``tenacity_retry_decorator``; only rate-limit and
generic service failures are retried, never auth, input-too-long or
validation errors.
"""

from typing import Any, Callable

from loguru import logger
from tenacity import (
    before_sleep_log,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from services.exceptions import ServiceError


class ServiceRetryConfig:
    def __init__(
        self, max_attempts: int = 3, min_backoff: float = 1.0, max_backoff: float = 4.0
    ):
        # max_attempts counts the initial call (3 = initial + 2 retries)
        self.max_attempts = max_attempts
        self.min_backoff = min_backoff
        self.max_backoff = max_backoff


def is_retryable_exception(exc: BaseException) -> bool:
    """Only categorized service errors marked retryable are retried."""
    return isinstance(exc, ServiceError) and exc.retryable


def tenacity_retry_decorator(retry_config: ServiceRetryConfig):
    """Return a tenacity retry decorator for calls into the summary/chat/ingestion services.

    Works for both sync and async callables; the last exception is re-raised
    once attempts are exhausted.
    """

    def _decorator(fn: Callable[..., Any]):
        return retry(
            stop=stop_after_attempt(retry_config.max_attempts),
            wait=wait_exponential(
                multiplier=1, min=retry_config.min_backoff, max=retry_config.max_backoff
            ),
            retry=retry_if_exception(is_retryable_exception),
            before_sleep=before_sleep_log(logger, "WARNING"),
            reraise=True,
        )(fn)

    return _decorator
