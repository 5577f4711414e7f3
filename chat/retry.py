# chat/retry.py
"""
Bounded retries with exponential backoff and jitter around a Gemini call.
"""
import re
import time
import socket
import random
import logging
from typing import List

from google.api_core import exceptions as gexc
from prometheus_client import Counter

from .llm import GeminiBlocked, GeminiConfigError, LLMClient

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 4
DEFAULT_BASE_DELAY_MS = 500
MAX_DELAY_MS = 30_000

GENERATION_ATTEMPTS = Counter(
    "chat_generation_attempts_total",
    "Gemini generation attempts by outcome",
    ["outcome"],
)


class GenerationFailed(RuntimeError):
    """
    Raised once generation gives up. The last underlying error is chained as
    __cause__ and kept on `last_error`.
    """

    def __init__(self, message: str, *, attempts: int, last_error: BaseException | None = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


# SDK exception types that always mean "try again later"
_RETRYABLE_TYPES = (
    gexc.TooManyRequests,
    gexc.ResourceExhausted,
    gexc.InternalServerError,
    gexc.ServiceUnavailable,
    gexc.DeadlineExceeded,
    ConnectionError,
    TimeoutError,
    socket.gaierror,
)

_NEVER_RETRY = (GeminiBlocked, GeminiConfigError)

_RATE_LIMIT = re.compile(r"\b429\b|rate limit|quota exceeded|resource exhausted", re.I)
_SERVER_ERROR = re.compile(r"\b5\d{2}\b")
_NETWORK = re.compile(
    r"ECONNRESET|ETIMEDOUT|ENOTFOUND|EAI_AGAIN|connection reset|timed out"
    r"|temporary failure in name resolution|name or service not known",
    re.I,
)


def is_retryable_error(exc: BaseException) -> bool:
    """
    Structured checks first (SDK status codes, builtin network errors), then
    message patterns for anything that only reports a string. Unknown shapes
    are not retried.
    """
    if isinstance(exc, _NEVER_RETRY):
        return False
    if isinstance(exc, _RETRYABLE_TYPES):
        return True
    if isinstance(exc, gexc.GoogleAPICallError):
        code = getattr(exc, "code", None)
        if isinstance(code, int):
            return code == 429 or 500 <= code <= 599

    s = str(exc)
    return bool(_RATE_LIMIT.search(s) or _SERVER_ERROR.search(s) or _NETWORK.search(s))


def backoff_delay_ms(attempt: int, base_delay_ms: float = DEFAULT_BASE_DELAY_MS, *, jitter=None) -> float:
    """Delay after failed attempt `attempt` (1-based), capped at 30s."""
    factor = jitter if jitter is not None else random.uniform(0.5, 1.0)
    return min(MAX_DELAY_MS, base_delay_ms * (2 ** (attempt - 1)) * factor)


def generate_with_retries(
    client: LLMClient,
    contents: List[dict],
    *,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
    base_delay_ms: float = DEFAULT_BASE_DELAY_MS,
) -> str:
    """Run client.generate(contents), retrying transient failures."""
    max_attempts = max(1, max_attempts)
    last_exc = None
    attempt = 0

    while attempt < max_attempts:
        attempt += 1
        try:
            text = client.generate(contents)
        except Exception as e:
            last_exc = e
            if not is_retryable_error(e):
                GENERATION_ATTEMPTS.labels(outcome="terminal").inc()
                logger.warning("generation attempt %s failed, not retryable: %s", attempt, e)
                break
            GENERATION_ATTEMPTS.labels(outcome="retryable").inc()
            if attempt >= max_attempts:
                logger.warning("generation attempt %s failed, no attempts left: %s", attempt, e)
                break
            delay = backoff_delay_ms(attempt, base_delay_ms)
            logger.warning(
                "generation attempt %s failed, retrying in %.0fms: %s", attempt, delay, e
            )
            time.sleep(delay / 1000.0)
            continue

        GENERATION_ATTEMPTS.labels(outcome="success").inc()
        return text

    message = str(last_exc) if last_exc is not None and str(last_exc) else "Failed to generate content after retries"
    raise GenerationFailed(message, attempts=attempt, last_error=last_exc) from last_exc
