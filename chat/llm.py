# chat/llm.py
"""
Gemini generation adapter.

`GeminiLLMClient` is the only place that talks to google.generativeai. It is
built explicitly (usually through `GeminiLLMClient.from_settings()`) and handed
to the chat service, so tests can swap in any object with a matching
`generate(contents)` method.
"""
import os
import logging
from typing import List, Protocol, runtime_checkable

# Quiet down gRPC noise from the SDK
os.environ.setdefault("GRPC_VERBOSITY", "ERROR")
os.environ.setdefault("GRPC_TRACE", "")

from django.conf import settings
import google.generativeai as genai

logger = logging.getLogger(__name__)


# ===== Exceptions =====

class GeminiError(RuntimeError):
    ...


class GeminiBlocked(GeminiError):
    ...


class GeminiEmptyResponse(GeminiError):
    ...


class GeminiConfigError(GeminiError):
    ...


# ===== Base config =====

DEFAULT_MODEL_NAME = "gemini-2.5-flash"
DEFAULT_TIMEOUT_S = 60

GENCFG = {
    "temperature": 0.7,
}

BLOCKED_FINISH_REASONS = {"safety", "blocked", "prohibited_content"}


def _extract_text(resp) -> str:
    """
    Pull the reply text out of a Gemini SDK response (or a test double).

    Supports resp.candidates[..].content.parts[..].text, then resp.text,
    then a plain string response. Always returns a str.
    """
    if isinstance(resp, str):
        return resp.strip()

    chunks = []
    for c in getattr(resp, "candidates", None) or []:
        content = getattr(c, "content", None)
        for p in getattr(content, "parts", None) or []:
            txt = getattr(p, "text", "") or ""
            if isinstance(txt, str) and txt:
                chunks.append(txt)
        if chunks:
            # first candidate with text wins
            return "".join(chunks).strip()

    # resp.text raises ValueError on the real SDK when there are no parts
    try:
        t = getattr(resp, "text", "") or ""
    except ValueError:
        return ""
    return t.strip() if isinstance(t, str) else ""


def _finish_reason_name(candidate) -> str:
    finish = getattr(candidate, "finish_reason", None)
    if finish is None:
        return ""
    # SDK returns an enum; tests often use plain strings
    name = getattr(finish, "name", finish)
    return str(name).lower()


def _check_block(resp) -> None:
    fb = getattr(resp, "prompt_feedback", None)
    if fb:
        br = getattr(fb, "block_reason", None)
        if br:
            raise GeminiBlocked(f"blocked: {getattr(br, 'name', br)}")

    candidates = getattr(resp, "candidates", None) or []
    if candidates and _finish_reason_name(candidates[0]) in BLOCKED_FINISH_REASONS:
        raise GeminiBlocked(f"finish_reason={_finish_reason_name(candidates[0])}")


# ===== Client =====

@runtime_checkable
class LLMClient(Protocol):
    def generate(self, contents: List[dict]) -> str:
        ...


class GeminiLLMClient:
    """Adapter over google.generativeai GenerativeModel."""

    def __init__(self, model, *, timeout_s: int = DEFAULT_TIMEOUT_S, generation_config: dict | None = None):
        self._model = model
        self.timeout_s = timeout_s
        self.generation_config = dict(generation_config or GENCFG)

    @classmethod
    def from_settings(cls) -> "GeminiLLMClient":
        """Build a client from GEMINI_* settings."""
        api_key = getattr(settings, "GEMINI_API_KEY", None)
        if not api_key:
            raise GeminiConfigError("GEMINI_API_KEY missing")

        model_name = getattr(settings, "GEMINI_MODEL", None) or DEFAULT_MODEL_NAME
        try:
            genai.configure(api_key=api_key)
            model = genai.GenerativeModel(model_name)
        except Exception as e:
            raise GeminiConfigError(f"gemini_config_error: {e}") from e

        logger.info("gemini_client_ready model=%s", model_name)
        return cls(
            model,
            timeout_s=getattr(settings, "GEMINI_REQUEST_TIMEOUT_S", DEFAULT_TIMEOUT_S),
        )

    def generate(self, contents: List[dict]) -> str:
        """
        Send the conversation and return the reply text.

        SDK exceptions (google.api_core) propagate unchanged so the retry
        controller can classify them; blocked and empty replies raise
        GeminiBlocked / GeminiEmptyResponse.
        """
        resp = self._model.generate_content(
            contents,
            generation_config=self.generation_config,
            request_options={"timeout": self.timeout_s},
        )
        _check_block(resp)

        text = _extract_text(resp)
        if not text:
            raise GeminiEmptyResponse("empty_response")
        return text
