# chat/service.py
"""
Chat session orchestration: ownership checks, message appends and reply
generation. Views translate the exceptions below into HTTP statuses.
"""
from __future__ import annotations

import uuid
import logging
from concurrent.futures import Future
from typing import List, Optional, Tuple

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from .conversation import assemble_contents
from .llm import GeminiLLMClient, LLMClient
from .models import ChatMessage, ChatSession, DEFAULT_TITLE
from .retry import generate_with_retries, DEFAULT_MAX_ATTEMPTS, DEFAULT_BASE_DELAY_MS
from .tasks import ReplyDispatcher

logger = logging.getLogger(__name__)


# ===== Exceptions =====

class ChatError(Exception):
    status = 400


class InvalidSessionId(ChatError):
    def __init__(self):
        super().__init__("Invalid chat ID")


class EmptyMessage(ChatError):
    def __init__(self):
        super().__init__("Message is required")


class NothingToAnswer(ChatError):
    def __init__(self):
        super().__init__("No user message to answer")


class SessionNotFound(ChatError):
    status = 404

    def __init__(self):
        super().__init__("Chat not found")


def parse_session_id(raw) -> uuid.UUID:
    if isinstance(raw, uuid.UUID):
        return raw
    try:
        return uuid.UUID(str(raw))
    except (TypeError, ValueError, AttributeError):
        raise InvalidSessionId()


def clean_message(message) -> str:
    """Reject missing or whitespace-only messages; the text itself is stored as sent."""
    if not isinstance(message, str) or not message.strip():
        raise EmptyMessage()
    return message


class ChatService:
    """
    Owns a generation client handle and a reply dispatcher; both can be
    injected (tests pass a scripted fake client and an inline executor).
    """

    def __init__(
        self,
        client: LLMClient | None = None,
        *,
        dispatcher: ReplyDispatcher | None = None,
        max_attempts: int | None = None,
        base_delay_ms: float | None = None,
    ):
        self._client = client
        self.dispatcher = dispatcher or ReplyDispatcher()
        self.max_attempts = (
            max_attempts if max_attempts is not None
            else getattr(settings, "CHAT_MAX_ATTEMPTS", DEFAULT_MAX_ATTEMPTS)
        )
        self.base_delay_ms = (
            base_delay_ms if base_delay_ms is not None
            else getattr(settings, "CHAT_BASE_DELAY_MS", DEFAULT_BASE_DELAY_MS)
        )

    @property
    def client(self) -> LLMClient:
        # built lazily so reads and deletes never need a Gemini key
        if self._client is None:
            self._client = GeminiLLMClient.from_settings()
        return self._client

    # ----- reads -----

    def _owned_session(self, user_id, session_id) -> ChatSession:
        sid = parse_session_id(session_id)
        try:
            return ChatSession.objects.get(pk=sid, user_id=user_id)
        except ChatSession.DoesNotExist:
            raise SessionNotFound()

    def list_sessions(self, user_id) -> List[ChatSession]:
        return list(
            ChatSession.objects.filter(user_id=user_id)
            .only("id", "title", "updated_at", "created_at")
            .order_by("-updated_at")
        )

    def get_session(self, user_id, session_id) -> ChatSession:
        return self._owned_session(user_id, session_id)

    # ----- writes -----

    def create_session(self, user_id, message, *, generate: bool = True) -> Tuple[ChatSession, Optional[Future]]:
        """
        Persist a session holding one user message and return it at once.
        The first reply is produced by the dispatcher; its Future is returned
        with the session (None when generate=False).
        """
        text = clean_message(message)

        with transaction.atomic():
            sess = ChatSession.objects.create(user_id=user_id, title=DEFAULT_TITLE)
            ChatMessage.objects.create(session=sess, role=ChatMessage.ROLE_USER, content=text)
            # first save with a message derives the title
            sess.save(update_fields=["title", "updated_at"])

        logger.info("chat_session_created session=%s user=%s", sess.id, user_id)

        future = None
        if generate:
            future = self.dispatcher.submit(sess.id, self.generate_reply, user_id, sess.id, text)
        return sess, future

    def append_user_message(self, user_id, session_id, message) -> ChatSession:
        text = clean_message(message)
        sess = self._owned_session(user_id, session_id)
        self._append(sess, ChatMessage.ROLE_USER, text)
        logger.info("chat_user_message_appended session=%s", sess.id)
        return sess

    def _append(self, sess: ChatSession, role: str, text: str) -> ChatMessage:
        with transaction.atomic():
            msg = ChatMessage.objects.create(session=sess, role=role, content=text)
            sess.updated_at = timezone.now()
            sess.save(update_fields=["title", "updated_at"])
        return msg

    def generate_reply(self, user_id, session_id, message: str | None = None) -> str:
        """
        Answer `message` (or the latest stored user message) in the context of
        the session history, then persist the assistant reply.

        The user's message is never rolled back when generation fails.
        """
        sess = self._owned_session(user_id, session_id)
        history = list(sess.ordered_messages())

        if message is None:
            # only an unanswered user message can be answered implicitly
            if not history or history[-1].role != ChatMessage.ROLE_USER:
                raise NothingToAnswer()
            message = history[-1].content
        else:
            message = clean_message(message)

        contents = assemble_contents(history, message)
        text = generate_with_retries(
            self.client,
            contents,
            max_attempts=self.max_attempts,
            base_delay_ms=self.base_delay_ms,
        )

        self._append(sess, ChatMessage.ROLE_ASSISTANT, text)
        logger.info("chat_reply_appended session=%s chars=%s", sess.id, len(text))
        return text

    def delete_session(self, user_id, session_id) -> None:
        sid = parse_session_id(session_id)
        deleted, _ = ChatSession.objects.filter(pk=sid, user_id=user_id).delete()
        if not deleted:
            raise SessionNotFound()
        logger.info("chat_session_deleted session=%s", sid)
