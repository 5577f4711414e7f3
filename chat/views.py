# chat/views.py
import functools
import logging

from django.conf import settings
from django.db import DatabaseError
from django_ratelimit.decorators import ratelimit
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import AllowAny
from rest_framework.response import Response

from authentication.helpers import parse_json_body
from .llm import GeminiConfigError
from .retry import GenerationFailed
from .serializers import ChatSessionSerializer, ChatSessionSummarySerializer
from .service import ChatService, ChatError

log = logging.getLogger(__name__)

MESSAGE_KEYS = ("message", "content", "q")


def build_chat_service() -> ChatService:
    return ChatService()


def _error(message: str, status: int) -> Response:
    return Response({"error": message}, status=status)


def _current_user_id(request):
    user = getattr(request, "user", None)
    if user is not None and getattr(user, "is_authenticated", False):
        return user.user_id
    return None


def _message_from(data: dict):
    for key in MESSAGE_KEYS:
        if key in data:
            return data[key]
    return None


def _payload(request, *, required: bool = False):
    """Return (data, error_response). An empty body is an error when required."""
    if required and not (request.body or b"").strip():
        return None, _error("Request body is required", 400)
    data, error = parse_json_body(request)
    if error is not None:
        return None, _error("invalid payload", 400)
    return data, None


def chat_endpoint(operation):
    """
    Resolve the caller's identity and map service failures to JSON errors.
    The wrapped view receives the user id as its second argument.
    """
    def decorator(fn):
        @functools.wraps(fn)
        def wrapped(request, *args, **kwargs):
            user_id = _current_user_id(request)
            if user_id is None:
                return _error("Unauthorized", 401)
            sid = kwargs.get("sid")
            try:
                return fn(request, user_id, *args, **kwargs)
            except ChatError as e:
                log.info("%s rejected session=%s: %s", operation, sid, e)
                return _error(str(e), e.status)
            except GenerationFailed as e:
                log.error(
                    "%s upstream failure session=%s attempts=%s: %r",
                    operation, sid, e.attempts, e.last_error,
                )
                return _error(str(e) or "Failed to generate AI response", 502)
            except GeminiConfigError as e:
                log.error("%s generation client unavailable: %s", operation, e)
                return _error("Generation service unavailable", 503)
            except DatabaseError:
                log.exception("%s persistence failure session=%s", operation, sid)
                return _error("Storage unavailable", 503)
        return wrapped
    return decorator


@api_view(["GET", "POST"])
@permission_classes([AllowAny])
@chat_endpoint("sessions")
def sessions(request, user_id):
    """GET: list the caller's sessions, newest first.
       POST: create a session from a first message and start the reply.
    """
    svc = build_chat_service()

    if request.method == "GET":
        data = ChatSessionSummarySerializer(svc.list_sessions(user_id), many=True).data
        return Response({"sessions": data}, status=200)

    data, error = _payload(request)
    if error:
        return error
    sess, future = svc.create_session(user_id, _message_from(data))
    body = ChatSessionSerializer(sess).data
    body["reply_pending"] = future is not None and not future.done()
    return Response(body, status=201)


@api_view(["GET", "PATCH", "DELETE"])
@permission_classes([AllowAny])
@chat_endpoint("session_detail")
def session_detail(request, user_id, sid):
    svc = build_chat_service()

    if request.method == "GET":
        return Response(ChatSessionSerializer(svc.get_session(user_id, sid)).data, status=200)

    if request.method == "PATCH":
        data, error = _payload(request)
        if error:
            return error
        sess = svc.append_user_message(user_id, sid, _message_from(data))
        return Response(ChatSessionSerializer(sess).data, status=200)

    svc.delete_session(user_id, sid)
    return Response({"success": True}, status=200)


@api_view(["POST"])
@permission_classes([AllowAny])
@chat_endpoint("post_message")
def post_message(request, user_id, sid):
    data, error = _payload(request)
    if error:
        return error
    sess = build_chat_service().append_user_message(user_id, sid, _message_from(data))
    return Response(ChatSessionSerializer(sess).data, status=201)


def _reply_rate(group, request):
    return getattr(settings, "CHAT_REPLY_RATE", "30/m")


@ratelimit(key="user_or_ip", rate=_reply_rate, method="POST", block=False)
@api_view(["POST"])
@permission_classes([AllowAny])
@chat_endpoint("reply")
def reply(request, user_id, sid):
    """
    Generate the assistant reply for a session.

    Body: {"message": "<latest user message>"}; without a message the latest
    stored user message is answered. Empty or non-JSON bodies are rejected
    before the model is called.
    """
    if getattr(request, "limited", False):
        return _error("Too many requests", 429)

    data, error = _payload(request, required=True)
    if error:
        return error

    text = build_chat_service().generate_reply(user_id, sid, _message_from(data))
    return Response({"response": text}, status=200)
