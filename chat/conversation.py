# chat/conversation.py
"""
Turns persisted chat messages into the `contents` list Gemini expects.

Gemini wants alternating turns. A session can end in one or more user
messages (a reply failed, or the caller appended without generating), and
the request adds the new user message itself, so trailing user turns in the
history are dropped before that message is appended. An unanswered user
message can also end up mid-history once a later reply succeeds; such runs
are merged into a single user turn.
"""
from typing import Iterable, List, Optional

ROLE_MAP = {"user": "user", "assistant": "model"}

USER_TURN = "user"


def _role_and_text(message):
    if isinstance(message, dict):
        return message.get("role"), message.get("content", "")
    return message.role, message.content


def to_turns(messages: Iterable) -> List[dict]:
    """Map ChatMessage rows (or role/content dicts) to Gemini turns, in order."""
    turns = []
    for message in messages:
        role, text = _role_and_text(message)
        if role not in ROLE_MAP:
            raise ValueError(f"unknown message role: {role!r}")
        turns.append({"role": ROLE_MAP[role], "parts": [text]})
    return turns


def trim_trailing_user_turns(turns: List[dict]) -> List[dict]:
    trimmed = list(turns)
    while trimmed and trimmed[-1]["role"] == USER_TURN:
        trimmed.pop()
    return trimmed


def merge_user_runs(turns: List[dict]) -> List[dict]:
    """Fold each run of consecutive user turns into one turn holding all their parts."""
    merged = []
    for turn in turns:
        if merged and turn["role"] == USER_TURN and merged[-1]["role"] == USER_TURN:
            merged[-1] = {"role": USER_TURN, "parts": merged[-1]["parts"] + turn["parts"]}
        else:
            merged.append(turn)
    return merged


def assemble_contents(messages: Iterable, new_message: Optional[str] = None) -> List[dict]:
    contents = merge_user_runs(trim_trailing_user_turns(to_turns(messages)))
    if new_message is not None:
        contents.append({"role": USER_TURN, "parts": [new_message]})
    return contents
