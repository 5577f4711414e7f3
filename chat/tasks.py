# chat/tasks.py
"""
Out-of-band reply generation.

Creating a session returns immediately; the first reply is produced on an
executor and the caller gets the Future back so completion and failure can
be observed.
"""
import logging
import threading
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from typing import Callable

from django.conf import settings
from django.db import connection

logger = logging.getLogger(__name__)


class InlineExecutor(Executor):
    """Runs submitted work in the calling thread; returns a completed Future."""

    def submit(self, fn, /, *args, **kwargs):
        fut = Future()
        try:
            result = fn(*args, **kwargs)
        except BaseException as e:
            fut.set_exception(e)
        else:
            fut.set_result(result)
        return fut


_shared_executor = None
_shared_lock = threading.Lock()


def _get_shared_executor() -> Executor:
    global _shared_executor
    with _shared_lock:
        if _shared_executor is None:
            _shared_executor = ThreadPoolExecutor(
                max_workers=getattr(settings, "CHAT_REPLY_WORKERS", 4),
                thread_name_prefix="chat-reply",
            )
        return _shared_executor


def default_executor() -> Executor:
    if getattr(settings, "CHAT_REPLY_INLINE", False):
        return InlineExecutor()
    return _get_shared_executor()


class ReplyDispatcher:
    def __init__(self, executor: Executor | None = None):
        self.executor = executor or default_executor()

    def _run(self, fn: Callable, *args):
        try:
            return fn(*args)
        finally:
            # worker threads own their own DB connection
            if not isinstance(self.executor, InlineExecutor):
                connection.close()

    def submit(self, session_id, fn: Callable, *args) -> Future:
        fut = self.executor.submit(self._run, fn, *args)

        def _log_outcome(f: Future):
            exc = f.exception()
            if exc is not None:
                logger.error("background reply failed session=%s: %s", session_id, exc)
            else:
                logger.info("background reply done session=%s", session_id)

        fut.add_done_callback(_log_outcome)
        return fut
