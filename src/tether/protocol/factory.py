"""Convenience constructors for protocol messages."""

from __future__ import annotations

import traceback
import uuid
from typing import Any, Optional

from .message import Message


def identity() -> str:
    """Return a fresh request identity. Identities are never re-used."""
    return uuid.uuid4().hex


def message(type: str, payload: Any = None, *, error: Optional[bool] = None, **meta) -> Message:
    return Message(type=type, payload=payload, error=error, meta=meta or None)


def tag(msg: Message, request_id: str) -> Message:
    return msg.tag(request_id)


def fault(kind: str, request_id: Optional[str], exception: Optional[BaseException] = None, text: Optional[str] = None) -> Message:
    """Create an error-flagged signal for *request_id*.

    The payload describes the failure the same way regardless of where it
    happened: the exception class name, its text, and the formatted
    traceback when an *exception* is supplied.
    """

    error = dict()

    if exception is None:
        error['type'] = kind.rsplit('/', 1)[-1]
        error['text'] = text or ''
    else:
        error['type'] = exception.__class__.__name__
        error['text'] = text or str(exception)
        error['debug'] = ''.join(traceback.format_exception(
            exception.__class__, exception, exception.__traceback__))

    msg = Message(type=kind, payload=error, error=True)

    if request_id is not None:
        msg = msg.tag(request_id)

    return msg
