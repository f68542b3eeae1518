"""Serialize protocol Messages to and from bytes.

The encoding is compact JSON of the four-field envelope, with fields left
at None omitted. Decoding validates against :class:`Message`; anything that
is not a well-formed envelope raises :class:`MalformedMessage`.
"""

from __future__ import annotations

from .. import json
from .message import MalformedMessage, Message


_decoder = json.typed_decoder(Message)


def pack(msg: Message) -> bytes:
    """Serialize Message -> bytes."""

    return json.dumps(msg)


def unpack(data) -> Message:
    """Deserialize bytes -> Message."""

    try:
        return _decoder.decode(data)
    except json.DecodeError as e:
        raise MalformedMessage(str(e)) from e
