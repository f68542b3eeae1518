"""ZMQ multipart framing for protocol messages.

DEALER <-> ROUTER
    (optional routing prefix...), version, message_json
"""

from __future__ import annotations

from typing import Sequence, Tuple

from ...protocol import PROTOCOL_VERSION
from ...protocol import wire
from ...protocol.message import MalformedMessage, Message


def to_frames(msg: Message, prefix: Tuple[bytes, ...] = ()) -> Tuple[bytes, ...]:
    """Encode a protocol Message to ZMQ multipart frames."""

    return tuple(prefix) + (PROTOCOL_VERSION, wire.pack(msg))


def from_frames(parts: Sequence[bytes]) -> Tuple[Tuple[bytes, ...], Message]:
    """Decode multipart frames into (routing prefix, Message).

    ROUTER sockets prepend an identity frame; DEALER sockets do not. We
    expect either:
        [version, message]
    or
        [ident, version, message]
    """

    parts = tuple(parts)

    if len(parts) == 2:
        prefix: Tuple[bytes, ...] = ()
    elif len(parts) == 3:
        prefix = parts[:1]
    else:
        raise MalformedMessage(f"expected 2 or 3 frames, received {len(parts)}")

    their_version, body = parts[len(prefix):]

    if their_version != PROTOCOL_VERSION:
        raise MalformedMessage(
            f"message is protocol {their_version!r}, recipient expects {PROTOCOL_VERSION!r}"
        )

    return prefix, wire.unpack(body)
