"""In-process channel.

Nothing leaves the process: sent messages are recorded, and inbound
messages are whatever the caller injects, or whatever an optional responder
produces in reply to each sent message.
"""

from __future__ import annotations

import asyncio
from typing import Callable, Iterable, List, Optional

from ..protocol.message import Message
from .base import Channel, TransportConnectionError


Responder = Callable[[Message], Optional[Iterable[object]]]


class LoopbackChannel(Channel):
    """A channel whose remote side is a Python callable.

    If a *responder* is supplied it is called with every sent message and
    may return any number of replies. Replies are delivered on the next
    pass of the running event loop, the way a real remote reply would
    arrive; with no running loop they are delivered immediately.
    """

    def __init__(self, responder: Optional[Responder] = None):
        self.responder = responder
        self.sent: List[Message] = []
        self._open = False

    @property
    def is_open(self) -> bool:
        return self._open

    def open(self) -> None:
        self._open = True

    def close(self) -> None:
        self._open = False

    def send(self, msg: Message) -> None:
        if not self._open:
            raise TransportConnectionError("loopback channel is not open")

        self.sent.append(msg)

        if self.responder is None:
            return

        for reply in self.responder(msg) or ():
            self._schedule(reply)

    def inject(self, msg) -> None:
        """Deliver *msg* as if it had arrived from the remote side."""
        self._received(msg)

    def _schedule(self, reply) -> None:
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            self.inject(reply)
        else:
            loop.call_soon(self.inject, reply)
