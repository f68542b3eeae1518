"""ZeroMQ channel.

The client side is a DEALER socket maintaining a persistent connection to
a single server; the server side is a ROUTER socket. Both are driven by the
asyncio event loop via :mod:`zmq.asyncio`: sending never suspends the
caller, and a background task per socket feeds inbound messages onward.
"""

from __future__ import annotations

import asyncio
import atexit
import logging
from typing import Callable, Iterable, Optional, Tuple

import zmq
import zmq.asyncio

from ... import config
from ...protocol import factory
from ...protocol.fields import REMOTE_FAULT
from ...protocol.message import MalformedMessage, Message, coerce
from ..base import Channel as BaseChannel
from ..base import TransportConnectionError, TransportPortError
from .framing import from_frames, to_frames

logger = logging.getLogger(__name__)

zmq_context = zmq.asyncio.Context()


def _log_send(future) -> None:
    if future.cancelled():
        return
    exc = future.exception()
    if exc is not None:
        logger.error("send failed: %s", exc)


def _check_send(future, where: str) -> None:
    """Raise if the send already failed; a send that was queued instead
    of completing immediately can only fail later, which is logged."""

    if future.done() and not future.cancelled():
        exc = future.exception()
        if exc is not None:
            raise TransportConnectionError(f"send to {where} failed: {exc}") from exc

    future.add_done_callback(_log_send)


class Channel(BaseChannel):
    """Send messages via a ZeroMQ DEALER socket and receive pushed messages."""

    def __init__(self, address: str, port: int):
        self.address = address
        self.port = int(port)
        self.socket = None
        self._task: Optional[asyncio.Task] = None

    @property
    def is_open(self) -> bool:
        return self.socket is not None

    def open(self) -> None:
        """Connect, and start receiving. Must be called from a running loop."""

        if self.socket is not None:
            return

        loop = asyncio.get_running_loop()

        server = f"tcp://{self.address}:{self.port}"
        identity = f"tether.Channel.{id(self)}".encode()

        self.socket = zmq_context.socket(zmq.DEALER)
        self.socket.setsockopt(zmq.LINGER, 0)
        self.socket.identity = identity
        self.socket.connect(server)

        self._task = loop.create_task(self.run())
        logger.debug("connected to %s", server)

    def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

        if self.socket is not None:
            self.socket.close()
            self.socket = None

    def send(self, msg: Message) -> None:
        """Send *msg* without suspending. Failures that happen immediately
        raise :class:`TransportConnectionError`; a message ZeroMQ has to
        queue is sent later, and a failure at that point is only logged."""

        if self.socket is None:
            raise TransportConnectionError(
                f"channel to {self.address}:{self.port} is not open"
            )

        where = f"{self.address}:{self.port}"

        try:
            future = self.socket.send_multipart(to_frames(msg))
        except zmq.ZMQError as exc:
            raise TransportConnectionError(f"send to {where} failed: {exc}") from exc

        _check_send(future, where)

    async def run(self) -> None:
        while True:
            parts = await self.socket.recv_multipart()

            try:
                _prefix, msg = from_frames(parts)
            except MalformedMessage as e:
                logger.warning("dropping malformed message from %s:%d: %s", self.address, self.port, e)
                continue

            self._received(msg)


Handler = Callable[[Message], Optional[Iterable[object]]]


class Server:
    """Receive messages via a ZeroMQ ROUTER socket, and respond to them.

    Each inbound message is handed to :meth:`req_handler`, which returns
    any number of replies; replies go back to the peer that sent the
    message. A *handler* callable can be supplied instead of subclassing.
    The default handler echoes every message back unchanged.

    If *port* is None the first available port in the configured range is
    used; the *avoid* set enumerates port numbers that should not be
    assigned automatically.

    :ivar port: The port on which this server is listening for connections.
    """

    minimum_port = config.minimum_port
    maximum_port = config.maximum_port

    def __init__(self, address: Optional[str] = None, port: Optional[int] = None,
                 avoid: Optional[set] = None, handler: Optional[Handler] = None):

        self.address = address or "*"
        self.avoid = set(avoid or set())
        self.handler = handler

        self.socket = zmq_context.socket(zmq.ROUTER)
        self.socket.setsockopt(zmq.LINGER, 0)

        if port is None:
            self.port = self._bind_any()
        else:
            self.port = int(port)
            try:
                self.socket.bind(f"tcp://{self.address}:{self.port}")
            except zmq.ZMQError as exc:
                raise TransportPortError(
                    f"port already in use: {self.port}"
                ) from exc

        self._task: Optional[asyncio.Task] = None

    def _bind_any(self) -> int:
        for port in range(self.minimum_port, self.maximum_port + 1):
            if port in self.avoid:
                continue
            try:
                self.socket.bind(f"tcp://{self.address}:{port}")
                return port
            except zmq.ZMQError:
                continue
        raise TransportPortError(
            f"no ports available in range {self.minimum_port}:{self.maximum_port}"
        )

    def start(self) -> None:
        if self._task is None:
            self._task = asyncio.get_running_loop().create_task(self.run())

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None
        self.socket.close()

    # --- request handling hooks ---
    def req_handler(self, msg: Message):
        """Override in subclasses, or supply a handler at construction.

        Return an iterable of replies, or None for no immediate reply (the
        handler is then responsible for any later :meth:`send`).
        """

        if self.handler is not None:
            return self.handler(msg)

        return (msg,)

    def send(self, prefix: Tuple[bytes, ...], msg) -> None:
        future = self.socket.send_multipart(to_frames(coerce(msg), prefix))
        future.add_done_callback(_log_send)

    # --- internal ---
    def _req_incoming(self, prefix: Tuple[bytes, ...], msg: Message) -> None:
        try:
            replies = self.req_handler(msg)
        except Exception as e:
            logger.error("handler failed on %s", msg.type, exc_info=True)
            replies = (factory.fault(REMOTE_FAULT, msg.request_id, e),)

        for reply in replies or ():
            self.send(prefix, reply)

    async def run(self) -> None:
        while True:
            parts = await self.socket.recv_multipart()

            try:
                prefix, msg = from_frames(parts)
            except MalformedMessage as e:
                logger.warning("dropping malformed request: %s", e)
                continue

            self._req_incoming(prefix, msg)


def _cleanup() -> None:
    zmq_context.destroy(linger=0)


atexit.register(_cleanup)
