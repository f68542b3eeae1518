"""Channel interface.

This is the (small) contract that channel implementations should follow.
It lives outside :mod:`tether.protocol` so the protocol remains
transport-agnostic.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Callable, Optional

from ..protocol.message import Message

logger = logging.getLogger(__name__)


# Transport agnostic exceptions

class TransportError(Exception):
    """Base class for all transport-layer errors."""


class TransportTimeout(TransportError):
    """A message could not be sent in a timely fashion."""


class TransportConnectionError(TransportError):
    """The transport could not establish or maintain a connection."""


class TransportPortError(TransportError):
    """No suitable port could be bound or connected."""


class Channel(ABC):
    """Minimal contract for a bidirectional message channel.

    Outbound messages go through :meth:`send`. Inbound messages are handed,
    one at a time, to the :attr:`receiver` callable; a session points the
    receiver at its registry's ``on_inbound``.
    """

    receiver: Optional[Callable[[Message], object]] = None

    @abstractmethod
    def open(self) -> None:
        """Establish the underlying connection/socket."""

    @abstractmethod
    def close(self) -> None:
        """Tear down the underlying connection/socket."""

    @abstractmethod
    def send(self, msg: Message) -> None:
        """Send a protocol Message."""

    @property
    def is_open(self) -> bool:
        """Whether the channel is currently connected."""
        return False

    def _received(self, msg) -> None:
        receiver = self.receiver
        if receiver is None:
            logger.debug("%s: no receiver, dropping inbound message", self.__class__.__name__)
            return
        receiver(msg)
