"""Channel implementations."""

from .. import config

from .base import (
    Channel,
    TransportError,
    TransportTimeout,
    TransportConnectionError,
    TransportPortError,
)

from .loopback import LoopbackChannel
from . import zmq


def channel(address=None, port=None, backend=None):
    """Build a channel using the named *backend*, which defaults to the
    TETHER_TRANSPORT setting. The ZeroMQ backend requires an *address* and
    *port*; the loopback backend ignores them.
    """

    backend = (backend or config.transport).lower()

    if backend == "zmq":
        if address is None or port is None:
            raise ValueError("the zmq transport requires an address and port")
        return zmq.Channel(address, port)
    elif backend == "loopback":
        return LoopbackChannel()
    else:
        raise ValueError(f"unknown TETHER_TRANSPORT backend: {backend!r}")
