""" A :class:`Session` ties one channel to one dispatch bus: it owns the
    correlation registry, the outbound emitter, and the request coordinator,
    and routes everything the channel receives into the registry.
"""

import asyncio
import logging
import threading

from . import transport
from .bus import Bus
from .coordinator import Coordinator, _default
from .emitter import Emitter
from .registry import Registry

logger = logging.getLogger(__name__)


class Session:
    """ Wire a *channel* (a :class:`tether.transport.Channel`) to a *bus*.
        If no bus is provided a private :class:`tether.bus.Bus` is created;
        pass in a shared bus to have transformed messages reach other local
        consumers. The *timeout* is the default for every request issued
        via this session.
    """

    def __init__(self, channel, bus=None, timeout=_default):

        if bus is None:
            bus = Bus()

        self.channel = channel
        self.bus = bus
        self.registry = Registry(bus)
        self.emitter = Emitter(channel)
        self.coordinator = Coordinator(self.registry, self.emitter, bus, timeout)

        channel.receiver = self.registry.on_inbound


    async def __aenter__(self):
        self.open()
        return self


    async def __aexit__(self, *exc_info):
        self.close()


    def open(self):
        """ Open the channel. A session closed earlier can be opened again.
        """

        self.coordinator.open()
        self.channel.open()


    def close(self):
        """ Cancel any outstanding requests, and close the channel.
        """

        self.coordinator.close()
        self.channel.close()


    def emit(self, messages):
        """ Send one or more messages that are not part of any request.
        """

        return self.emitter.emit(messages)


    def initiate(self, matcher, transforms, initial, timeout=_default, until=None):
        """ Start a request; see :func:`tether.coordinator.Coordinator.initiate`.
            The returned :class:`tether.coordinator.RequestHandle` is
            awaitable.
        """

        return self.coordinator.initiate(matcher, transforms, initial, timeout, until)


    async def request(self, matcher, transforms, initial, timeout=_default, until=None):
        """ Start a request and wait for it to complete. The payload of the
            completion signal is returned; a
            :class:`tether.coordinator.RequestError` is raised if the request
            completed with an error, such as a timeout.
        """

        handle = self.initiate(matcher, transforms, initial, timeout, until)
        await handle
        return handle.result()


# end of class Session



_sessions = dict()
_sessions_lock = threading.Lock()


def connect(address, port, bus=None):
    """ Factory function for a ZeroMQ-backed :class:`Session`, already
        opened. Use of this method is encouraged to streamline re-use of
        established connections; the same session is returned for repeated
        calls with the same *address* and *port* from the same event loop.
        Must be called from a running event loop.
    """

    loop = asyncio.get_running_loop()
    key = (address, int(port), loop)
    stale = list()

    with _sessions_lock:

        # A session's receive task belongs to the loop that opened it; once
        # that loop is closed the session can never receive again.

        for cached in list(_sessions.keys()):
            if cached[2].is_closed():
                stale.append(_sessions.pop(cached))

        try:
            session = _sessions[key]
        except KeyError:
            channel = transport.channel(address, port, backend='zmq')
            session = Session(channel, bus)
            session.open()
            _sessions[key] = session

    for old in stale:
        old.close()

    return session


def disconnect(address, port):
    """ Close and forget a session established with :func:`connect`. If
        called from a running event loop only the session belonging to that
        loop is closed, otherwise every session for *address* and *port* is.
    """

    port = int(port)

    try:
        loop = asyncio.get_running_loop()
    except RuntimeError:
        loop = None

    with _sessions_lock:
        keys = list()
        for key in _sessions.keys():
            if key[:2] != (address, port):
                continue
            if loop is None or key[2] is loop:
                keys.append(key)

        sessions = [_sessions.pop(key) for key in keys]

    for session in sessions:
        session.close()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
