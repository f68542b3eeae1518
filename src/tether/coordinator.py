""" The request coordinator orchestrates one logical request at a time:
    mint an identity, register the request, send the initial message, and
    wait for the first dispatched message tagged with that identity. The
    wait is an :class:`asyncio.Future`; nothing here blocks a thread.
"""

import asyncio
import logging

from . import config
from .protocol import factory
from .protocol.fields import CANCELLED, COMPLETED, EMIT_FAULT, INIT, REGISTERED, TIMEOUT
from .protocol.message import coerce

logger = logging.getLogger(__name__)

_default = object()


class RequestError(Exception):
    """ A request completed with an error-flagged signal. The signal itself
        is available as the *response* attribute.
    """

    def __init__(self, response):

        self.response = response

        payload = response.payload
        if isinstance(payload, dict):
            text = "%s: %s" % (payload.get('type', response.type), payload.get('text', ''))
        else:
            text = response.type

        Exception.__init__(self, text)


class RequestTimeout(RequestError):
    """ No completion signal was observed before the request's timeout.
    """


class RequestCancelled(RequestError):
    """ The request was cancelled before it completed.
    """


_errors = {
    TIMEOUT: RequestTimeout,
    CANCELLED: RequestCancelled,
}


def raise_for(response):
    """ Raise the appropriate :class:`RequestError` if *response* is
        error-flagged, otherwise do nothing.
    """

    if response.error:
        error = _errors.get(response.type, RequestError)
        raise error(response)



class RequestHandle:
    """ The caller's view of one request. A handle is awaitable; awaiting
        it suspends the caller until the request completes, and returns the
        completion signal (a :class:`tether.protocol.Message`).

        Any number of tasks may await the same handle. Cancelling one of
        them leaves the request pending for the others; call :func:`cancel`
        to give up on the request itself.

        Once the request is complete the handle is inert: its identity is no
        longer registered anywhere, and no further inbound messages will
        produce output on its behalf.

        :ivar id: The request identity.
        :ivar state: One of INIT, REGISTERED, or COMPLETED.
        :ivar response: The completion signal, or None if still pending.
        :ivar dispatched: How many tagged messages have been observed.
    """

    def __init__(self, coordinator, id, loop, until=None):

        self.id = id
        self.state = INIT
        self.response = None
        self.dispatched = 0

        self._coordinator = coordinator
        self._loop = loop
        self._until = until
        self._timer = None
        self._future = loop.create_future()


    def __await__(self):
        return asyncio.shield(self._future).__await__()


    def __repr__(self):
        return "RequestHandle(%s, %s)" % (self.id, self.state)


    async def wait(self):
        """ Equivalent to awaiting the handle directly.
        """

        return await asyncio.shield(self._future)


    def poll(self):
        """ Return True if the request is complete, otherwise return False.
        """

        return self.state == COMPLETED


    def result(self):
        """ Return the payload of the completion signal. The appropriate
            :class:`RequestError` is raised if the signal is error-flagged,
            and RuntimeError is raised if the request is still pending.
        """

        if self.response is None:
            raise RuntimeError('request is still pending: ' + str(self.id))

        raise_for(self.response)
        return self.response.payload


    def cancel(self):
        """ Complete the request with an error-flagged cancellation signal.
            Returns False if the request was already complete.
        """

        if self.state == COMPLETED:
            return False

        signal = factory.fault(CANCELLED, self.id, text='request cancelled')
        self._coordinator.bus.publish(signal)
        return True


    def _expire(self, timeout):

        self._timer = None

        if self.state == COMPLETED:
            return

        logger.warning("request %s timed out after %.2f sec", self.id, timeout)
        text = "no response in %.2f sec" % (timeout)
        signal = factory.fault(TIMEOUT, self.id, text=text)
        self._coordinator.bus.publish(signal)


    def _observe(self, message):
        """ A message tagged with this request's identity was dispatched.
            Complete the request unless a designated terminal predicate says
            otherwise; error-flagged signals always complete the request.
        """

        if self.state == COMPLETED:
            return

        self.dispatched += 1

        if self._until is not None and not message.error:
            if not self._until(message):
                return

        self._complete(message)


    def _complete(self, message):

        self.state = COMPLETED
        self.response = message

        # Retire the identity at the moment of observation, rather than when
        # the waiting task resumes; anything that arrives in between must
        # not produce further output.

        self._coordinator._retire(self)

        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is self._loop:
            self._resolve(message)
        elif self._loop.is_closed():
            logger.debug("request %s completed after its event loop closed", self.id)
        else:
            self._loop.call_soon_threadsafe(self._resolve, message)


    def _resolve(self, message):
        if not self._future.done():
            self._future.set_result(message)


# end of class RequestHandle



class Coordinator:
    """ Issue requests against a :class:`tether.registry.Registry`, an
        :class:`tether.emitter.Emitter`, and a :class:`tether.bus.Bus`.
        The coordinator subscribes to the bus once, and routes every
        dispatched message carrying a request identity to the handle that
        owns that identity.

        :ivar timeout: Default number of seconds before a request is
            completed with a timeout signal; None means wait indefinitely.
    """

    timeout = config.timeout

    def __init__(self, registry, emitter, bus, timeout=_default):

        self.registry = registry
        self.emitter = emitter
        self.bus = bus
        self._handles = dict()

        if timeout is not _default:
            self.timeout = timeout

        self._subscription = None
        self.open()


    def __len__(self):
        return len(self._handles)


    def open(self):
        """ Start watching the bus. Calling this method again after
            :func:`close` resumes routing; it has no effect if the
            coordinator is already watching the bus.
        """

        if self._subscription is None:
            self._subscription = self.bus.subscribe(self._observe)


    def close(self):
        """ Cancel any outstanding requests, and stop watching the bus.
        """

        for handle in list(self._handles.values()):
            handle.cancel()

        if self._subscription is not None:
            self.bus.unsubscribe(self._subscription)
            self._subscription = None


    def initiate(self, matcher, transforms, initial, timeout=_default, until=None):
        """ Start a request, and return its :class:`RequestHandle`.

            The *matcher* is a predicate over inbound messages; it only ever
            sees messages carrying this request's identity. The *transforms*
            are either one callable or an ordered sequence of callables, each
            mapping a matched inbound message to one message to dispatch.
            The *initial* message, or list of messages, is tagged with the
            identity and sent once registration is complete.

            The request completes on the first dispatched message tagged with
            its identity. If *until* is provided it designates which
            dispatched messages count as terminal; error-flagged signals are
            always terminal. The *timeout* defaults to :attr:`timeout`.

            This method must be called from a running event loop. It does not
            suspend; only awaiting the returned handle does.
        """

        loop = asyncio.get_running_loop()

        if timeout is _default:
            timeout = self.timeout

        id = factory.identity()
        handle = RequestHandle(self, id, loop, until)

        def correlated(message):
            if message.request_id != id:
                return False
            return bool(matcher(message))

        if isinstance(initial, (list, tuple)):
            tagged = [factory.tag(coerce(one), id) for one in initial]
        else:
            tagged = factory.tag(coerce(initial), id)

        # Registration must precede emission, otherwise a fast reply could
        # arrive before the registry knows to look for it.

        self.registry.register(id, correlated, transforms)
        self._handles[id] = handle
        handle.state = REGISTERED

        if timeout:
            handle._timer = loop.call_later(timeout, handle._expire, timeout)

        try:
            self.emitter.emit(tagged)
        except Exception as e:
            logger.error("failed to emit initial message for %s", id, exc_info=True)
            self.bus.publish(factory.fault(EMIT_FAULT, id, e))
            raise

        return handle


    def _observe(self, message):

        id = message.request_id
        if id is None:
            return

        try:
            handle = self._handles[id]
        except KeyError:
            return

        handle._observe(message)


    def _retire(self, handle):

        self._handles.pop(handle.id, None)
        self.registry.unregister(handle.id)

        timer = handle._timer
        if timer is not None:
            handle._timer = None
            timer.cancel()


# end of class Coordinator


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
