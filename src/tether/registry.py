""" The correlation registry is the multiplexing point between the inbound
    stream and the pending requests: every message arriving from the channel
    is tested against every registered matcher, and matches are turned into
    dispatched messages by the request's transforms.
"""

import logging
import threading

from .protocol import factory
from .protocol.fields import MATCHER_FAULT, TRANSFORM_FAULT
from .protocol.message import MalformedMessage, coerce

logger = logging.getLogger(__name__)


class Pending:
    """ The registry's record of one outstanding request: the identity,
        the matcher (already scoped to that identity by the coordinator),
        and the ordered transforms.
    """

    def __init__(self, id, matcher, transforms):
        self.id = id
        self.matcher = matcher
        self.transforms = tuple(transforms)


    def __repr__(self):
        return "Pending(%s, %d transform(s))" % (self.id, len(self.transforms))


# end of class Pending



class Registry:
    """ Map request identities to :class:`Pending` records, and evaluate
        inbound messages against them. Transformed output is published on
        the supplied *bus*.
    """

    def __init__(self, bus):

        self.bus = bus
        self._pending = dict()

        # The mapping is the only shared mutable state. Matchers and
        # transforms are always invoked outside the lock, so that they can
        # safely re-enter the registry (for example, by completing a request).

        self._lock = threading.Lock()


    def __contains__(self, id):
        return id in self._pending


    def __len__(self):
        return len(self._pending)


    def identities(self):
        """ Return a list of the currently registered identities.
        """

        with self._lock:
            return list(self._pending.keys())


    def register(self, id, matcher, transforms):
        """ Register a new pending request. A given identity can only be
            registered once; attempting to register it again while it is
            still pending raises ValueError.
        """

        if callable(transforms):
            transforms = (transforms,)
        else:
            transforms = tuple(transforms)

        if len(transforms) == 0:
            raise ValueError('at least one transform is required')

        pending = Pending(id, matcher, transforms)

        with self._lock:
            if id in self._pending:
                raise ValueError('request identity already registered: ' + repr(id))
            self._pending[id] = pending

        logger.debug("registered %s", pending)
        return pending


    def unregister(self, id):
        """ Remove the pending request for *id*. Removing an identity that
            is not registered is not an error; the removed :class:`Pending`
            record is returned, or None if there was nothing to remove.
        """

        with self._lock:
            pending = self._pending.pop(id, None)

        if pending is not None:
            logger.debug("unregistered %s", id)

        return pending


    def on_inbound(self, message):
        """ Handle one message arriving from the channel. The message may be
            a :class:`tether.protocol.Message`, a mapping, or raw bytes;
            anything malformed is logged and dropped before any matcher sees
            it. Returns the number of messages dispatched as a result.
        """

        try:
            message = coerce(message)
        except MalformedMessage as e:
            logger.warning("dropping malformed inbound message: %s", e)
            return 0

        with self._lock:
            snapshot = list(self._pending.values())

        dispatched = 0

        for pending in snapshot:

            # Dispatching output for an earlier entry in the snapshot can
            # complete (and unregister) a later one.

            if pending.id not in self._pending:
                continue

            try:
                matched = pending.matcher(message)
            except Exception as e:
                logger.error("matcher for %s failed on %s", pending.id, message.type, exc_info=True)
                self.unregister(pending.id)
                self.bus.publish(factory.fault(MATCHER_FAULT, pending.id, e))
                dispatched += 1
                continue

            if not matched:
                continue

            # Apply every transform before publishing anything. Publishing
            # the first output may complete the request, but all outputs of
            # the same match are still dispatched.

            outputs = self._transform(pending, message)

            for output in outputs:
                self.bus.publish(output)
                dispatched += 1

        return dispatched


    def _transform(self, pending, message):
        """ Apply each of the request's transforms to *message*, returning
            the tagged outputs in order. A transform that raises, or that
            returns something that is not a message, is replaced by an
            error-flagged signal carrying the same identity.
        """

        outputs = list()

        for transform in pending.transforms:
            try:
                output = coerce(transform(message))
            except Exception as e:
                logger.error("transform for %s failed on %s", pending.id, message.type, exc_info=True)
                output = factory.fault(TRANSFORM_FAULT, pending.id, e)
            else:
                output = output.tag(pending.id)

            outputs.append(output)

        return outputs


# end of class Registry


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
