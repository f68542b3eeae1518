""" The outbound side: put messages on the channel.
"""

import logging

from .protocol.message import coerce

logger = logging.getLogger(__name__)


class Emitter:
    """ Send Standard Messages across a *channel*, which is expected to be
        an instance of :class:`tether.transport.Channel`. Messages are sent
        unmodified; any request identity has already been attached by the
        caller.
    """

    def __init__(self, channel):
        self.channel = channel


    def emit(self, messages):
        """ Send one message, or a list of messages. A list is sent one
            element at a time, in order, with no atomicity across the list:
            if sending the third element fails, the first two have still
            been sent. The sent messages are returned as a list.
        """

        if isinstance(messages, (list, tuple)):
            pass
        else:
            messages = (messages,)

        sent = list()

        for message in messages:
            message = coerce(message)
            self.channel.send(message)
            sent.append(message)
            logger.debug("emitted %s (requestId=%s)", message.type, message.request_id)

        return sent


# end of class Emitter


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
