""" A class representation of a tether message. There is exactly one kind
    of message: the same four-field envelope is used for messages sent to
    the remote side, messages received from it, and messages dispatched on
    the local bus.
"""

from typing import Any, Dict, Mapping, Optional

import msgspec

from .fields import REQUEST_ID


# This is the version of the on-the-wire protocol implemented here. The
# version is identified by a single byte, sent as its own frame.

version = b'a'


class MalformedMessage(ValueError):
    """ Raised when something that claims to be a message does not satisfy
        the envelope invariants: *type* is missing or not a string, or there
        are fields other than type, payload, error, and meta.
    """


class Message(msgspec.Struct, frozen=True, forbid_unknown_fields=True, omit_defaults=True):
    """ The :class:`Message` is the standard envelope. The fields are the
        message *type*, which is always present, an arbitrary *payload*,
        an *error* flag, and a *meta* mapping of auxiliary fields. The one
        auxiliary field that matters here is the request identity, stored
        as ``meta['requestId']``; see :func:`tag`.

        Instances are immutable. Methods that appear to modify a message,
        such as :func:`tag`, return a new instance.
    """

    type: str
    payload: Any = None
    error: Optional[bool] = None
    meta: Optional[Dict[str, Any]] = None


    @property
    def request_id(self):
        """ The request identity carried by this message, or None.
        """

        if self.meta is None:
            return None

        return self.meta.get(REQUEST_ID)


    def tag(self, request_id):
        """ Return a copy of this message with ``meta['requestId']`` set to
            *request_id*. Any other meta fields are preserved.
        """

        meta = dict(self.meta or ())
        meta[REQUEST_ID] = request_id
        return msgspec.structs.replace(self, meta=meta)


    def to_dict(self):
        """ Return the message as a plain dictionary. Fields left at their
            default value of None are omitted.
        """

        return msgspec.to_builtins(self)


    @classmethod
    def from_dict(cls, mapping):
        """ Validate a mapping and return the equivalent :class:`Message`.
            :class:`MalformedMessage` is raised if the mapping does not
            satisfy the envelope invariants.
        """

        try:
            return msgspec.convert(dict(mapping), cls)
        except (msgspec.ValidationError, TypeError) as e:
            raise MalformedMessage(str(e)) from e


# end of class Message



def coerce(thing):
    """ Return *thing* as a :class:`Message`. Existing messages are returned
        as-is, mappings are validated via :func:`Message.from_dict`, and bytes
        are decoded via :func:`tether.protocol.wire.unpack`.
    """

    if isinstance(thing, Message):
        return thing

    if isinstance(thing, Mapping):
        return Message.from_dict(thing)

    if isinstance(thing, (bytes, bytearray, memoryview)):
        from . import wire
        return wire.unpack(thing)

    raise MalformedMessage('not a message: ' + repr(thing))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
