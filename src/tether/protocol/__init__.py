from . import fields
from . import message
from . import factory
from . import wire

from .message import Message, MalformedMessage, coerce, version
PROTOCOL_VERSION = version


"""
tether Protocol Layer
=====================

This package defines the transport-agnostic message envelope used by tether,
plus the helpers that build, tag, and serialize it.

The protocol layer MUST NOT depend on any transport implementation
(e.g. ZeroMQ), nor on the correlation machinery layered above it.

---------------------------------------------------------------------

Layer Architecture Overview
---------------------------

Caller
    │
    ▼
Session (session.py)
    Wires the pieces below to one channel and one bus
    - initiate()
    - request()
    - emit()

    │
    ▼
Request Coordinator (coordinator.py)
    One logical request: identity, registration,
    emission, completion, deregistration

    │
    ▼
Correlation Registry (registry.py)      Outbound Emitter (emitter.py)
    Tests every inbound message             Sends tagged messages
    against every pending request           onto the channel

    │                                       │
    ▼                                       ▼
Dispatch Bus (bus.py)                   Channel (transport/)
    Delivers transformed messages           Moves messages to and from
    to local consumers                      the remote side

---------------------------------------------------------------------

Within this package
-------------------

Message Model (message.py)
    The four-field envelope: type, payload, error, meta

Constructors (factory.py)
    Identities, tagging, error-flagged signals

Wire Codec (wire.py)
    Message <-> bytes, rejecting malformed input

Field Vocabulary (fields.py)
    Canonical names for envelope/meta keys and synthetic types
    Prevents string drift across system

---------------------------------------------------------------------
"""


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
