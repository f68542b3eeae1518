""" Python implementation of tether: correlate requests sent over an
    asynchronous push channel with the inbound messages that answer them,
    and dispatch the answers on a local message bus.
"""

# Utility components.

from . import json
from . import config

# Submodules used by multiple other components.

from . import protocol
from .protocol import Message, MalformedMessage

from . import transport
from .transport import LoopbackChannel

# Primary public-facing interfaces.

from .bus import Bus
from .emitter import Emitter
from .registry import Registry
from .coordinator import Coordinator, RequestHandle, RequestError, RequestTimeout, RequestCancelled
from .session import Session, connect, disconnect

# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
