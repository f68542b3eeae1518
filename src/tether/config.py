""" Runtime configuration. Values are read from the environment once, when
    this module is first imported; the classes that use them copy them into
    class attributes, which can be overridden per instance.

    TETHER_TRANSPORT
        Which channel backend :func:`tether.transport.channel` builds,
        either 'zmq' (the default) or 'loopback'.

    TETHER_TIMEOUT
        Default number of seconds a request may wait for completion. The
        default is 60; 'none' or 0 disables the timeout entirely.

    TETHER_PORT_MIN, TETHER_PORT_MAX
        The range searched for an available port when a server is not
        given a fixed port number.
"""

import os


def _seconds(value):

    if value is None:
        return None

    value = str(value).strip().lower()
    if value in ('', 'none', 'off'):
        return None

    seconds = float(value)
    if seconds <= 0:
        return None

    return seconds


def _environment(name, default):
    return os.environ.get('TETHER_' + name, default)


transport = _environment('TRANSPORT', 'zmq').lower()
timeout = _seconds(_environment('TIMEOUT', '60'))
minimum_port = int(_environment('PORT_MIN', 10079))
maximum_port = int(_environment('PORT_MAX', 13679))

if minimum_port > maximum_port:
    raise ValueError("TETHER_PORT_MIN %d exceeds TETHER_PORT_MAX %d" % (minimum_port, maximum_port))


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
