import pytest
import tether


@pytest.fixture
def bus():
    return tether.Bus()


@pytest.fixture
def dispatched(bus):
    """ Every message published on the bus, in order.
    """

    received = list()
    bus.subscribe(received.append)
    return received


@pytest.fixture
def channel():
    channel = tether.LoopbackChannel()
    channel.open()

    yield channel

    channel.close()


@pytest.fixture
def session(channel, bus):

    # No default timeout; tests that want one ask for it explicitly.

    session = tether.Session(channel, bus, timeout=None)

    yield session

    session.coordinator.close()


# vim: set expandtab tabstop=8 softtabstop=4 shiftwidth=4 autoindent:
