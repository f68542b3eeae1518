"""ZeroMQ DEALER/ROUTER channel implementation."""

from . import framing
from .channel import Channel, Server
