"""
Local port forwarding over a shared tunnel client.
"""

from .relay import pipe, relay, close_writer
from .session import ForwardingSession, SessionOptions, SessionCounters
from .service import ForwardingService

__all__ = [
    "pipe",
    "relay",
    "close_writer",
    "ForwardingSession",
    "SessionOptions",
    "SessionCounters",
    "ForwardingService",
]
