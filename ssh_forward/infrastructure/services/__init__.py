"""
Infrastructure services.
"""

from .forwarding import ForwardingService, ForwardingSession, SessionOptions

__all__ = [
    "ForwardingService",
    "ForwardingSession",
    "SessionOptions",
]
