"""
Domain models for the forwarding core.
"""

from .models import (
    DEFAULT_SSH_PORT,
    ConnectionPair,
    PortMapping,
    RelayStats,
    ServerCredentials,
    SessionState,
    format_host_port,
    parse_host_port,
)

__all__ = [
    "DEFAULT_SSH_PORT",
    "ConnectionPair",
    "PortMapping",
    "RelayStats",
    "ServerCredentials",
    "SessionState",
    "format_host_port",
    "parse_host_port",
]
