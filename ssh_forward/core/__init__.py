"""
Core module containing the forwarding domain models, interfaces and errors.

This module is independent of the SSH library and of the socket layer.
"""

from .interfaces.lifecycle import IStartable, IStoppable, IHealthCheckable
from .interfaces.tunnel import ITunnelClient
from .domain.models import PortMapping, ServerCredentials, SessionState, RelayStats
from .exceptions import (
    ForwardError,
    ConfigurationError,
    AuthenticationError,
    SSHConnectionError,
    DialError,
    ListenerError,
)

__all__ = [
    "IStartable",
    "IStoppable",
    "IHealthCheckable",
    "ITunnelClient",
    "PortMapping",
    "ServerCredentials",
    "SessionState",
    "RelayStats",
    "ForwardError",
    "ConfigurationError",
    "AuthenticationError",
    "SSHConnectionError",
    "DialError",
    "ListenerError",
]
