"""
SSH Forward - local TCP port forwarding over a single authenticated SSH connection.

A static configuration file maps local ports to remote "host:port"
destinations. Every accepted connection is relayed through its own channel
on the shared SSH connection.
"""

__version__ = "0.1.0"

from .core.domain.models import PortMapping, ServerCredentials, SessionState
from .core.exceptions import (
    ForwardError,
    ConfigurationError,
    AuthenticationError,
    SSHConnectionError,
    DialError,
    ListenerError,
)
from .core.interfaces.tunnel import ITunnelClient
from .infrastructure.clients.ssh.client import SSHClient, login
from .infrastructure.services.forwarding import ForwardingService, ForwardingSession, SessionOptions

__all__ = [
    "PortMapping",
    "ServerCredentials",
    "SessionState",
    "ForwardError",
    "ConfigurationError",
    "AuthenticationError",
    "SSHConnectionError",
    "DialError",
    "ListenerError",
    "ITunnelClient",
    "SSHClient",
    "login",
    "ForwardingService",
    "ForwardingSession",
    "SessionOptions",
]
