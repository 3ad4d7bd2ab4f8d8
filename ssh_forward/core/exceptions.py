"""
Exception hierarchy for the SSH Forward application.

Fatal errors (configuration, authentication, transport) stop the process
before or during startup. Dial errors are handled per connection and never
leave the forwarding session.
"""

from typing import Optional


class ForwardError(Exception):
    """Base class for all application errors."""

    def __init__(self, message: str, error_code: Optional[str] = None):
        self.message = message
        self.error_code = error_code or "FORWARD_ERROR"
        super().__init__(self.message)


class ConfigurationError(ForwardError, ValueError):
    """Bad configuration file, port entry, or credential material."""

    def __init__(self, message: str):
        super().__init__(message, "CONFIG_ERROR")


class AuthenticationError(ForwardError):
    """The SSH server rejected every offered authentication method."""

    def __init__(self, message: str):
        super().__init__(message, "AUTH_ERROR")


class SSHConnectionError(ForwardError):
    """Network, handshake or host key failure while connecting to the server."""

    def __init__(self, message: str):
        super().__init__(message, "SSH_CONNECTION_ERROR")


class DialError(ForwardError):
    """A channel to the remote address could not be opened."""

    def __init__(self, remote: str, reason: str):
        super().__init__(f"dial {remote} error: {reason}", "DIAL_ERROR")
        self.remote = remote
        self.reason = reason


class ListenerError(ForwardError):
    """A local listener could not be bound or stopped serving."""

    def __init__(self, listen_address: str, reason: str):
        super().__init__(f"listen {listen_address} error: {reason}", "LISTENER_ERROR")
        self.listen_address = listen_address
        self.reason = reason
