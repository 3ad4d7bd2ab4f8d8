"""
Domain models for port forwarding.

These are plain immutable records created once from configuration and
shared for the lifetime of the process.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple

from ..exceptions import ConfigurationError

DEFAULT_SSH_PORT = 22


def parse_host_port(text: str, default_port: Optional[int] = None) -> Tuple[str, int]:
    """
    Split a "host:port" string.

    IPv6 hosts must be bracketed ("[::1]:22"). When the port is missing,
    default_port is used if given, otherwise the string is rejected.

    Raises:
        ConfigurationError: If the string has no usable port
    """
    value = (text or "").strip()
    if not value:
        raise ConfigurationError("empty address")

    if value.startswith("["):
        end = value.find("]")
        if end == -1:
            raise ConfigurationError(f"invalid address: {text}")
        host = value[1:end]
        rest = value[end + 1:]
        if rest and not rest.startswith(":"):
            raise ConfigurationError(f"invalid address: {text}")
        port_text = rest[1:] if rest else ""
    elif value.count(":") == 1:
        host, port_text = value.split(":")
    elif ":" in value:
        # bare IPv6 literal, no port
        host, port_text = value, ""
    else:
        host, port_text = value, ""

    if not port_text:
        if default_port is None:
            raise ConfigurationError(f"missing port in address: {text}")
        return host, default_port

    return host, _parse_port(port_text, text)


def _parse_port(port_text: str, original: str) -> int:
    try:
        port = int(port_text)
    except ValueError:
        raise ConfigurationError(f"invalid port in address: {original}")
    if not (1 <= port <= 65535):
        raise ConfigurationError(f"port must be between 1 and 65535: {original}")
    return port


def format_host_port(host: str, port: int) -> str:
    """Join host and port, bracketing IPv6 literals."""
    if ":" in host:
        return f"[{host}]:{port}"
    return f"{host}:{port}"


@dataclass(frozen=True)
class ServerCredentials:
    """Credentials for the single upstream SSH server."""
    address: str
    username: str
    password: Optional[str] = None
    key_path: Optional[str] = None
    passphrase: Optional[str] = None

    def has_credentials(self) -> bool:
        """True when at least a password or a private key is configured."""
        return bool(self.password) or bool(self.key_path)

    def host_port(self) -> Tuple[str, int]:
        return parse_host_port(self.address, DEFAULT_SSH_PORT)

    def __repr__(self) -> str:
        return (f"ServerCredentials(address={self.address!r}, username={self.username!r}, "
                f"password={'***' if self.password else None}, key_path={self.key_path!r})")


@dataclass(frozen=True)
class PortMapping:
    """A local listening address paired with a remote destination."""
    listen_host: str
    listen_port: int
    remote_host: str
    remote_port: int

    @classmethod
    def from_entry(cls, local: str, remote: str, default_listen_host: str = "") -> 'PortMapping':
        """
        Build a mapping from a configuration entry.

        Args:
            local: A bare port ("8080") or "host:port"
            remote: "host:port" reachable from the SSH server
            default_listen_host: Host used when local is a bare port

        Raises:
            ConfigurationError: If either side is malformed
        """
        local_text = str(local).strip()
        if local_text.isdigit():
            listen_host, listen_port = default_listen_host, _parse_port(local_text, local_text)
        else:
            listen_host, listen_port = parse_host_port(local_text)

        remote_host, remote_port = parse_host_port(str(remote))
        if not remote_host:
            raise ConfigurationError(f"missing host in remote address: {remote}")

        return cls(
            listen_host=listen_host,
            listen_port=listen_port,
            remote_host=remote_host,
            remote_port=remote_port
        )

    @property
    def listen_address(self) -> str:
        return format_host_port(self.listen_host, self.listen_port)

    @property
    def remote_address(self) -> str:
        return format_host_port(self.remote_host, self.remote_port)

    def __str__(self) -> str:
        return f"{self.listen_address} -> {self.remote_address}"


class SessionState(Enum):
    """Forwarding session states."""
    CREATED = "created"
    LISTENING = "listening"
    FAILED = "failed"
    STOPPED = "stopped"


@dataclass
class RelayStats:
    """Bytes moved by one duplex copy."""
    bytes_to_remote: int = 0
    bytes_to_local: int = 0

    @property
    def total(self) -> int:
        return self.bytes_to_remote + self.bytes_to_local


@dataclass
class ConnectionPair:
    """One inbound connection linked to one channel through the tunnel."""
    peer: str
    remote: str
    opened_at: float = field(default_factory=time.time)
    stats: RelayStats = field(default_factory=RelayStats)

    @property
    def duration(self) -> float:
        return time.time() - self.opened_at
