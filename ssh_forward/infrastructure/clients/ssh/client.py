"""
SSH client implementation for the SSH Forward application.

This module authenticates once against the upstream SSH server and exposes
the resulting connection as a tunnel client able to open direct-tcpip
channels to remote addresses.
"""

import asyncio
import os
from typing import Any, Dict, List, Optional, Tuple

import asyncssh
from loguru import logger

from ....core.domain.models import ServerCredentials, format_host_port
from ....core.exceptions import (
    AuthenticationError,
    ConfigurationError,
    DialError,
    SSHConnectionError,
)
from ....core.interfaces.tunnel import ITunnelClient


class _ConnectionObserver(asyncssh.SSHClient):
    """Tracks whether the underlying SSH connection is still alive."""

    def __init__(self, address: str) -> None:
        self._address = address
        self.lost = False

    def connection_lost(self, exc: Optional[Exception]) -> None:
        self.lost = True
        if exc:
            logger.error(f"SSH connection to {self._address} lost: {exc}")
        else:
            logger.info(f"SSH connection to {self._address} closed")


class SSHClient(ITunnelClient):
    """
    A single authenticated SSH connection shared by every forwarding session.

    asyncssh multiplexes channels over the connection, so dial() may be
    called concurrently without extra locking.
    """

    def __init__(self, connection: Any, address: str, observer: Optional[_ConnectionObserver] = None):
        self._connection = connection
        self._address = address
        self._observer = observer
        self._closed = False

    @property
    def address(self) -> str:
        return self._address

    def is_connected(self) -> bool:
        if self._closed or self._connection is None:
            return False
        return not (self._observer and self._observer.lost)

    async def dial(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None
    ) -> Tuple[Any, Any]:
        """Open a direct-tcpip channel to host:port."""
        remote = format_host_port(host, port)
        if not self.is_connected():
            raise DialError(remote, "SSH connection is closed")

        try:
            if timeout:
                return await asyncio.wait_for(
                    self._connection.open_connection(host, port),
                    timeout=timeout
                )
            return await self._connection.open_connection(host, port)
        except asyncio.TimeoutError:
            raise DialError(remote, f"timed out after {timeout} seconds")
        except asyncssh.ChannelOpenError as e:
            raise DialError(remote, e.reason or str(e))
        except (OSError, asyncssh.Error) as e:
            raise DialError(remote, str(e))

    async def close(self) -> None:
        """Close the SSH connection."""
        if self._closed:
            return

        self._closed = True
        self._connection.close()
        await self._connection.wait_closed()
        logger.info(f"SSH client disconnected from {self._address}")


def build_auth_methods(credentials: ServerCredentials) -> List[str]:
    """Public key first when a key is configured, then password."""
    methods = []
    if credentials.key_path:
        methods.append("publickey")
    if credentials.password:
        methods.append("password")
    return methods


def load_private_key(key_path: str, passphrase: Optional[str] = None) -> asyncssh.SSHKey:
    """
    Read and parse a private key file.

    Raises:
        ConfigurationError: If the file cannot be read or parsed
    """
    path = os.path.expanduser(key_path)
    try:
        with open(path, 'rb') as f:
            data = f.read()
    except OSError as e:
        raise ConfigurationError(f"unable to read private key: {e}")

    try:
        return asyncssh.import_private_key(data, passphrase)
    except (asyncssh.KeyImportError, asyncssh.KeyEncryptionError) as e:
        raise ConfigurationError(f"unable to parse private key: {e}")


async def login(
    credentials: ServerCredentials,
    known_hosts: Optional[str] = None,
    keepalive_interval: float = 0,
    connect_timeout: float = 0
) -> SSHClient:
    """
    Authenticate against the SSH server and return the connected client.

    Exactly one connection attempt is made.

    Args:
        credentials: Server address, user and password and/or key path
        known_hosts: known_hosts file used to verify the server key
            (None disables host key verification)
        keepalive_interval: Seconds between keepalives (0 disables them)
        connect_timeout: Seconds allowed for connect and login (0 waits forever)

    Raises:
        ConfigurationError: If no credential is configured or the key is unusable
        AuthenticationError: If the server rejected every auth method
        SSHConnectionError: On network, handshake or host key failure
    """
    if not credentials.has_credentials():
        raise ConfigurationError("empty private key and password")

    client_keys = None
    if credentials.key_path:
        client_keys = [load_private_key(credentials.key_path, credentials.passphrase)]

    host, port = credentials.host_port()
    address = format_host_port(host, port)

    connect_kwargs: Dict[str, Any] = {
        'host': host,
        'port': port,
        'username': credentials.username,
        'client_keys': client_keys,
        'password': credentials.password or None,
        'preferred_auth': build_auth_methods(credentials),
        'known_hosts': os.path.expanduser(known_hosts) if known_hosts else None,
    }
    if keepalive_interval:
        connect_kwargs['keepalive_interval'] = keepalive_interval
    if connect_timeout:
        connect_kwargs['connect_timeout'] = connect_timeout

    if not known_hosts:
        logger.warning(f"Host key verification disabled for {address}")

    observer = _ConnectionObserver(address)
    try:
        connection = await asyncssh.connect(
            client_factory=lambda: observer, **connect_kwargs)
    except asyncssh.PermissionDenied as e:
        raise AuthenticationError(f"authentication failed for {credentials.username}@{address}: {e.reason}")
    except asyncio.TimeoutError:
        raise SSHConnectionError(f"connection to {address} timed out")
    except (OSError, asyncssh.Error) as e:
        raise SSHConnectionError(f"unable to connect to {address}: {e}")

    return SSHClient(connection, address, observer)
