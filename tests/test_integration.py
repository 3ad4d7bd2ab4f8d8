"""
End-to-end tests against an in-process asyncssh server.

The server accepts one user by password and opens direct-tcpip channels
itself, so traffic really crosses an SSH connection.
"""

import asyncio
from typing import AsyncGenerator

import asyncssh
import pytest
import pytest_asyncio

from ssh_forward.core.domain.models import PortMapping, ServerCredentials
from ssh_forward.core.exceptions import AuthenticationError, DialError, SSHConnectionError
from ssh_forward.infrastructure.clients.ssh import login
from ssh_forward.infrastructure.services.forwarding import ForwardingService

from .conftest import free_port, wait_until

REFUSED_PORT = 1


class _ForwardingServer(asyncssh.SSHServer):
    """Password auth for deploy/secret; direct-tcpip allowed except to port 1."""

    def begin_auth(self, username: str) -> bool:
        return True

    def password_auth_supported(self) -> bool:
        return True

    def validate_password(self, username: str, password: str) -> bool:
        return username == "deploy" and password == "secret"

    def connection_requested(self, dest_host: str, dest_port: int, orig_host: str, orig_port: int) -> bool:
        return dest_port != REFUSED_PORT


@pytest_asyncio.fixture
async def ssh_server_address() -> AsyncGenerator[str, None]:
    host_key = asyncssh.generate_private_key('ssh-ed25519')
    acceptor = await asyncssh.create_server(
        _ForwardingServer, "127.0.0.1", 0, server_host_keys=[host_key])
    yield f"127.0.0.1:{acceptor.get_port()}"
    acceptor.close()
    await acceptor.wait_closed()


class TestEndToEnd:
    """Login, dial and forward through a real SSH connection."""

    @pytest.mark.asyncio
    async def test_forward_through_ssh(self, ssh_server_address: str, echo_port: int) -> None:
        client = await login(ServerCredentials(ssh_server_address, "deploy", password="secret"))
        listen_port = free_port()
        service = ForwardingService(client, [PortMapping("127.0.0.1", listen_port, "127.0.0.1", echo_port)])

        await service.start()
        try:
            reader, writer = await asyncio.open_connection("127.0.0.1", listen_port)
            payload = b"over ssh " * 1000
            writer.write(payload)
            assert await asyncio.wait_for(reader.readexactly(len(payload)), timeout=5) == payload
            writer.close()

            session = service.sessions[0]
            await wait_until(lambda: session.counters.completed == 1, timeout=5)
            assert session.counters.bytes_to_remote == len(payload)
        finally:
            await service.stop()
            await client.close()

        assert not client.is_connected()

    @pytest.mark.asyncio
    async def test_refused_channel_is_a_dial_error(self, ssh_server_address: str) -> None:
        client = await login(ServerCredentials(ssh_server_address, "deploy", password="secret"))
        try:
            with pytest.raises(DialError) as exc_info:
                await client.dial("127.0.0.1", REFUSED_PORT)
            assert exc_info.value.remote == f"127.0.0.1:{REFUSED_PORT}"
            assert client.is_connected()
        finally:
            await client.close()

    @pytest.mark.asyncio
    async def test_wrong_password(self, ssh_server_address: str) -> None:
        with pytest.raises(AuthenticationError):
            await login(ServerCredentials(ssh_server_address, "deploy", password="wrong"))

    @pytest.mark.asyncio
    async def test_unreachable_server(self) -> None:
        with pytest.raises(SSHConnectionError):
            await login(ServerCredentials(f"127.0.0.1:{free_port()}", "deploy", password="secret"),
                        connect_timeout=5)
