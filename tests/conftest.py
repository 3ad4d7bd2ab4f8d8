"""
Shared fixtures for the forwarding tests.

The loopback tunnel client stands in for the SSH connection: dial() opens a
plain TCP connection, optionally redirected to a local test server, and
records every dial attempt.
"""

import asyncio
import contextlib
import socket
from typing import Any, AsyncGenerator, Awaitable, Callable, List, Optional, Tuple

import pytest
import pytest_asyncio
from loguru import logger

from ssh_forward.core.domain.models import format_host_port
from ssh_forward.core.exceptions import DialError
from ssh_forward.core.interfaces.tunnel import ITunnelClient


class LoopbackTunnelClient(ITunnelClient):
    """Tunnel client that dials plain TCP on the local machine."""

    def __init__(self, redirect_port: Optional[int] = None, fail: bool = False):
        self.redirect_port = redirect_port
        self.fail = fail
        self.dials: List[Tuple[str, int]] = []
        self.closed = False
        self.address = "loopback:22"

    async def dial(self, host: str, port: int, timeout: Optional[float] = None) -> Tuple[Any, Any]:
        self.dials.append((host, port))
        if self.fail:
            raise DialError(format_host_port(host, port), "connection refused")
        target_host = "127.0.0.1" if self.redirect_port else host
        try:
            return await asyncio.open_connection(target_host, self.redirect_port or port)
        except OSError as e:
            raise DialError(format_host_port(host, port), str(e))

    def is_connected(self) -> bool:
        return not self.closed

    async def close(self) -> None:
        self.closed = True


async def _echo(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
    try:
        while True:
            data = await reader.read(65536)
            if not data:
                break
            writer.write(data)
            await writer.drain()
    except ConnectionError:
        pass
    finally:
        writer.close()


async def _close_server(server: asyncio.AbstractServer) -> None:
    server.close()
    with contextlib.suppress(asyncio.TimeoutError):
        await asyncio.wait_for(server.wait_closed(), timeout=2.0)


async def wait_until(predicate: Callable[[], bool], timeout: float = 3.0) -> None:
    """Poll until predicate() is true or fail the test."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            pytest.fail("condition not reached in time")
        await asyncio.sleep(0.01)


def free_port() -> int:
    """Return a port that was free a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


@pytest_asyncio.fixture
async def echo_port() -> AsyncGenerator[int, None]:
    """Port of a local TCP echo server."""
    server = await asyncio.start_server(_echo, "127.0.0.1", 0)
    yield server.sockets[0].getsockname()[1]
    await _close_server(server)


@pytest_asyncio.fixture
async def start_tcp_server() -> AsyncGenerator[Callable[..., Awaitable[int]], None]:
    """Factory starting local TCP servers with a custom handler; returns the port."""
    servers: List[asyncio.AbstractServer] = []

    async def factory(handler: Callable[..., Awaitable[None]]) -> int:
        server = await asyncio.start_server(handler, "127.0.0.1", 0)
        servers.append(server)
        return server.sockets[0].getsockname()[1]

    yield factory

    for server in servers:
        await _close_server(server)


@pytest.fixture
def log_messages() -> Any:
    """Collect loguru messages emitted during a test."""
    messages: List[str] = []
    handler_id = logger.add(lambda m: messages.append(m.record["message"]), level="DEBUG")
    yield messages
    logger.remove(handler_id)
