"""
Tests for ForwardingService.
"""

import asyncio
import socket
from typing import Iterator

import pytest

from ssh_forward.core.domain.models import PortMapping, SessionState
from ssh_forward.core.exceptions import ListenerError
from ssh_forward.infrastructure.services.forwarding import ForwardingService

from .conftest import LoopbackTunnelClient


@pytest.fixture
def busy_port() -> Iterator[int]:
    """A local port that is already bound and listening."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        sock.listen()
        yield sock.getsockname()[1]


def _mapping(listen_port: int, remote_port: int) -> PortMapping:
    return PortMapping("127.0.0.1", listen_port, "127.0.0.1", remote_port)


class TestForwardingService:
    """Starting and stopping all sessions."""

    @pytest.mark.asyncio
    async def test_starts_every_session(self, echo_port: int) -> None:
        service = ForwardingService(LoopbackTunnelClient(),
                                    [_mapping(0, echo_port), _mapping(0, echo_port)])

        await service.start()
        try:
            assert service.is_running()
            assert all(s.state == SessionState.LISTENING for s in service.sessions)

            for session in service.sessions:
                reader, writer = await asyncio.open_connection("127.0.0.1", session.bound_port)
                writer.write(b"ok")
                assert await asyncio.wait_for(reader.readexactly(2), timeout=3) == b"ok"
                writer.close()
        finally:
            await service.stop()

        assert not service.is_running()
        assert all(s.state == SessionState.STOPPED for s in service.sessions)

    @pytest.mark.asyncio
    async def test_bind_failure_is_isolated(self, echo_port: int, busy_port: int,
                                            log_messages: list) -> None:
        service = ForwardingService(LoopbackTunnelClient(),
                                    [_mapping(busy_port, echo_port), _mapping(0, echo_port)])

        await service.start()
        try:
            failed, healthy = service.sessions
            assert failed.state == SessionState.FAILED
            assert healthy.state == SessionState.LISTENING
            assert any(f"run 127.0.0.1:{busy_port} error" in m for m in log_messages)

            reader, writer = await asyncio.open_connection("127.0.0.1", healthy.bound_port)
            writer.write(b"alive")
            assert await asyncio.wait_for(reader.readexactly(5), timeout=3) == b"alive"
            writer.close()
        finally:
            await service.stop()

    @pytest.mark.asyncio
    async def test_all_sessions_failing_raises(self, echo_port: int, busy_port: int) -> None:
        service = ForwardingService(LoopbackTunnelClient(), [_mapping(busy_port, echo_port)])

        with pytest.raises(ListenerError, match="no listener could be started"):
            await service.start()
        assert not service.is_running()

    @pytest.mark.asyncio
    async def test_fail_fast_stops_started_sessions(self, echo_port: int, busy_port: int) -> None:
        service = ForwardingService(LoopbackTunnelClient(),
                                    [_mapping(0, echo_port), _mapping(busy_port, echo_port)],
                                    isolate_failures=False)

        with pytest.raises(ListenerError):
            await service.start()

        first, second = service.sessions
        assert first.state == SessionState.STOPPED
        assert second.state == SessionState.FAILED

    @pytest.mark.asyncio
    async def test_check_health(self, echo_port: int) -> None:
        client = LoopbackTunnelClient()
        service = ForwardingService(client, [_mapping(0, echo_port)])
        await service.start()

        try:
            health = await service.check_health()
            assert health["healthy"] is True
            assert health["details"]["sessions_listening"] == 1

            await client.close()
            health = await service.check_health()
            assert health["healthy"] is False
            assert health["details"]["client_connected"] is False
        finally:
            await service.stop()
