"""
Forwarding session: one local listener relaying to one remote address.

Each accepted connection gets one channel through the shared tunnel client
and a duplex copy. A failed dial only drops that connection; the listener
keeps accepting.
"""

import asyncio
from dataclasses import dataclass
from typing import Any, Dict, Optional, Set

from loguru import logger

from ....core.domain.models import ConnectionPair, PortMapping, SessionState
from ....core.exceptions import DialError, ListenerError
from ....core.interfaces.lifecycle import IHealthCheckable, IStartable, IStoppable
from ....core.interfaces.tunnel import ITunnelClient
from .relay import DEFAULT_BUFFER_SIZE, close_writer, relay


@dataclass
class SessionOptions:
    """Per-session limits. Zero means unlimited / no timeout."""
    max_connections: int = 0
    dial_timeout: float = 0.0
    buffer_size: int = DEFAULT_BUFFER_SIZE
    shutdown_timeout: float = 5.0


@dataclass
class SessionCounters:
    accepted: int = 0
    rejected: int = 0
    dial_failures: int = 0
    completed: int = 0
    bytes_to_remote: int = 0
    bytes_to_local: int = 0


class ForwardingSession(IStartable, IStoppable, IHealthCheckable):
    """Listens on one local address and forwards every connection through the tunnel."""

    def __init__(
        self,
        mapping: PortMapping,
        client: ITunnelClient,
        options: Optional[SessionOptions] = None
    ):
        self._mapping = mapping
        self._client = client
        self._options = options or SessionOptions()

        self._state = SessionState.CREATED
        self._server: Optional[asyncio.AbstractServer] = None
        self._stopped = asyncio.Event()
        self._connections: Dict[asyncio.Task[Any], ConnectionPair] = {}
        self._handlers: Set[asyncio.Task[Any]] = set()
        self._counters = SessionCounters()
        self._last_error: Optional[str] = None

    @property
    def mapping(self) -> PortMapping:
        return self._mapping

    @property
    def state(self) -> SessionState:
        return self._state

    @property
    def active_connections(self) -> int:
        return len(self._connections)

    @property
    def counters(self) -> SessionCounters:
        return self._counters

    @property
    def bound_port(self) -> Optional[int]:
        """Port actually bound, useful when listening on port 0."""
        if not self._server or not self._server.sockets:
            return None
        return self._server.sockets[0].getsockname()[1]

    async def start(self) -> None:
        """
        Bind the listener.

        Raises:
            ListenerError: If the address cannot be bound
        """
        if self._state == SessionState.LISTENING:
            return

        host = self._mapping.listen_host or None
        try:
            self._server = await asyncio.start_server(
                self._handle_connection, host, self._mapping.listen_port)
        except OSError as e:
            self._state = SessionState.FAILED
            self._last_error = str(e)
            self._stopped.set()
            raise ListenerError(self._mapping.listen_address, str(e))

        self._state = SessionState.LISTENING
        logger.info(f"run session {self._mapping.listen_address} -> {self._mapping.remote_address}")

    async def run(self) -> None:
        """Bind the listener and serve until the session is stopped."""
        await self.start()
        await self.wait_stopped()

    async def wait_stopped(self) -> None:
        await self._stopped.wait()

    async def stop(self, timeout: Optional[float] = None) -> None:
        """
        Stop accepting, let in-flight relays drain, then cancel the rest.

        Args:
            timeout: Seconds to wait for relays (defaults to the session option)
        """
        if self._state in (SessionState.STOPPED, SessionState.FAILED):
            return

        if timeout is None:
            timeout = self._options.shutdown_timeout

        if self._server:
            self._server.close()

        pending = set(self._handlers)
        if pending and timeout > 0:
            logger.info(f"Waiting for {len(pending)} connection(s) on {self._mapping.listen_address}")
            _, pending = await asyncio.wait(pending, timeout=timeout)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)

        if self._server:
            await self._server.wait_closed()
            self._server = None

        self._state = SessionState.STOPPED
        self._stopped.set()
        logger.info(f"session {self._mapping.listen_address} stopped")

    async def check_health(self) -> Dict[str, Any]:
        """Report listener state and connection counters."""
        return {
            "healthy": self._state == SessionState.LISTENING,
            "status": self._state.value,
            "details": {
                "listen": self._mapping.listen_address,
                "remote": self._mapping.remote_address,
                "bound_port": self.bound_port,
                "active": self.active_connections,
                "accepted": self._counters.accepted,
                "rejected": self._counters.rejected,
                "dial_failures": self._counters.dial_failures,
                "completed": self._counters.completed,
                "bytes_to_remote": self._counters.bytes_to_remote,
                "bytes_to_local": self._counters.bytes_to_local,
                "last_error": self._last_error,
            }
        }

    async def _handle_connection(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        task = asyncio.current_task()
        if task is None:
            raise RuntimeError("connection handler must run inside a task")
        self._handlers.add(task)
        try:
            await self._forward(reader, writer, task)
        finally:
            self._handlers.discard(task)

    async def _forward(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
        task: asyncio.Task[Any]
    ) -> None:
        peer = _format_peer(writer.get_extra_info("peername"))
        remote = self._mapping.remote_address
        self._counters.accepted += 1
        logger.info(f"accept {peer}")

        limit = self._options.max_connections
        if limit and len(self._connections) >= limit:
            self._counters.rejected += 1
            logger.warning(f"reject {peer}: {limit} connections already active on {self._mapping.listen_address}")
            await close_writer(writer)
            return

        # Reserve the slot before dialing so concurrent accepts see it
        pair = ConnectionPair(peer=peer, remote=remote)
        self._connections[task] = pair
        try:
            try:
                remote_reader, remote_writer = await self._client.dial(
                    self._mapping.remote_host,
                    self._mapping.remote_port,
                    timeout=self._options.dial_timeout or None
                )
            except DialError as e:
                self._counters.dial_failures += 1
                logger.error(f"dial {remote} error: {e.reason}")
                await close_writer(writer)
                return

            logger.info(f"{peer} -> {remote} connected.")
            pair.stats = await relay(
                reader, writer, remote_reader, remote_writer, self._options.buffer_size)

            self._counters.completed += 1
            self._counters.bytes_to_remote += pair.stats.bytes_to_remote
            self._counters.bytes_to_local += pair.stats.bytes_to_local
            logger.info(
                f"{peer} -> {remote} closed "
                f"(sent {pair.stats.bytes_to_remote}, received {pair.stats.bytes_to_local} bytes "
                f"in {pair.duration:.1f}s)")
        finally:
            del self._connections[task]
            # Cancelled before the relay took ownership of the socket
            if not writer.is_closing():
                writer.close()


def _format_peer(peername: Any) -> str:
    if isinstance(peername, tuple) and len(peername) >= 2:
        host, port = peername[0], peername[1]
        return f"[{host}]:{port}" if ":" in str(host) else f"{host}:{port}"
    return str(peername)
