"""
Application startup and shutdown logic.

This module wires the configuration, the single SSH login and the forwarding
service together, and tears them down in reverse order on a termination
signal.
"""

import asyncio
import signal
from typing import Any, Dict, List, Optional

from loguru import logger

from ..core.domain.models import PortMapping
from ..infrastructure.clients.ssh.client import SSHClient, login
from ..infrastructure.config.models import ApplicationConfig
from ..infrastructure.services.forwarding.service import ForwardingService
from ..infrastructure.services.forwarding.session import SessionOptions

SHUTDOWN_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ApplicationStartup:
    """
    Manages the forwarder lifecycle.

    Startup order: validate port mappings, log in once, start every session.
    Shutdown order: stop accepting and drain relays, then close the client.
    """

    def __init__(self, config: ApplicationConfig) -> None:
        self._config = config
        self._client: Optional[SSHClient] = None
        self._service: Optional[ForwardingService] = None
        self._stop_event = asyncio.Event()
        self._installed_signals: List[int] = []
        self._loop: Optional[asyncio.AbstractEventLoop] = None

    @property
    def service(self) -> Optional[ForwardingService]:
        return self._service

    @property
    def client(self) -> Optional[SSHClient]:
        return self._client

    async def run(self) -> None:
        """Start everything and block until shutdown is requested."""
        await self.start_application()
        self._install_signal_handlers()
        try:
            await self._stop_event.wait()
        finally:
            self._remove_signal_handlers()
            await self.stop_application()

    def request_shutdown(self) -> None:
        """Ask run() to stop; safe to call more than once."""
        if not self._stop_event.is_set():
            logger.info("Shutdown requested")
            self._stop_event.set()

    async def start_application(self) -> None:
        """
        Authenticate and start listening.

        Raises:
            ConfigurationError: On invalid port mappings or credentials
            AuthenticationError: If the SSH server rejected the login
            SSHConnectionError: If the SSH server could not be reached
            ListenerError: If the listeners could not be started
        """
        mappings = self._config.port_mappings()
        ssh = self._config.ssh

        self._client = await login(
            ssh.to_credentials(),
            known_hosts=ssh.known_hosts or None,
            keepalive_interval=ssh.keepalive_interval,
            connect_timeout=ssh.connect_timeout
        )
        logger.info(f"dial {self._client.address} success")
        logger.info(f"ports: {self._describe(mappings)}")

        forwarding = self._config.forwarding
        self._service = ForwardingService(
            self._client,
            mappings,
            SessionOptions(
                max_connections=forwarding.max_connections,
                dial_timeout=forwarding.dial_timeout,
                buffer_size=forwarding.buffer_size,
                shutdown_timeout=forwarding.shutdown_timeout
            ),
            isolate_failures=forwarding.isolate_failures
        )

        try:
            await self._service.start()
        except Exception:
            await self._client.close()
            raise

    async def stop_application(self) -> None:
        """Stop the sessions, then close the shared client."""
        if self._service:
            health = await self._service.check_health()
            logger.debug(f"Forwarding health at shutdown: {health}")
            await self._service.stop()
            self._service = None

        if self._client:
            await self._client.close()
            self._client = None

        logger.info("Application shutdown completed")

    def _describe(self, mappings: List[PortMapping]) -> Dict[str, str]:
        return {m.listen_address: m.remote_address for m in mappings}

    def _install_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        self._loop = loop
        for sig in SHUTDOWN_SIGNALS:
            try:
                loop.add_signal_handler(sig, self._on_signal, sig)
                self._installed_signals.append(sig)
            except (NotImplementedError, RuntimeError):
                # Windows event loops have no signal handler support
                signal.signal(sig, self._on_signal_threadsafe)

    def _remove_signal_handlers(self) -> None:
        loop = asyncio.get_running_loop()
        for sig in self._installed_signals:
            loop.remove_signal_handler(sig)
        self._installed_signals.clear()

    def _on_signal(self, signum: int) -> None:
        logger.info(f"Received signal {signum}, initiating shutdown...")
        self.request_shutdown()

    def _on_signal_threadsafe(self, signum: int, frame: Any) -> None:
        if self._loop is not None:
            self._loop.call_soon_threadsafe(self._on_signal, signum)
