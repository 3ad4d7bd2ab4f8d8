"""
Forwarding service: owns one session per configured port mapping.
"""

from typing import Any, Dict, List, Optional

from loguru import logger

from ....core.domain.models import PortMapping, SessionState
from ....core.exceptions import ListenerError
from ....core.interfaces.lifecycle import IHealthCheckable, IStartable, IStoppable
from ....core.interfaces.tunnel import ITunnelClient
from .session import ForwardingSession, SessionOptions


class ForwardingService(IStartable, IStoppable, IHealthCheckable):
    """
    Starts and stops every forwarding session over one shared tunnel client.

    With isolate_failures enabled, a listener that fails to bind only takes
    down its own session. Startup fails only when no session could bind.
    """

    def __init__(
        self,
        client: ITunnelClient,
        mappings: List[PortMapping],
        options: Optional[SessionOptions] = None,
        isolate_failures: bool = True
    ):
        self._client = client
        self._isolate_failures = isolate_failures
        self._sessions = [
            ForwardingSession(mapping, client, options) for mapping in mappings
        ]
        self._running = False

    @property
    def sessions(self) -> List[ForwardingSession]:
        return list(self._sessions)

    def is_running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """
        Bind every session's listener.

        Raises:
            ListenerError: On the first bind failure when failures are not
                isolated, or when no session could bind at all
        """
        if self._running:
            return

        failures = []
        for session in self._sessions:
            try:
                await session.start()
            except ListenerError as e:
                if not self._isolate_failures:
                    await self.stop()
                    raise
                logger.error(f"run {session.mapping.listen_address} error: {e.reason}")
                failures.append(e)

        if self._sessions and len(failures) == len(self._sessions):
            raise ListenerError(
                ", ".join(s.mapping.listen_address for s in self._sessions),
                "no listener could be started"
            )

        self._running = True
        listening = sum(1 for s in self._sessions if s.state == SessionState.LISTENING)
        logger.info(f"Forwarding service started: {listening}/{len(self._sessions)} sessions listening")

    async def stop(self) -> None:
        """Stop every session, draining in-flight relays."""
        for session in self._sessions:
            await session.stop()

        if self._running:
            self._running = False
            logger.info("Forwarding service stopped")

    async def check_health(self) -> Dict[str, Any]:
        """Aggregate the health of all sessions."""
        sessions = [await session.check_health() for session in self._sessions]
        listening = sum(1 for health in sessions if health["healthy"])

        return {
            "healthy": self._running and listening > 0 and self._client.is_connected(),
            "status": "running" if self._running else "stopped",
            "details": {
                "client_connected": self._client.is_connected(),
                "sessions_total": len(sessions),
                "sessions_listening": listening,
                "sessions": sessions,
            }
        }
