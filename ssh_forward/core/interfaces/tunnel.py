"""
Tunnel client interface.

Forwarding sessions only need to open logical byte streams through an
already authenticated transport. This interface captures that contract so
sessions do not depend on the SSH library directly.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional, Tuple


class ITunnelClient(ABC):
    """A connected transport able to open streams to remote addresses."""

    @abstractmethod
    async def dial(
        self,
        host: str,
        port: int,
        timeout: Optional[float] = None
    ) -> Tuple[Any, Any]:
        """
        Open a stream to host:port through the transport.

        Must be safe to call concurrently from many sessions.

        Args:
            host: Remote host, resolved on the far side of the transport
            port: Remote port
            timeout: Seconds to wait for the channel to open (None waits forever)

        Returns:
            A (reader, writer) pair with asyncio stream semantics

        Raises:
            DialError: If the stream could not be opened
        """
        pass

    @abstractmethod
    def is_connected(self) -> bool:
        """Check whether the transport is still usable."""
        pass

    @abstractmethod
    async def close(self) -> None:
        """Close the transport and every stream opened through it."""
        pass
