"""
Duplex byte copying between an inbound socket and a tunnel channel.
"""

import asyncio
from typing import Any

import asyncssh
from loguru import logger

from ....core.domain.models import RelayStats

DEFAULT_BUFFER_SIZE = 65536


async def close_writer(writer: Any) -> None:
    """Close a stream writer and wait for it, ignoring transport errors."""
    writer.close()
    try:
        await writer.wait_closed()
    except (OSError, asyncssh.Error):
        pass


async def pipe(reader: Any, writer: Any, buffer_size: int = DEFAULT_BUFFER_SIZE) -> int:
    """
    Copy from reader to writer until EOF or error, then close writer.

    Returns:
        Number of bytes copied
    """
    copied = 0
    try:
        while True:
            data = await reader.read(buffer_size)
            if not data:
                break
            writer.write(data)
            await writer.drain()
            copied += len(data)
    except (OSError, asyncssh.Error) as e:
        logger.debug(f"Relay stopped after {copied} bytes: {e}")
    finally:
        await close_writer(writer)
    return copied


async def relay(
    local_reader: Any,
    local_writer: Any,
    remote_reader: Any,
    remote_writer: Any,
    buffer_size: int = DEFAULT_BUFFER_SIZE
) -> RelayStats:
    """
    Copy in both directions and wait for both to finish.

    Each direction closes its destination when its source ends, so closing
    either side eventually tears down the other.
    """
    to_remote, to_local = await asyncio.gather(
        pipe(local_reader, remote_writer, buffer_size),
        pipe(remote_reader, local_writer, buffer_size),
    )
    return RelayStats(bytes_to_remote=to_remote, bytes_to_local=to_local)
