#!/usr/bin/env python3
"""
RCON Client

Sends commands to the Minecraft server over RCON using the asyncio
client of the `rcon` package. Each command opens its own session and
closes it afterwards, so nothing blocks the event loop.
"""

import asyncio
import logging
from rcon.source import rcon
from rcon.exceptions import WrongPassword

from bot.errors import RconError

logger = logging.getLogger(__name__)

class RconClient:
    """One-shot RCON sessions against a single server."""

    def __init__(self, host: str, port: int, password: str, timeout: float = 5.0):
        self.host = host
        self.port = int(port)
        self.password = password
        self.timeout = float(timeout)

    async def send(self, command: str) -> str:
        """
        Run one command in a fresh session.

        Returns:
            The server's response text

        Raises:
            RconError: if the session or command fails or times out
        """
        try:
            return await asyncio.wait_for(
                rcon(command, host=self.host, port=self.port, passwd=self.password),
                timeout=self.timeout,
            )
        except asyncio.TimeoutError as e:
            raise RconError(f"RCON command timed out after {self.timeout}s on {self.host}:{self.port}") from e
        except WrongPassword as e:
            raise RconError(f"RCON login failed on {self.host}:{self.port}") from e
        except (OSError, EOFError) as e:
            raise RconError(f"RCON command failed on {self.host}:{self.port}: {e}") from e

    async def broadcast(self, message: str) -> str:
        """Send a `say` command to every player."""
        try:
            response = await self.send(f"say {message}")
        except RconError as e:
            logger.error(f"Error sending RCON message: {e}")
            raise
        logger.info(f"Message sent to Minecraft: {message}")
        return response
