#!/usr/bin/env python3
"""
Broadcast Scheduler

Sends a fixed message to the server at a fixed interval.
"""

import asyncio
import logging
from typing import Optional

logger = logging.getLogger(__name__)

class BroadcastScheduler:
    """Periodic RCON broadcast, independent of chat activity."""

    def __init__(self, rcon_client, message: str, interval: float):
        if interval <= 0:
            raise ValueError(f"Broadcast interval must be positive, got {interval}")
        self.rcon_client = rcon_client
        self.message = message
        self.interval = interval
        self.is_running = False
        self.fire_count = 0
        self.failure_count = 0
        self._task: Optional[asyncio.Task] = None

    def start(self) -> asyncio.Task:
        """Start the timer loop as a background task."""
        self.is_running = True
        self._task = asyncio.create_task(self._run())
        logger.info(f"Auto-message interval set to {self.interval / 60:g} minutes")
        return self._task

    async def stop(self):
        self.is_running = False
        if self._task is not None:
            self._task.cancel()
            try:
                await self._task
            except asyncio.CancelledError:
                pass
            self._task = None

    async def fire(self) -> bool:
        """Send the broadcast once. Failures are logged, never raised."""
        self.fire_count += 1
        logger.info("Sending scheduled auto-message")
        try:
            await self.rcon_client.broadcast(self.message)
            return True
        except Exception as e:
            self.failure_count += 1
            logger.error(f"Error sending auto-message: {e}")
            return False

    async def _run(self):
        loop = asyncio.get_running_loop()
        next_fire = loop.time() + self.interval
        while self.is_running:
            await asyncio.sleep(max(0.0, next_fire - loop.time()))
            if not self.is_running:
                break
            await self.fire()
            # Skip missed ticks instead of firing them back to back
            next_fire += self.interval
            if next_fire < loop.time():
                next_fire = loop.time() + self.interval
