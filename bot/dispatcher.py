#!/usr/bin/env python3
"""
Chat Dispatcher

Answers chat commands: asks the completion service and relays the
answer into the game over RCON. Each event runs as its own task so
the log tailer never waits on a reply.
"""

import asyncio
import logging
from typing import Set

from chatlog.events import ChatEvent

logger = logging.getLogger(__name__)

FALLBACK_ANSWER = "Sorry, I cannot answer your question at this time."

def format_reply(actor: str, text: str) -> str:
    """Build the single-line `say` text addressed to a player."""
    return f"[To {actor}] {' '.join(text.split())}"

class ChatDispatcher:
    """Fire-and-forget handler for chat events."""

    def __init__(self, completion_client, rcon_client, fallback_answer: str = FALLBACK_ANSWER):
        self.completion_client = completion_client
        self.rcon_client = rcon_client
        self.fallback_answer = fallback_answer
        self.pending: Set[asyncio.Task] = set()

    def submit(self, event: ChatEvent) -> asyncio.Task:
        """Schedule handling of an event without waiting for it."""
        task = asyncio.create_task(self.handle(event))
        self.pending.add(task)
        task.add_done_callback(self.pending.discard)
        return task

    async def handle(self, event: ChatEvent) -> None:
        """Answer one chat event. Never raises except on cancellation."""
        logger.info(f"Processing request from player {event.actor}: \"{event.command_text}\"")
        try:
            answer = await self.completion_client.generate(event.command_text)
        except Exception as e:
            logger.error(f"Completion failed for {event.actor}: {e}")
            await self._send_fallback(event)
            return

        try:
            await self.rcon_client.broadcast(format_reply(event.actor, answer))
        except Exception as e:
            logger.error(f"Error delivering answer to {event.actor}: {e}")
            await self._send_fallback(event)
            return

        logger.info(f"Successfully processed request from {event.actor}")

    async def _send_fallback(self, event: ChatEvent):
        try:
            await self.rcon_client.broadcast(format_reply(event.actor, self.fallback_answer))
        except Exception as e:
            logger.error(f"Error sending fallback reply to {event.actor}: {e}")

    async def shutdown(self):
        """Cancel in-flight dispatches."""
        tasks = list(self.pending)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
            logger.info(f"Cancelled {len(tasks)} pending chat requests")
