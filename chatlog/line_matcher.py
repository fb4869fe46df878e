#!/usr/bin/env python3
"""
Chat Line Matcher

Maps raw Minecraft server log lines to chat command events.
Only chat records written by the server thread are recognised.
"""

import re
import logging
from typing import Optional

from .events import ChatEvent

logger = logging.getLogger(__name__)

DEFAULT_TRIGGER = "!ask"

# Record prefixes written by the server thread in front of a chat message.
#   Forge/modded: [18Oct2026 12:34:56.789] [Server thread/INFO] [net.minecraft.server.MinecraftServer/]:
#   Vanilla:      [12:34:56] [Server thread/INFO]:
# Vanilla 1.19.1+ adds "[Not Secure] " before messages without a chat signature.
CHAT_RECORD_PREFIXES = (
    r"\[\d{2}[A-Za-z]{3}\d{4} \d{2}:\d{2}:\d{2}\.\d{3}\] "
    r"\[Server thread/INFO\] \[net\.minecraft\.server\.MinecraftServer/\]: ",
    r"\[\d{2}:\d{2}:\d{2}\] \[Server thread/INFO\]: ",
)

class ChatLineMatcher:
    """Extracts `<actor> <trigger> text` commands from log lines."""

    def __init__(self, trigger: str = DEFAULT_TRIGGER):
        if not trigger or any(ch.isspace() for ch in trigger):
            raise ValueError(f"Invalid trigger keyword: {trigger!r}")
        self.trigger = trigger

        # The record prefix is optional so bare chat text can be matched too
        prefixes = "|".join(f"(?:{p})" for p in CHAT_RECORD_PREFIXES)
        self.chat_pattern = re.compile(
            rf"^(?:{prefixes})?(?:\[Not Secure\] )?<(?P<actor>\w+)> (?P<message>.*)$"
        )
        self.command_pattern = re.compile(
            rf"^{re.escape(trigger)}(?:\s+(?P<text>.*))?$", re.DOTALL
        )

    def match(self, line: str) -> Optional[ChatEvent]:
        """
        Match a single log line.

        Args:
            line: Raw log line without its terminating newline

        Returns:
            ChatEvent if the line is a trigger command, None otherwise
        """
        if not isinstance(line, str):
            return None

        chat_match = self.chat_pattern.match(line.rstrip("\r\n"))
        if not chat_match:
            return None

        message = chat_match.group("message").strip()
        command_match = self.command_pattern.match(message)
        if not command_match:
            return None

        command_text = (command_match.group("text") or "").strip()
        if not command_text:
            logger.debug(f"Ignoring empty {self.trigger} from {chat_match.group('actor')}")
            return None

        return ChatEvent(actor=chat_match.group("actor"), command_text=command_text)

