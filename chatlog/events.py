#!/usr/bin/env python3
"""
Event Schema Definitions

Pydantic models for chat events extracted from the server log,
plus the tailer cursor and state enum.
"""

from enum import Enum
from pydantic import BaseModel, Field

class TailerState(str, Enum):
    """States of the log tailer."""
    IDLE = "idle"
    READING = "reading"
    DRAINING = "draining"

class Cursor(BaseModel):
    """Last byte position of the tailed file known to be fully consumed."""
    byte_offset: int = Field(default=0, ge=0)

class ChatEvent(BaseModel):
    """A player chat command addressed to the bot."""
    actor: str = Field(min_length=1)
    command_text: str = Field(min_length=1)
