"""Shared fixtures: in-memory stand-ins for the RCON and completion services."""

import asyncio
import sys
from pathlib import Path

import pytest

sys.path.append(str(Path(__file__).parent.parent))

from bot.errors import CompletionError, RconError

class FakeCompletionClient:
    def __init__(self, answer="4", fail=False, delay=0.0):
        self.answer = answer
        self.fail = fail
        self.delay = delay
        self.prompts = []
        self.closed = False

    async def generate(self, prompt):
        self.prompts.append(prompt)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.fail:
            raise CompletionError("service unavailable")
        return self.answer

    async def check_connection(self):
        return await self.generate("Hello, can you respond to this test message?")

    async def close(self):
        self.closed = True

class FakeRconClient:
    def __init__(self, fail=False, fail_times=0):
        self.fail = fail
        self.fail_times = fail_times
        self.messages = []

    async def broadcast(self, message):
        self.messages.append(message)
        if self.fail:
            raise RconError("connection refused")
        if self.fail_times > 0:
            self.fail_times -= 1
            raise RconError("connection refused")
        return ""

@pytest.fixture
def completion_client():
    return FakeCompletionClient()

@pytest.fixture
def rcon_client():
    return FakeRconClient()

@pytest.fixture
def server_dir(tmp_path_factory):
    """A server directory with an empty logs/latest.log."""
    base = tmp_path_factory.mktemp("mc")
    logs = base / "server" / "logs"
    logs.mkdir(parents=True)
    (logs / "latest.log").write_bytes(b"")
    return base / "server"
