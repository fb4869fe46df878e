#!/usr/bin/env python3
"""
Completion Client

Asks a language model for an answer through an OpenAI-compatible
chat completions endpoint (Gemini by default).
"""

import logging
from typing import Optional
from openai import AsyncOpenAI, OpenAIError

from bot.errors import CompletionError

logger = logging.getLogger(__name__)

GEMINI_OPENAI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"
DEFAULT_MODEL = "gemini-2.0-flash"

CONNECTION_TEST_PROMPT = "Hello, can you respond to this test message?"

class CompletionClient:
    """Single request/response text completion."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL,
                 base_url: Optional[str] = GEMINI_OPENAI_BASE_URL,
                 timeout: float = 30.0, client: Optional[AsyncOpenAI] = None):
        self.model = model
        self.client = client or AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def generate(self, prompt: str) -> str:
        """
        Generate an answer for a prompt.

        Args:
            prompt: The player's question

        Returns:
            Generated text, stripped

        Raises:
            CompletionError: on API failure or an empty answer
        """
        logger.info(f"Sending question to {self.model}: \"{prompt}\"")
        try:
            response = await self.client.chat.completions.create(
                model=self.model,
                messages=[{"role": "user", "content": prompt}],
            )
        except OpenAIError as e:
            logger.error(f"Error communicating with {self.model}: {e}")
            raise CompletionError(str(e)) from e

        text = ""
        if response.choices:
            text = (response.choices[0].message.content or "").strip()
        if not text:
            raise CompletionError(f"Empty response from {self.model}")

        logger.info(f"Response from {self.model}: \"{text}\"")
        return text

    async def check_connection(self) -> str:
        """Send a test prompt; raises CompletionError if the service is unreachable."""
        text = await self.generate(CONNECTION_TEST_PROMPT)
        logger.info("Completion service connection test successful")
        return text

    async def close(self):
        await self.client.close()
