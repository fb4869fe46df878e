"""Exceptions raised by the chat bot."""

class BotError(Exception):
    """Base class for chat bot errors."""

class ConfigError(BotError):
    """Missing or invalid configuration; fatal at startup."""

class LogFileNotFoundError(BotError):
    """The server directory or its latest.log does not exist."""

class RconError(BotError):
    """A remote console command could not be delivered."""

class CompletionError(BotError):
    """The completion service did not return an answer."""
