#!/usr/bin/env python3
"""
Minecraft Log Path Detection

Resolves the server's latest.log from the server directory and checks
that it looks like a server log.
"""

import logging
from pathlib import Path
from typing import Optional

from bot.errors import ConfigError, LogFileNotFoundError

logger = logging.getLogger(__name__)

class ServerLogPath:
    LOGS_DIR_NAME = "logs"
    LOG_FILE_NAME = "latest.log"

    def __init__(self, server_dir):
        self.server_dir = Path(server_dir)

    @property
    def logs_dir(self) -> Path:
        return self.server_dir / self.LOGS_DIR_NAME

    @property
    def log_path(self) -> Path:
        return self.logs_dir / self.LOG_FILE_NAME

    def detect_log_path(self) -> Path:
        """
        Locate the server's latest.log.

        Returns:
            Path to the log file

        Raises:
            ConfigError: if the server directory does not exist
            LogFileNotFoundError: if the logs directory or latest.log is missing
        """
        if not self.server_dir.is_dir():
            raise ConfigError(f"Minecraft directory not found: {self.server_dir}")

        if not self.logs_dir.is_dir():
            raise LogFileNotFoundError(f"Minecraft logs directory not found: {self.logs_dir}")

        if not self.log_path.is_file():
            raise LogFileNotFoundError(f"Minecraft latest.log not found: {self.log_path}")

        logger.info(f"Found Minecraft log at: {self.log_path}")
        return self.log_path

    def validate_log_file(self, path: Optional[Path] = None) -> bool:
        """Check that the log is readable and looks like a server log."""
        path = Path(path) if path else self.log_path
        try:
            if not path.is_file():
                return False

            with open(path, 'r', encoding='utf-8', errors='ignore') as f:
                for i, line in enumerate(f):
                    if i >= 10:
                        break
                    if "[Server thread/" in line or "[main/" in line:
                        return True

            # An empty log is fine, the server may have just started
            return path.stat().st_size == 0

        except OSError as e:
            logger.error(f"Failed to validate log file {path}: {e}")
            return False

