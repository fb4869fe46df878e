#!/usr/bin/env python3
"""
Logging Setup

Console output plus an append-only log file per day
(logs/bot_YYYY-MM-DD.log).
"""

import logging
from datetime import date
from pathlib import Path

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

class DatedFileHandler(logging.FileHandler):
    """File handler that switches to a new dated file when the day changes."""

    def __init__(self, log_dir, prefix: str = "bot", encoding: str = "utf-8"):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix
        self.current_date = date.today()
        super().__init__(self._path_for(self.current_date), mode='a', encoding=encoding)

    def _path_for(self, day: date) -> Path:
        return self.log_dir / f"{self.prefix}_{day.isoformat()}.log"

    def emit(self, record):
        today = date.today()
        if today != self.current_date:
            # handle() already holds the handler lock here
            if self.stream:
                self.stream.close()
                self.stream = None
            self.current_date = today
            self.baseFilename = str(self._path_for(today).resolve())
        super().emit(record)

def setup_logging(log_dir="logs", level: str = "INFO") -> DatedFileHandler:
    """Configure the root logger; returns the dated file handler."""
    file_handler = DatedFileHandler(log_dir)
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=[
            logging.StreamHandler(),
            file_handler,
        ],
        force=True,
    )
    return file_handler
