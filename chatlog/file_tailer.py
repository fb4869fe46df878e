#!/usr/bin/env python3
"""
File Tailer

Follows the Minecraft server log using watchdog notifications with a
polling fallback. Keeps a byte cursor into the file, handles truncation
and rotation, and feeds complete lines to the chat line matcher.
"""

import os
import asyncio
import logging
from pathlib import Path
from typing import Callable, Optional, List
from watchdog.observers import Observer
from watchdog.events import FileSystemEventHandler

from .events import ChatEvent, Cursor, TailerState
from .line_matcher import ChatLineMatcher
from bot.errors import LogFileNotFoundError

logger = logging.getLogger(__name__)

class LogFileHandler(FileSystemEventHandler):
    """Watchdog handler forwarding events for a single file to the tailer.

    Runs on the observer thread; callbacks are bridged into the event loop.
    """

    def __init__(self, tailer: "LogTailer", loop: asyncio.AbstractEventLoop):
        self.tailer = tailer
        self.loop = loop
        self.file_path = os.path.abspath(str(tailer.file_path))

    def _is_target(self, path) -> bool:
        if isinstance(path, bytes):
            path = os.fsdecode(path)
        return bool(path) and os.path.abspath(path) == self.file_path

    def on_modified(self, event):
        if not event.is_directory and self._is_target(event.src_path):
            self.loop.call_soon_threadsafe(self.tailer.notify_change)

    def on_created(self, event):
        if not event.is_directory and self._is_target(event.src_path):
            self.loop.call_soon_threadsafe(self.tailer.notify_rotation)

    def on_deleted(self, event):
        if not event.is_directory and self._is_target(event.src_path):
            self.loop.call_soon_threadsafe(self.tailer.notify_rotation)

    def on_moved(self, event):
        if event.is_directory:
            return
        if self._is_target(event.src_path) or self._is_target(getattr(event, "dest_path", "")):
            self.loop.call_soon_threadsafe(self.tailer.notify_rotation)

class LogTailer:
    """Restart-safe tailer for an append-only, externally rotated log file."""

    def __init__(self, file_path: Path, matcher: ChatLineMatcher,
                 callback: Callable[[ChatEvent], None],
                 poll_interval: float = 1.0, rotation_delay: float = 1.0,
                 error_backoff: float = 5.0, use_observer: bool = True):
        self.file_path = Path(file_path)
        self.matcher = matcher
        self.callback = callback
        self.poll_interval = poll_interval
        self.rotation_delay = rotation_delay
        self.error_backoff = error_backoff
        self.use_observer = use_observer

        self.cursor = Cursor()
        self.state = TailerState.IDLE
        self.is_running = False
        self.observer = None
        self._inode: Optional[int] = None
        self._fragment = b""
        self._wake = asyncio.Event()
        self._rotation_pending = False
        self._opened = False

    def open(self):
        """Position the cursor at the current end of file.

        Raises:
            LogFileNotFoundError: if the log file does not exist
        """
        if not self.file_path.is_file():
            raise LogFileNotFoundError(f"Minecraft latest.log not found: {self.file_path}")

        stat = self.file_path.stat()
        self.cursor.byte_offset = stat.st_size
        self._inode = stat.st_ino
        self._fragment = b""
        self._opened = True
        logger.info(f"Tailing {self.file_path} from byte {self.cursor.byte_offset}")

    def reset_cursor(self, reason: str):
        """Rewind to the start of the file and drop any partial line."""
        logger.info(f"Resetting log cursor ({reason}): {self.file_path}")
        self.cursor.byte_offset = 0
        self._fragment = b""
        self._inode = None

    def notify_change(self):
        """Called when the file reports new content."""
        self._wake.set()

    def notify_rotation(self):
        """Called when the file was renamed, replaced or recreated."""
        self._rotation_pending = True
        self._wake.set()

    def read_new_lines(self) -> List[str]:
        """
        Read bytes appended since the last cycle and split complete lines.

        Returns:
            Complete lines in file order, without terminators

        Raises:
            OSError: if the file cannot be read
        """
        if not self._opened:
            self.open()

        self.state = TailerState.READING
        stat = os.stat(self.file_path)

        if self._inode is not None and stat.st_ino != self._inode:
            self.reset_cursor("file replaced")
        self._inode = stat.st_ino

        size = stat.st_size
        if size < self.cursor.byte_offset:
            self.reset_cursor(f"truncated from {self.cursor.byte_offset} to {size} bytes")

        if size == self.cursor.byte_offset:
            self.state = TailerState.DRAINING
            return []

        with open(self.file_path, "rb") as f:
            f.seek(self.cursor.byte_offset)
            data = f.read(size - self.cursor.byte_offset)

        self.cursor.byte_offset += len(data)
        lines = self._split_lines(data)
        self.state = TailerState.DRAINING
        return lines

    def _split_lines(self, data: bytes) -> List[str]:
        buffer = self._fragment + data
        parts = buffer.split(b"\n")
        self._fragment = parts.pop()
        return [part.rstrip(b"\r").decode("utf-8", errors="replace") for part in parts]

    def poll_once(self) -> List[str]:
        """Run one tail cycle and hand each line to the matcher in order."""
        lines = self.read_new_lines()
        for line in lines:
            event = self.matcher.match(line)
            if event is None:
                continue
            logger.info(f"Received message from {event.actor}: \"{event.command_text}\"")
            try:
                self.callback(event)
            except Exception as e:
                logger.error(f"Error dispatching chat event from {event.actor}: {e}")
        return lines

    async def run(self):
        """Tail the file until stop() is called."""
        if not self._opened:
            self.open()

        self.is_running = True
        self._start_observer(asyncio.get_running_loop())

        try:
            while self.is_running:
                self.state = TailerState.IDLE
                try:
                    await asyncio.wait_for(self._wake.wait(), timeout=self.poll_interval)
                except asyncio.TimeoutError:
                    pass
                self._wake.clear()

                if not self.is_running:
                    break

                if self._rotation_pending:
                    logger.info("Detected log file rotation, reconnecting...")
                    await asyncio.sleep(self.rotation_delay)
                    # A rename arrives as moved + created; absorb everything seen while waiting.
                    # The inode and size checks in read_new_lines decide whether to rewind.
                    self._rotation_pending = False
                    self._wake.clear()

                try:
                    self.poll_once()
                except OSError as e:
                    self.state = TailerState.IDLE
                    logger.error(f"Error checking file changes: {e}")
                    await asyncio.sleep(self.error_backoff)
        finally:
            self._stop_observer()
            self.is_running = False
            self.state = TailerState.IDLE

    def stop(self):
        """Stop tailing; the run loop exits at its next wake-up."""
        self.is_running = False
        self._wake.set()

    def _start_observer(self, loop: asyncio.AbstractEventLoop):
        if not self.use_observer:
            return
        try:
            self.observer = Observer()
            self.observer.schedule(
                LogFileHandler(self, loop),
                str(self.file_path.parent),
                recursive=False
            )
            self.observer.start()
            logger.info(f"Watching Minecraft log file: {self.file_path}")
        except Exception as e:
            logger.warning(f"File watcher unavailable, polling every {self.poll_interval}s: {e}")
            self.observer = None

    def _stop_observer(self):
        if self.observer is None:
            return
        try:
            self.observer.stop()
            self.observer.join(timeout=5)
        except Exception as e:
            logger.error(f"Error stopping file watcher: {e}")
        self.observer = None

    def get_file_position(self) -> int:
        """Get current cursor position."""
        return self.cursor.byte_offset
