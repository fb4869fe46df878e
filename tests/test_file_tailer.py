#!/usr/bin/env python3
"""
Tests for the log file tailer.
"""

import asyncio
import os
import pytest

# Add parent directory to path for imports
import sys
from pathlib import Path
sys.path.append(str(Path(__file__).parent.parent))

from chatlog.events import TailerState
from chatlog.file_tailer import LogTailer
from chatlog.line_matcher import ChatLineMatcher
from bot.errors import LogFileNotFoundError

def append(path: Path, data: bytes):
    with open(path, "ab") as f:
        f.write(data)

def make_tailer(path: Path, events=None, **kwargs) -> LogTailer:
    callback = events.append if events is not None else (lambda event: None)
    kwargs.setdefault("use_observer", False)
    tailer = LogTailer(path, ChatLineMatcher(), callback, **kwargs)
    tailer.open()
    return tailer

async def wait_for(predicate, timeout=3.0):
    deadline = asyncio.get_running_loop().time() + timeout
    while not predicate():
        if asyncio.get_running_loop().time() > deadline:
            return False
        await asyncio.sleep(0.01)
    return True

class TestTailerReading:
    """Test cases for a single tail cycle."""

    def test_missing_file_is_fatal(self, tmp_path):
        tailer = LogTailer(tmp_path / "latest.log", ChatLineMatcher(), lambda event: None)
        with pytest.raises(LogFileNotFoundError):
            tailer.open()

    def test_history_is_not_replayed(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"<old> !ask from yesterday\n")
        events = []
        tailer = make_tailer(path, events)

        assert tailer.get_file_position() == path.stat().st_size
        assert tailer.poll_once() == []
        assert events == []

    def test_appended_lines_in_order(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        tailer = make_tailer(path)

        append(path, b"one\ntwo\n\nthree\n")
        assert tailer.poll_once() == ["one", "two", "", "three"]
        assert tailer.get_file_position() == path.stat().st_size
        assert tailer.state == TailerState.DRAINING

        append(path, b"four\n")
        assert tailer.poll_once() == ["four"]

    def test_no_growth(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"x\n")
        tailer = make_tailer(path)
        assert tailer.state == TailerState.IDLE
        assert tailer.poll_once() == []
        assert tailer.get_file_position() == 2

    def test_partial_line_is_held_back(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        tailer = make_tailer(path)

        append(path, b"<alice> !ask half")
        assert tailer.poll_once() == []
        append(path, b" a question")
        assert tailer.poll_once() == []
        append(path, b"\nnext")
        assert tailer.poll_once() == ["<alice> !ask half a question"]
        append(path, b"\n")
        assert tailer.poll_once() == ["next"]

    def test_crlf_lines(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        tailer = make_tailer(path)
        append(path, b"first\r\nsecond\r\n")
        assert tailer.poll_once() == ["first", "second"]

    @pytest.mark.parametrize("chunk_size", [1, 2, 3, 7, 64])
    def test_chunking_invariance(self, tmp_path, chunk_size):
        data = (
            "<alice> !ask what is a creeper?\n"
            "<bob> ça va? ünïcödé ✓ 🌟\n"
            "\n"
            "[12:00:00] [Server thread/INFO]: <carol> !ask 日本語\n"
            "trailing fragment"
        ).encode("utf-8")

        whole = tmp_path / "whole.log"
        whole.write_bytes(b"")
        whole_tailer = make_tailer(whole)
        append(whole, data)
        expected = whole_tailer.poll_once()

        chunked = tmp_path / "chunked.log"
        chunked.write_bytes(b"")
        chunked_tailer = make_tailer(chunked)
        lines = []
        for i in range(0, len(data), chunk_size):
            append(chunked, data[i:i + chunk_size])
            lines.extend(chunked_tailer.poll_once())

        assert lines == expected
        assert len(expected) == 4
        assert expected[1] == "<bob> ça va? ünïcödé ✓ 🌟"

    def test_truncation_resets_cursor(self, tmp_path, caplog):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        tailer = make_tailer(path)

        append(path, b"aaaaaaaaaa\nbbbbbbbbbb\n")
        assert tailer.poll_once() == ["aaaaaaaaaa", "bbbbbbbbbb"]

        with open(path, "wb") as f:
            f.write(b"fresh\n")

        with caplog.at_level("INFO"):
            assert tailer.poll_once() == ["fresh"]
        assert "truncated" in caplog.text
        assert tailer.get_file_position() == len(b"fresh\n")

    def test_truncation_drops_partial_fragment(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        tailer = make_tailer(path)

        append(path, b"complete\npartial without end")
        assert tailer.poll_once() == ["complete"]

        with open(path, "wb") as f:
            f.write(b"new\n")
        assert tailer.poll_once() == ["new"]

    def test_rename_rotation(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        tailer = make_tailer(path)

        append(path, b"before rotation, quite a long line of text\n")
        assert tailer.poll_once() == ["before rotation, quite a long line of text"]

        # The old file stays on disk so the new one gets a different inode
        os.rename(path, tmp_path / "2026-10-18-1.log")
        path.write_bytes(b"after\n")

        assert tailer.poll_once() == ["after"]

    def test_matches_forwarded_in_order(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        events = []
        tailer = make_tailer(path, events)

        append(path, b"<a> !ask one\n<b> hi\n<c> !ask two\n<d> !ask\n<e> !ask three\n")
        tailer.poll_once()

        assert [(e.actor, e.command_text) for e in events] == [
            ("a", "one"), ("c", "two"), ("e", "three")
        ]

    def test_callback_errors_are_contained(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        seen = []

        def callback(event):
            seen.append(event.actor)
            raise RuntimeError("handler exploded")

        tailer = LogTailer(path, ChatLineMatcher(), callback, use_observer=False)
        tailer.open()
        append(path, b"<a> !ask one\n<b> !ask two\n")

        assert len(tailer.poll_once()) == 2
        assert seen == ["a", "b"]

    def test_read_error_propagates_from_single_cycle(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        tailer = make_tailer(path)
        path.unlink()

        with pytest.raises(OSError):
            tailer.poll_once()

class TestTailerLoop:
    """Test cases for the asynchronous tail loop."""

    @pytest.mark.asyncio
    async def test_poll_fallback_picks_up_lines(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        events = []
        tailer = make_tailer(path, events, poll_interval=0.02)
        task = asyncio.create_task(tailer.run())

        try:
            append(path, b"<dave> !ask 2+2\n")
            assert await wait_for(lambda: len(events) == 1)
            assert events[0].command_text == "2+2"
        finally:
            tailer.stop()
            await asyncio.wait_for(task, timeout=2)

        assert not tailer.is_running

    @pytest.mark.asyncio
    async def test_change_notification_wakes_loop(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        events = []
        tailer = make_tailer(path, events, poll_interval=30)
        task = asyncio.create_task(tailer.run())

        try:
            await asyncio.sleep(0.05)
            append(path, b"<erin> !ask ping\n")
            tailer.notify_change()
            assert await wait_for(lambda: len(events) == 1, timeout=1)
        finally:
            tailer.stop()
            await asyncio.wait_for(task, timeout=2)

    @pytest.mark.asyncio
    async def test_rotation_notification_reads_new_file_once(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"<erin> !ask already answered\n")
        events = []
        tailer = make_tailer(path, events, poll_interval=30, rotation_delay=0.1)
        task = asyncio.create_task(tailer.run())

        try:
            await asyncio.sleep(0.05)
            os.rename(path, tmp_path / "2026-10-18-1.log")
            tailer.notify_rotation()
            path.write_bytes(b"<dave> !ask 2+2\n")
            # created + modified arrive during the debounce
            tailer.notify_rotation()
            tailer.notify_change()

            assert await wait_for(lambda: len(events) >= 1, timeout=1)
            tailer.notify_change()
            await asyncio.sleep(0.3)
            assert [(e.actor, e.command_text) for e in events] == [("dave", "2+2")]
        finally:
            tailer.stop()
            await asyncio.wait_for(task, timeout=2)

    @pytest.mark.asyncio
    async def test_late_rotation_notification_does_not_rewind(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        events = []
        tailer = make_tailer(path, events, poll_interval=0.02, rotation_delay=0.05)
        task = asyncio.create_task(tailer.run())

        try:
            os.rename(path, tmp_path / "2026-10-18-1.log")
            path.write_bytes(b"<dave> !ask 2+2\n")
            # Polling follows the new inode before the notification is delivered
            assert await wait_for(lambda: len(events) == 1)
            position = tailer.get_file_position()

            tailer.notify_rotation()
            await asyncio.sleep(0.3)

            assert len(events) == 1
            assert tailer.get_file_position() == position
        finally:
            tailer.stop()
            await asyncio.wait_for(task, timeout=2)

    @pytest.mark.asyncio
    async def test_rotation_seen_by_watchdog_dispatches_once(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"[12:00:00] [Server thread/INFO]: <old> !ask before rotation\n")
        events = []
        tailer = make_tailer(path, events, poll_interval=30, rotation_delay=0.3, use_observer=True)
        task = asyncio.create_task(tailer.run())

        try:
            await asyncio.sleep(0.2)
            if tailer.observer is None:
                pytest.skip("File watcher not available on this platform")

            os.rename(path, tmp_path / "2026-10-18-1.log")
            path.write_bytes(b"<dave> !ask 2+2\n")

            assert await wait_for(lambda: len(events) >= 1, timeout=5)
            await asyncio.sleep(1.0)
            assert [(e.actor, e.command_text) for e in events] == [("dave", "2+2")]
        finally:
            tailer.stop()
            await asyncio.wait_for(task, timeout=6)

    @pytest.mark.asyncio
    async def test_read_errors_are_retried(self, tmp_path, caplog):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        events = []
        tailer = make_tailer(path, events, poll_interval=0.02, error_backoff=0.02)
        task = asyncio.create_task(tailer.run())

        try:
            path.unlink()
            await asyncio.sleep(0.15)
            assert not task.done()
            assert "Error checking file changes" in caplog.text

            path.write_bytes(b"<frank> !ask are you back\n")
            assert await wait_for(lambda: len(events) == 1)
        finally:
            tailer.stop()
            await asyncio.wait_for(task, timeout=2)

    @pytest.mark.asyncio
    async def test_watchdog_observer_notifications(self, tmp_path):
        path = tmp_path / "latest.log"
        path.write_bytes(b"")
        events = []
        tailer = make_tailer(path, events, poll_interval=30, use_observer=True)
        task = asyncio.create_task(tailer.run())

        try:
            await asyncio.sleep(0.2)
            if tailer.observer is None:
                pytest.skip("File watcher not available on this platform")
            append(path, b"<gina> !ask notified\n")
            assert await wait_for(lambda: len(events) == 1, timeout=5)
        finally:
            tailer.stop()
            await asyncio.wait_for(task, timeout=6)
