#!/usr/bin/env python3
"""
Minecraft Chat Bot - Main Application

Main entry point that integrates all components:
- Configuration and dated logging
- Log path detection
- File tailer and chat line matcher
- Chat dispatcher (completion service + RCON)
- Periodic broadcast scheduler
"""

import asyncio
import logging
import signal
import sys
from pathlib import Path
from typing import Optional

# Add parent directory to path for imports
sys.path.append(str(Path(__file__).parent.parent))

from bot.config import BotConfig
from bot.dispatcher import ChatDispatcher
from bot.errors import BotError
from bot.logging_setup import setup_logging
from bot.scheduler import BroadcastScheduler
from chatlog.file_tailer import LogTailer
from chatlog.line_matcher import ChatLineMatcher
from chatlog.log_path import ServerLogPath
from clients.completion_client import CompletionClient
from clients.rcon_client import RconClient

logger = logging.getLogger(__name__)

ONLINE_MESSAGE = "Chat bot system is now online! Use {trigger} to chat with Gemini AI"

class ChatBot:
    """Main chat bot application."""

    def __init__(self, config: BotConfig, completion_client: Optional[CompletionClient] = None,
                 rcon_client: Optional[RconClient] = None):
        self.config = config
        self.completion_client = completion_client or CompletionClient(
            api_key=config.gemini_api_key,
            model=config.completion_model,
            base_url=config.completion_base_url,
            timeout=config.completion_timeout,
        )
        self.rcon_client = rcon_client or RconClient(
            config.rcon_host, config.rcon_port, config.rcon_password,
            timeout=config.rcon_timeout,
        )
        self.dispatcher = ChatDispatcher(self.completion_client, self.rcon_client)
        self.matcher = ChatLineMatcher(config.trigger_keyword)
        self.tailer: Optional[LogTailer] = None
        self._tailer_task: Optional[asyncio.Task] = None
        self.scheduler: Optional[BroadcastScheduler] = None
        self.is_running = False
        self._stop_event = asyncio.Event()

    async def start(self):
        """Run startup checks and start tailing.

        Raises:
            BotError: on any fatal startup problem
        """
        logger.info("Starting Minecraft Chat Bot...")
        logger.info(f"Configuration: {self.config.summary()}")

        server_log = ServerLogPath(self.config.minecraft_dir)
        log_path = server_log.detect_log_path()
        if not server_log.validate_log_file(log_path):
            logger.warning(f"{log_path} does not look like a Minecraft server log, tailing it anyway")

        await self.completion_client.check_connection()
        logger.info("Completion service connection established")

        await self.rcon_client.broadcast(ONLINE_MESSAGE.format(trigger=self.config.trigger_keyword))
        logger.info("Connected to Minecraft server")

        self.tailer = LogTailer(log_path, self.matcher, self.dispatcher.submit)
        self.tailer.open()
        self._tailer_task = asyncio.create_task(self.tailer.run())
        logger.info("Now watching Minecraft log file for commands")

        message = self.config.broadcast_message()
        if message and self.config.auto_message_interval > 0:
            self.scheduler = BroadcastScheduler(
                self.rcon_client, message, self.config.auto_message_interval
            )
            self.scheduler.start()
        else:
            logger.warning("No auto-message configured, periodic broadcast disabled")

        self.is_running = True
        logger.info("Bot initialization complete - Ready to process messages")
        logger.info(f"Minecraft directory: {self.config.minecraft_dir}")

    async def run_until_stopped(self):
        """Wait for a stop request or for the tailer to die."""
        stop_waiter = asyncio.create_task(self._stop_event.wait())
        done, _ = await asyncio.wait(
            {stop_waiter, self._tailer_task}, return_when=asyncio.FIRST_COMPLETED
        )
        stop_waiter.cancel()
        if self._tailer_task in done and not self._stop_event.is_set():
            # Unexpected fault inside the tailer; re-raise it
            self._tailer_task.result()

    def request_stop(self):
        self._stop_event.set()

    async def stop(self):
        """Stop all components."""
        logger.info("Bot shutting down...")
        self.is_running = False

        if self.tailer and self._tailer_task:
            self.tailer.stop()
            try:
                await asyncio.wait_for(self._tailer_task, timeout=5)
            except asyncio.TimeoutError:
                self._tailer_task.cancel()
            except Exception as e:
                logger.error(f"Log tailer exited with error: {e}")

        if self.scheduler:
            await self.scheduler.stop()

        await self.dispatcher.shutdown()

        try:
            await self.completion_client.close()
        except Exception as e:
            logger.error(f"Error closing completion client: {e}")

        logger.info("Bot stopped")

def _handle_loop_exception(loop, context):
    exception = context.get("exception")
    message = context.get("message", "")
    logger.error(f"Unhandled error in background task: {exception or message}")

async def run(config: BotConfig) -> int:
    loop = asyncio.get_running_loop()
    loop.set_exception_handler(_handle_loop_exception)

    bot = ChatBot(config)

    def signal_handler(signum, frame):
        logger.info(f"Received shutdown signal {signum}")
        loop.call_soon_threadsafe(bot.request_stop)

    previous_handlers = {
        sig: signal.signal(sig, signal_handler) for sig in (signal.SIGINT, signal.SIGTERM)
    }

    try:
        await bot.start()
        await bot.run_until_stopped()
        return 0
    except BotError as e:
        logger.error(f"Fatal error in main function: {e}")
        return 1
    except Exception as e:
        logger.exception(f"Unexpected error: {e}")
        return 1
    finally:
        await bot.stop()
        for sig, handler in previous_handlers.items():
            signal.signal(sig, handler if handler is not None else signal.SIG_DFL)

def main(env_file: str = ".env") -> int:
    """Load configuration, set up logging and run the bot."""
    try:
        config = BotConfig.from_env(env_file)
    except BotError as e:
        setup_logging()
        logger.error(f"Fatal error in main function: {e}")
        return 1

    setup_logging(config.bot_logs_dir, config.log_level)
    return asyncio.run(run(config))

if __name__ == "__main__":
    sys.exit(main())
