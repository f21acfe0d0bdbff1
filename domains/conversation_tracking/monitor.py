"""
Conversation monitor.

Wires watcher -> reader -> processor -> Langfuse client, replays recent
history, flushes on a timer and drains the buffer on shutdown.
"""

import threading
import time
from pathlib import Path
from typing import List, Optional, Union

from loguru import logger

from claude_langfuse.utils.config import Settings
from claude_langfuse.utils.langfuse_client import LangfuseClient, LangfuseError
from domains.conversation_tracking.ledger import MessageStats, SessionLedger
from domains.conversation_tracking.processor import MessageProcessor
from domains.conversation_tracking.reader import LOG_SUFFIX, ConversationReader
from domains.conversation_tracking.watchers.filesystem import ConversationWatcher


class ProjectsDirNotFoundError(FileNotFoundError):
    """Raised when the Claude projects directory is missing."""


class FlushTimer(threading.Thread):
    """Calls a flush function at a fixed interval until stopped."""

    def __init__(self, interval: float, flush):
        super().__init__(name="langfuse-flush", daemon=True)
        self.interval = interval
        self.flush = flush
        self._done = threading.Event()

    def run(self):
        while not self._done.wait(self.interval):
            self.flush()

    def stop(self):
        self._done.set()
        if self.is_alive():
            self.join()


def find_recent_conversations(root: Path, hours: float, now: Optional[float] = None) -> List[Path]:
    """
    Conversation logs under root modified within the last ``hours``.

    Unreadable entries are skipped.
    """
    cutoff = (now if now is not None else time.time()) - hours * 3600
    recent = []

    for path in root.rglob(f"*{LOG_SUFFIX}"):
        try:
            if path.is_file() and path.stat().st_mtime > cutoff:
                recent.append(path)
        except OSError as e:
            logger.debug(f"Skipping {path}: {e}")

    return sorted(recent)


class ConversationMonitor:
    """Claude Code conversation monitoring orchestrator."""

    def __init__(
        self,
        settings: Settings,
        client: Optional[LangfuseClient] = None,
        dry_run: bool = False,
        quiet: bool = False,
    ):
        """
        Initialize conversation monitor.

        Args:
            settings: Monitor settings
            client: Delivery client; built from settings when omitted
            dry_run: Parse and count messages without sending anything
            quiet: Suppress per-message activity lines
        """
        self.settings = settings
        self.dry_run = dry_run

        if dry_run:
            self.client = None
        else:
            self.client = client or LangfuseClient.from_settings(settings)

        self.ledger = SessionLedger()
        self.processor = MessageProcessor(settings, self.ledger, self.client, quiet=quiet)
        self.reader = ConversationReader(self.ledger, self.processor)

    def get_projects_dir(self) -> Path:
        """Claude projects directory. Raises if it does not exist."""
        projects_dir = self.settings.get_projects_dir()
        if not projects_dir.is_dir():
            raise ProjectsDirNotFoundError(
                f"Claude projects directory not found: {projects_dir}"
            )
        return projects_dir

    def process_conversation_file(self, file_path: Union[str, Path]) -> int:
        """Process one conversation file. Returns the number of parsed entries."""
        return self.reader.process_file(file_path)

    def process_existing_history(self, hours: Optional[float] = None) -> int:
        """
        Process conversations modified within the last ``hours``.

        Returns:
            Number of conversation files processed
        """
        hours = self.settings.history_hours if hours is None else hours
        logger.info(f"Processing last {hours} hours...")

        conversations = find_recent_conversations(self.get_projects_dir(), hours)
        logger.info(f"Found {len(conversations)} recent conversations")

        for path in conversations:
            self.process_conversation_file(path)

        stats = self.message_stats()
        logger.success(
            f"Processed {len(conversations)} conversations "
            f"({stats.total} messages: {stats.user} user, {stats.assistant} assistant)"
        )
        return len(conversations)

    def flush(self) -> bool:
        """Flush pending events. Delivery failures are logged, not raised."""
        if self.client is None:
            return True

        try:
            self.client.flush()
        except LangfuseError as e:
            logger.warning(f"Flush failed, {self.client.event_count()} events kept: {e}")
            return False
        return True

    def message_stats(self) -> MessageStats:
        return self.ledger.stats()

    def pending_events(self) -> int:
        return self.client.event_count() if self.client is not None else 0

    def create_watcher(self, root: Optional[Path] = None) -> ConversationWatcher:
        return ConversationWatcher(
            root or self.get_projects_dir(),
            self.process_conversation_file,
            debounce_seconds=self.settings.debounce_seconds,
            tick_seconds=self.settings.debounce_tick_seconds,
            max_workers=self.settings.max_dispatch_workers,
        )

    def run(self, stop_event: threading.Event, history_hours: Optional[float] = None):
        """
        Replay history, then watch until ``stop_event`` is set.

        Raises ProjectsDirNotFoundError or WatcherError on startup failure.
        """
        projects_dir = self.get_projects_dir()
        logger.info(f"Claude projects: {projects_dir}")

        hours = self.settings.history_hours if history_hours is None else history_hours
        if hours > 0:
            self.process_existing_history(hours)
            self.flush()

        watcher = self.create_watcher(projects_dir)
        watcher.start()

        timer = FlushTimer(self.settings.flush_interval_seconds, self.flush)
        timer.start()

        logger.info("Watching for new Claude Code activity...")
        if self.client is not None:
            logger.info(f"Langfuse UI: {self.settings.host}")

        try:
            while not stop_event.is_set():
                stop_event.wait(1.0)
        finally:
            logger.info("Stopping monitor...")
            timer.stop()
            watcher.stop()
            self.shutdown()

        logger.success("Monitor stopped")

    def shutdown(self) -> bool:
        """Final flush and client close."""
        if self.client is None:
            return True

        try:
            self.client.shutdown()
        except LangfuseError as e:
            logger.error(f"Final flush failed, {self.client.event_count()} events dropped: {e}")
            return False
        return True
