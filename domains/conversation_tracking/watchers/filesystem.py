"""
File system watcher for Conversation Tracking domain.

Monitors the Claude projects directory for conversation log writes and
hands each file to a callback once writes to it have settled.
Uses watchdog library for cross-platform file system event monitoring.
"""

import os
import threading
import time
from concurrent.futures import ThreadPoolExecutor
from pathlib import Path
from typing import Callable, Dict, List, Optional, Union

from loguru import logger
from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from domains.conversation_tracking.reader import LOG_SUFFIX

FileCallback = Callable[[str], object]


class WatcherError(Exception):
    """Raised when the watcher cannot be started."""


class ConversationEventHandler(FileSystemEventHandler):
    """Event handler that records writes to conversation logs."""

    def __init__(self, on_change: Callable[[str], None], suffix: str = LOG_SUFFIX):
        """
        Initialize event handler.

        Args:
            on_change: Called with the path of every qualifying write
            suffix: File suffix of conversation logs
        """
        super().__init__()
        self.on_change = on_change
        self.suffix = suffix

    def should_process(self, path: str) -> bool:
        """Check if path is a conversation log."""
        return path.endswith(self.suffix)

    def on_created(self, event: FileSystemEvent):
        """Handle file/directory creation."""
        if event.is_directory:
            # Recursive observers pick up new directories themselves
            logger.debug(f"Directory created: {event.src_path}")
            return

        path = os.fsdecode(event.src_path)
        if self.should_process(path):
            self.on_change(path)

    def on_modified(self, event: FileSystemEvent):
        """Handle file modification."""
        if event.is_directory:
            return

        path = os.fsdecode(event.src_path)
        if self.should_process(path):
            self.on_change(path)


class ConversationWatcher:
    """Debounced, recursive watcher for conversation logs."""

    def __init__(
        self,
        root: Union[str, Path],
        callback: FileCallback,
        debounce_seconds: float = 0.5,
        tick_seconds: float = 0.1,
        max_workers: int = 8,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize watcher.

        Args:
            root: Directory to watch recursively
            callback: Called with a file path once its writes settled
            debounce_seconds: Quiet period required before dispatch
            tick_seconds: Interval of the pending-file scan
            max_workers: Upper bound on concurrently running callbacks
            clock: Monotonic time source
        """
        self.root = Path(root).expanduser()
        self.callback = callback
        self.debounce_seconds = debounce_seconds
        self.tick_seconds = tick_seconds
        self.max_workers = max_workers
        self.clock = clock

        self.event_handler = ConversationEventHandler(self.mark_pending)

        self._lock = threading.Lock()
        self._pending: Dict[str, float] = {}
        self._done = threading.Event()
        self._stop_lock = threading.Lock()
        self._stopped = False

        self._observer: Optional[Observer] = None
        self._ticker: Optional[threading.Thread] = None
        self._executor: Optional[ThreadPoolExecutor] = None

    def mark_pending(self, path: str):
        """Record a write to path, restarting its debounce window."""
        with self._lock:
            self._pending[path] = self.clock()

    def pending_paths(self) -> List[str]:
        with self._lock:
            return list(self._pending)

    def scan_pending(self) -> List[str]:
        """Remove and return the paths whose debounce window elapsed."""
        now = self.clock()
        with self._lock:
            settled = [
                path
                for path, last_change in self._pending.items()
                if now - last_change >= self.debounce_seconds
            ]
            for path in settled:
                del self._pending[path]
        return settled

    def start(self):
        """Start watching the root directory."""
        if not self.root.exists():
            raise WatcherError(f"Watch root does not exist: {self.root}")
        if not self.root.is_dir():
            raise WatcherError(f"Watch root is not a directory: {self.root}")

        self._executor = ThreadPoolExecutor(
            max_workers=self.max_workers, thread_name_prefix="conversation-dispatch"
        )

        observer = Observer()
        observer.daemon = True
        try:
            observer.schedule(self.event_handler, str(self.root), recursive=True)
            observer.start()
        except OSError as e:
            self._executor.shutdown(wait=False)
            raise WatcherError(f"Failed to watch {self.root}: {e}") from e
        self._observer = observer

        self._ticker = threading.Thread(
            target=self._run_debounce, name="conversation-debounce", daemon=True
        )
        self._ticker.start()

        logger.success(f"Started watching: {self.root}")

    def _run_debounce(self):
        while not self._done.wait(self.tick_seconds):
            for path in self.scan_pending():
                self._dispatch(path)

    def _dispatch(self, path: str):
        try:
            self._executor.submit(self._invoke, path)
        except RuntimeError:
            # Executor already shut down
            logger.debug(f"Dropped dispatch after stop: {path}")

    def _invoke(self, path: str):
        try:
            self.callback(path)
        except Exception:
            logger.exception(f"Failed to process {path}")

    def stop(self):
        """Stop watching. Safe to call more than once."""
        with self._stop_lock:
            if self._stopped:
                return
            self._stopped = True

        self._done.set()

        if self._observer is not None:
            self._observer.stop()
            self._observer.join()

        if self._ticker is not None:
            self._ticker.join()

        if self._executor is not None:
            self._executor.shutdown(wait=True)

        logger.info("File system observer stopped")

    def __enter__(self) -> "ConversationWatcher":
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()
