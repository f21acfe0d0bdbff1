"""In-memory deduplication and session ledger."""

import threading
from dataclasses import dataclass
from typing import Dict, Set, Tuple

from claude_langfuse.models.schemas import EntryKind
from claude_langfuse.utils.helpers import session_id_for


@dataclass(frozen=True)
class MessageStats:
    user: int = 0
    assistant: int = 0

    @property
    def total(self) -> int:
        return self.user + self.assistant


class SessionLedger:
    """
    Process-lifetime record of forwarded entries and session ids.

    Every method holds the lock only for a point operation on the maps.
    """

    def __init__(self):
        self._lock = threading.Lock()
        self._processed: Set[str] = set()
        self._sessions: Dict[str, str] = {}
        self._counts: Dict[EntryKind, int] = {EntryKind.USER: 0, EntryKind.ASSISTANT: 0}

    def session_for(self, file_path: str, project_path: str, conversation_id: str) -> str:
        """Session id for a file, computed on first use and cached."""
        with self._lock:
            session_id = self._sessions.get(file_path)
            if session_id is None:
                session_id = session_id_for(project_path, conversation_id)
                self._sessions[file_path] = session_id
            return session_id

    def claim(self, entry_id: str) -> bool:
        """Mark an entry id as processed. False when it already was."""
        with self._lock:
            if entry_id in self._processed:
                return False
            self._processed.add(entry_id)
            return True

    def is_processed(self, entry_id: str) -> bool:
        with self._lock:
            return entry_id in self._processed

    def record(self, kind: EntryKind):
        with self._lock:
            self._counts[kind] += 1

    def stats(self) -> MessageStats:
        with self._lock:
            return MessageStats(
                user=self._counts[EntryKind.USER],
                assistant=self._counts[EntryKind.ASSISTANT],
            )

    def counts(self) -> Tuple[int, int]:
        """Number of (processed ids, known sessions)."""
        with self._lock:
            return len(self._processed), len(self._sessions)
