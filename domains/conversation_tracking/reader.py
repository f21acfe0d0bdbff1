"""
Conversation log reader.

Derives a conversation's session identity from its location under the
Claude projects root and streams its JSONL lines as LogEntry objects.
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, Optional, Protocol, Union

from loguru import logger
from pydantic import ValidationError

from claude_langfuse.models.schemas import LogEntry
from claude_langfuse.utils.helpers import decode_project_path
from domains.conversation_tracking.ledger import SessionLedger

PROJECTS_ANCHOR = "projects"
LOG_SUFFIX = ".jsonl"


@dataclass(frozen=True)
class ConversationPath:
    """Identity fields derived from a conversation file path."""
    project_path: str
    conversation_id: str


@dataclass(frozen=True)
class ConversationSession:
    """Session a log entry belongs to."""
    session_id: str
    project_path: str
    conversation_id: str
    file_path: str


class EntryProcessor(Protocol):
    def process(self, entry: LogEntry, session: ConversationSession) -> object: ...


def parse_conversation_path(
    path: Union[str, Path],
    anchor: str = PROJECTS_ANCHOR,
    suffix: str = LOG_SUFFIX,
) -> Optional[ConversationPath]:
    """
    Derive project path and conversation id from a file path.

    Expects ``.../<anchor>/<encoded-project>/.../<conversation-id><suffix>``.

    Returns:
        ConversationPath, or None when the anchor is missing or fewer than
        two segments follow it
    """
    parts = Path(path).parts

    try:
        anchor_idx = parts.index(anchor)
    except ValueError:
        return None

    if anchor_idx >= len(parts) - 2:
        return None

    file_name = parts[-1]
    if file_name.endswith(suffix):
        file_name = file_name[: -len(suffix)]

    return ConversationPath(
        project_path=decode_project_path(parts[anchor_idx + 1]),
        conversation_id=file_name,
    )


def parse_line(line: str) -> Optional[LogEntry]:
    """Parse one JSONL line. None for blank or malformed lines."""
    if not line.strip():
        return None
    try:
        return LogEntry.model_validate_json(line)
    except ValidationError:
        return None


def iter_log_entries(path: Union[str, Path]) -> Iterator[LogEntry]:
    """
    Yield parsed entries of a JSONL file in on-disk order.

    Malformed lines are skipped. A missing or unreadable file yields nothing.
    """
    skipped = 0
    try:
        with open(path, "r", encoding="utf-8", errors="replace") as f:
            for line in f:
                entry = parse_line(line)
                if entry is None:
                    if line.strip():
                        skipped += 1
                    continue
                yield entry
    except OSError as e:
        logger.debug(f"Could not read {path}: {e}")
        return

    if skipped:
        logger.debug(f"Skipped {skipped} malformed lines in {path}")


class ConversationReader:
    """Reads conversation files and hands their entries to a processor."""

    def __init__(self, ledger: SessionLedger, processor: EntryProcessor):
        self.ledger = ledger
        self.processor = processor

    def session_for(self, file_path: Union[str, Path]) -> Optional[ConversationSession]:
        """Session identity for a file, None when its path is not a conversation."""
        identity = parse_conversation_path(file_path)
        if identity is None:
            return None

        key = str(file_path)
        session_id = self.ledger.session_for(
            key, identity.project_path, identity.conversation_id
        )
        return ConversationSession(
            session_id=session_id,
            project_path=identity.project_path,
            conversation_id=identity.conversation_id,
            file_path=key,
        )

    def process_file(self, file_path: Union[str, Path]) -> int:
        """
        Stream every entry of a conversation file through the processor.

        The whole file is read on each call; the processor's ledger keeps
        already forwarded entries from being sent again.

        Returns:
            Number of entries parsed
        """
        session = self.session_for(file_path)
        if session is None:
            logger.debug(f"Not a conversation file: {file_path}")
            return 0

        parsed = 0
        for entry in iter_log_entries(file_path):
            parsed += 1
            self.processor.process(entry, session)

        return parsed
