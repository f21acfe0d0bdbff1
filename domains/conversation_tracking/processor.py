"""
Message processor.

Turns parsed conversation entries into Langfuse events, at most once per
entry uuid.
"""

from typing import Optional, Union

from loguru import logger

from claude_langfuse.models.schemas import EntryKind, Generation, LogEntry, Trace
from claude_langfuse.utils.config import Settings
from claude_langfuse.utils.helpers import (
    now_utc,
    parse_iso_timestamp,
    preview_text,
    project_name,
)
from claude_langfuse.utils.langfuse_client import LangfuseClient, LangfuseError
from domains.conversation_tracking.extractor import extract_content, extract_model
from domains.conversation_tracking.ledger import SessionLedger
from domains.conversation_tracking.reader import ConversationSession

Event = Union[Trace, Generation]


class MessageProcessor:
    """Deduplicates entries and forwards user/assistant turns."""

    def __init__(
        self,
        settings: Settings,
        ledger: SessionLedger,
        client: Optional[LangfuseClient] = None,
        quiet: bool = False,
    ):
        """
        Initialize message processor.

        Args:
            settings: Names, model and source used for events
            ledger: Shared dedup/session ledger
            client: Delivery client, None for dry runs
            quiet: Suppress the per-message activity line
        """
        self.settings = settings
        self.ledger = ledger
        self.client = client
        self.quiet = quiet

    def process(self, entry: LogEntry, session: ConversationSession) -> Optional[Event]:
        """
        Process one entry.

        Returns:
            The event built for the entry, or None when it was skipped
        """
        kind = entry.kind
        if kind is EntryKind.OTHER:
            return None

        if not entry.id:
            return None

        if not self.ledger.claim(entry.id):
            return None

        text = extract_content(entry.message)
        timestamp = parse_iso_timestamp(entry.timestamp) or now_utc()

        self.ledger.record(kind)

        if not self.quiet:
            self._log_activity(kind, session, text)

        if kind is EntryKind.USER:
            event = self.build_trace(entry, session, text, timestamp)
        else:
            event = self.build_generation(entry, session, text, timestamp)

        if self.client is not None:
            self._deliver(event)

        return event

    def build_trace(self, entry: LogEntry, session: ConversationSession, text, timestamp) -> Trace:
        return Trace(
            id=entry.id,
            name=self.settings.user_trace_name,
            session_id=session.session_id,
            user_id=self.settings.user_id,
            metadata={
                "project": session.project_path,
                "conversationId": session.conversation_id,
                "gitBranch": entry.branch,
                "cwd": entry.working_dir,
                "messageType": entry.type,
                "source": self.settings.source,
            },
            input=text,
            timestamp=timestamp,
        )

    def build_generation(
        self, entry: LogEntry, session: ConversationSession, text, timestamp
    ) -> Generation:
        model = extract_model(entry.message) or self.settings.model
        return Generation(
            id=entry.id,
            trace_id=entry.parent_id,
            name=self.settings.assistant_trace_name,
            model=model,
            metadata={
                "project": session.project_path,
                "conversationId": session.conversation_id,
                "requestId": entry.request_id,
                "messageType": entry.type,
                "source": self.settings.source,
            },
            output=text,
            start_time=timestamp,
            end_time=timestamp,
        )

    def _deliver(self, event: Event):
        try:
            if isinstance(event, Trace):
                self.client.create_trace(event)
            else:
                self.client.create_generation(event)
        except LangfuseError as e:
            kind = "trace" if isinstance(event, Trace) else "generation"
            logger.error(f"Error creating {kind}: {e}")

    def _log_activity(self, kind: EntryKind, session: ConversationSession, text: str):
        logger.info(
            f"[{kind.value}] [{project_name(session.project_path)}] {preview_text(text)}..."
        )
