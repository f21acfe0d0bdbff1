"""
Langfuse ingestion client with batching.

Provides:
- Buffered trace/generation events
- Automatic flush when the batch size is reached
- Explicit flush for timer and shutdown delivery
- Basic-auth JSON POST to /api/public/ingestion
"""

import threading
from typing import List, Optional, Union

import httpx
from loguru import logger

from claude_langfuse.models.schemas import Generation, IngestionEvent, Trace
from claude_langfuse.utils.config import Settings

INGESTION_PATH = "/api/public/ingestion"


class LangfuseError(Exception):
    """Raised when a batch could not be delivered."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class LangfuseClient:
    """Batching client for the Langfuse ingestion API."""

    def __init__(
        self,
        host: str,
        public_key: str,
        secret_key: str,
        batch_size: int = 10,
        timeout: float = 30.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        """
        Initialize Langfuse client.

        Args:
            host: Langfuse base URL
            public_key: Public key, sent as basic-auth username
            secret_key: Secret key, sent as basic-auth password
            batch_size: Buffer length that triggers an automatic flush
            timeout: Upper bound for one ingestion request, in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.host = host.rstrip("/")
        self.batch_size = batch_size

        self._http = httpx.Client(
            auth=(public_key, secret_key),
            timeout=timeout,
            transport=transport,
            headers={"Content-Type": "application/json"},
        )
        self._lock = threading.Lock()
        self._events: List[IngestionEvent] = []

    @classmethod
    def from_settings(
        cls,
        settings: Settings,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> "LangfuseClient":
        """Build a client from monitor settings."""
        return cls(
            host=settings.host,
            public_key=settings.public_key,
            secret_key=settings.secret_key,
            batch_size=settings.batch_size,
            timeout=settings.request_timeout_seconds,
            transport=transport,
        )

    @property
    def ingestion_url(self) -> str:
        return f"{self.host}{INGESTION_PATH}"

    def create_trace(self, trace: Trace):
        """Queue a trace-create event."""
        self.enqueue(IngestionEvent(type="trace-create", body=trace))

    def create_generation(self, generation: Generation):
        """Queue a generation-create event."""
        self.enqueue(IngestionEvent(type="generation-create", body=generation))

    def enqueue(self, event: IngestionEvent):
        """
        Append an event to the buffer.

        Flushes in the same critical section once the buffer reaches the
        batch size; a failed flush raises LangfuseError and keeps the buffer.
        """
        with self._lock:
            self._events.append(event)
            if len(self._events) >= self.batch_size:
                self._flush_locked()

    def flush(self):
        """Send all pending events. Raises LangfuseError on failure."""
        with self._lock:
            self._flush_locked()

    def _flush_locked(self):
        """Send events (must be called with lock held)."""
        if not self._events:
            return

        payload = {"batch": [event.to_payload() for event in self._events]}

        try:
            response = self._http.post(self.ingestion_url, json=payload)
        except (httpx.HTTPError, httpx.InvalidURL, ValueError) as e:
            # Unusable hosts surface as InvalidURL or UnicodeError, not HTTPError
            raise LangfuseError(f"Failed to send request: {e}") from e

        if response.status_code >= 400:
            raise LangfuseError(
                f"Langfuse API error: status {response.status_code}",
                status_code=response.status_code,
            )

        logger.debug(f"Delivered batch of {len(self._events)} events")
        self._events.clear()

    def event_count(self) -> int:
        """Number of events waiting for delivery."""
        with self._lock:
            return len(self._events)

    def pending_events(self) -> List[Union[Trace, Generation]]:
        """Snapshot of buffered event bodies."""
        with self._lock:
            return [event.body for event in self._events]

    def shutdown(self):
        """Flush remaining events and close the HTTP client."""
        try:
            self.flush()
        finally:
            self._http.close()
