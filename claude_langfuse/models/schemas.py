"""
Pydantic models for the Claude Langfuse monitor.

Shared data models: conversation log entries as read from Claude Code JSONL
files, and the Langfuse ingestion events built from them.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


# =====================================================
# Conversation Log Models
# =====================================================

class EntryKind(str, Enum):
    """Kind of a conversation log entry."""
    USER = "user"
    ASSISTANT = "assistant"
    OTHER = "other"


class LogEntry(BaseModel):
    """One parsed line of a conversation JSONL file."""
    model_config = ConfigDict(extra="ignore", frozen=True)

    type: str = ""
    id: str = Field(default="", alias="uuid")
    parent_id: str = Field(default="", alias="parentUuid")
    timestamp: str = ""
    message: Any = None
    branch: str = Field(default="", alias="gitBranch")
    working_dir: str = Field(default="", alias="cwd")
    request_id: str = Field(default="", alias="requestId")

    @field_validator(
        "type", "id", "parent_id", "timestamp", "branch", "working_dir", "request_id",
        mode="before",
    )
    @classmethod
    def _null_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @property
    def kind(self) -> EntryKind:
        if self.type == EntryKind.USER.value:
            return EntryKind.USER
        if self.type == EntryKind.ASSISTANT.value:
            return EntryKind.ASSISTANT
        return EntryKind.OTHER


class ContentBlock(BaseModel):
    """A block inside a message ``content`` array."""
    model_config = ConfigDict(extra="ignore")

    type: str = ""
    text: Optional[str] = None
    name: Optional[str] = None
    input: Any = None
    content: Union[str, List[Any], None] = None
    tool_use_id: Optional[str] = None


class MessageContent(BaseModel):
    """Object form of an entry's ``message`` payload."""
    model_config = ConfigDict(extra="ignore")

    text: Optional[str] = None
    content: Union[List[ContentBlock], str, None] = None
    model: Optional[str] = None


# =====================================================
# Langfuse Ingestion Models
# =====================================================

class Trace(BaseModel):
    """Langfuse trace, built from a user turn."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    name: str
    session_id: str = Field(default="", alias="sessionId")
    user_id: str = Field(default="", alias="userId")
    metadata: Dict[str, Any] = Field(default_factory=dict)
    input: Optional[str] = None
    timestamp: datetime

    def to_body(self) -> Dict[str, Any]:
        """JSON-ready body for the ingestion API."""
        return _omit_empty(
            self.model_dump(mode="json", by_alias=True),
            ("sessionId", "userId", "metadata"),
        )


class Generation(BaseModel):
    """Langfuse generation, built from an assistant turn."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    trace_id: str = Field(default="", alias="traceId")
    name: str
    model: str = ""
    metadata: Dict[str, Any] = Field(default_factory=dict)
    output: Optional[str] = None
    start_time: datetime = Field(alias="startTime")
    end_time: datetime = Field(alias="endTime")

    def to_body(self) -> Dict[str, Any]:
        """JSON-ready body for the ingestion API."""
        return _omit_empty(
            self.model_dump(mode="json", by_alias=True),
            ("traceId", "model", "metadata"),
        )


class IngestionEvent(BaseModel):
    """One entry of an ingestion ``batch``."""
    type: str  # trace-create, generation-create
    body: Union[Trace, Generation]

    def to_payload(self) -> Dict[str, Any]:
        return {"type": self.type, "body": self.body.to_body()}


def _omit_empty(data: Dict[str, Any], keys: tuple) -> Dict[str, Any]:
    for key in keys:
        if not data.get(key):
            data.pop(key, None)
    for key in ("input", "output"):
        if key in data and data[key] is None:
            data.pop(key)
    return data
