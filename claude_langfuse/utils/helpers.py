"""
Helper utilities for the Claude Langfuse monitor.

Common functions used across the conversation tracking domain.
"""

import hashlib
from datetime import UTC, datetime
from pathlib import PurePath
from typing import Optional


def hash_text(text: str) -> str:
    """Generate MD5 hex digest of text."""
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def session_id_for(project_path: str, conversation_id: str) -> str:
    """
    Derive the stable session id for a conversation.

    Args:
        project_path: Decoded project path
        conversation_id: Conversation file name without suffix

    Returns:
        32 character lowercase hex digest
    """
    return hash_text(f"{project_path}:{conversation_id}")


def decode_project_path(encoded: str, separator: str = "-") -> str:
    """Turn an encoded project directory name back into a path."""
    return encoded.replace(separator, "/")


def project_name(project_path: str) -> str:
    """Last segment of a project path."""
    return PurePath(project_path).name or project_path


def parse_iso_timestamp(ts_str: Optional[str]) -> Optional[datetime]:
    """
    Parse an RFC 3339 timestamp.

    Returns None for empty or invalid input. Naive values are assumed UTC.
    """
    if not ts_str:
        return None

    try:
        parsed = datetime.fromisoformat(ts_str.replace("Z", "+00:00"))
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


def now_utc() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


def preview_text(text: str, max_length: int = 60) -> str:
    """Single-line preview of text for activity output."""
    return text[:max_length].replace("\n", " ")
