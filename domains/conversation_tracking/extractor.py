"""Text and model extraction from conversation message payloads."""

import json
from typing import Any, List, Optional

from pydantic import ValidationError

from claude_langfuse.models.schemas import ContentBlock, MessageContent

SYNTHETIC_MODEL = "<synthetic>"


def _parse_message(payload: Any) -> Optional[MessageContent]:
    if not isinstance(payload, dict):
        return None
    try:
        return MessageContent.model_validate(payload)
    except ValidationError:
        return None


def format_tool_input(tool_input: Any) -> str:
    """Render tool input as indented JSON, or as-is when it is not JSON."""
    if tool_input is None:
        return ""
    if isinstance(tool_input, str):
        try:
            tool_input = json.loads(tool_input)
        except ValueError:
            return tool_input
    return json.dumps(tool_input, indent=2, ensure_ascii=False)


def _tool_result_text(content: Any) -> str:
    if isinstance(content, str):
        return content
    if isinstance(content, list):
        # Newer logs nest text blocks inside tool results
        texts = [
            item.get("text", "")
            for item in content
            if isinstance(item, dict) and item.get("type") == "text"
        ]
        return "\n".join(text for text in texts if text)
    return ""


def _block_text(block: ContentBlock) -> str:
    if block.type == "text":
        return block.text or ""
    if block.type == "tool_use":
        return f"[Tool: {block.name or ''}]\n{format_tool_input(block.input)}"
    if block.type == "tool_result":
        return _tool_result_text(block.content)
    return block.text or ""


def extract_content(payload: Any) -> str:
    """
    Extract display text from a message payload.

    Args:
        payload: Decoded ``message`` field of a log entry

    Returns:
        Extracted text, empty when nothing usable is present
    """
    if payload is None:
        return ""
    if isinstance(payload, str):
        return payload

    message = _parse_message(payload)
    if message is None:
        return ""

    if isinstance(message.content, str):
        if message.content:
            return message.content
    elif message.content:
        parts: List[str] = []
        for block in message.content:
            text = _block_text(block)
            if text:
                parts.append(text)
        if parts:
            return "\n\n".join(parts)

    return message.text or ""


def extract_model(payload: Any) -> str:
    """Model name recorded in an assistant payload, empty when unknown."""
    message = _parse_message(payload)
    if message is None or not message.model:
        return ""
    if message.model == SYNTHETIC_MODEL:
        return ""
    return message.model
