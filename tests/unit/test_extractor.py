from domains.conversation_tracking.extractor import (
    extract_content,
    extract_model,
    format_tool_input,
)


def test_extract_text_block():
    payload = {"content": [{"type": "text", "text": "Hello, world!"}]}

    assert extract_content(payload) == "Hello, world!"


def test_extract_tool_use_block():
    payload = {
        "content": [
            {"type": "tool_use", "name": "Read", "input": {"file_path": "/test.js"}}
        ]
    }

    assert extract_content(payload) == '[Tool: Read]\n{\n  "file_path": "/test.js"\n}'


def test_extract_tool_result_block():
    payload = {"content": [{"type": "tool_result", "content": "File contents here"}]}

    assert extract_content(payload) == "File contents here"


def test_extract_tool_result_with_nested_blocks():
    payload = {
        "content": [
            {
                "type": "tool_result",
                "content": [{"type": "text", "text": "line one"}, {"type": "image"}],
            }
        ]
    }

    assert extract_content(payload) == "line one"


def test_mixed_blocks_joined_with_blank_line():
    payload = {
        "content": [
            {"type": "text", "text": "Let me read that file"},
            {"type": "tool_use", "name": "Read", "input": {"file_path": "/test.js"}},
        ]
    }

    result = extract_content(payload)

    assert result.startswith("Let me read that file\n\n[Tool: Read]\n")


def test_bare_string_payload_returned_verbatim():
    assert extract_content("Simple string message") == "Simple string message"


def test_flat_text_fallback():
    assert extract_content({"text": "flat text"}) == "flat text"


def test_empty_blocks_fall_back_to_text():
    payload = {"content": [{"type": "text", "text": ""}], "text": "fallback"}

    assert extract_content(payload) == "fallback"


def test_unknown_block_type_uses_own_text():
    payload = {"content": [{"type": "thinking", "text": "pondering"}]}

    assert extract_content(payload) == "pondering"


def test_string_content_treated_as_text():
    assert extract_content({"role": "user", "content": "hi there"}) == "hi there"


def test_nothing_usable_is_empty():
    assert extract_content(None) == ""
    assert extract_content({}) == ""
    assert extract_content(42) == ""
    assert extract_content({"content": [1, 2]}) == ""


def test_format_tool_input_handles_raw_and_empty():
    assert format_tool_input(None) == ""
    assert format_tool_input("not json") == "not json"
    assert format_tool_input('{"a": 1}') == '{\n  "a": 1\n}'
    assert format_tool_input({}) == "{}"


def test_extract_model():
    assert extract_model({"model": "claude-opus-4-5-20251101"}) == "claude-opus-4-5-20251101"
    assert extract_model({"model": "<synthetic>"}) == ""
    assert extract_model({"content": []}) == ""
    assert extract_model("plain string") == ""
