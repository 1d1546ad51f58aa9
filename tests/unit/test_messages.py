# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for chat message models."""

import pytest
from pydantic import ValidationError

from booktutor.models.events import ToolResultEvent
from booktutor.models.messages import (
    AssistantMessage,
    ImageUrl,
    ImageUrlPart,
    RefusalPart,
    SystemMessage,
    TextPart,
    ToolCall,
    ToolMessage,
    UserMessage,
    message_text,
    parse_message,
    serialize_message,
)


@pytest.mark.unit
class TestMessageParsing:
    """Tests for persisted message parsing."""

    def test_dispatches_on_role(self) -> None:
        """Test that each role parses into its own model."""
        assert isinstance(parse_message('{"role":"system","content":"s"}'), SystemMessage)
        assert isinstance(parse_message('{"role":"user","content":"u"}'), UserMessage)
        assert isinstance(parse_message('{"role":"assistant","content":"a"}'), AssistantMessage)
        assert isinstance(
            parse_message('{"role":"tool","content":"t","tool_call_id":"c1"}'), ToolMessage
        )

    def test_unknown_role_raises(self) -> None:
        """Test that unknown roles fail validation."""
        with pytest.raises(ValidationError):
            parse_message('{"role":"developer","content":"x"}')

    def test_assistant_tool_calls_survive_persistence(self) -> None:
        """Test that tool calls are preserved through serialization."""
        message = AssistantMessage(
            tool_calls=[ToolCall.create("call_1", "GetChapterContent", '{"chapter_number":"1."}')]
        )

        restored = parse_message(serialize_message(message))

        assert isinstance(restored, AssistantMessage)
        assert restored.has_tool_calls
        assert restored.tool_calls is not None
        assert restored.tool_calls[0].name == "GetChapterContent"
        assert restored.tool_calls[0].arguments == '{"chapter_number":"1."}'

    def test_multimodal_user_content(self) -> None:
        """Test that user content parts are discriminated by type."""
        message = parse_message(
            '{"role":"user","content":[{"type":"text","text":"see"},'
            '{"type":"image_url","image_url":{"url":"https://x/y.png"}}]}'
        )

        assert isinstance(message, UserMessage)
        assert isinstance(message.content, list)
        assert isinstance(message.content[1], ImageUrlPart)


@pytest.mark.unit
class TestMessageWireShape:
    """Tests for the chat-completion wire shape."""

    def test_to_openai_omits_unset_fields(self) -> None:
        """Test that optional fields are left out."""
        assert AssistantMessage(content="hi").to_openai() == {
            "role": "assistant",
            "content": "hi",
        }

    def test_tool_call_shape(self) -> None:
        """Test the nested function shape of tool calls."""
        message = AssistantMessage(tool_calls=[ToolCall.create("c", "BookJump", "{}")])

        assert message.to_openai()["tool_calls"] == [
            {"id": "c", "type": "function", "function": {"name": "BookJump", "arguments": "{}"}}
        ]


@pytest.mark.unit
class TestMessageText:
    """Tests for message_text."""

    def test_plain_string(self) -> None:
        """Test string content."""
        assert message_text(UserMessage(content="hello")) == "hello"

    def test_parts_skip_images(self) -> None:
        """Test that only text parts contribute."""
        message = UserMessage(
            content=[
                TextPart(text="look "),
                ImageUrlPart(image_url=ImageUrl(url="https://x/y.png")),
                TextPart(text="here"),
            ]
        )

        assert message_text(message) == "look here"

    def test_refusal_parts_included(self) -> None:
        """Test that refusal parts count as text."""
        message = AssistantMessage(content=[RefusalPart(refusal="no")])

        assert message_text(message) == "no"

    def test_no_content(self) -> None:
        """Test assistant messages with only tool calls."""
        assert message_text(AssistantMessage(tool_calls=[])) == ""

    def test_tool_result_event(self) -> None:
        """Test building a result event from a tool message."""
        event = ToolResultEvent.from_message(ToolMessage(content="ok", tool_call_id="c9"))

        assert event.model_dump() == {"type": "tool_result", "tool_call_id": "c9", "content": "ok"}
