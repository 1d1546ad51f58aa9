# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Events emitted by the tutor agent while a turn is running.

Listeners receive a tagged sequence of:

- content: a fragment of assistant text, forwarded as it streams in
- refusal: the complete refusal text, sent once after the stream ends
- tool_call: a tool call the model issued, before it is dispatched
- tool_result: the result of one tool call

The chat bridge forwards these to the browser essentially verbatim.
"""

from typing import Annotated, Literal

from pydantic import BaseModel, Field

from booktutor.models.messages import ToolCall, ToolMessage, message_text


class ContentEvent(BaseModel):
    """Fragment of streamed assistant content."""

    type: Literal["content"] = "content"
    text: str


class RefusalEvent(BaseModel):
    """Whole refusal text of an assistant turn."""

    type: Literal["refusal"] = "refusal"
    text: str


class ToolCallEvent(BaseModel):
    """Tool call issued by the model."""

    type: Literal["tool_call"] = "tool_call"
    call: ToolCall


class ToolResultEvent(BaseModel):
    """Result of a dispatched tool call."""

    type: Literal["tool_result"] = "tool_result"
    tool_call_id: str
    content: str

    @classmethod
    def from_message(cls, message: ToolMessage) -> "ToolResultEvent":
        """Build the event from the tool message appended to the window."""
        return cls(tool_call_id=message.tool_call_id, content=message_text(message))


ResponseEvent = Annotated[
    ContentEvent | RefusalEvent | ToolCallEvent | ToolResultEvent,
    Field(discriminator="type"),
]
