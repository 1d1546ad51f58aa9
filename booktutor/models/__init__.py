# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Shared data models.

- messages: Chat messages, content parts and tool calls
- events: Events streamed to listeners during a turn
- chapter: Hierarchical chapter numbers
- progress: Chapter and book learning progress
"""

from booktutor.models.chapter import ChapterNumber
from booktutor.models.events import (
    ContentEvent,
    RefusalEvent,
    ResponseEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from booktutor.models.messages import (
    AssistantMessage,
    FunctionCall,
    ImageUrlPart,
    InputAudioPart,
    Message,
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
from booktutor.models.progress import (
    BookProgress,
    ChapterObjective,
    ChapterProgress,
    ChapterStatus,
)

__all__ = [
    # Messages
    "Message",
    "SystemMessage",
    "UserMessage",
    "AssistantMessage",
    "ToolMessage",
    "ToolCall",
    "FunctionCall",
    "TextPart",
    "ImageUrlPart",
    "InputAudioPart",
    "RefusalPart",
    "parse_message",
    "serialize_message",
    "message_text",
    # Events
    "ResponseEvent",
    "ContentEvent",
    "RefusalEvent",
    "ToolCallEvent",
    "ToolResultEvent",
    # Progress
    "ChapterNumber",
    "ChapterStatus",
    "ChapterObjective",
    "ChapterProgress",
    "BookProgress",
]
