# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Chat message models in the OpenAI wire shape.

A conversation is a list of messages tagged by ``role``:

- SystemMessage: instruction or context blocks
- UserMessage: student input, plain text or multimodal parts
- AssistantMessage: model output with optional refusal and tool calls
- ToolMessage: result of one tool call, referenced by ``tool_call_id``

Messages are persisted as JSON and parsed back through ``parse_message``,
which dispatches on the ``role`` discriminator.

Example:
    >>> msg = UserMessage(content="What is Chapter 1 about?")
    >>> msg.to_openai()
    {'role': 'user', 'content': 'What is Chapter 1 about?'}
"""

from typing import Annotated, Any, Literal

from pydantic import BaseModel, Field, TypeAdapter


class TextPart(BaseModel):
    """Plain text content part."""

    type: Literal["text"] = "text"
    text: str


class ImageUrl(BaseModel):
    """Image reference inside an image content part."""

    url: str
    detail: Literal["auto", "low", "high"] | None = None


class ImageUrlPart(BaseModel):
    """Image content part of a user message."""

    type: Literal["image_url"] = "image_url"
    image_url: ImageUrl


class InputAudio(BaseModel):
    """Base64 audio payload inside an audio content part."""

    data: str
    format: Literal["wav", "mp3"]


class InputAudioPart(BaseModel):
    """Audio content part of a user message."""

    type: Literal["input_audio"] = "input_audio"
    input_audio: InputAudio


class RefusalPart(BaseModel):
    """Refusal content part of an assistant message."""

    type: Literal["refusal"] = "refusal"
    refusal: str


UserContentPart = Annotated[
    TextPart | ImageUrlPart | InputAudioPart,
    Field(discriminator="type"),
]
AssistantContentPart = Annotated[
    TextPart | RefusalPart,
    Field(discriminator="type"),
]


class FunctionCall(BaseModel):
    """Function name and serialized JSON arguments of a tool call."""

    name: str
    arguments: str


class ToolCall(BaseModel):
    """A tool call requested by the model.

    Attributes:
        id: Provider-assigned identifier, echoed by the answering ToolMessage.
        type: Always "function".
        function: Name and serialized arguments.
    """

    id: str
    type: Literal["function"] = "function"
    function: FunctionCall

    @classmethod
    def create(cls, id: str, name: str, arguments: str) -> "ToolCall":
        """Build a tool call from its three scalar fields."""
        return cls(id=id, function=FunctionCall(name=name, arguments=arguments))

    @property
    def name(self) -> str:
        """Name of the requested tool."""
        return self.function.name

    @property
    def arguments(self) -> str:
        """Serialized JSON arguments."""
        return self.function.arguments


class _MessageBase(BaseModel):
    def to_openai(self) -> dict[str, Any]:
        """Convert to the dictionary shape expected by chat-completion APIs.

        Returns:
            JSON-compatible dictionary without unset optional fields.
        """
        return self.model_dump(mode="json", exclude_none=True)


class SystemMessage(_MessageBase):
    """System prompt message."""

    role: Literal["system"] = "system"
    content: str | list[TextPart]
    name: str | None = None


class UserMessage(_MessageBase):
    """Message written by the student."""

    role: Literal["user"] = "user"
    content: str | list[UserContentPart]
    name: str | None = None


class AssistantMessage(_MessageBase):
    """Message produced by the model.

    At least one of content, refusal or tool_calls is set on messages
    synthesized by the tutor agent.
    """

    role: Literal["assistant"] = "assistant"
    content: str | list[AssistantContentPart] | None = None
    refusal: str | None = None
    tool_calls: list[ToolCall] | None = None
    name: str | None = None

    @property
    def has_tool_calls(self) -> bool:
        """Check if the message requests any tool call."""
        return bool(self.tool_calls)


class ToolMessage(_MessageBase):
    """Result of a tool call, sent back to the model."""

    role: Literal["tool"] = "tool"
    content: str | list[TextPart]
    tool_call_id: str


Message = Annotated[
    SystemMessage | UserMessage | AssistantMessage | ToolMessage,
    Field(discriminator="role"),
]

message_adapter: TypeAdapter[Message] = TypeAdapter(Message)


def parse_message(data: str | bytes) -> Message:
    """Parse a persisted JSON message back into its typed model.

    Args:
        data: JSON document produced by ``serialize_message``.

    Returns:
        The message model matching the ``role`` tag.

    Raises:
        pydantic.ValidationError: If the document is not a valid message.
    """
    return message_adapter.validate_json(data)


def serialize_message(message: Message) -> str:
    """Serialize a message to JSON for persistence."""
    return message.model_dump_json(exclude_none=True)


def message_text(message: Message) -> str:
    """Concatenate the textual content of a message.

    Non-text parts (images, audio) are skipped; refusal parts are included.

    Args:
        message: Any chat message.

    Returns:
        The text of the message, empty if it carries none.
    """
    content = message.content
    if content is None:
        return ""
    if isinstance(content, str):
        return content

    chunks: list[str] = []
    for part in content:
        if isinstance(part, TextPart):
            chunks.append(part.text)
        elif isinstance(part, RefusalPart):
            chunks.append(part.refusal)
    return "".join(chunks)
