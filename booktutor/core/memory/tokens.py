# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Token estimation for chat messages.

A cheap, tokenizer-free estimate: one token per four UTF-8 bytes, rounded
to the nearest integer. Images cost a flat 680 tokens; audio is estimated
from the length of its encoded data.
"""

from booktutor.models.messages import (
    AssistantMessage,
    ImageUrlPart,
    InputAudioPart,
    Message,
    RefusalPart,
    TextPart,
)

IMAGE_TOKENS = 170 * 4


def estimate_text_tokens(text: str) -> int:
    """Estimate the tokens of a text."""
    return (len(text.encode("utf-8")) + 2) // 4


def _estimate_part(part: object) -> int:
    if isinstance(part, TextPart):
        return estimate_text_tokens(part.text)
    if isinstance(part, RefusalPart):
        return estimate_text_tokens(part.refusal)
    if isinstance(part, ImageUrlPart):
        return IMAGE_TOKENS
    if isinstance(part, InputAudioPart):
        return estimate_text_tokens(part.input_audio.data)
    return 0


def estimate_message_tokens(message: Message) -> int:
    """Estimate the tokens a message occupies in a request.

    Args:
        message: Any chat message.

    Returns:
        Estimated token count.
    """
    tokens = 0
    content = message.content
    if isinstance(content, str):
        tokens += estimate_text_tokens(content)
    elif content is not None:
        tokens += sum(_estimate_part(part) for part in content)

    if isinstance(message, AssistantMessage):
        if message.refusal:
            tokens += estimate_text_tokens(message.refusal)
        for call in message.tool_calls or []:
            tokens += estimate_text_tokens(call.name) + estimate_text_tokens(call.arguments)

    return tokens
