# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""LLM client and streaming support using LiteLLM.

Components:
- LLMClient: Streaming and non-streaming chat completions with tools
- ChatDelta / ToolCallFragment: Provider-neutral streaming deltas
- ToolCallAssembler: Reassembles tool calls from streamed fragments
"""

from booktutor.core.intelligence.llm.client import LLMClient, LLMError
from booktutor.core.intelligence.llm.streaming import (
    ChatDelta,
    ToolCallAssembler,
    ToolCallFragment,
)

__all__ = [
    "LLMClient",
    "LLMError",
    "ChatDelta",
    "ToolCallFragment",
    "ToolCallAssembler",
]
