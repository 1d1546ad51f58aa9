# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Conversation domain: persistence, tutor prompt and progress tools."""

from booktutor.domains.conversation.prompts import (
    PromptLoadError,
    PromptTemplate,
    load_prompt,
    render_instruction,
)
from booktutor.domains.conversation.store import ConversationStore, create_student
from booktutor.domains.conversation.tools import (
    AddMemoryTool,
    GetBookProgressTool,
    UpdateProgressTool,
)

__all__ = [
    "ConversationStore",
    "create_student",
    "PromptTemplate",
    "PromptLoadError",
    "load_prompt",
    "render_instruction",
    "UpdateProgressTool",
    "AddMemoryTool",
    "GetBookProgressTool",
]
