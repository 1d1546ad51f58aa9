# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Progress and memory tools.

Tools:
- UpdateProgress: Merge a chapter progress report into the stored progress
- AddMemory: Remember a fact about the student
- GetBookProgress: Read chapter progress, memories and the reading position
"""

import logging

from pydantic import BaseModel, Field

from booktutor.core.tools.base import BaseTool, ToolContext
from booktutor.domains.conversation.store import ConversationStore
from booktutor.models.progress import BookProgress, ChapterProgress, ChapterStatus

logger = logging.getLogger(__name__)


def _require_store(context: ToolContext) -> ConversationStore:
    if context.store is None:
        raise RuntimeError("No conversation store available")
    return context.store


class UpdateProgressTool(BaseTool[ChapterProgress]):
    """Record progress of one chapter.

    A chapter reported as in progress becomes the current chapter.
    """

    name = "UpdateProgress"
    description = "Update the progress of a chapter"
    args_model = ChapterProgress

    async def run(self, args: ChapterProgress, context: ToolContext) -> ChapterProgress:
        store = _require_store(context)
        merged = await store.update_chapter_progress(args)
        if merged.status == ChapterStatus.IN_PROGRESS:
            await store.set_current_chapter(merged.chapter_number)
        return merged


class MemoryArgs(BaseModel):
    """Arguments of AddMemory."""

    memory: str = Field(description="A fact about the student worth remembering")


class AddMemoryTool(BaseTool[MemoryArgs]):
    """Store a memory note about the student."""

    name = "AddMemory"
    description = "Add a memory to the book progress"
    args_model = MemoryArgs

    async def run(self, args: MemoryArgs, context: ToolContext) -> str:
        added = await _require_store(context).add_memory(args.memory)
        if not added:
            logger.debug("Memory already known: %s", args.memory)
            return "Memory already exists"
        return "Memory added"


class NoArgs(BaseModel):
    """Tool without arguments."""


class GetBookProgressTool(BaseTool[NoArgs]):
    """Return the student's progress through the book."""

    name = "GetBookProgress"
    description = "Get the progress of the book"
    args_model = NoArgs

    async def run(self, args: NoArgs, context: ToolContext) -> BookProgress:
        return await _require_store(context).get_book_progress()
