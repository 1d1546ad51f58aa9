# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Book navigation tools.

Tools:
- GetChapterContent: Return a chapter record so the tutor can plan a lesson
- BookJump: Point the student at a chapter or section and move the
  reading watermark there
"""

import logging

from pydantic import BaseModel, Field

from booktutor.core.tools.base import BaseTool, ToolContext
from booktutor.domains.books.book import Book, Chapter
from booktutor.models.chapter import ChapterNumber

logger = logging.getLogger(__name__)


class ChapterNotFoundError(Exception):
    """Raised when a tool refers to a chapter the book does not have."""


def _require_chapter(context: ToolContext, number: ChapterNumber) -> Chapter:
    book: Book | None = context.book
    if book is None:
        raise RuntimeError("No book loaded for this conversation")
    chapter = book.get_chapter(number)
    if chapter is None:
        raise ChapterNotFoundError(f"Chapter not found: {number}")
    return chapter


class ChapterArgs(BaseModel):
    """Arguments of GetChapterContent."""

    chapter_number: ChapterNumber


class BookLocation(BaseModel):
    """A location in the book by chapter number and optional section title."""

    chapter_number: ChapterNumber = Field(description="The chapter number to navigate to")
    sector_title: str | None = Field(
        default=None,
        description="Optional section title within the chapter",
    )


class GetChapterContentTool(BaseTool[ChapterArgs]):
    """Return the full record of a chapter."""

    name = "GetChapterContent"
    description = (
        "Query the content of a chapter from the book. Before starting to teach a "
        "new chapter, use this tool to get the content of this chapter"
    )
    args_model = ChapterArgs

    async def run(self, args: ChapterArgs, context: ToolContext) -> Chapter:
        chapter = _require_chapter(context, args.chapter_number)
        logger.debug("Chapter content requested: %s", args.chapter_number)
        return chapter


class BookJumpTool(BaseTool[BookLocation]):
    """Navigate the student to a chapter or section."""

    name = "BookJump"
    description = (
        "Use this tool to navigate to a specific chapter or section in the book when "
        "you need the student to read particular content. It helps direct the "
        "student's attention to the relevant material."
    )
    args_model = BookLocation

    async def run(self, args: BookLocation, context: ToolContext) -> str:
        chapter = _require_chapter(context, args.chapter_number)

        if context.store is not None:
            await context.store.set_current_chapter(args.chapter_number)

        section = f"#{args.sector_title}" if args.sector_title else ""
        return f"Jumped to {args.chapter_number} {chapter.name}{section}"
