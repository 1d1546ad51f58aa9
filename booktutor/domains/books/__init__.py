# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Books domain: book content, library lookup and navigation tools."""

from booktutor.domains.books.book import (
    Book,
    BookLibrary,
    BookNotFoundError,
    Chapter,
    InMemoryBookLibrary,
)
from booktutor.domains.books.tools import (
    BookJumpTool,
    BookLocation,
    ChapterNotFoundError,
    GetChapterContentTool,
)

__all__ = [
    "Book",
    "Chapter",
    "BookLibrary",
    "BookNotFoundError",
    "InMemoryBookLibrary",
    "GetChapterContentTool",
    "BookJumpTool",
    "BookLocation",
    "ChapterNotFoundError",
]
