# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Book content as seen by the tutor.

Books are produced by an external loader; the tutor only needs the title,
metadata, a chapter map keyed by ChapterNumber and the rendered table of
contents. BookLibrary is the lookup the tutor depends on;
InMemoryBookLibrary keeps already-loaded books in memory and can be
filled from a YAML file.
"""

import logging
from pathlib import Path
from typing import Any, Protocol

import yaml
from pydantic import BaseModel, Field, PrivateAttr, ValidationError, model_validator

from booktutor.core.config.yaml_loader import load_yaml
from booktutor.models.chapter import ChapterNumber

logger = logging.getLogger(__name__)


class BookNotFoundError(Exception):
    """Raised when a book is not in the library."""

    def __init__(self, book_id: int) -> None:
        super().__init__(f"Book not found: {book_id}")
        self.book_id = book_id


class Chapter(BaseModel):
    """One chapter of a book."""

    number: ChapterNumber
    name: str
    parent_names: list[str] = Field(default_factory=list)
    path: str | None = None
    content: str = ""

    def toc_item(self) -> str:
        """Render the table-of-contents line of this chapter."""
        indent = "  " * self.number.depth
        return f"{indent}{self.number} [{self.name}]({self.path or ''})  \n"


class Book(BaseModel):
    """A book with its chapters in reading order.

    Attributes:
        id: Book identifier.
        title: Book title.
        authors: Author names.
        description: Short description.
        teaching_plan: Plan the tutor follows, free text.
        chapters: Chapters, any order; unique by number.
    """

    id: int
    title: str
    authors: list[str] = Field(default_factory=list)
    description: str | None = None
    teaching_plan: str = ""
    chapters: list[Chapter] = Field(default_factory=list)

    _by_number: dict[ChapterNumber, Chapter] = PrivateAttr(default_factory=dict)

    @model_validator(mode="after")
    def index_chapters(self) -> "Book":
        """Sort chapters into reading order and index them by number."""
        numbers = [chapter.number for chapter in self.chapters]
        if len(set(numbers)) != len(numbers):
            raise ValueError(f"Chapter numbers of book {self.id} are not unique")
        self.chapters = sorted(self.chapters, key=lambda c: c.number)
        self._by_number = {chapter.number: chapter for chapter in self.chapters}
        return self

    @property
    def chapter_numbers(self) -> list[ChapterNumber]:
        """Chapter numbers in reading order."""
        return list(self._by_number)

    def get_chapter(self, number: ChapterNumber) -> Chapter | None:
        return self._by_number.get(number)

    def table_of_contents(self) -> str:
        """Render the table of contents as markdown."""
        toc = f"# {self.title}\n"
        for chapter in self.chapters:
            toc += chapter.toc_item()
        return toc

    def info(self) -> dict[str, Any]:
        """Book metadata sent to the model, without chapter contents."""
        info: dict[str, Any] = {"title": self.title}
        if self._by_number:
            info["chapter_numbers"] = [str(number) for number in self._by_number]
        info["table_of_contents"] = self.table_of_contents()
        if self.authors:
            info["authors"] = self.authors
        if self.description:
            info["description"] = self.description
        info["teaching_plan"] = self.teaching_plan
        return info

    def context_text(self) -> str:
        """Render the book information block of the conversation window."""
        return "## Book Info\n```yaml\n" + yaml.safe_dump(
            self.info(), allow_unicode=True, sort_keys=False
        ) + "```"


class BookLibrary(Protocol):
    """Source of books for the tutor."""

    async def get_book(self, book_id: int) -> Book:
        """Get a book by id.

        Raises:
            BookNotFoundError: If the book does not exist.
        """
        ...


class InMemoryBookLibrary:
    """Book library backed by a dictionary.

    Example:
        >>> library = InMemoryBookLibrary([book])
        >>> await library.get_book(book.id)
    """

    def __init__(self, books: list[Book] | None = None) -> None:
        self._books: dict[int, Book] = {}
        for book in books or []:
            self.add(book)

    def add(self, book: Book) -> None:
        """Add or replace a book."""
        self._books[book.id] = book
        logger.debug("Book added to library: id=%s, title=%s", book.id, book.title)

    async def get_book(self, book_id: int) -> Book:
        book = self._books.get(book_id)
        if book is None:
            raise BookNotFoundError(book_id)
        return book

    @classmethod
    def from_yaml(cls, path: str | Path) -> "InMemoryBookLibrary":
        """Load books from a YAML file with a top-level ``books`` list.

        Args:
            path: YAML file path.

        Returns:
            Library holding every book in the file.

        Raises:
            YAMLLoadError: If the file cannot be read or parsed.
            ValueError: If a book entry is invalid.
        """
        data = load_yaml(Path(path))
        try:
            books = [Book.model_validate(item) for item in data.get("books", [])]
        except ValidationError as e:
            raise ValueError(f"Invalid book in {path}: {e}") from e

        logger.info("Loaded %d book(s) from %s", len(books), path)
        return cls(books)

    def __len__(self) -> int:
        return len(self._books)
