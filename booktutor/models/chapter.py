# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Hierarchical chapter identifier.

Chapter numbers look like ``"3."`` or ``"4.2."``. Front matter without a
number is numbered ``0.1.``, ``0.2.``, ...; back matter is numbered
``-1.1.``, ``-1.2.``, ... and always sorts after the numbered chapters.
Sorting a set of ChapterNumbers therefore yields reading order, which is
how the book's chapter map is traversed.
"""

from functools import total_ordering
from typing import Any, Iterable

from pydantic import GetCoreSchemaHandler, GetJsonSchemaHandler
from pydantic.json_schema import JsonSchemaValue
from pydantic_core import core_schema

SUFFIX_MARKER = -1


@total_ordering
class ChapterNumber:
    """A chapter position such as ``1.2.3.``.

    Usable directly as a pydantic field type: it validates from strings
    (trailing dot optional) or integer sequences, and serializes back to
    the dotted string form.

    Example:
        >>> ChapterNumber.parse("4.2")
        ChapterNumber('4.2.')
        >>> sorted([ChapterNumber.parse("-1.1."), ChapterNumber.parse("2.")])
        [ChapterNumber('2.'), ChapterNumber('-1.1.')]
    """

    __slots__ = ("parts",)

    def __init__(self, parts: Iterable[int] = ()) -> None:
        self.parts: tuple[int, ...] = tuple(parts)
        for part in self.parts:
            if isinstance(part, bool) or not isinstance(part, int):
                raise ValueError(f"Chapter number parts must be integers, got {part!r}")

    @classmethod
    def parse(cls, value: str) -> "ChapterNumber":
        """Parse the dotted string form.

        Args:
            value: e.g. ``"3.1."`` or ``"3.1"``; empty string means no chapter.

        Returns:
            The parsed chapter number.

        Raises:
            ValueError: If a component is not an integer.
        """
        items = value.strip().split(".")
        if items and items[-1] == "":
            items.pop()
        try:
            return cls(int(item) for item in items)
        except ValueError as e:
            raise ValueError(f"Invalid chapter number: {value!r}") from e

    @property
    def is_suffix(self) -> bool:
        """Back-matter chapter (numbered ``-1.N.``)."""
        return bool(self.parts) and self.parts[0] == SUFFIX_MARKER

    @property
    def is_prefix(self) -> bool:
        """Front-matter chapter (numbered ``0.N.``)."""
        return bool(self.parts) and self.parts[0] == 0

    @property
    def depth(self) -> int:
        """Nesting level used for table-of-contents indentation."""
        if self.is_suffix or self.is_prefix:
            return 0
        return max(len(self.parts) - 1, 0)

    def _sort_key(self) -> tuple[int, tuple[int, ...]]:
        return (1 if self.is_suffix else 0, self.parts)

    def __str__(self) -> str:
        return "".join(f"{part}." for part in self.parts)

    def __repr__(self) -> str:
        return f"ChapterNumber({str(self)!r})"

    def __bool__(self) -> bool:
        return bool(self.parts)

    def __hash__(self) -> int:
        return hash(self.parts)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ChapterNumber):
            return NotImplemented
        return self.parts == other.parts

    def __lt__(self, other: "ChapterNumber") -> bool:
        if not isinstance(other, ChapterNumber):
            return NotImplemented
        return self._sort_key() < other._sort_key()

    @classmethod
    def _validate(cls, value: Any) -> "ChapterNumber":
        if isinstance(value, ChapterNumber):
            return value
        if isinstance(value, str):
            return cls.parse(value)
        if isinstance(value, (list, tuple)):
            return cls(value)
        raise ValueError(f"Chapter number must be a string like '1.2.', got {type(value).__name__}")

    @classmethod
    def __get_pydantic_core_schema__(
        cls, source_type: Any, handler: GetCoreSchemaHandler
    ) -> core_schema.CoreSchema:
        return core_schema.no_info_plain_validator_function(
            cls._validate,
            serialization=core_schema.plain_serializer_function_ser_schema(str),
        )

    @classmethod
    def __get_pydantic_json_schema__(
        cls, schema: core_schema.CoreSchema, handler: GetJsonSchemaHandler
    ) -> JsonSchemaValue:
        return {
            "type": "string",
            "description": (
                "A chapter number in the format '1.2.3.' representing the "
                "hierarchical position in a book"
            ),
            "pattern": r"^(-?\d+\.)+$",
        }
