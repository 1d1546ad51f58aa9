# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Streaming chat-completion deltas and tool-call reassembly.

A streamed completion delivers a tool call in pieces: the first fragment
for a given index carries the call id, the function name and the start of
the argument text; later fragments for the same index only carry more
argument text. ToolCallAssembler stitches these pieces back together.

Example:
    >>> assembler = ToolCallAssembler()
    >>> assembler.merge([ToolCallFragment(0, "call_1", "BookJump", '{"chapter')])
    >>> assembler.merge([ToolCallFragment(0, arguments='_number": "1."}')])
    >>> assembler.finish()[0].arguments
    '{"chapter_number": "1."}'
"""

import logging
from dataclasses import dataclass, field

from booktutor.models.messages import ToolCall

logger = logging.getLogger(__name__)


@dataclass
class ToolCallFragment:
    """Piece of a tool call received in one streaming delta.

    Attributes:
        index: Position of the call within the assistant message.
        id: Call id, present on the first fragment only.
        name: Function name, present on the first fragment only.
        arguments: Next chunk of the serialized argument text.
    """

    index: int
    id: str | None = None
    name: str | None = None
    arguments: str | None = None


@dataclass
class ChatDelta:
    """One streaming delta of the assistant message.

    Attributes:
        content: Content text fragment.
        refusal: Refusal text fragment.
        tool_calls: Tool-call fragments.
    """

    content: str | None = None
    refusal: str | None = None
    tool_calls: list[ToolCallFragment] = field(default_factory=list)


class ToolCallAssembler:
    """Accumulates tool-call fragments into complete tool calls."""

    def __init__(self) -> None:
        self._calls: dict[int, ToolCall] = {}

    def merge(self, fragments: list[ToolCallFragment]) -> None:
        """Merge the tool-call fragments of one delta.

        A fragment for an index already seen appends its argument text. A
        fragment opening a new index must carry id, name and arguments
        (possibly empty); one that does not is discarded and logged.

        Args:
            fragments: Fragments from a single streaming delta.
        """
        for fragment in fragments:
            current = self._calls.get(fragment.index)
            if current is not None:
                if fragment.arguments:
                    current.function.arguments += fragment.arguments
                continue

            if fragment.id is None or fragment.name is None or fragment.arguments is None:
                logger.error(
                    "Discarding tool call fragment without id, name or arguments: %s",
                    fragment,
                )
                continue

            self._calls[fragment.index] = ToolCall.create(
                id=fragment.id,
                name=fragment.name,
                arguments=fragment.arguments,
            )

    def finish(self) -> list[ToolCall]:
        """Drain the completed tool calls.

        Returns:
            The reassembled calls ordered by index. The assembler is empty
            afterwards.
        """
        calls = [self._calls[index] for index in sorted(self._calls)]
        self._calls.clear()
        return calls

    def __len__(self) -> int:
        return len(self._calls)
