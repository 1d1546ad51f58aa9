# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tutor agent: the control loop of one tutoring conversation.

A turn starts with the student's message and alternates between model
requests and tool dispatch until the model answers without tool calls:

    AWAITING_MODEL -> STREAMING_RESPONSE -> DISPATCHING_TOOLS -> AWAITING_MODEL
                                         \\-> DONE

Content fragments are forwarded to the listener as they stream in. A
refusal is forwarded once the stream has ended. Tool calls are announced,
dispatched concurrently, and their results are announced and appended to
the conversation before the model is asked again. A failing tool call is
reported to the model and never ends the turn; a failing model request
does.

Example:
    >>> agent = await TutorAgent.create(
    ...     student_id=1,
    ...     book_id=7,
    ...     library=library,
    ...     sessionmaker=get_sessionmaker(),
    ...     llm_client=LLMClient(settings.llm),
    ...     settings=settings.tutor,
    ... )
    >>> async for event in agent.stream("What is Chapter 1 about?"):
    ...     print(event)
"""

import asyncio
import logging
from enum import Enum
from typing import TYPE_CHECKING, AsyncIterator

from booktutor.core.config.settings import TutorSettings
from booktutor.core.intelligence.llm.client import LLMClient
from booktutor.core.intelligence.llm.streaming import ToolCallAssembler
from booktutor.core.memory.window import ConversationWindow
from booktutor.core.orchestration.channel import EventChannel
from booktutor.core.tools.base import ToolContext
from booktutor.core.tools.registry import ToolRegistry
from booktutor.domains.books.tools import BookJumpTool, GetChapterContentTool
from booktutor.domains.conversation.prompts import render_instruction
from booktutor.domains.conversation.store import ConversationStore
from booktutor.domains.conversation.tools import (
    AddMemoryTool,
    GetBookProgressTool,
    UpdateProgressTool,
)
from booktutor.models.events import (
    ContentEvent,
    RefusalEvent,
    ResponseEvent,
    ToolCallEvent,
    ToolResultEvent,
)
from booktutor.models.messages import AssistantMessage, Message, ToolCall, UserMessage, message_text

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from booktutor.domains.books.book import Book, BookLibrary

logger = logging.getLogger(__name__)


class TurnState(str, Enum):
    """Position of the agent within a turn."""

    AWAITING_MODEL = "awaiting_model"
    STREAMING_RESPONSE = "streaming_response"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"


class TutorError(Exception):
    """Raised when a turn cannot be completed by the agent itself.

    Attributes:
        message: Error description.
        original_error: Original exception if any.
    """

    def __init__(self, message: str, original_error: Exception | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.original_error = original_error


def _assistant_message(
    content: str,
    refusal: str,
    tool_calls: list[ToolCall],
) -> AssistantMessage | None:
    if not content and not refusal and not tool_calls:
        return None
    return AssistantMessage(
        content=content or None,
        refusal=refusal or None,
        tool_calls=tool_calls or None,
    )


class TutorAgent:
    """Drives one (student, book) conversation with the model.

    Not safe for concurrent turns; callers serialize access, see
    TutorAgentCache.

    Attributes:
        student_id: Student of the conversation.
        book: Book being studied.
        state: Current turn state.
    """

    def __init__(
        self,
        student_id: int,
        book: "Book",
        window: ConversationWindow,
        registry: ToolRegistry,
        llm_client: LLMClient,
        settings: TutorSettings,
    ) -> None:
        self.student_id = student_id
        self.book = book
        self._window = window
        self._registry = registry
        self._llm = llm_client
        self._settings = settings
        self._turn_task: asyncio.Task[None] | None = None
        self.state = TurnState.DONE

    @classmethod
    async def create(
        cls,
        student_id: int,
        book_id: int,
        *,
        library: "BookLibrary",
        sessionmaker: "async_sessionmaker[AsyncSession]",
        llm_client: LLMClient,
        settings: TutorSettings,
    ) -> "TutorAgent":
        """Build an agent with its window loaded from storage.

        Loads the book, creates the conversation record if needed,
        renders the instruction, loads the window and registers the tools.

        Args:
            student_id: Student of the conversation.
            book_id: Book to study.
            library: Book source.
            sessionmaker: Session factory for the conversation store.
            llm_client: Chat-completion client.
            settings: Tutor settings.

        Returns:
            A ready agent.

        Raises:
            BookNotFoundError: If the library has no such book.
            TokenBudgetError: If instruction or book info exceed their share
                of the token budget.
            DatabaseError: If storage fails.
        """
        book = await library.get_book(book_id)
        store = ConversationStore(sessionmaker, student_id, book_id)
        await store.ensure_conversation()

        student_name = await store.get_student_name()
        instruction = render_instruction(student_name=student_name, book_name=book.title)
        window = await ConversationWindow.load(
            store,
            instruction,
            book.context_text(),
            settings.token_budget,
            settings.eviction_policy,
        )

        registry = ToolRegistry(
            ToolContext(student_id=student_id, book_id=book_id, store=store, book=book)
        )
        registry.register(GetChapterContentTool())
        registry.register(BookJumpTool())
        registry.register(UpdateProgressTool())
        registry.register(AddMemoryTool())
        registry.register(GetBookProgressTool())

        logger.info(
            "Tutor agent created: student_id=%s, book_id=%s, history=%d, tokens=%d",
            student_id,
            book_id,
            len(window),
            window.token_count,
        )
        return cls(student_id, book, window, registry, llm_client, settings)

    @property
    def window(self) -> ConversationWindow:
        return self._window

    @property
    def registry(self) -> ToolRegistry:
        return self._registry

    def conversation(self) -> list[Message]:
        """Get the conversation tail currently in the window."""
        return self._window.conversation()

    async def input(self, message: Message | str, channel: EventChannel[ResponseEvent]) -> None:
        """Run one turn for an inbound message.

        Args:
            message: Student message, plain text or a full message.
            channel: Listener channel receiving the turn's events.

        Raises:
            LLMError: If a model request fails.
            DatabaseError: If persisting a message fails.
            ChannelClosedError: If the listener went away.
            TutorError: If the model keeps calling tools past max_tool_rounds.
        """
        if isinstance(message, str):
            message = UserMessage(content=message)

        await self._window.append(message)

        rounds = 0
        try:
            while True:
                rounds += 1
                if rounds > self._settings.max_tool_rounds:
                    raise TutorError(
                        f"Model requested tools for more than {self._settings.max_tool_rounds} rounds"
                    )

                self.state = TurnState.AWAITING_MODEL
                if self._settings.stream:
                    assistant = await self._stream_response(channel)
                else:
                    assistant = await self._complete_response(channel)

                if assistant is None:
                    logger.warning("Model returned an empty message, ending turn")
                    break

                await self._window.append(assistant)
                if not assistant.tool_calls:
                    break

                self.state = TurnState.DISPATCHING_TOOLS
                await self._dispatch(assistant.tool_calls, channel)
        finally:
            self.state = TurnState.DONE

        logger.info(
            "Turn finished: student_id=%s, book_id=%s, rounds=%d, tokens=%d",
            self.student_id,
            self.book.id,
            rounds,
            self._window.token_count,
        )

    async def stream(
        self,
        message: Message | str,
        lock: asyncio.Lock | None = None,
    ) -> AsyncIterator[ResponseEvent]:
        """Run one turn in the background and iterate its events.

        The turn runs as a separate task feeding a bounded channel. An
        error that ends the turn is raised after the events sent before it.
        Leaving the iteration early closes the channel; the turn then stops
        at its next event.

        Args:
            message: Student message.
            lock: Lock held for the duration of the turn.

        Yields:
            Response events in the order they were produced.
        """
        channel: EventChannel[ResponseEvent] = EventChannel(self._settings.event_buffer_size)

        async def produce() -> None:
            error: Exception | None = None
            try:
                if lock is None:
                    await self.input(message, channel)
                else:
                    async with lock:
                        await self.input(message, channel)
            except Exception as e:
                error = e
            await channel.finish(error)

        # Keep a reference so the turn is not garbage collected if the listener leaves
        self._turn_task = asyncio.create_task(
            produce(), name=f"tutor-turn:{self.student_id}:{self.book.id}"
        )
        try:
            async for event in channel:
                yield event
        finally:
            channel.close()

    async def _stream_response(
        self,
        channel: EventChannel[ResponseEvent],
    ) -> AssistantMessage | None:
        assembler = ToolCallAssembler()
        content: list[str] = []
        refusal: list[str] = []

        deltas = self._llm.stream_chat(
            self._window.request_messages(),
            self._registry.get_definitions(),
        )
        async for delta in deltas:
            self.state = TurnState.STREAMING_RESPONSE
            if delta.content:
                content.append(delta.content)
                await channel.send(ContentEvent(text=delta.content))
            if delta.refusal:
                refusal.append(delta.refusal)
            if delta.tool_calls:
                assembler.merge(delta.tool_calls)

        refusal_text = "".join(refusal)
        if refusal_text:
            await channel.send(RefusalEvent(text=refusal_text))

        return _assistant_message("".join(content), refusal_text, assembler.finish())

    async def _complete_response(
        self,
        channel: EventChannel[ResponseEvent],
    ) -> AssistantMessage | None:
        message = await self._llm.complete_chat(
            self._window.request_messages(),
            self._registry.get_definitions(),
        )
        self.state = TurnState.STREAMING_RESPONSE

        content = message_text(message)
        if content:
            await channel.send(ContentEvent(text=content))
        if message.refusal:
            await channel.send(RefusalEvent(text=message.refusal))

        return _assistant_message(content, message.refusal or "", message.tool_calls or [])

    async def _dispatch(
        self,
        calls: list[ToolCall],
        channel: EventChannel[ResponseEvent],
    ) -> None:
        for call in calls:
            await channel.send(ToolCallEvent(call=call))

        results = await self._registry.dispatch(calls)
        logger.debug("Dispatched %d tool call(s), %d result(s)", len(calls), len(results))

        for result in results:
            await channel.send(ToolResultEvent.from_message(result))
            await self._window.append(result)

    def __repr__(self) -> str:
        return (
            f"TutorAgent(student_id={self.student_id}, book_id={self.book.id}, "
            f"state={self.state.value})"
        )
