# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Pytest configuration and shared fixtures.

This module provides fixtures used across all test types:
- A small sample book
- A temporary SQLite database with the schema created
- A conversation store bound to that database
- A scripted LLM client replaying canned streaming turns
"""

from collections.abc import AsyncIterator, Awaitable, Callable
from pathlib import Path
from typing import Any

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from booktutor.core.config.settings import TutorSettings
from booktutor.core.intelligence.llm.streaming import ChatDelta
from booktutor.core.orchestration.tutor import TutorAgent
from booktutor.domains.books.book import Book, Chapter, InMemoryBookLibrary
from booktutor.domains.conversation.store import ConversationStore, create_student
from booktutor.infrastructure.database.connection import create_schema, create_sessionmaker
from booktutor.models.chapter import ChapterNumber
from booktutor.models.messages import AssistantMessage


# =============================================================================
# Marker Configuration
# =============================================================================


def pytest_configure(config: pytest.Config) -> None:
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test (requires services)"
    )


# =============================================================================
# Scripted LLM
# =============================================================================


class ScriptedLLMClient:
    """Stand-in for LLMClient replaying one scripted reply per request.

    Each streaming turn is a list of ChatDelta; each non-streaming turn is
    an AssistantMessage. Requests are recorded for inspection. Once the
    script is used up, ``error`` is raised if given.
    """

    def __init__(
        self,
        turns: list[list[ChatDelta]] | None = None,
        completions: list[AssistantMessage] | None = None,
        error: Exception | None = None,
    ) -> None:
        self.turns = list(turns or [])
        self.completions = list(completions or [])
        self.error = error
        self.requests: list[dict[str, Any]] = []

    def _exhausted(self) -> Exception:
        if self.error is not None:
            return self.error
        return AssertionError("No scripted reply left")

    async def stream_chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> AsyncIterator[ChatDelta]:
        self.requests.append({"messages": messages, "tools": tools})
        if not self.turns:
            raise self._exhausted()
        for delta in self.turns.pop(0):
            yield delta

    async def complete_chat(
        self,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
    ) -> AssistantMessage:
        self.requests.append({"messages": messages, "tools": tools})
        if not self.completions:
            raise self._exhausted()
        return self.completions.pop(0)


# =============================================================================
# Domain Fixtures
# =============================================================================


@pytest.fixture
def sample_book() -> Book:
    """Provide a small grammar book with front and back matter."""
    return Book(
        id=7,
        title="English Grammar Basics",
        authors=["A. Writer"],
        description="Parts of speech for beginners",
        teaching_plan="One part of speech per lesson.",
        chapters=[
            Chapter(number=ChapterNumber.parse("-1.1."), name="Appendix", content="Tables"),
            Chapter(number=ChapterNumber.parse("2."), name="Sentences", content="Subject and predicate"),
            Chapter(number=ChapterNumber.parse("1.2."), name="Verbs", parent_names=["Words"], content="Verbs are actions."),
            Chapter(number=ChapterNumber.parse("1."), name="Words", path="words.md", content="Words are the building blocks."),
            Chapter(number=ChapterNumber.parse("1.1."), name="Nouns", parent_names=["Words"], content="Nouns name things."),
            Chapter(number=ChapterNumber.parse("0.1."), name="Preface", content="Welcome"),
        ],
    )


@pytest.fixture
def library(sample_book: Book) -> InMemoryBookLibrary:
    """Provide a library holding the sample book."""
    return InMemoryBookLibrary([sample_book])


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest_asyncio.fixture
async def db_sessionmaker(tmp_path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Provide a session factory for a fresh SQLite database file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'booktutor.db'}")
    await create_schema(engine)
    yield create_sessionmaker(engine)
    await engine.dispose()


@pytest_asyncio.fixture
async def student_id(db_sessionmaker: async_sessionmaker[AsyncSession]) -> int:
    """Provide the id of a stored student named Ada."""
    return await create_student(db_sessionmaker, "Ada", "ada@example.com")


@pytest_asyncio.fixture
async def store(
    db_sessionmaker: async_sessionmaker[AsyncSession],
    student_id: int,
    sample_book: Book,
) -> ConversationStore:
    """Provide a store for Ada's conversation about the sample book."""
    conversation_store = ConversationStore(db_sessionmaker, student_id, sample_book.id)
    await conversation_store.ensure_conversation()
    return conversation_store


# =============================================================================
# Agent Fixtures
# =============================================================================


AgentFactory = Callable[..., Awaitable[tuple[TutorAgent, ScriptedLLMClient]]]


@pytest.fixture
def make_agent(
    library: InMemoryBookLibrary,
    db_sessionmaker: async_sessionmaker[AsyncSession],
    student_id: int,
) -> AgentFactory:
    """Provide a factory building a tutor agent driven by a scripted model.

    Keyword arguments other than the script and ``book_id`` are passed to
    TutorSettings.
    """

    async def _make(
        turns: list[list[ChatDelta]] | None = None,
        completions: list[AssistantMessage] | None = None,
        error: Exception | None = None,
        book_id: int = 7,
        **settings: Any,
    ) -> tuple[TutorAgent, ScriptedLLMClient]:
        llm = ScriptedLLMClient(turns, completions, error)
        agent = await TutorAgent.create(
            student_id,
            book_id,
            library=library,
            sessionmaker=db_sessionmaker,
            llm_client=llm,  # type: ignore[arg-type]
            settings=TutorSettings(**settings),
        )
        return agent, llm

    return _make
