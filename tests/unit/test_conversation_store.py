# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Unit tests for ConversationStore against a temporary SQLite database."""

from datetime import datetime, timedelta, timezone
from unittest.mock import patch

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booktutor.domains.conversation.store import (
    DEFAULT_STUDENT_NAME,
    ConversationStore,
)
from booktutor.infrastructure.database.connection import get_session
from booktutor.models.chapter import ChapterNumber
from booktutor.models.messages import (
    AssistantMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
)
from booktutor.models.progress import ChapterObjective, ChapterProgress, ChapterStatus


@pytest.mark.unit
class TestConversationRecord:
    """Tests for the conversation record."""

    @pytest.mark.asyncio
    async def test_ensure_conversation_is_idempotent(self, store: ConversationStore) -> None:
        """Test that a second ensure does not fail."""
        await store.ensure_conversation()

        assert await store.get_current_chapter() == ChapterNumber()

    @pytest.mark.asyncio
    async def test_student_name(self, store: ConversationStore) -> None:
        """Test the stored student name."""
        assert await store.get_student_name() == "Ada"

    @pytest.mark.asyncio
    async def test_unknown_student_name(
        self, db_sessionmaker: async_sessionmaker[AsyncSession]
    ) -> None:
        """Test the fallback name for unknown students."""
        store = ConversationStore(db_sessionmaker, student_id=999, book_id=7)

        assert await store.get_student_name() == DEFAULT_STUDENT_NAME


@pytest.mark.unit
class TestMessageHistory:
    """Tests for the message history."""

    @pytest.mark.asyncio
    async def test_messages_in_append_order(self, store: ConversationStore) -> None:
        """Test that history is returned in the order it was written."""
        messages = [
            UserMessage(content="Let's start"),
            AssistantMessage(tool_calls=[ToolCall.create("c1", "GetChapterContent", "{}")]),
            ToolMessage(content="Words are the building blocks.", tool_call_id="c1"),
            AssistantMessage(content="Chapter 1 is about words."),
        ]
        for message in messages:
            await store.append_message(message)

        assert await store.fetch_messages() == messages

    @pytest.mark.asyncio
    async def test_order_survives_clock_going_back(self, store: ConversationStore) -> None:
        """Test that replay order follows insertion, not timestamps."""
        start = datetime(2025, 3, 1, 12, 0, tzinfo=timezone.utc)
        times = [start - timedelta(minutes=i) for i in range(3)]
        messages = [UserMessage(content=f"message {i}") for i in range(3)]

        with patch("booktutor.domains.conversation.store.utc_now", side_effect=times):
            for message in messages:
                await store.append_message(message)

        assert await store.fetch_messages() == messages

    @pytest.mark.asyncio
    async def test_history_is_per_conversation(
        self, store: ConversationStore, db_sessionmaker: async_sessionmaker[AsyncSession]
    ) -> None:
        """Test that other books of the same student are isolated."""
        other = ConversationStore(db_sessionmaker, store.student_id, book_id=8)
        await store.append_message(UserMessage(content="book 7"))
        await other.append_message(UserMessage(content="book 8"))

        assert await store.fetch_messages() == [UserMessage(content="book 7")]

    @pytest.mark.asyncio
    async def test_unreadable_rows_are_skipped(
        self, store: ConversationStore, db_sessionmaker: async_sessionmaker[AsyncSession]
    ) -> None:
        """Test that corrupt history rows do not break loading."""
        await store.append_message(UserMessage(content="fine"))
        async with get_session(db_sessionmaker) as session:
            await session.execute(
                text(
                    "INSERT INTO history_message (student_id, book_id, content, update_time) "
                    "VALUES (:s, :b, :c, CURRENT_TIMESTAMP)"
                ),
                {"s": store.student_id, "b": store.book_id, "c": '{"role": "robot"}'},
            )

        assert await store.fetch_messages() == [UserMessage(content="fine")]


@pytest.mark.unit
class TestWatermarkAndMemories:
    """Tests for the current chapter and memory notes."""

    @pytest.mark.asyncio
    async def test_set_current_chapter(self, store: ConversationStore) -> None:
        """Test moving the watermark."""
        await store.set_current_chapter(ChapterNumber.parse("1.2."))

        assert await store.get_current_chapter() == ChapterNumber.parse("1.2.")

    @pytest.mark.asyncio
    async def test_add_memory_deduplicates(self, store: ConversationStore) -> None:
        """Test that memories form a set."""
        assert await store.add_memory("likes cats") is True
        assert await store.add_memory("is 12") is True
        assert await store.add_memory("likes cats") is False

        assert await store.get_memories() == ["is 12", "likes cats"]


@pytest.mark.unit
class TestChapterProgress:
    """Tests for chapter progress persistence."""

    @pytest.mark.asyncio
    async def test_first_update_creates_record(self, store: ConversationStore) -> None:
        """Test the first progress report for a chapter."""
        merged = await store.update_chapter_progress(
            ChapterProgress(
                chapter_number=ChapterNumber.parse("1.1."),
                status=ChapterStatus.IN_PROGRESS,
                objectives=[ChapterObjective(description="identify nouns", progress="started")],
            )
        )

        stored = await store.get_chapter_progress()
        assert [p.chapter_number for p in stored] == [merged.chapter_number]
        assert stored[0].status is ChapterStatus.IN_PROGRESS
        assert stored[0].objectives[0].progress == "started"

    @pytest.mark.asyncio
    async def test_updates_are_merged(self, store: ConversationStore) -> None:
        """Test that later reports upsert objectives."""
        number = ChapterNumber.parse("1.1.")
        await store.update_chapter_progress(
            ChapterProgress(
                chapter_number=number,
                status=ChapterStatus.IN_PROGRESS,
                objectives=[
                    ChapterObjective(description="identify nouns"),
                    ChapterObjective(description="plural nouns"),
                ],
            )
        )
        await store.update_chapter_progress(
            ChapterProgress(
                chapter_number=number,
                status=ChapterStatus.COMPLETED,
                objectives=[ChapterObjective(description="identify nouns", completed=True)],
            )
        )

        (progress,) = await store.get_chapter_progress()
        assert progress.status is ChapterStatus.COMPLETED
        assert [(o.description, o.completed) for o in progress.objectives] == [
            ("identify nouns", True),
            ("plural nouns", False),
        ]

    @pytest.mark.asyncio
    async def test_book_progress(self, store: ConversationStore) -> None:
        """Test the combined progress view in reading order."""
        for number in ["-1.1.", "2.", "1."]:
            await store.update_chapter_progress(
                ChapterProgress(chapter_number=ChapterNumber.parse(number))
            )
        await store.set_current_chapter(ChapterNumber.parse("2."))
        await store.add_memory("prefers examples")

        progress = await store.get_book_progress()

        assert list(progress.chapter_progress) == ["1.", "2.", "-1.1."]
        assert progress.current_learning_chapter == ChapterNumber.parse("2.")
        assert progress.memories == ["prefers examples"]

    @pytest.mark.asyncio
    async def test_delete_conversation(self, store: ConversationStore) -> None:
        """Test that deleting removes every part of the conversation."""
        await store.append_message(UserMessage(content="hi"))
        await store.add_memory("likes cats")
        await store.set_current_chapter(ChapterNumber.parse("1."))
        await store.update_chapter_progress(ChapterProgress(chapter_number=ChapterNumber.parse("1.")))

        await store.delete_conversation()

        assert await store.fetch_messages() == []
        assert await store.get_memories() == []
        assert await store.get_chapter_progress() == []
        assert not await store.get_current_chapter()
