# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Persistence of one tutoring conversation.

A conversation is identified by (student_id, book_id). The store keeps:
- the append-only message history, replayed when an agent is rebuilt
- the reading watermark (current chapter)
- the tutor's memory notes about the student
- per-chapter learning progress

Each operation runs in its own session and commits on success. Writes that
read, merge and write back a row (memories, chapter progress, watermark)
are serialized per store, since the tools of one turn run concurrently.

Example:
    store = ConversationStore(get_sessionmaker(), student_id=1, book_id=7)
    await store.ensure_conversation()
    await store.append_message(UserMessage(content="Hi"))
    history = await store.fetch_messages()
"""

import asyncio
import logging
from typing import Optional

from pydantic import ValidationError
from sqlalchemy import delete, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from booktutor.infrastructure.database.connection import DatabaseError, get_session
from booktutor.infrastructure.database.models import (
    ChapterProgressRecord,
    HistoryMessage,
    Student,
    TutorConversation,
)
from booktutor.models.chapter import ChapterNumber
from booktutor.models.messages import Message, parse_message, serialize_message
from booktutor.models.progress import (
    BookProgress,
    ChapterObjective,
    ChapterProgress,
    ChapterStatus,
)
from booktutor.utils.datetime import ensure_utc, utc_now

logger = logging.getLogger(__name__)

DEFAULT_STUDENT_NAME = "Student"


def _to_progress(record: ChapterProgressRecord) -> ChapterProgress:
    return ChapterProgress(
        chapter_number=ChapterNumber.parse(record.chapter_number),
        status=ChapterStatus.from_db(record.status),
        objectives=[ChapterObjective.model_validate(item) for item in record.objectives or []],
        update_time=ensure_utc(record.update_time) or utc_now(),
    )


class ConversationStore:
    """Storage operations of a single (student, book) conversation.

    Attributes:
        student_id: Student of the conversation.
        book_id: Book of the conversation.
    """

    def __init__(
        self,
        sessionmaker: async_sessionmaker[AsyncSession],
        student_id: int,
        book_id: int,
    ) -> None:
        """Initialize the store.

        Args:
            sessionmaker: Session factory for the application database.
            student_id: Student of the conversation.
            book_id: Book of the conversation.
        """
        self._sessionmaker = sessionmaker
        self.student_id = student_id
        self.book_id = book_id
        self._write_lock = asyncio.Lock()

    async def _get_conversation(self, session: AsyncSession) -> Optional[TutorConversation]:
        return await session.get(TutorConversation, (self.student_id, self.book_id))

    async def ensure_conversation(self) -> None:
        """Create the conversation record if it does not exist yet."""
        try:
            async with get_session(self._sessionmaker) as session:
                if await self._get_conversation(session) is not None:
                    return
                session.add(
                    TutorConversation(
                        student_id=self.student_id,
                        book_id=self.book_id,
                        current_chapter_number="",
                        memories=[],
                    )
                )
                logger.info(
                    "Created conversation: student_id=%s, book_id=%s",
                    self.student_id,
                    self.book_id,
                )
        except DatabaseError as e:
            # A concurrent request created it first
            if isinstance(e.original_error, IntegrityError):
                logger.debug("Conversation already created concurrently")
                return
            raise

    async def append_message(self, message: Message) -> None:
        """Persist one message at the end of the history.

        Raises:
            DatabaseError: If the insert fails.
        """
        async with get_session(self._sessionmaker) as session:
            session.add(
                HistoryMessage(
                    student_id=self.student_id,
                    book_id=self.book_id,
                    content=serialize_message(message),
                    update_time=utc_now(),
                )
            )

    async def fetch_messages(self) -> list[Message]:
        """Load the whole history in the order it was appended.

        Rows that no longer parse as a message are skipped with a warning.
        """
        async with get_session(self._sessionmaker) as session:
            stmt = (
                select(HistoryMessage.id, HistoryMessage.content)
                .where(
                    HistoryMessage.student_id == self.student_id,
                    HistoryMessage.book_id == self.book_id,
                )
                .order_by(HistoryMessage.id)
            )
            rows = (await session.execute(stmt)).all()

        messages: list[Message] = []
        for row_id, content in rows:
            try:
                messages.append(parse_message(content))
            except ValidationError as e:
                logger.warning("Skipping unreadable history message %s: %s", row_id, e)
        return messages

    async def get_current_chapter(self) -> ChapterNumber:
        """Get the reading watermark; an empty ChapterNumber means none."""
        async with get_session(self._sessionmaker) as session:
            conversation = await self._get_conversation(session)
            if conversation is None or not conversation.current_chapter_number:
                return ChapterNumber()
            return ChapterNumber.parse(conversation.current_chapter_number)

    async def set_current_chapter(self, chapter_number: ChapterNumber) -> None:
        """Move the reading watermark."""
        async with self._write_lock, get_session(self._sessionmaker) as session:
            conversation = await self._get_conversation(session)
            if conversation is None:
                conversation = TutorConversation(
                    student_id=self.student_id,
                    book_id=self.book_id,
                    memories=[],
                )
                session.add(conversation)
            conversation.current_chapter_number = str(chapter_number)
            conversation.update_time = utc_now()

        logger.debug(
            "Current chapter set: student_id=%s, book_id=%s, chapter=%s",
            self.student_id,
            self.book_id,
            chapter_number,
        )

    async def add_memory(self, memory: str) -> bool:
        """Add a memory note.

        Args:
            memory: Note about the student.

        Returns:
            True if the note was new, False if it was already stored.
        """
        async with self._write_lock, get_session(self._sessionmaker) as session:
            conversation = await self._get_conversation(session)
            if conversation is None:
                conversation = TutorConversation(
                    student_id=self.student_id,
                    book_id=self.book_id,
                    current_chapter_number="",
                    memories=[],
                )
                session.add(conversation)

            memories = set(conversation.memories or [])
            if memory in memories:
                return False
            memories.add(memory)
            # Reassign so the JSON column is flagged as changed
            conversation.memories = sorted(memories)
            conversation.update_time = utc_now()
            return True

    async def get_memories(self) -> list[str]:
        """Get memory notes, sorted."""
        async with get_session(self._sessionmaker) as session:
            conversation = await self._get_conversation(session)
            if conversation is None:
                return []
            return sorted(set(conversation.memories or []))

    async def update_chapter_progress(self, progress: ChapterProgress) -> ChapterProgress:
        """Merge a progress report into the stored chapter progress.

        Args:
            progress: New status and objective updates for one chapter.

        Returns:
            The merged progress as stored.
        """
        key = (self.student_id, self.book_id, str(progress.chapter_number))
        async with self._write_lock, get_session(self._sessionmaker) as session:
            record = await session.get(ChapterProgressRecord, key)
            if record is None:
                merged = ChapterProgress(chapter_number=progress.chapter_number).merge(progress)
                record = ChapterProgressRecord(
                    student_id=self.student_id,
                    book_id=self.book_id,
                    chapter_number=str(progress.chapter_number),
                )
                session.add(record)
            else:
                merged = _to_progress(record).merge(progress)

            record.status = merged.status.db_value
            record.objectives = [
                objective.model_dump(mode="json") for objective in merged.objectives
            ]
            record.update_time = merged.update_time

        logger.info(
            "Chapter progress updated: student_id=%s, book_id=%s, chapter=%s, status=%s",
            self.student_id,
            self.book_id,
            merged.chapter_number,
            merged.status.value,
        )
        return merged

    async def get_chapter_progress(self) -> list[ChapterProgress]:
        """Get the progress of every chapter the student touched, in reading order."""
        async with get_session(self._sessionmaker) as session:
            stmt = select(ChapterProgressRecord).where(
                ChapterProgressRecord.student_id == self.student_id,
                ChapterProgressRecord.book_id == self.book_id,
            )
            records = (await session.execute(stmt)).scalars().all()
            progress = [_to_progress(record) for record in records]
        return sorted(progress, key=lambda p: p.chapter_number)

    async def get_book_progress(self) -> BookProgress:
        """Get watermark, chapter progress and memories in one view."""
        current = await self.get_current_chapter()
        chapters = await self.get_chapter_progress()
        memories = await self.get_memories()
        return BookProgress.build(current or None, chapters, memories)

    async def get_student_name(self) -> str:
        """Get the student's display name, or a generic one if unknown."""
        async with get_session(self._sessionmaker) as session:
            name = await session.scalar(select(Student.name).where(Student.id == self.student_id))
        if not name:
            logger.warning("Unknown student %s, using default name", self.student_id)
            return DEFAULT_STUDENT_NAME
        return name

    async def delete_conversation(self) -> None:
        """Remove progress, history and the conversation record."""
        async with get_session(self._sessionmaker) as session:
            await session.execute(
                delete(ChapterProgressRecord).where(
                    ChapterProgressRecord.student_id == self.student_id,
                    ChapterProgressRecord.book_id == self.book_id,
                )
            )
            await session.execute(
                delete(HistoryMessage).where(
                    HistoryMessage.student_id == self.student_id,
                    HistoryMessage.book_id == self.book_id,
                )
            )
            await session.execute(
                delete(TutorConversation).where(
                    TutorConversation.student_id == self.student_id,
                    TutorConversation.book_id == self.book_id,
                )
            )

        logger.info(
            "Deleted conversation: student_id=%s, book_id=%s",
            self.student_id,
            self.book_id,
        )

    def __repr__(self) -> str:
        return f"ConversationStore(student_id={self.student_id}, book_id={self.book_id})"


async def create_student(
    sessionmaker: async_sessionmaker[AsyncSession],
    name: str,
    email: Optional[str] = None,
) -> int:
    """Insert a student row and return its id."""
    async with get_session(sessionmaker) as session:
        student = Student(name=name, email=email)
        session.add(student)
        await session.flush()
        return student.id
